import logging
import re
import smtplib
from email.message import EmailMessage
from email.utils import formataddr, make_msgid

from .. import config

logger = logging.getLogger(__name__)


def _html_to_text(html: str) -> str:
    text = re.sub(r"<[^>]*>", "", html)
    return "\n".join(line.strip() for line in text.splitlines() if line.strip())


def send_email(to: str, subject: str, html: str, text: str | None = None) -> dict:
    """
    Sends an HTML email over SMTP (Gmail App Password recommended).

    Never raises: callers treat email as best-effort and only log the result.
    Returns {"success": True, "message_id": ...} or {"success": False, "error": ...}.

    Env vars:
      SMTP_HOST, SMTP_PORT, SMTP_USER, SMTP_PASS, SMTP_FROM, SMTP_TLS, EMAIL_ENABLED
    """
    if not config.EMAIL_ENABLED:
        logger.info("Email disabled; not sending %r to %s", subject, to)
        return {"success": False, "error": "Email sending is disabled"}

    host = config.SMTP_HOST
    port = config.SMTP_PORT
    user = config.SMTP_USER
    password = config.SMTP_PASS
    mail_from = config.SMTP_FROM or user

    if not host or not user or not password or not mail_from:
        err = "SMTP is not configured (missing SMTP_HOST/SMTP_USER/SMTP_PASS/SMTP_FROM)."
        logger.error(err)
        return {"success": False, "error": err}

    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = formataddr((config.SCHOOL_NAME, mail_from))
    msg["To"] = to
    msg["Message-ID"] = make_msgid()
    msg.set_content(text or _html_to_text(html))
    msg.add_alternative(html, subtype="html")

    try:
        if port == 465:
            smtp_cls = smtplib.SMTP_SSL
        else:
            smtp_cls = smtplib.SMTP
        with smtp_cls(host, port, timeout=15) as smtp:
            smtp.ehlo()
            if config.SMTP_TLS and smtp_cls is smtplib.SMTP:
                smtp.starttls()
                smtp.ehlo()
            smtp.login(user, password)
            smtp.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Failed to send email %r to %s: %s: %s", subject, to, type(e).__name__, e)
        return {"success": False, "error": str(e)}

    logger.info("Email %r sent to %s (%s)", subject, to, msg["Message-ID"])
    return {"success": True, "message_id": msg["Message-ID"]}


def send_best_effort(to: str, subject: str, html: str) -> None:
    """Fire-and-forget wrapper for BackgroundTasks; failures are logged, never raised."""
    try:
        result = send_email(to, subject, html)
    except Exception:
        logger.exception("Unexpected error sending %r to %s", subject, to)
        return
    if not result.get("success"):
        logger.warning("Best-effort email %r to %s not delivered: %s", subject, to, result.get("error"))
