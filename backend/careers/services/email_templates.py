"""HTML bodies for candidate and operations emails."""
from datetime import datetime, timezone
from html import escape
from urllib.parse import quote

from .. import config

_BUTTON = (
    "display: inline-block; background-color: #7c3aed; color: white; padding: 12px 24px; "
    "text-decoration: none; border-radius: 5px; margin: 20px 0;"
)


def _link(path: str, token: str, email: str) -> str:
    return f"{config.get_frontend_url()}{path}?token={quote(token, safe='')}&email={quote(email, safe='')}"


def verification_link(token: str, email: str) -> str:
    return _link("/verify-email", token, email)


def login_link(token: str, email: str) -> str:
    return _link("/login-verify", token, email)


def _wrap(body: str) -> str:
    return f'<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">{body}</div>'


def verification_email(token: str, email: str) -> tuple[str, str]:
    url = verification_link(token, email)
    html = _wrap(
        f'<h2 style="color: #7c3aed;">Welcome to {escape(config.SCHOOL_NAME)}</h2>'
        "<p>Thank you for your interest in joining our team!</p>"
        "<p>Please verify your email address by clicking the link below:</p>"
        f'<a href="{escape(url)}" style="{_BUTTON}">Verify Email Address</a>'
        "<p>If the button doesn't work, copy and paste this link into your browser:</p>"
        f'<p style="word-break: break-all; color: #666;">{escape(url)}</p>'
        "<p>This verification link will expire in 24 hours.</p>"
    )
    return f"Verify Your Email - {config.SCHOOL_NAME}", html


def login_email(token: str, email: str) -> tuple[str, str]:
    url = login_link(token, email)
    html = _wrap(
        f'<h2 style="color: #7c3aed;">Login to {escape(config.SCHOOL_NAME)}</h2>'
        "<p>Click the link below to securely login to your account:</p>"
        f'<a href="{escape(url)}" style="{_BUTTON}">Login to Your Account</a>'
        "<p>If the button doesn't work, copy and paste this link into your browser:</p>"
        f'<p style="word-break: break-all; color: #666;">{escape(url)}</p>'
        "<p>This login link will expire in 15 minutes.</p>"
    )
    return f"Login Link - {config.SCHOOL_NAME}", html


def welcome_email() -> tuple[str, str]:
    html = _wrap(
        '<h2 style="color: #7c3aed;">Registration Successful!</h2>'
        "<p>Your email has been verified successfully.</p>"
        f"<p>You can now login and start applying for jobs at {escape(config.SCHOOL_NAME)}.</p>"
        f'<a href="{config.get_frontend_url()}/careers" style="{_BUTTON}">Click here to apply for jobs</a>'
    )
    return f"Registration Successful - {config.SCHOOL_NAME}", html


def _stamp(value: datetime | None) -> str:
    return (value or datetime.now(timezone.utc)).strftime("%Y-%m-%d %H:%M UTC")


def candidate_verified_notification(email: str, registered_at: datetime | None) -> tuple[str, str]:
    admin_url = f"{config.get_frontend_url()}/admin/candidates?search={quote(email, safe='')}"
    html = _wrap(
        '<h2 style="color: #7c3aed;">New Candidate Registered &amp; Verified</h2>'
        "<p>A new candidate has successfully registered and verified their email:</p>"
        f"<p><strong>Email:</strong> {escape(email)}</p>"
        f"<p><strong>Registration Date:</strong> {_stamp(registered_at)}</p>"
        f"<p><strong>Verification Date:</strong> {_stamp(None)}</p>"
        "<p>The candidate can now create their profile and apply for jobs.</p>"
        f'<a href="{escape(admin_url)}" style="{_BUTTON}">View in Admin Dashboard</a>'
    )
    return f"New Candidate Registered & Verified - {config.SCHOOL_NAME}", html


def profile_created_notification(full_name: str, email: str, phone: str) -> tuple[str, str]:
    html = _wrap(
        '<h2 style="color: #dc2626;">New Candidate Profile Created</h2>'
        "<p>A new candidate has completed their profile:</p>"
        "<ul>"
        f"<li><strong>Name:</strong> {escape(full_name or '')}</li>"
        f"<li><strong>Email:</strong> {escape(email)}</li>"
        f"<li><strong>Phone:</strong> {escape(phone or '')}</li>"
        f"<li><strong>Date/Time:</strong> {_stamp(None)}</li>"
        "</ul>"
        f'<p><a href="{config.get_frontend_url()}/admin/candidates">View in admin dashboard</a></p>'
    )
    return f"New Candidate Profile Created - {config.SCHOOL_NAME}", html


def application_confirmation(full_name: str, job_title: str) -> tuple[str, str]:
    html = _wrap(
        '<h2 style="color: #7c3aed;">Application Submitted Successfully!</h2>'
        f"<p>Dear {escape(full_name)},</p>"
        f"<p>Your application for <strong>{escape(job_title)}</strong> has been received.</p>"
        "<p>Our team will review your application and contact you soon.</p>"
        f"<p>Thank you for your interest in {escape(config.SCHOOL_NAME)}!</p>"
    )
    return f"Application Submitted - {config.SCHOOL_NAME}", html
