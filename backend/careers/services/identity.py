"""
Candidate identity: registration, email verification and passwordless login.

States: unregistered -> pending verification -> verified. `verify_email` is the
only code path that sets `email_verified`, and every token is cleared right
after its single successful use.
"""
import logging
from dataclasses import dataclass

from fastapi import BackgroundTasks
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session as DbSession

from .. import config
from ..models.candidate import Candidate
from ..utils.error_handlers import (
    AlreadyRegistered,
    InvalidOrExpiredToken,
    NotRegistered,
    NotVerified,
    TokenExpired,
    get_error_message,
)
from ..utils.jwt import Session, issue_session, session_candidate_id
from ..utils.tokens import clean_token, is_expired, login_token, token_forms, tokens_match, utcnow, verification_token
from ..utils.validation import validate_email
from . import email_templates
from .emailer import send_best_effort

logger = logging.getLogger(__name__)


@dataclass
class VerificationResult:
    email: str
    session: Session
    already_verified: bool = False


@dataclass
class LoginResult:
    email: str
    credential: str
    # Set only when a new credential was minted (the cookie must be refreshed).
    session: Session | None = None
    already_logged_in: bool = False
    token_reused: bool = False


def _dispatch(background_tasks: BackgroundTasks, to: str, message: tuple[str, str]) -> None:
    subject, html = message
    background_tasks.add_task(send_best_effort, to, subject, html)


def find_by_email(db: DbSession, email: str) -> Candidate | None:
    # Registration-time lookup only; protected paths resolve candidates by id.
    return db.query(Candidate).filter(Candidate.email == email.strip().lower()).first()


def register(db: DbSession, email: str, background_tasks: BackgroundTasks) -> str:
    """
    Create or refresh a pending registration and email a verification link.

    Re-registering an unverified address reuses the row and overwrites the
    token, which invalidates any earlier link immediately.
    """
    email = validate_email(email)
    candidate = find_by_email(db, email)

    if candidate and candidate.email_verified:
        raise AlreadyRegistered()

    issued = verification_token()
    if candidate is None:
        candidate = Candidate(
            email=email,
            email_verified=False,
            verification_token=issued.value,
            verification_token_expiry=issued.expires_at,
        )
        db.add(candidate)
        try:
            db.commit()
        except IntegrityError:
            # Lost a concurrent first registration for the same address.
            db.rollback()
            candidate = find_by_email(db, email)
            if candidate is None:
                raise
            if candidate.email_verified:
                raise AlreadyRegistered()
            candidate.verification_token = issued.value
            candidate.verification_token_expiry = issued.expires_at
            db.commit()
    else:
        candidate.verification_token = issued.value
        candidate.verification_token_expiry = issued.expires_at
        db.commit()

    logger.info("Verification token issued for candidate %s", candidate.id)
    _dispatch(background_tasks, email, email_templates.verification_email(issued.value, email))
    return email


def _resolve_verification(db: DbSession, token: str, by_email: Candidate | None) -> Candidate | None:
    if by_email is not None and tokens_match(by_email.verification_token, token):
        return by_email

    candidate = db.query(Candidate).filter(Candidate.verification_token == token).first()
    if candidate is not None:
        return candidate

    return (
        db.query(Candidate)
        .filter(
            Candidate.verification_token.isnot(None),
            func.lower(Candidate.verification_token) == token.lower(),
        )
        .first()
    )


def verify_email(
    db: DbSession,
    token: str | None,
    email: str | None,
    background_tasks: BackgroundTasks,
) -> VerificationResult:
    forms = token_forms(token)
    if not forms:
        raise InvalidOrExpiredToken("Invalid verification token")

    by_email = find_by_email(db, clean_token(email)) if email else None
    candidate = None
    for form in forms:
        candidate = _resolve_verification(db, form, by_email)
        if candidate is not None:
            break

    if candidate is None:
        if by_email is not None and by_email.email_verified:
            # Link already used, but the address is verified: log in without
            # touching verification state.
            logger.info("Reused verification link for verified candidate %s", by_email.id)
            return VerificationResult(
                email=by_email.email,
                session=issue_session(by_email.id, by_email.email),
                already_verified=True,
            )
        raise InvalidOrExpiredToken()

    if is_expired(candidate.verification_token_expiry):
        raise TokenExpired()

    candidate.email_verified = True
    candidate.verified_at = utcnow()
    candidate.verification_token = None
    candidate.verification_token_expiry = None
    db.commit()
    logger.info("Candidate %s verified their email", candidate.id)

    session = issue_session(candidate.id, candidate.email)

    _dispatch(background_tasks, candidate.email, email_templates.welcome_email())
    if config.ADMIN_EMAIL:
        _dispatch(
            background_tasks,
            config.ADMIN_EMAIL,
            email_templates.candidate_verified_notification(candidate.email, candidate.registered_at),
        )

    return VerificationResult(email=candidate.email, session=session)


def check_registration(db: DbSession, email: str) -> dict:
    candidate = find_by_email(db, email)
    return {
        "registered": candidate is not None,
        "verified": bool(candidate and candidate.email_verified),
    }


def request_login(db: DbSession, email: str, background_tasks: BackgroundTasks) -> str:
    """
    Email a 15-minute magic link.

    The response is identical whether or not an earlier link was pending.
    """
    email = validate_email(email)
    candidate = find_by_email(db, email)

    if candidate is None:
        raise NotRegistered()
    if not candidate.email_verified:
        raise NotVerified(status_code=400, email=candidate.email)

    issued = login_token()
    candidate.login_token = issued.value
    candidate.login_token_expiry = issued.expires_at
    db.commit()

    logger.info("Login link issued for candidate %s", candidate.id)
    _dispatch(background_tasks, candidate.email, email_templates.login_email(issued.value, candidate.email))
    return candidate.email


def _clear_login_token(db: DbSession, candidate: Candidate) -> None:
    candidate.login_token = None
    candidate.login_token_expiry = None
    db.commit()


def verify_login(
    db: DbSession,
    token: str | None,
    email: str | None,
    existing_credential: str | None = None,
) -> LoginResult:
    """
    Consume a magic link.

    Lenient on replay, strict on expiry: a verified candidate whose link was
    already consumed (double click, mail-client prefetch) still gets a session,
    but a matching token past its expiry is always rejected.
    """
    if not token or not email:
        raise InvalidOrExpiredToken(get_error_message("invalid_login_link"))

    forms = token_forms(token)
    candidate = find_by_email(db, clean_token(email))
    if candidate is None:
        raise InvalidOrExpiredToken("Invalid login link. Email not found.", expired=True)

    if not any(tokens_match(candidate.login_token, form, case_insensitive=False) for form in forms):
        if not candidate.email_verified:
            raise NotVerified(get_error_message("login_link_used"), status_code=400, expired=True, alreadyUsed=True)

        if session_candidate_id(existing_credential) == candidate.id:
            logger.info("Consumed login link reopened by signed-in candidate %s", candidate.id)
            return LoginResult(email=candidate.email, credential=existing_credential, already_logged_in=True)

        # TODO: replaying a consumed link mints a fresh session with no time bound;
        # product has to decide whether reuse should stop at the original 15 minutes.
        session = issue_session(candidate.id, candidate.email)
        logger.info("Consumed login link reused by candidate %s; new session issued", candidate.id)
        return LoginResult(email=candidate.email, credential=session.credential, session=session, token_reused=True)

    if is_expired(candidate.login_token_expiry):
        _clear_login_token(db, candidate)
        raise TokenExpired(get_error_message("login_expired"))

    if not candidate.email_verified:
        raise NotVerified(get_error_message("session_not_verified"))

    _clear_login_token(db, candidate)
    session = issue_session(candidate.id, candidate.email)
    logger.info("Candidate %s logged in via magic link", candidate.id)
    return LoginResult(email=candidate.email, credential=session.credential, session=session)
