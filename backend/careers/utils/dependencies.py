"""
Request-time auth gate.

Candidates may present their session credential either as a header
(`x-auth-token` or `Authorization: Bearer`) or as the HTTP-only session cookie.
Both feed the same `resolve_candidate` check; the header wins when both are
present so cross-site clients that can't rely on cookies keep working.
"""
import logging

from fastapi import Depends, Security
from fastapi.security import APIKeyCookie, APIKeyHeader, HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .. import database
from ..config import SESSION_COOKIE_NAME
from ..database import get_db
from ..models.admin import Admin
from ..models.candidate import Candidate
from ..schemas.identity import AuthenticatedCandidate, CandidateRef
from .error_handlers import (
    AppError,
    InvalidSession,
    NotVerified,
    ServiceUnavailable,
    SessionExpired,
    Unauthenticated,
    UnauthorizedError,
    get_error_message,
)
from .jwt import decode_admin_token, decode_session

logger = logging.getLogger(__name__)


def require_database() -> None:
    if not database.database_ready():
        raise ServiceUnavailable()


x_auth_token = APIKeyHeader(name="x-auth-token", auto_error=False)
bearer_token = HTTPBearer(auto_error=False)
session_cookie = APIKeyCookie(name=SESSION_COOKIE_NAME, auto_error=False)


def header_credential(
    api_key: str | None = Security(x_auth_token),
    bearer: HTTPAuthorizationCredentials | None = Security(bearer_token),
) -> str | None:
    if api_key and api_key.strip():
        return api_key.strip()
    if bearer is not None and bearer.credentials.strip():
        return bearer.credentials.strip()
    return None


def candidate_credential(
    header: str | None = Depends(header_credential),
    cookie: str | None = Security(session_cookie),
) -> str | None:
    return header or (cookie or "").strip() or None


def resolve_candidate(db: Session, credential: str | None) -> AuthenticatedCandidate:
    if not credential:
        raise Unauthenticated()

    claims = decode_session(credential)
    try:
        candidate_id = int(claims["sub"])
    except (KeyError, TypeError, ValueError):
        raise SessionExpired()

    candidate = db.query(Candidate).filter(Candidate.id == candidate_id).first()
    if candidate is None:
        raise InvalidSession()

    if not candidate.email_verified:
        raise NotVerified(get_error_message("session_not_verified"), authenticated=False)

    return AuthenticatedCandidate(
        ref=CandidateRef.of(candidate),
        email=candidate.email,
        email_verified=bool(candidate.email_verified),
    )


def get_current_candidate(
    credential: str | None = Depends(candidate_credential),
    db: Session = Depends(get_db),
) -> AuthenticatedCandidate:
    return resolve_candidate(db, credential)


def get_optional_candidate(
    credential: str | None = Depends(candidate_credential),
    db: Session = Depends(get_db),
) -> AuthenticatedCandidate | None:
    """Same resolution as get_current_candidate, but anonymous on any failure."""
    try:
        return resolve_candidate(db, credential)
    except AppError as e:
        logger.debug("Optional auth fell back to anonymous: %s", e.message)
        return None


def get_current_admin(
    token: str | None = Depends(header_credential),
    db: Session = Depends(get_db),
) -> Admin:
    # Admin credentials are never read from the candidate cookie.
    if not token:
        raise UnauthorizedError(get_error_message("admin_unauthorized"))

    try:
        claims = decode_admin_token(token)
        admin_id = int(claims["sub"])
    except (SessionExpired, KeyError, ValueError):
        raise UnauthorizedError(get_error_message("admin_token_invalid"))

    admin = db.query(Admin).filter(Admin.id == admin_id).first()
    if admin is None:
        raise UnauthorizedError(get_error_message("admin_token_invalid"))
    return admin
