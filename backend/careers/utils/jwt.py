from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from fastapi import Response
from jose import JWTError, jwt

from ..config import (
    ADMIN_TOKEN_TTL_MINUTES,
    SECRET_KEY,
    SESSION_COOKIE_NAME,
    SESSION_COOKIE_SECURE,
    SESSION_COOKIE_TTL_DAYS,
    SESSION_TTL_MINUTES,
)
from .error_handlers import SessionExpired

ALGORITHM = "HS256"
CANDIDATE_KIND = "candidate"
ADMIN_KIND = "admin"


@dataclass(frozen=True)
class Session:
    """
    A signed candidate credential and its two delivery targets.

    The cookie is only a transport and deliberately outlives the credential;
    `expires_at` (the signed `exp` claim) is what the auth gate enforces.
    """
    credential: str
    expires_at: datetime
    cookie_expires_at: datetime

    def body(self) -> dict:
        return {"token": self.credential, "expiresAt": self.expires_at.isoformat()}


def _encode(claims: dict, lifetime: timedelta) -> tuple[str, datetime]:
    expire = datetime.now(timezone.utc) + lifetime
    to_encode = claims.copy()
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM), expire


def issue_session(candidate_id: int, email: str) -> Session:
    credential, expire = _encode(
        {"sub": str(candidate_id), "email": email, "kind": CANDIDATE_KIND},
        timedelta(minutes=SESSION_TTL_MINUTES),
    )
    cookie_expire = datetime.now(timezone.utc) + timedelta(days=SESSION_COOKIE_TTL_DAYS)
    return Session(credential=credential, expires_at=expire, cookie_expires_at=cookie_expire)


def _decode(credential: str, kind: str) -> dict:
    try:
        claims = jwt.decode(credential, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise SessionExpired()
    if claims.get("kind") != kind or not claims.get("sub"):
        raise SessionExpired()
    return claims


def decode_session(credential: str) -> dict:
    """Verify signature and expiry; raises SessionExpired on any failure."""
    return _decode(credential, CANDIDATE_KIND)


def session_candidate_id(credential: str | None) -> int | None:
    """Candidate id of a still-valid session credential, else None."""
    if not credential:
        return None
    try:
        return int(decode_session(credential)["sub"])
    except (SessionExpired, ValueError):
        return None


def set_session_cookie(response: Response, session: Session) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=session.credential,
        expires=session.cookie_expires_at,
        path="/",
        httponly=True,
        secure=SESSION_COOKIE_SECURE,
        samesite="none",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=SESSION_COOKIE_SECURE,
        samesite="none",
    )


def create_admin_token(admin_id: int) -> str:
    token, _ = _encode({"sub": str(admin_id), "kind": ADMIN_KIND}, timedelta(minutes=ADMIN_TOKEN_TTL_MINUTES))
    return token


def decode_admin_token(token: str) -> dict:
    return _decode(token, ADMIN_KIND)
