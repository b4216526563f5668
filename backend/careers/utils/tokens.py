"""
Single-use tokens for email verification and passwordless login.

Both classes come from the same primitive but live in separate columns on the
candidate row, so a login token can never be replayed as a verification token.
"""
import hmac
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from urllib.parse import unquote

from ..config import LOGIN_TOKEN_TTL_MINUTES, VERIFICATION_TOKEN_TTL_MINUTES

TOKEN_BYTES = 32  # 64 hex characters


@dataclass(frozen=True)
class IssuedToken:
    value: str
    expires_at: datetime


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_token(lifetime: timedelta) -> IssuedToken:
    return IssuedToken(value=secrets.token_hex(TOKEN_BYTES), expires_at=utcnow() + lifetime)


def verification_token() -> IssuedToken:
    return generate_token(timedelta(minutes=VERIFICATION_TOKEN_TTL_MINUTES))


def login_token() -> IssuedToken:
    return generate_token(timedelta(minutes=LOGIN_TOKEN_TTL_MINUTES))


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value.astimezone(timezone.utc)


def is_expired(expires_at: datetime | None, now: datetime | None = None) -> bool:
    if expires_at is None:
        return False
    return as_utc(expires_at) < (now or utcnow())


def clean_token(raw: str | None) -> str:
    """Accept both the raw token and its URL-encoded form."""
    if not raw:
        return ""
    try:
        return unquote(raw, errors="strict").strip()
    except UnicodeDecodeError:
        return raw.strip()


def token_forms(raw: str | None) -> list[str]:
    """Decoded form first, then the raw form when decoding changed it."""
    decoded = clean_token(raw)
    forms = [decoded] if decoded else []
    stripped = (raw or "").strip()
    if stripped and stripped != decoded:
        forms.append(stripped)
    return forms


def tokens_match(stored: str | None, presented: str | None, case_insensitive: bool = True) -> bool:
    """Exact comparison first, then (optionally) case-insensitive; constant time."""
    if not stored or not presented:
        return False
    if hmac.compare_digest(stored.encode("utf-8"), presented.encode("utf-8")):
        return True
    if not case_insensitive:
        return False
    return hmac.compare_digest(stored.lower().encode("utf-8"), presented.lower().encode("utf-8"))
