"""
Admin credential hashing.

Candidates never hold a password; only admin accounts pass through here.
"""
import logging

import bcrypt
from fastapi import HTTPException

from .error_handlers import ValidationError
from .validation import validate_password

logger = logging.getLogger(__name__)

BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    try:
        validate_password(password)
    except HTTPException as e:
        raise ValidationError(str(e.detail))

    pw_bytes = password.encode("utf-8")
    # Multibyte characters can pass the character limit and still overflow bcrypt.
    if len(pw_bytes) > BCRYPT_MAX_BYTES:
        raise ValidationError(f"Password must be {BCRYPT_MAX_BYTES} bytes or less")
    return pw_bytes


def hash_password(password: str) -> str:
    """Check the admin password rules, then hash with a fresh bcrypt salt."""
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str | None, hashed: str | None) -> bool:
    if not password or not hashed:
        return False
    pw_bytes = password.encode("utf-8")
    if len(pw_bytes) > BCRYPT_MAX_BYTES:
        return False
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except ValueError:
        logger.warning("Stored admin password hash is malformed")
        return False
