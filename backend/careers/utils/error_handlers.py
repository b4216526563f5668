"""
Centralized error handling and user-friendly error messages.

Every domain failure is an AppError. The handler registered in main.py renders
it as ``{"msg": message, **details}`` so clients can branch on boolean flags
(``notVerified``, ``expired``, ...) instead of matching message strings.
"""
import logging
import re

from fastapi import Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)


# User-friendly error messages
ERROR_MESSAGES = {
    # Registration / verification
    "invalid_email": "Please provide a valid email address",
    "already_registered": "This email is already registered. Please login or use a different email.",
    "invalid_token": "Invalid or expired verification token. Please request a new verification email.",
    "verification_expired": "Verification token has expired. Please request a new verification email.",

    # Passwordless login
    "not_registered": "Email not registered. Please register to apply for jobs.",
    "not_verified": "Email not verified. Please check your inbox and verify your email first.",
    "invalid_login_link": "Invalid login link",
    "login_link_used": "This login link has already been used or is invalid. Please request a new login link.",
    "login_expired": "Login link has expired. Please request a new login link.",

    # Sessions
    "unauthenticated": "Authentication required. Please login.",
    "session_expired": "Session expired. Please login again.",
    "invalid_session": "Invalid authentication. Please login again.",
    "session_not_verified": "Email not verified. Please verify your email first.",

    # Profile
    "profile_locked": "Profile is locked. You cannot update your profile after submitting an application.",
    "profile_not_found": "Profile not found",
    "duplicate_national_id": "This CNIC is already registered with another account. Each user must have a unique CNIC.",

    # Applications
    "already_applied": "You have already applied for this position.",
    "job_not_found": "Job position not found.",
    "job_closed": "This position is no longer accepting applications.",
    "cv_required": "CV file is required",
    "application_not_found": "Application not found",

    # Files
    "file_too_large": "File is too large. Maximum size is 10MB.",
    "invalid_image": "Only image files are allowed for profile picture",
    "invalid_document": "Only PDF and Word documents are allowed for resume",

    # Admin
    "invalid_credentials": "Invalid Credentials",
    "admin_unauthorized": "No token, authorization denied",
    "admin_token_invalid": "Token is not valid",

    # General
    "not_found": "The requested resource was not found.",
    "server_error": "Server Error",
    "database_error": "Service temporarily unavailable. Database connection is not ready.",
    "validation_error": "Validation failed",
}


def get_error_message(error_key: str, default: str | None = None) -> str:
    """Get a user-friendly error message."""
    return ERROR_MESSAGES.get(error_key, default or ERROR_MESSAGES["server_error"])


class AppError(Exception):
    """Base application error."""
    def __init__(self, message: str, status_code: int = 500, details: dict | None = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(AppError):
    """Validation error."""
    def __init__(self, message: str = get_error_message("validation_error"), details: dict | None = None):
        super().__init__(message, status_code=400, details=details)


class NotFoundError(AppError):
    """Resource not found error."""
    def __init__(self, message: str = get_error_message("not_found"), details: dict | None = None):
        super().__init__(message, status_code=404, details=details)


class UnauthorizedError(AppError):
    """Unauthorized access error."""
    def __init__(self, message: str = get_error_message("unauthenticated"), details: dict | None = None):
        super().__init__(message, status_code=401, details=details)


class ForbiddenError(AppError):
    """Forbidden access error."""
    def __init__(self, message: str = "Access forbidden", details: dict | None = None):
        super().__init__(message, status_code=403, details=details)


class FileUploadError(AppError):
    """File upload error."""
    def __init__(self, message: str, status_code: int = 400, details: dict | None = None):
        super().__init__(message, status_code=status_code, details=details)


class ServiceUnavailable(AppError):
    """Backing store is not reachable."""
    def __init__(self, message: str = get_error_message("database_error")):
        super().__init__(message, status_code=503, details={"error": "DATABASE_UNAVAILABLE"})


# -------------------- Identity --------------------

class AlreadyRegistered(AppError):
    def __init__(self):
        super().__init__(
            get_error_message("already_registered"),
            status_code=400,
            details={"alreadyRegistered": True},
        )


class InvalidOrExpiredToken(AppError):
    def __init__(self, message: str = get_error_message("invalid_token"), **flags):
        super().__init__(message, status_code=400, details=flags)


class TokenExpired(AppError):
    def __init__(self, message: str = get_error_message("verification_expired")):
        super().__init__(message, status_code=400, details={"expired": True})


class NotRegistered(AppError):
    def __init__(self):
        super().__init__(
            get_error_message("not_registered"),
            status_code=400,
            details={"notRegistered": True},
        )


class NotVerified(AppError):
    """
    Identity exists but the email was never verified.

    400 when returned from the login request (the client offers "resend
    verification"), 403 from the auth gate (a permission gap, not a credential gap).
    """
    def __init__(
        self,
        message: str = get_error_message("not_verified"),
        status_code: int = 403,
        email: str | None = None,
        **flags,
    ):
        details = {"notVerified": True, **flags}
        if email:
            details["email"] = email
        super().__init__(message, status_code=status_code, details=details)


# -------------------- Auth gate --------------------

class Unauthenticated(UnauthorizedError):
    def __init__(self):
        super().__init__(get_error_message("unauthenticated"), details={"authenticated": False})


class SessionExpired(UnauthorizedError):
    def __init__(self):
        super().__init__(get_error_message("session_expired"), details={"authenticated": False, "expired": True})


class InvalidSession(UnauthorizedError):
    def __init__(self):
        super().__init__(get_error_message("invalid_session"), details={"authenticated": False})


# -------------------- Profiles / applications --------------------

class ProfileLocked(ForbiddenError):
    def __init__(self):
        super().__init__(get_error_message("profile_locked"), details={"isLocked": True})


class DuplicateField(AppError):
    def __init__(self, field: str, message: str | None = None):
        super().__init__(
            message or f"This {field or 'field'} is already registered with another account.",
            status_code=409,
            details={"field": field},
        )


class AlreadyApplied(AppError):
    def __init__(self):
        super().__init__(
            get_error_message("already_applied"),
            status_code=400,
            details={"alreadyApplied": True},
        )


# Column name -> client field name for unique-index violations.
_UNIQUE_FIELDS = {
    "national_id_digits": "nationalId",
    "email": "email",
    "candidate_id": "candidateId",
}


def duplicate_field_from_integrity_error(error: IntegrityError) -> str | None:
    """
    Best-effort name of the field behind a unique-constraint violation.

    Drivers word this differently (SQLite: "UNIQUE constraint failed:
    profiles.national_id_digits", MySQL: "Duplicate entry ... for key
    'ix_profiles_national_id_digits'", PostgreSQL: "Key (national_id_digits)=...").
    """
    text = str(getattr(error, "orig", None) or error).lower()
    if "unique" not in text and "duplicate" not in text:
        return None
    for column, field in _UNIQUE_FIELDS.items():
        if re.search(rf"\b\w*{column}\b", text):
            return field
    return ""


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"msg": exc.message, **exc.details},
    )
