"""
Validation utilities for input validation and error handling.
"""
import re
from datetime import date, datetime
from typing import Any

from fastapi import HTTPException

from ..models.application import APPLICATION_STATUSES
from ..models.profile import GENDERS
from .error_handlers import get_error_message

NAME_PATTERN = r"^[a-zA-Z\s'-]+$"
PHONE_PATTERN = r"^[\d\s\-\+\(\)]+$"


def validate_email(email: str) -> str:
    """Validate email format and return its canonical (trimmed, lowercase) form."""
    if not email or not isinstance(email, str):
        raise HTTPException(status_code=400, detail=get_error_message("invalid_email"))

    email = email.strip().lower()
    if len(email) > 255:
        raise HTTPException(status_code=400, detail="Email too long (max 255 characters)")

    # Basic email regex
    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    if not re.match(pattern, email):
        raise HTTPException(status_code=400, detail=get_error_message("invalid_email"))

    return email


def validate_password(password: str) -> None:
    """Validate admin password strength."""
    if not password or not isinstance(password, str):
        raise HTTPException(status_code=400, detail="Password is required")

    if len(password) < 8:
        raise HTTPException(status_code=400, detail="Password must be at least 8 characters")

    if len(password) > 72:
        raise HTTPException(status_code=400, detail="Password too long (max 72 characters)")


def validate_string_field(
    value: Any,
    field_name: str,
    min_length: int = 1,
    max_length: int = 1000,
    required: bool = True,
    pattern: str | None = None,
) -> str | None:
    """Validate a string field with common rules."""
    if value is None:
        if required:
            raise HTTPException(status_code=400, detail=f"{field_name} is required")
        return None

    if not isinstance(value, str):
        raise HTTPException(status_code=400, detail=f"{field_name} must be a string")

    value = value.strip()

    if required and not value:
        raise HTTPException(status_code=400, detail=f"{field_name} cannot be empty")

    if len(value) < min_length:
        raise HTTPException(
            status_code=400,
            detail=f"{field_name} must be at least {min_length} characters"
        )

    if len(value) > max_length:
        raise HTTPException(
            status_code=400,
            detail=f"{field_name} must not exceed {max_length} characters"
        )

    if pattern and not re.match(pattern, value):
        raise HTTPException(status_code=400, detail=f"{field_name} format is invalid")

    return value


def validate_application_status(status: str | None) -> str:
    if not status or status not in APPLICATION_STATUSES:
        raise HTTPException(status_code=400, detail="Invalid status")
    return status


def normalize_national_id(value: str | None) -> str:
    """Canonical digits-only form used for uniqueness (dashes and spaces removed)."""
    if not value:
        return ""
    return re.sub(r"[-\s]", "", str(value))


def format_national_id(digits: str) -> str:
    """Display form 12345-1234567-1 for a 13-digit id; anything else unchanged."""
    if len(digits) == 13 and digits.isdigit():
        return f"{digits[:5]}-{digits[5:12]}-{digits[12:]}"
    return digits


def _age_in_years(born: date, today: date) -> int:
    return today.year - born.year - ((today.month, today.day) < (born.month, born.day))


def validate_profile_fields(data: dict, today: date | None = None) -> list[dict]:
    """
    Field-level checks for a profile submission.

    Only validates fields that are present; required-ness is checked separately
    so partially filled forms still get precise messages. Returns a list of
    {"field", "message"} dicts (empty when everything is valid).
    """
    errors: list[dict] = []
    today = today or date.today()

    name = data.get("fullName")
    if name:
        name = str(name).strip()
        if len(name) < 2 or len(name) > 100:
            errors.append({"field": "fullName", "message": "Full name must be between 2 and 100 characters"})
        if not re.match(NAME_PATTERN, name):
            errors.append({
                "field": "fullName",
                "message": "Full name can only contain letters, spaces, hyphens, and apostrophes",
            })

    phone = data.get("phone")
    if phone:
        phone = str(phone).strip()
        if not re.match(PHONE_PATTERN, phone) or len(phone) < 10 or len(phone) > 20:
            errors.append({"field": "phone", "message": "Invalid phone number format"})

    national_id = data.get("nationalId")
    if national_id:
        digits = normalize_national_id(national_id)
        if len(digits) != 13 or not digits.isdigit():
            errors.append({"field": "nationalId", "message": "CNIC must be 13 digits"})

    dob = data.get("dateOfBirth")
    if dob:
        try:
            born = datetime.fromisoformat(str(dob).strip()[:10]).date()
        except ValueError:
            errors.append({"field": "dateOfBirth", "message": "Invalid date of birth"})
        else:
            age = _age_in_years(born, today)
            if age < 16 or age > 100:
                errors.append({"field": "dateOfBirth", "message": "Age must be between 16 and 100 years"})

    gender = data.get("gender")
    if gender and gender not in GENDERS:
        errors.append({"field": "gender", "message": "Gender must be Male, Female, or Other"})

    return errors


REQUIRED_PROFILE_FIELDS = {
    "fullName": "Full name is required",
    "dateOfBirth": "Date of birth is required",
    "gender": "Gender is required",
    "nationalId": "CNIC is required",
    "phone": "Phone number is required",
    "address": "Address is required",
    "resumePath": "Resume is required",
}


def missing_profile_fields(data: dict) -> list[dict]:
    return [
        {"field": field, "message": message}
        for field, message in REQUIRED_PROFILE_FIELDS.items()
        if not str(data.get(field) or "").strip()
    ]


def sanitize_filename(filename: str) -> str:
    """Sanitize filename to prevent directory traversal and other attacks."""
    if not filename:
        raise HTTPException(status_code=400, detail="Filename is required")

    # Remove any path separators
    filename = filename.replace("/", "_").replace("\\", "_")

    # Remove any null bytes
    filename = filename.replace("\x00", "")

    # Remove directory traversal sequences
    filename = filename.replace("..", "_")

    # Remove leading dots to prevent hidden files
    filename = filename.lstrip(".")

    # Ensure it's not too long
    if len(filename) > 255:
        raise HTTPException(status_code=400, detail="Filename too long")

    # Ensure it has some content
    if not filename or filename == "_":
        raise HTTPException(status_code=400, detail="Invalid filename")

    return filename
