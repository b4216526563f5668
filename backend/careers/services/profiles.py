import json
import logging
from datetime import datetime

from fastapi import BackgroundTasks, UploadFile
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import config
from ..models.candidate import Candidate
from ..models.profile import Profile
from ..schemas.identity import AuthenticatedCandidate, CandidateRef
from ..schemas.profile import ProfileInput
from ..utils.error_handlers import (
    DuplicateField,
    ProfileLocked,
    ValidationError,
    duplicate_field_from_integrity_error,
    get_error_message,
)
from ..utils.tokens import as_utc, utcnow
from ..utils.validation import (
    format_national_id,
    missing_profile_fields,
    normalize_national_id,
    validate_profile_fields,
)
from . import email_templates, file_store
from .emailer import send_best_effort
from .profile_lock import is_locked

logger = logging.getLogger(__name__)

# Columns rewritten on every save; created_at and candidate_id are insert-only.
_UPDATABLE = (
    "email",
    "profile_picture",
    "full_name",
    "date_of_birth",
    "gender",
    "national_id",
    "national_id_digits",
    "phone",
    "address",
    "education",
    "work_experience",
    "skills",
    "certifications",
    "resume_path",
    "updated_at",
)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if isinstance(value, datetime) else value


def profile_to_public(profile: Profile) -> dict:
    return {
        "id": int(profile.id),
        "candidateId": int(profile.candidate_id),
        "email": profile.email,
        "profilePicture": profile.profile_picture,
        "fullName": profile.full_name,
        "dateOfBirth": profile.date_of_birth,
        "gender": profile.gender,
        "nationalId": profile.national_id,
        "phone": profile.phone,
        "address": profile.address,
        "education": profile.education or [],
        "workExperience": profile.work_experience or [],
        "skills": profile.skills or [],
        "certifications": profile.certifications or [],
        "resumePath": profile.resume_path,
        "createdAt": _iso(profile.created_at),
        "updatedAt": _iso(profile.updated_at),
    }


def find_profile(db: Session, ref: CandidateRef) -> Profile | None:
    return db.query(Profile).filter(Profile.candidate_id == ref.id).first()


def profile_exists(db: Session, ref: CandidateRef) -> bool:
    return db.query(Profile.id).filter(Profile.candidate_id == ref.id).first() is not None


def get_profile(db: Session, ref: CandidateRef) -> tuple[dict | None, bool]:
    """Profile payload (None when absent) and the current lock state."""
    locked = is_locked(db, ref)
    profile = find_profile(db, ref)
    return (profile_to_public(profile) if profile else None), locked


def parse_profile_data(raw: str | dict | None) -> ProfileInput:
    """Decode the multipart `profileData` field; empty-string values count as absent."""
    if raw is None or raw == "":
        data = {}
    elif isinstance(raw, dict):
        data = raw
    else:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            raise ValidationError("Profile data must be valid JSON")
    if not isinstance(data, dict):
        raise ValidationError("Profile data must be a valid object")

    data = {k: v for k, v in data.items() if v != ""}

    errors = validate_profile_fields(
        {**data, "nationalId": data.get("nationalId", data.get("cnic"))}
    )
    if errors:
        raise ValidationError(details={"errors": [f"{e['field']}: {e['message']}" for e in errors]})

    try:
        return ProfileInput.model_validate(data)
    except PydanticValidationError as e:
        messages = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise ValidationError(details={"errors": messages})


def _upsert_statement(dialect: str, values: dict):
    if dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    elif dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    else:
        return None

    stmt = insert(Profile).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=[Profile.candidate_id],
        set_={column: stmt.excluded[column] for column in _UPDATABLE},
    )
    return stmt.returning(Profile.id, Profile.created_at)


def _mysql_upsert(db: Session, values: dict) -> tuple[int, bool]:
    from sqlalchemy.dialects.mysql import insert

    stmt = insert(Profile).values(**values)
    stmt = stmt.on_duplicate_key_update(
        {column: stmt.inserted[column] for column in _UPDATABLE}
    )
    result = db.execute(stmt)
    # MySQL reports 1 affected row for an insert, 2 (or 0 if unchanged) for an update.
    created = result.rowcount == 1
    profile_id = db.query(Profile.id).filter(Profile.candidate_id == values["candidate_id"]).scalar()
    return int(profile_id), created


def _write_profile(db: Session, values: dict) -> tuple[int, bool]:
    """
    Single-statement insert-or-update keyed by candidate_id.

    Returns (profile id, created). Other dialects fall back to an ORM
    read-then-write; the unique indexes still reject conflicting rows.
    """
    dialect = getattr(getattr(db, "bind", None), "dialect", None)
    name = getattr(dialect, "name", "")
    if name == "mysql":
        return _mysql_upsert(db, values)

    stmt = _upsert_statement(name, values)
    if stmt is not None:
        row = db.execute(stmt).one()
        created_at = row.created_at
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        created = created_at is not None and as_utc(created_at) == values["created_at"]
        return int(row.id), created

    profile = db.query(Profile).filter(Profile.candidate_id == values["candidate_id"]).first()
    created = profile is None
    if created:
        profile = Profile(**values)
        db.add(profile)
    else:
        for column in _UPDATABLE:
            setattr(profile, column, values[column])
    db.flush()
    return int(profile.id), created


async def save_profile(
    db: Session,
    candidate: AuthenticatedCandidate,
    raw_profile_data: str | None,
    background_tasks: BackgroundTasks,
    profile_picture: UploadFile | None = None,
    resume: UploadFile | None = None,
) -> dict:
    ref = candidate.ref

    # Checked before anything is parsed, validated or uploaded.
    if is_locked(db, ref):
        logger.info("Rejected profile write for locked candidate %s", ref.id)
        raise ProfileLocked()

    data = parse_profile_data(raw_profile_data)

    existing = (
        db.query(Profile.resume_path, Profile.profile_picture)
        .filter(Profile.candidate_id == ref.id)
        .first()
    )
    current_resume = existing.resume_path if existing else None
    current_picture = existing.profile_picture if existing else None

    missing = missing_profile_fields({
        **data.model_dump(),
        "resumePath": "upload" if file_store.has_upload(resume) else current_resume,
    })
    if missing:
        raise ValidationError(details={"errors": [f"{e['field']}: {e['message']}" for e in missing]})

    digits = normalize_national_id(data.nationalId)
    collision = (
        db.query(Profile.id)
        .filter(Profile.national_id_digits == digits, Profile.candidate_id != ref.id)
        .first()
    )
    if collision:
        raise DuplicateField("nationalId", get_error_message("duplicate_national_id"))

    resume_path = current_resume
    if file_store.has_upload(resume):
        resume_path = await file_store.save_upload(resume, kind="document", folder=file_store.CVS)
    picture = current_picture
    if file_store.has_upload(profile_picture):
        picture = await file_store.save_upload(profile_picture, kind="image", folder=file_store.PROFILE_PICTURES)

    now = utcnow()
    values = {
        "candidate_id": ref.id,
        "email": candidate.email.strip().lower(),
        "profile_picture": picture,
        "full_name": data.fullName.strip(),
        "date_of_birth": data.dateOfBirth.strip()[:10],
        "gender": data.gender,
        "national_id": format_national_id(digits),
        "national_id_digits": digits,
        "phone": data.phone.strip(),
        "address": data.address.strip(),
        "education": [e.model_dump() for e in data.education if not e.is_blank()],
        "work_experience": [w.model_dump() for w in data.workExperience if not w.is_blank()],
        "skills": data.skills,
        "certifications": [c.model_dump() for c in data.certifications if not c.is_blank()],
        "resume_path": resume_path,
        "created_at": now,
        "updated_at": now,
    }

    try:
        profile_id, created = _write_profile(db, values)
        db.query(Candidate).filter(Candidate.id == ref.id).update(
            {Candidate.profile_id: profile_id}, synchronize_session=False
        )
        db.commit()
    except IntegrityError as e:
        db.rollback()
        field = duplicate_field_from_integrity_error(e)
        if field is None:
            raise
        logger.info("Profile write for candidate %s hit unique index on %s", ref.id, field or "unknown")
        if field == "nationalId":
            raise DuplicateField(field, get_error_message("duplicate_national_id"))
        raise DuplicateField(field)

    db.expire_all()
    profile = db.query(Profile).filter(Profile.id == profile_id).first()
    logger.info("Profile %s %s for candidate %s", profile_id, "created" if created else "updated", ref.id)

    if created and config.ADMIN_EMAIL:
        subject, html = email_templates.profile_created_notification(
            profile.full_name, profile.email, profile.phone
        )
        background_tasks.add_task(send_best_effort, config.ADMIN_EMAIL, subject, html)

    return {
        "msg": "Profile created successfully" if created else "Profile updated successfully",
        "profile": profile_to_public(profile),
        "created": created,
    }
