import logging
import math

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models.admin import Admin
from ..models.application import Application
from ..models.candidate import Candidate
from ..models.job import Job
from ..utils.error_handlers import DuplicateField, NotFoundError, ValidationError, get_error_message
from ..utils.jwt import create_admin_token
from ..utils.security import hash_password, verify_password
from ..utils.validation import validate_application_status
from .applications import application_to_public
from .profiles import profile_to_public

logger = logging.getLogger(__name__)


def create_admin(db: Session, username: str, password: str) -> Admin:
    username = (username or "").strip()
    if not username:
        raise ValidationError("Username is required")
    admin = Admin(username=username, password=hash_password(password))
    db.add(admin)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateField("username", "An admin with this username already exists.")
    db.refresh(admin)
    return admin


def login(db: Session, username: str | None, password: str | None) -> str:
    if not username or not password:
        raise ValidationError("Username and password are required")

    admin = db.query(Admin).filter(Admin.username == username.strip()).first()
    if admin is None or not verify_password(password, admin.password):
        logger.warning("Failed admin login for %r", username)
        raise ValidationError(get_error_message("invalid_credentials"))

    return create_admin_token(int(admin.id))


def _get_application(db: Session, application_id: int) -> Application:
    application = db.query(Application).filter(Application.id == int(application_id)).first()
    if application is None:
        raise NotFoundError(get_error_message("application_not_found"))
    return application


def update_application_status(db: Session, application_id: int, status: str | None) -> Application:
    status = validate_application_status(status)
    application = _get_application(db, application_id)
    application.status = status
    db.commit()
    db.refresh(application)
    logger.info("Application %s moved to %s", application.id, status)
    return application


def delete_application(db: Session, application_id: int) -> None:
    """Removing a candidate's last application unlocks their profile."""
    application = _get_application(db, application_id)
    db.delete(application)
    db.commit()
    logger.info("Application %s deleted", application_id)


def _get_candidate(db: Session, candidate_id: int) -> Candidate:
    candidate = db.query(Candidate).filter(Candidate.id == int(candidate_id)).first()
    if candidate is None:
        raise NotFoundError("Candidate not found")
    return candidate


def candidate_detail(db: Session, candidate_id: int) -> dict:
    candidate = _get_candidate(db, candidate_id)
    application_count = (
        db.query(func.count(Application.id)).filter(Application.candidate_id == candidate.id).scalar() or 0
    )
    return {
        "id": int(candidate.id),
        "email": candidate.email,
        "emailVerified": bool(candidate.email_verified),
        "registeredAt": candidate.registered_at.isoformat() if candidate.registered_at else None,
        "verifiedAt": candidate.verified_at.isoformat() if candidate.verified_at else None,
        "profile": profile_to_public(candidate.profile) if candidate.profile else None,
        "applicationCount": int(application_count),
    }


def delete_candidate(db: Session, candidate_id: int) -> dict:
    """Deletes the candidate with their profile and every application."""
    candidate = _get_candidate(db, candidate_id)
    deleted = {"email": candidate.email, "candidateId": int(candidate.id)}
    db.delete(candidate)
    db.commit()
    logger.info("Candidate %s deleted with profile and applications", deleted["candidateId"])
    return deleted


def _application_row(application: Application) -> dict:
    row = application_to_public(application)
    row["jobTitle"] = application.job.title if application.job else None
    row["profile"] = profile_to_public(application.profile) if application.profile else None
    return row


def list_applications(
    db: Session,
    *,
    page: int = 1,
    limit: int = 10,
    search: str | None = None,
    status: str | None = None,
    job_id: str | None = None,
) -> dict:
    """
    One page of applications across all jobs, newest first.

    `search` matches name or email, case-insensitively. `status` and `job_id`
    filter exactly; "All" (or an empty value) leaves them off, and a job id
    that is not a number is ignored rather than rejected.
    """
    query = db.query(Application)

    search = (search or "").strip()
    if search:
        query = query.filter(
            or_(
                Application.full_name.icontains(search, autoescape=True),
                Application.email.icontains(search, autoescape=True),
            )
        )

    status = (status or "").strip()
    if status and status != "All":
        query = query.filter(Application.status == status)

    job_id = (job_id or "").strip()
    if job_id.isdigit():
        query = query.filter(Application.job_id == int(job_id))

    total = query.count()
    applications = (
        query.order_by(Application.applied_at.desc(), Application.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "applications": [_application_row(a) for a in applications],
        "totalApplications": total,
        "totalPages": math.ceil(total / limit),
        "currentPage": page,
    }


def applications_for_job(db: Session, job_id: int) -> list[dict]:
    applications = (
        db.query(Application)
        .filter(Application.job_id == int(job_id))
        .order_by(Application.applied_at.desc(), Application.id.desc())
        .all()
    )
    return [_application_row(a) for a in applications]


def list_candidates(db: Session) -> list[dict]:
    counts = dict(
        db.query(Application.candidate_id, func.count(Application.id))
        .group_by(Application.candidate_id)
        .all()
    )
    candidates = db.query(Candidate).order_by(Candidate.registered_at.desc(), Candidate.id.desc()).all()

    rows = []
    for candidate in candidates:
        profile = candidate.profile
        rows.append({
            "id": int(candidate.id),
            "email": candidate.email,
            "emailVerified": bool(candidate.email_verified),
            "registeredAt": candidate.registered_at.isoformat() if candidate.registered_at else None,
            "verifiedAt": candidate.verified_at.isoformat() if candidate.verified_at else None,
            "profile": {
                "id": int(profile.id),
                "fullName": profile.full_name,
                "phone": profile.phone,
                "nationalId": profile.national_id,
            } if profile else None,
            "applicationCount": int(counts.get(candidate.id, 0)),
        })
    return rows


def dashboard_stats(db: Session) -> dict:
    def count(column, *criteria) -> int:  # noqa: ANN001
        return int(db.query(func.count(column)).filter(*criteria).scalar() or 0)

    return {
        "totalJobs": count(Job.id),
        "openJobs": count(Job.id, Job.status == "Open"),
        "totalApplications": count(Application.id),
        "pendingApplications": count(Application.id, Application.status == "Pending"),
        "totalRegisteredEmails": count(Candidate.id),
        "verifiedEmails": count(Candidate.id, Candidate.email_verified.is_(True)),
    }
