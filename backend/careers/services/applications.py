import json
import logging

from fastapi import BackgroundTasks, HTTPException, UploadFile
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models.application import Application
from ..models.job import Job
from ..models.profile import Profile
from ..schemas.identity import AuthenticatedCandidate, CandidateRef
from ..utils.error_handlers import (
    AlreadyApplied,
    NotFoundError,
    ValidationError,
    duplicate_field_from_integrity_error,
    get_error_message,
)
from ..utils.validation import NAME_PATTERN, PHONE_PATTERN, validate_string_field
from . import email_templates, file_store
from .emailer import send_best_effort

logger = logging.getLogger(__name__)


def job_to_public(job: Job) -> dict:
    return {
        "id": int(job.id),
        "title": job.title,
        "description": job.description,
        "department": job.department or "",
        "location": job.location or "",
        "salary": job.salary or "",
        "requirements": job.requirements or "",
        "type": job.type,
        "status": job.status,
    }


def application_to_public(application: Application) -> dict:
    return {
        "id": int(application.id),
        "candidateId": int(application.candidate_id),
        "jobId": int(application.job_id),
        "profileId": int(application.profile_id) if application.profile_id else None,
        "fullName": application.full_name,
        "email": application.email,
        "phone": application.phone,
        "education": application.education,
        "cvPath": application.cv_path,
        "minimumSalary": application.minimum_salary or "",
        "expectedSalary": application.expected_salary or "",
        "status": application.status,
        "appliedAt": application.applied_at.isoformat() if application.applied_at else None,
    }


def list_open_jobs(db: Session) -> list[Job]:
    return db.query(Job).filter(Job.status == "Open").order_by(Job.created_at.desc(), Job.id.desc()).all()


def applied_job_ids(db: Session, ref: CandidateRef) -> set[int]:
    rows = db.query(Application.job_id).filter(Application.candidate_id == ref.id).all()
    return {int(r.job_id) for r in rows}


def has_applied(db: Session, ref: CandidateRef, job_id: int) -> bool:
    return (
        db.query(Application.id)
        .filter(Application.candidate_id == ref.id, Application.job_id == int(job_id))
        .first()
        is not None
    )


def _text(value) -> str:  # noqa: ANN001
    if value is None or isinstance(value, (dict, list)):
        return ""
    return str(value).strip()


def summarize_education(raw: str | None) -> str:
    """Accepts the profile's education list as JSON or plain text."""
    if not raw or not raw.strip():
        return "Not provided"
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return raw.strip()
    if not isinstance(parsed, list):
        return raw.strip()
    parts = []
    for edu in parsed:
        if not isinstance(edu, dict):
            continue
        # Entries come straight from client JSON; years are often numbers.
        degree = _text(edu.get("degree"))
        institution = _text(edu.get("institution"))
        year = _text(edu.get("yearOfCompletion"))
        if not degree and not institution:
            continue
        text = f"{degree} - {institution}"
        if year:
            text += f" ({year})"
        parts.append(text)
    return "; ".join(parts) or "Not provided"


def insert_application(db: Session, application: Application) -> Application:
    """
    Insert relying on uq_applications_candidate_job.

    No pre-check: of two concurrent submissions for the same candidate and job,
    the database lets exactly one through and the other becomes AlreadyApplied.
    """
    db.add(application)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if duplicate_field_from_integrity_error(e) is None:
            raise
        logger.info(
            "Duplicate application for candidate %s, job %s: %s",
            application.candidate_id, application.job_id, getattr(e, "orig", e),
        )
        raise AlreadyApplied()
    db.refresh(application)
    return application


async def submit_application(
    db: Session,
    candidate: AuthenticatedCandidate,
    job_id: int,
    background_tasks: BackgroundTasks,
    *,
    full_name: str | None,
    phone: str | None,
    education: str | None = None,
    minimum_salary: str | None = None,
    expected_salary: str | None = None,
    cv_path: str | None = None,
    cv: UploadFile | None = None,
) -> Application:
    job = db.query(Job).filter(Job.id == int(job_id)).first()
    if not job:
        raise NotFoundError(get_error_message("job_not_found"))
    if job.status == "Closed":
        raise ValidationError(get_error_message("job_closed"))

    try:
        full_name = validate_string_field(full_name, "Full name", min_length=2, max_length=100, pattern=NAME_PATTERN)
        phone = validate_string_field(phone, "Phone number", min_length=10, max_length=20, pattern=PHONE_PATTERN)
    except HTTPException as e:
        raise ValidationError(str(e.detail))

    profile = db.query(Profile).filter(Profile.candidate_id == candidate.ref.id).first()

    # Reuse the résumé already on the profile; otherwise an upload is required.
    if cv_path and profile is not None and cv_path == profile.resume_path:
        stored_cv = cv_path
    elif file_store.has_upload(cv):
        stored_cv = await file_store.save_upload(cv, kind="document", folder=file_store.CVS)
    else:
        raise ValidationError(get_error_message("cv_required"))

    application = insert_application(
        db,
        Application(
            candidate_id=candidate.ref.id,
            job_id=int(job.id),
            profile_id=int(profile.id) if profile else None,
            full_name=full_name,
            email=candidate.email.strip().lower(),
            phone=phone,
            education=summarize_education(education),
            cv_path=stored_cv,
            minimum_salary=(minimum_salary or "").strip(),
            expected_salary=(expected_salary or "").strip(),
            status="Pending",
        ),
    )
    logger.info("Candidate %s applied to job %s (application %s)", candidate.ref.id, job.id, application.id)

    subject, html = email_templates.application_confirmation(full_name, job.title)
    background_tasks.add_task(send_best_effort, application.email, subject, html)
    return application
