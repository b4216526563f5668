from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.identity import AuthenticatedCandidate
from ..services import applications
from ..utils.dependencies import get_current_candidate, get_optional_candidate, require_database

router = APIRouter(
    prefix="/api/public",
    tags=["Public"],
    dependencies=[Depends(require_database)],
)


@router.get("/jobs")
def list_jobs(
    candidate: AuthenticatedCandidate | None = Depends(get_optional_candidate),
    db: Session = Depends(get_db),
):
    """Open positions; signed-in candidates also see which ones they applied to."""
    jobs = applications.list_open_jobs(db)
    applied = applications.applied_job_ids(db, candidate.ref) if candidate else set()
    items = []
    for job in jobs:
        item = applications.job_to_public(job)
        if candidate is not None:
            item["applied"] = int(job.id) in applied
        items.append(item)
    return items


@router.get("/check-application/{job_id}")
def check_application(
    job_id: int,
    candidate: AuthenticatedCandidate = Depends(get_current_candidate),
    db: Session = Depends(get_db),
):
    return {"applied": applications.has_applied(db, candidate.ref, job_id)}


@router.post("/apply/{job_id}")
async def apply(
    job_id: int,
    background_tasks: BackgroundTasks,
    fullName: str | None = Form(default=None),
    phone: str | None = Form(default=None),
    education: str | None = Form(default=None),
    minimumSalary: str | None = Form(default=None),
    expectedSalary: str | None = Form(default=None),
    cvPath: str | None = Form(default=None),
    cv: UploadFile | None = File(default=None),
    candidate: AuthenticatedCandidate = Depends(get_current_candidate),
    db: Session = Depends(get_db),
):
    application = await applications.submit_application(
        db,
        candidate,
        job_id,
        background_tasks,
        full_name=fullName,
        phone=phone,
        education=education,
        minimum_salary=minimumSalary,
        expected_salary=expectedSalary,
        cv_path=cvPath,
        cv=cv,
    )
    return {
        "msg": "Application submitted successfully!",
        "application": applications.application_to_public(application),
    }
