from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.admin import Admin
from ..services import admin as admin_service
from ..services.applications import application_to_public
from ..utils.dependencies import get_current_admin, require_database

router = APIRouter(
    prefix="/api/admin",
    tags=["Admin"],
    dependencies=[Depends(require_database)],
)


class AdminLoginRequest(BaseModel):
    username: str | None = None
    password: str | None = None


class StatusUpdateRequest(BaseModel):
    status: str | None = None


@router.post("/login")
def login(payload: AdminLoginRequest, db: Session = Depends(get_db)):
    return {"token": admin_service.login(db, payload.username, payload.password)}


@router.get("/stats")
def get_stats(db: Session = Depends(get_db), admin: Admin = Depends(get_current_admin)):
    return admin_service.dashboard_stats(db)


@router.get("/candidates")
def list_candidates(db: Session = Depends(get_db), admin: Admin = Depends(get_current_admin)):
    return admin_service.list_candidates(db)


@router.get("/applications")
def list_applications(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: str | None = None,
    status: str | None = None,
    job_id: str | None = Query(None, alias="jobId"),
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    return admin_service.list_applications(
        db, page=page, limit=limit, search=search, status=status, job_id=job_id,
    )


@router.get("/applications/{job_id}")
def list_job_applications(
    job_id: int,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    return admin_service.applications_for_job(db, job_id)


@router.put("/application/{application_id}/status")
def update_application_status(
    application_id: int,
    payload: StatusUpdateRequest,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    application = admin_service.update_application_status(db, application_id, payload.status)
    return application_to_public(application)


@router.delete("/application/{application_id}")
def delete_application(
    application_id: int,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    admin_service.delete_application(db, application_id)
    return {"msg": "Application deleted successfully"}


@router.get("/candidate/{candidate_id}")
def get_candidate(
    candidate_id: int,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    return admin_service.candidate_detail(db, candidate_id)


@router.delete("/candidate/{candidate_id}")
def delete_candidate(
    candidate_id: int,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    deleted = admin_service.delete_candidate(db, candidate_id)
    return {
        "msg": "Candidate and all associated data deleted successfully",
        "deletedCandidate": deleted,
    }
