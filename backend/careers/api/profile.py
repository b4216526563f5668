from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.identity import AuthenticatedCandidate
from ..services import profiles
from ..utils.dependencies import get_current_candidate, require_database
from ..utils.error_handlers import get_error_message

router = APIRouter(
    prefix="/api/profile",
    tags=["Profile"],
    dependencies=[Depends(require_database)],
)


@router.get("/check")
def check_profile(
    candidate: AuthenticatedCandidate = Depends(get_current_candidate),
    db: Session = Depends(get_db),
):
    return {"exists": profiles.profile_exists(db, candidate.ref)}


@router.get("")
def get_profile(
    candidate: AuthenticatedCandidate = Depends(get_current_candidate),
    db: Session = Depends(get_db),
):
    payload, locked = profiles.get_profile(db, candidate.ref)
    if payload is None:
        # The lock state is still useful to the client when there is no profile yet.
        return JSONResponse(
            status_code=404,
            content={"msg": get_error_message("profile_not_found"), "isLocked": locked},
        )
    return {**payload, "isLocked": locked}


@router.post("")
@router.put("")
async def save_profile(
    background_tasks: BackgroundTasks,
    profileData: str | None = Form(default=None),
    profilePicture: UploadFile | None = File(default=None),
    resume: UploadFile | None = File(default=None),
    candidate: AuthenticatedCandidate = Depends(get_current_candidate),
    db: Session = Depends(get_db),
):
    """
    Create or update the signed-in candidate's profile.

    Multipart body: `profileData` (JSON object as a string) plus optional
    `profilePicture` and `resume` files. Rejected with 403 once any application exists.
    """
    return await profiles.save_profile(
        db,
        candidate,
        profileData,
        background_tasks,
        profile_picture=profilePicture,
        resume=resume,
    )
