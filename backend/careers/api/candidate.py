import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.identity import AuthenticatedCandidate
from ..services import identity
from ..services.profiles import profile_exists
from ..utils.dependencies import candidate_credential, get_current_candidate, require_database
from ..utils.jwt import clear_session_cookie, set_session_cookie

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/candidate",
    tags=["Candidate"],
    dependencies=[Depends(require_database)],
)


class EmailRequest(BaseModel):
    email: str | None = None


@router.post("/register")
def register(payload: EmailRequest, background_tasks: BackgroundTasks, db: Session = Depends(get_db)):
    email = identity.register(db, payload.email or "", background_tasks)
    return {
        "msg": "Verification email sent! Please check your inbox.",
        "email": email,
    }


@router.get("/verify-email")
def verify_email(
    response: Response,
    background_tasks: BackgroundTasks,
    token: str | None = None,
    email: str | None = None,
    db: Session = Depends(get_db),
):
    result = identity.verify_email(db, token, email, background_tasks)
    set_session_cookie(response, result.session)

    if result.already_verified:
        return {
            "msg": "Email is already verified. You have been logged in.",
            "email": result.email,
            "emailVerified": True,
            "alreadyVerified": True,
            "authenticated": True,
            **result.session.body(),
        }
    return {
        "msg": "Email verified successfully! You can now create your profile and apply for jobs.",
        "email": result.email,
        "emailVerified": True,
        "authenticated": True,
        **result.session.body(),
    }


@router.get("/check/{email}")
def check_candidate(email: str, db: Session = Depends(get_db)):
    return identity.check_registration(db, email)


@router.post("/login")
def request_login(payload: EmailRequest, background_tasks: BackgroundTasks, db: Session = Depends(get_db)):
    email = identity.request_login(db, payload.email or "", background_tasks)
    return {
        "msg": "Login link sent to your email! Please check your inbox and click the link to login.",
        "email": email,
    }


@router.get("/verify-login")
def verify_login(
    response: Response,
    token: str | None = None,
    email: str | None = None,
    credential: str | None = Depends(candidate_credential),
    db: Session = Depends(get_db),
):
    result = identity.verify_login(db, token, email, existing_credential=credential)

    body = {
        "msg": "You are already logged in!" if result.already_logged_in else "Login successful!",
        "email": result.email,
        "authenticated": True,
        "token": result.credential,
    }
    if result.session is not None:
        set_session_cookie(response, result.session)
        body["expiresAt"] = result.session.expires_at.isoformat()
    if result.already_logged_in:
        body["alreadyLoggedIn"] = True
    if result.token_reused:
        body["tokenReused"] = True
    return body


@router.get("/check-auth")
def check_auth(
    candidate: AuthenticatedCandidate = Depends(get_current_candidate),
    db: Session = Depends(get_db),
):
    return {
        "authenticated": True,
        "email": candidate.email,
        "emailVerified": candidate.email_verified,
        "profileExists": profile_exists(db, candidate.ref),
    }


@router.post("/logout")
def logout(response: Response):
    clear_session_cookie(response)
    return {"msg": "Logged out successfully", "authenticated": False}
