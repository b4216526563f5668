from sqlalchemy import exists
from sqlalchemy.orm import Session

from ..models.application import Application
from ..schemas.identity import CandidateRef


def is_locked(db: Session, ref: CandidateRef) -> bool:
    """
    True once any application exists for the candidate, whatever its status.

    Always a fresh EXISTS query: applications are created on another code path,
    so a cached flag could let a profile edit slip in after a submission.
    """
    return bool(db.query(exists().where(Application.candidate_id == ref.id)).scalar())
