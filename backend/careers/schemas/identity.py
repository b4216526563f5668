from pydantic import BaseModel, ConfigDict


class CandidateRef(BaseModel):
    """
    Identity key for store lookups.

    Wraps only the generated candidate id. Emails are display attributes and
    must never be used to find a profile or an application.
    """
    model_config = ConfigDict(frozen=True)

    id: int

    @classmethod
    def of(cls, candidate) -> "CandidateRef":  # noqa: ANN001
        return cls(id=int(candidate.id))


class AuthenticatedCandidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    ref: CandidateRef
    email: str
    email_verified: bool
