from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base


class Candidate(Base):
    __tablename__ = "candidates"

    id = Column(Integer, primary_key=True, index=True)
    # Stored lowercase/trimmed; the unique index is the only guard against duplicate registrations.
    email = Column(String(255), unique=True, index=True, nullable=False)
    email_verified = Column(Boolean, nullable=False, default=False)
    verification_token = Column(String(128), nullable=True, index=True)
    verification_token_expiry = Column(DateTime(timezone=True), nullable=True)
    login_token = Column(String(128), nullable=True)
    login_token_expiry = Column(DateTime(timezone=True), nullable=True)
    registered_at = Column(DateTime(timezone=True), server_default=func.now())
    verified_at = Column(DateTime(timezone=True), nullable=True)
    # Convenience pointer only; profiles.candidate_id is the authoritative link.
    profile_id = Column(Integer, nullable=True)

    profile = relationship(
        "Profile",
        back_populates="candidate",
        uselist=False,
        cascade="all, delete-orphan",
    )
    applications = relationship("Application", back_populates="candidate", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Candidate(id={self.id}, email={self.email}, verified={self.email_verified})>"
