from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base

GENDERS = ("Male", "Female", "Other")


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, index=True)
    # One profile per candidate; the upsert conflicts on this column.
    candidate_id = Column(
        Integer,
        ForeignKey("candidates.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True,
    )
    # Display only. Never used for lookups.
    email = Column(String(255), nullable=False)

    profile_picture = Column(String(500), nullable=True)
    full_name = Column(String(100), nullable=True)
    date_of_birth = Column(String(10), nullable=True)  # YYYY-MM-DD
    gender = Column(String(10), nullable=True)
    # Display form 12345-1234567-1; uniqueness is enforced on the digits column.
    national_id = Column(String(20), nullable=True)
    national_id_digits = Column(String(13), unique=True, nullable=True, index=True)

    phone = Column(String(20), nullable=True)
    address = Column(Text, nullable=True)

    education = Column(JSON, nullable=False, default=list)
    work_experience = Column(JSON, nullable=False, default=list)
    skills = Column(JSON, nullable=False, default=list)
    certifications = Column(JSON, nullable=False, default=list)

    resume_path = Column(String(500), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    candidate = relationship("Candidate", back_populates="profile")
