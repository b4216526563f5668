from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base


class Job(Base):
    __tablename__ = "jobs"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(150), nullable=False)
    description = Column(Text, nullable=False)
    department = Column(String(100), nullable=True, default="")
    location = Column(String(100), nullable=True, default="")
    salary = Column(String(50), nullable=True, default="")
    requirements = Column(Text, nullable=True, default="")
    type = Column(String(30), nullable=False, default="Full Time")
    status = Column(String(10), nullable=False, default="Open")  # Open | Closed
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    applications = relationship("Application", back_populates="job", cascade="all, delete-orphan")
