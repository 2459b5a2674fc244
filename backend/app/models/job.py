from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, JSON, String, Text
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.timeutils import utcnow


JOB_TYPES = ("full-time", "part-time", "contract", "freelance", "internship")
WORK_MODES = ("remote", "onsite", "hybrid")
EXPERIENCE_LEVELS = ("entry", "mid", "senior", "lead")
JOB_STATUSES = ("active", "closed", "draft")
JOB_BLOCKCHAINS = ("ethereum", "polygon", "solana")


class Job(Base):
    __tablename__ = "jobs"
    __table_args__ = (
        Index("ix_jobs_posted_by_created", "posted_by", "created_at"),
        Index("ix_jobs_status_created", "status", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    company = Column(String(200), nullable=False)
    location = Column(String(200), nullable=False)
    job_type = Column(String(20), nullable=False, default="full-time")
    work_mode = Column(String(20), nullable=False, default="remote")
    experience_level = Column(String(20), nullable=False, default="mid")
    skills = Column(JSON, nullable=False, default=list)  # ordered list of strings
    tags = Column(JSON, nullable=False, default=list)
    budget = Column(JSON, nullable=True)  # {min, max, currency}
    salary = Column(JSON, nullable=True)  # {min, max, currency, period}
    posted_by = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    payment_verified = Column(Boolean, nullable=False, default=False)
    transaction_hash = Column(String(200), nullable=False, default="")
    blockchain = Column(String(20), nullable=False, default="")
    status = Column(String(20), nullable=False, default="active")
    views = Column(Integer, nullable=False, default=0)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    poster = relationship("User", back_populates="jobs")
    # Deleting a job removes its applicant entries.
    applicants = relationship(
        "JobApplication",
        back_populates="job",
        cascade="all, delete-orphan",
        order_by="JobApplication.applied_at",
    )
