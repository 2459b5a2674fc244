from sqlalchemy import Column, DateTime, ForeignKey, Integer, LargeBinary, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.timeutils import utcnow


APPLICATION_STATUSES = ("pending", "reviewed", "shortlisted", "rejected")


class JobApplication(Base):
    __tablename__ = "job_applications"
    # One applicant entry per user per job; the constraint closes the apply race.
    __table_args__ = (
        UniqueConstraint("job_id", "user_id", name="uq_job_applications_job_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    applied_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    status = Column(String(20), nullable=False, default="pending")
    cover_letter = Column(Text, nullable=False, default="")
    # Resume attached to this application only (optional; falls back to the profile resume).
    resume_filename = Column(String(255), nullable=True)
    resume_data = Column(LargeBinary, nullable=True)
    resume_content_type = Column(String(120), nullable=True)
    resume_uploaded_at = Column(DateTime(timezone=True), nullable=True)

    job = relationship("Job", back_populates="applicants")
    user = relationship("User", back_populates="applications")
