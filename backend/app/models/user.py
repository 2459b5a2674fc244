from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.timeutils import utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password = Column(String(255), nullable=False)  # bcrypt hash; never serialized
    bio = Column(String(1000), nullable=False, default="")
    headline = Column(String(200), nullable=False, default="")
    phone = Column(String(50), nullable=False, default="")
    address = Column(JSON, nullable=True)  # {street, city, state, zipCode, country}
    linkedin_url = Column(String(500), nullable=False, default="")
    github_url = Column(String(500), nullable=False, default="")
    portfolio_url = Column(String(500), nullable=False, default="")
    website_url = Column(String(500), nullable=False, default="")
    skills = Column(JSON, nullable=False, default=list)
    wallet_address = Column(String(120), nullable=False, default="")
    wallet_type = Column(String(20), nullable=False, default="")  # "" | metamask | phantom
    location = Column(String(255), nullable=False, default="")
    profile_picture = Column(Text, nullable=False, default="")
    experience = Column(JSON, nullable=False, default=list)
    education = Column(JSON, nullable=False, default=list)
    # {filename, url, uploadedAt, parsed}
    resume = Column(JSON, nullable=True)
    profile_views = Column(Integer, nullable=False, default=0)
    is_premium = Column(Boolean, nullable=False, default=False)
    premium_expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    jobs = relationship("Job", back_populates="poster", cascade="all, delete-orphan")
    applications = relationship("JobApplication", back_populates="user", cascade="all, delete-orphan")


class UserConnection(Base):
    """One row per direction; a connection between A and B is stored as (A, B) and (B, A)."""

    __tablename__ = "user_connections"
    __table_args__ = (
        UniqueConstraint("user_id", "connection_id", name="uq_user_connections_pair"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    connection_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    connection = relationship("User", foreign_keys=[connection_id])


class SavedJob(Base):
    __tablename__ = "saved_jobs"
    __table_args__ = (
        UniqueConstraint("user_id", "job_id", name="uq_saved_jobs_user_job"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    job = relationship("Job")


class ProfileView(Base):
    __tablename__ = "profile_views"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    viewer_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    viewed_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
