import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import BaseModel
from sqlalchemy import String, cast, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ..database import get_db
from ..models.application import APPLICATION_STATUSES, JobApplication
from ..models.job import EXPERIENCE_LEVELS, JOB_BLOCKCHAINS, JOB_STATUSES, JOB_TYPES, WORK_MODES, Job
from ..models.user import SavedJob, User, UserConnection
from ..schemas.public import job_public, user_card
from ..services.notifications import NotificationFanout, NotificationType
from ..services.resume_analysis import MAX_RESUME_BYTES, resume_extension
from ..utils.dependencies import get_current_user, get_notifier
from ..utils.error_handlers import FileUploadError, get_error_message
from ..utils.timeutils import to_iso, utcnow
from ..utils.validation import (
    like_contains,
    like_json_item,
    page_params,
    pagination_meta,
    sanitize_filename,
    validate_choice,
    validate_string_field,
    validate_string_list,
    window_start,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/jobs", tags=["Jobs"])

JOB_LIFETIME = timedelta(days=30)
# Application attachments: documents only, no plain text.
APPLICATION_RESUME_TYPES = (".pdf", ".doc", ".docx")


class JobCreate(BaseModel):
    title: str | None = None
    description: str | None = None
    company: str | None = None
    location: str | None = None
    jobType: str | None = None
    workMode: str | None = None
    experienceLevel: str | None = None
    skills: list[str] | None = None
    tags: list[str] | None = None
    budget: dict | None = None
    salary: dict | None = None
    transactionHash: str | None = None
    blockchain: str | None = None


class JobUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    location: str | None = None
    jobType: str | None = None
    workMode: str | None = None
    experienceLevel: str | None = None
    skills: list[str] | None = None
    tags: list[str] | None = None
    budget: dict | None = None
    salary: dict | None = None
    status: str | None = None


class ApplicationStatusUpdate(BaseModel):
    status: str | None = None


def _owned_job(db: Session, job_id: int, user: dict) -> Job:
    job = db.query(Job).filter(Job.id == job_id, Job.posted_by == int(user["sub"])).first()
    if not job:
        raise HTTPException(status_code=404, detail=get_error_message("job_not_owned"))
    return job


def _job_with_poster(db: Session):
    return db.query(Job).options(joinedload(Job.poster))


@router.post("/", status_code=201)
def create_job(
    payload: JobCreate,
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
    notifier: NotificationFanout = Depends(get_notifier),
):
    if not (payload.title and payload.description and payload.company and payload.location):
        raise HTTPException(status_code=400, detail="Please provide all required fields")

    poster_id = int(user["sub"])
    tx_hash = (payload.transactionHash or "").strip()
    now = utcnow()
    job = Job(
        title=validate_string_field(payload.title, "Title", max_length=200),
        description=validate_string_field(payload.description, "Description", max_length=20000),
        company=validate_string_field(payload.company, "Company", max_length=200),
        location=validate_string_field(payload.location, "Location", max_length=200),
        job_type=validate_choice(payload.jobType, "job type", JOB_TYPES, default="full-time"),
        work_mode=validate_choice(payload.workMode, "work mode", WORK_MODES, default="remote"),
        experience_level=validate_choice(payload.experienceLevel, "experience level", EXPERIENCE_LEVELS, default="mid"),
        skills=validate_string_list(payload.skills, "Skills"),
        tags=validate_string_list(payload.tags, "Tags"),
        budget=payload.budget,
        salary=payload.salary,
        posted_by=poster_id,
        transaction_hash=tx_hash,
        blockchain=validate_choice(payload.blockchain, "blockchain", JOB_BLOCKCHAINS, default=""),
        payment_verified=bool(tx_hash),
        status="active",
        views=0,
        expires_at=now + JOB_LIFETIME,
        created_at=now,
        updated_at=now,
    )
    db.add(job)
    db.flush()

    connection_ids = [
        r[0] for r in db.query(UserConnection.connection_id).filter(UserConnection.user_id == poster_id).all()
    ]
    notifier.fan_out(connection_ids, poster_id, NotificationType.JOB_POSTED, job_id=job.id)

    db.commit()
    db.refresh(job)
    logger.info("Job posted id=%s by=%s notified=%s", job.id, poster_id, len(connection_ids))
    return {"message": "Job posted successfully", "job": job_public(job)}


@router.get("/")
def list_jobs(
    search: str | None = None,
    skills: str | None = None,
    location: str | None = None,
    jobType: str | None = None,
    workMode: str | None = None,
    experienceLevel: str | None = None,
    timeFilter: str | None = None,
    page: int = 1,
    limit: int = 20,
    db: Session = Depends(get_db),
):
    page, limit = page_params(page, limit, default_limit=20)
    q = db.query(Job).filter(Job.status == "active")

    since = window_start(timeFilter)
    if since is not None:
        q = q.filter(Job.created_at >= since)
    if search and search.strip():
        pattern = like_contains(search.strip())
        q = q.filter(
            or_(
                Job.title.ilike(pattern, escape="\\"),
                Job.description.ilike(pattern, escape="\\"),
                Job.company.ilike(pattern, escape="\\"),
                cast(Job.skills, String).ilike(pattern, escape="\\"),
            )
        )
    skill_list = validate_string_list(skills, "Skills")
    if skill_list:
        q = q.filter(or_(*[cast(Job.skills, String).ilike(like_json_item(s), escape="\\") for s in skill_list]))
    if location and location.strip():
        q = q.filter(Job.location.ilike(like_contains(location.strip()), escape="\\"))
    if jobType:
        q = q.filter(Job.job_type == jobType)
    if workMode:
        q = q.filter(Job.work_mode == workMode)
    if experienceLevel:
        q = q.filter(Job.experience_level == experienceLevel)

    total = q.count()
    jobs = (
        q.options(joinedload(Job.poster))
        .order_by(Job.created_at.desc(), Job.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {"jobs": [job_public(j) for j in jobs], "pagination": pagination_meta(page, limit, total)}


@router.get("/user/posted")
def posted_jobs(db: Session = Depends(get_db), user=Depends(get_current_user)):
    jobs = (
        _job_with_poster(db)
        .filter(Job.posted_by == int(user["sub"]))
        .order_by(Job.created_at.desc(), Job.id.desc())
        .all()
    )
    return {"jobs": [job_public(j, include_applicants=True) for j in jobs]}


@router.get("/user/saved")
def saved_jobs(db: Session = Depends(get_db), user=Depends(get_current_user)):
    jobs = (
        _job_with_poster(db)
        .join(SavedJob, SavedJob.job_id == Job.id)
        .filter(SavedJob.user_id == int(user["sub"]))
        .order_by(SavedJob.created_at.desc(), SavedJob.id.desc())
        .all()
    )
    return {"jobs": [job_public(j) for j in jobs]}


@router.get("/applications/received")
def received_applications(db: Session = Depends(get_db), user=Depends(get_current_user)):
    jobs = (
        db.query(Job)
        .options(joinedload(Job.applicants).joinedload(JobApplication.user))
        .filter(Job.posted_by == int(user["sub"]))
        .order_by(Job.created_at.desc(), Job.id.desc())
        .all()
    )
    applications = []
    for job in jobs:
        for a in job.applicants:
            applications.append(
                {
                    "id": a.id,
                    "job": {"id": job.id, "title": job.title, "company": job.company, "location": job.location},
                    "applicant": {
                        **user_card(a.user),
                        "resume": a.user.resume,
                        "experience": list(a.user.experience or []),
                        "education": list(a.user.education or []),
                    }
                    if a.user
                    else None,
                    "coverLetter": a.cover_letter or "",
                    "appliedAt": to_iso(a.applied_at),
                    "status": a.status,
                }
            )
    return {"applications": applications}


@router.put("/applications/{job_id:int}/{applicant_id:int}/status")
def update_application_status(
    job_id: int,
    applicant_id: int,
    payload: ApplicationStatusUpdate,
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
):
    if payload.status not in APPLICATION_STATUSES:
        raise HTTPException(status_code=400, detail="Invalid status")
    _owned_job(db, job_id, user)

    application = (
        db.query(JobApplication)
        .filter(JobApplication.job_id == job_id, JobApplication.user_id == applicant_id)
        .first()
    )
    if not application:
        raise HTTPException(status_code=404, detail="Applicant not found")

    application.status = payload.status
    db.commit()
    return {"message": "Application status updated successfully"}


@router.get("/{job_id:int}")
def get_job(job_id: int, db: Session = Depends(get_db)):
    job = (
        db.query(Job)
        .options(joinedload(Job.poster), joinedload(Job.applicants).joinedload(JobApplication.user))
        .filter(Job.id == job_id)
        .first()
    )
    if not job:
        raise HTTPException(status_code=404, detail=get_error_message("job_not_found"))

    job.views = (job.views or 0) + 1
    db.commit()
    db.refresh(job)
    return {"job": job_public(job, include_applicants=True)}


@router.post("/{job_id:int}/apply")
async def apply_for_job(
    job_id: int,
    coverLetter: str = Form(default=""),
    resume: UploadFile | None = File(default=None),
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
    notifier: NotificationFanout = Depends(get_notifier),
):
    applicant_id = int(user["sub"])
    job = db.query(Job).filter(Job.id == job_id).first()
    if not job:
        raise HTTPException(status_code=404, detail=get_error_message("job_not_found"))

    already = (
        db.query(JobApplication.id)
        .filter(JobApplication.job_id == job_id, JobApplication.user_id == applicant_id)
        .first()
    )
    if already:
        raise HTTPException(status_code=400, detail=get_error_message("already_applied"))

    attachment = None
    if resume is not None and resume.filename:
        data = await resume.read()
        if len(data) > MAX_RESUME_BYTES:
            raise FileUploadError(get_error_message("file_too_large"), status_code=413)
        if resume_extension(resume.filename, resume.content_type) not in APPLICATION_RESUME_TYPES:
            raise FileUploadError("Invalid file type. Only PDF and DOC files are allowed.")
        attachment = (sanitize_filename(resume.filename), data, resume.content_type)
    else:
        applicant = db.query(User).filter(User.id == applicant_id).first()
        if not applicant or not applicant.resume:
            raise HTTPException(
                status_code=400,
                detail="Resume is required. Please upload a resume or add one to your profile.",
            )

    now = utcnow()
    application = JobApplication(
        job_id=job.id,
        user_id=applicant_id,
        applied_at=now,
        status="pending",
        cover_letter=(coverLetter or "").strip(),
    )
    if attachment:
        application.resume_filename, application.resume_data, application.resume_content_type = attachment
        application.resume_uploaded_at = now

    try:
        db.add(application)
        db.flush()
    except IntegrityError:
        # A concurrent apply for the same (job, user) won the unique constraint.
        db.rollback()
        raise HTTPException(status_code=400, detail=get_error_message("already_applied"))

    notifier.try_notify(job.posted_by, applicant_id, NotificationType.JOB_APPLICATION_RECEIVED, job_id=job.id)
    db.commit()
    logger.info("Application job=%s user=%s attachment=%s", job.id, applicant_id, bool(attachment))
    return {"message": "Application submitted successfully"}


@router.post("/{job_id:int}/save")
def save_job(job_id: int, db: Session = Depends(get_db), user=Depends(get_current_user)):
    user_id = int(user["sub"])
    if not db.query(Job.id).filter(Job.id == job_id).first():
        raise HTTPException(status_code=404, detail=get_error_message("job_not_found"))

    exists = db.query(SavedJob.id).filter(SavedJob.user_id == user_id, SavedJob.job_id == job_id).first()
    if not exists:
        try:
            db.add(SavedJob(user_id=user_id, job_id=job_id, created_at=utcnow()))
            db.commit()
        except IntegrityError:
            # Saved concurrently; saving is idempotent.
            db.rollback()
    return {"message": "Job saved successfully"}


@router.put("/{job_id:int}")
def update_job(job_id: int, payload: JobUpdate, db: Session = Depends(get_db), user=Depends(get_current_user)):
    job = _owned_job(db, job_id, user)
    data = payload.model_dump(exclude_unset=True)

    if data.get("title") is not None:
        job.title = validate_string_field(data["title"], "Title", max_length=200)
    if data.get("description") is not None:
        job.description = validate_string_field(data["description"], "Description", max_length=20000)
    if data.get("location") is not None:
        job.location = validate_string_field(data["location"], "Location", max_length=200)
    if data.get("jobType") is not None:
        job.job_type = validate_choice(data["jobType"], "job type", JOB_TYPES)
    if data.get("workMode") is not None:
        job.work_mode = validate_choice(data["workMode"], "work mode", WORK_MODES)
    if data.get("experienceLevel") is not None:
        job.experience_level = validate_choice(data["experienceLevel"], "experience level", EXPERIENCE_LEVELS)
    if data.get("status") is not None:
        job.status = validate_choice(data["status"], "status", JOB_STATUSES)
    if data.get("skills") is not None:
        job.skills = validate_string_list(data["skills"], "Skills")
    if data.get("tags") is not None:
        job.tags = validate_string_list(data["tags"], "Tags")
    if "budget" in data:
        job.budget = data["budget"]
    if "salary" in data:
        job.salary = data["salary"]

    db.commit()
    db.refresh(job)
    return {"message": "Job updated successfully", "job": job_public(job)}


@router.put("/{job_id:int}/close")
def close_job(job_id: int, db: Session = Depends(get_db), user=Depends(get_current_user)):
    job = _owned_job(db, job_id, user)
    job.status = "closed"
    db.commit()
    db.refresh(job)
    return {"message": "Job closed successfully", "job": job_public(job)}


@router.delete("/{job_id:int}")
def delete_job(job_id: int, db: Session = Depends(get_db), user=Depends(get_current_user)):
    job = _owned_job(db, job_id, user)
    db.delete(job)
    db.commit()
    return {"message": "Job deleted successfully"}
