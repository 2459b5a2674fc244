import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from pydantic import BaseModel, Field
from sqlalchemy import String, cast, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.application import JobApplication
from ..models.job import Job
from ..models.post import Post
from ..models.user import ProfileView, SavedJob, User, UserConnection
from ..services import ai_text
from ..services.ai_client import AIClient
from ..services.notifications import NotificationFanout, NotificationType
from ..services.payments import is_valid_address
from ..services.profiles import mutual_connection_count, profile_completeness
from ..services.resume_analysis import (
    MAX_RESUME_BYTES,
    ResumeExtractionError,
    extract_resume_text,
    resume_extension,
)
from ..schemas.public import user_card, user_public
from ..utils.dependencies import get_ai_client, get_current_user, get_notifier
from ..utils.error_handlers import FileUploadError, get_error_message
from ..utils.timeutils import to_iso, utcnow
from ..utils.validation import (
    like_contains,
    like_json_item,
    sanitize_filename,
    validate_choice,
    validate_string_field,
    validate_string_list,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])

PROFILE_VIEW_DEDUP_WINDOW = timedelta(hours=24)
WALLET_CHAINS = {"metamask": "ethereum", "phantom": "solana"}


class ProfileUpdate(BaseModel):
    name: str | None = None
    bio: str | None = Field(default=None, max_length=1000)
    headline: str | None = Field(default=None, max_length=200)
    phone: str | None = Field(default=None, max_length=50)
    linkedinUrl: str | None = Field(default=None, max_length=500)
    githubUrl: str | None = Field(default=None, max_length=500)
    portfolioUrl: str | None = Field(default=None, max_length=500)
    websiteUrl: str | None = Field(default=None, max_length=500)
    skills: list[str] | None = None
    location: str | None = Field(default=None, max_length=255)
    address: dict | None = None
    experience: list[dict] | None = None
    education: list[dict] | None = None
    profilePicture: str | None = None


class WalletUpdate(BaseModel):
    walletAddress: str | None = None
    walletType: str | None = None


class ResumeRecord(BaseModel):
    filename: str | None = None
    url: str | None = None
    parsedData: dict | None = None


class ResumeText(BaseModel):
    resumeText: str | None = None


class AutofillRequest(BaseModel):
    parsedData: dict | None = None


# Request field -> User column, for plain string fields.
_STRING_FIELDS = {
    "bio": "bio",
    "headline": "headline",
    "phone": "phone",
    "linkedinUrl": "linkedin_url",
    "githubUrl": "github_url",
    "portfolioUrl": "portfolio_url",
    "websiteUrl": "website_url",
    "location": "location",
    "profilePicture": "profile_picture",
}


def _me(db: Session, user: dict) -> User:
    current = db.query(User).filter(User.id == int(user["sub"])).first()
    if not current:
        raise HTTPException(status_code=404, detail=get_error_message("user_not_found"))
    return current


def _connection_ids(db: Session, user_id: int) -> set[int]:
    rows = db.query(UserConnection.connection_id).filter(UserConnection.user_id == user_id).all()
    return {r[0] for r in rows}


def _connections(db: Session, user_id: int) -> list[User]:
    return (
        db.query(User)
        .join(UserConnection, UserConnection.connection_id == User.id)
        .filter(UserConnection.user_id == user_id)
        .order_by(User.name.asc())
        .all()
    )


def _skills_filter(skills: list[str]):
    """Matches users whose JSON skills list contains any of `skills` (case-insensitive)."""
    return or_(*[cast(User.skills, String).ilike(like_json_item(s), escape="\\") for s in skills])


def _apply_parsed_profile(current: User, parsed: dict) -> None:
    """Copy non-empty parsed resume fields onto the profile."""
    for key, column in (
        ("name", "name"),
        ("bio", "bio"),
        ("headline", "headline"),
        ("location", "location"),
        ("phone", "phone"),
        ("linkedinUrl", "linkedin_url"),
        ("githubUrl", "github_url"),
        ("portfolioUrl", "portfolio_url"),
        ("websiteUrl", "website_url"),
    ):
        value = parsed.get(key)
        if isinstance(value, str) and value.strip():
            setattr(current, column, value.strip())
    if isinstance(parsed.get("address"), dict) and parsed["address"]:
        current.address = parsed["address"]
    for key in ("skills", "experience", "education"):
        value = parsed.get(key)
        if isinstance(value, list) and value:
            setattr(current, key, list(value))


@router.get("/{user_id:int}")
def get_user(user_id: int, db: Session = Depends(get_db), user=Depends(get_current_user)):
    target = db.query(User).filter(User.id == user_id).first()
    if not target:
        raise HTTPException(status_code=404, detail=get_error_message("user_not_found"))
    return {"user": user_public(target, connections=_connections(db, target.id))}


@router.put("/profile")
def update_profile(payload: ProfileUpdate, db: Session = Depends(get_db), user=Depends(get_current_user)):
    current = _me(db, user)
    data = payload.model_dump(exclude_unset=True)

    if data.get("name"):
        current.name = validate_string_field(data["name"], "Name", max_length=255)
    for field, column in _STRING_FIELDS.items():
        if field in data and data[field] is not None:
            setattr(current, column, data[field].strip())
    if "address" in data:
        current.address = data["address"]
    if data.get("skills"):
        current.skills = validate_string_list(data["skills"], "Skills")
    if data.get("experience"):
        current.experience = list(data["experience"])
    if data.get("education"):
        current.education = list(data["education"])

    db.commit()
    db.refresh(current)
    return {"message": "Profile updated successfully", "user": user_public(current)}


@router.put("/wallet")
def update_wallet(payload: WalletUpdate, db: Session = Depends(get_db), user=Depends(get_current_user)):
    if not payload.walletAddress or not payload.walletType:
        raise HTTPException(status_code=400, detail="Wallet address and type are required")
    wallet_type = validate_choice(payload.walletType, "wallet type", WALLET_CHAINS)
    address = payload.walletAddress.strip()
    if not is_valid_address(address, WALLET_CHAINS[wallet_type]):
        raise HTTPException(status_code=400, detail="Invalid wallet address")

    current = _me(db, user)
    current.wallet_address = address
    current.wallet_type = wallet_type
    db.commit()
    db.refresh(current)
    return {"message": "Wallet updated successfully", "user": user_public(current)}


@router.post("/profile/{user_id:int}/view")
def track_profile_view(
    user_id: int,
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
    notifier: NotificationFanout = Depends(get_notifier),
):
    viewer_id = int(user["sub"])
    if user_id == viewer_id:
        return {"message": "Self-view not tracked"}

    target = db.query(User).filter(User.id == user_id).first()
    if not target:
        raise HTTPException(status_code=404, detail=get_error_message("user_not_found"))

    now = utcnow()
    recent = (
        db.query(ProfileView)
        .filter(
            ProfileView.user_id == user_id,
            ProfileView.viewer_id == viewer_id,
            ProfileView.viewed_at >= now - PROFILE_VIEW_DEDUP_WINDOW,
        )
        .first()
    )
    if recent is None:
        db.add(ProfileView(user_id=user_id, viewer_id=viewer_id, viewed_at=now))
        target.profile_views = (target.profile_views or 0) + 1
        db.flush()
        notifier.try_notify(user_id, viewer_id, NotificationType.PROFILE_VIEWED)
        db.commit()

    return {"message": "View tracked"}


@router.post("/resume/upload-pdf")
async def upload_resume_file(
    resume: UploadFile | None = File(default=None),
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
    ai: AIClient = Depends(get_ai_client),
):
    if resume is None or not resume.filename:
        raise FileUploadError(get_error_message("no_file"))

    data = await resume.read()
    if len(data) > MAX_RESUME_BYTES:
        raise FileUploadError(get_error_message("file_too_large"), status_code=413)

    ext = resume_extension(resume.filename, resume.content_type)
    if ext is None:
        raise FileUploadError(get_error_message("invalid_file_type"))
    filename = sanitize_filename(resume.filename)

    try:
        text = extract_resume_text(data, ext)
    except ResumeExtractionError as e:
        raise FileUploadError(str(e))

    logger.info("Parsing resume file=%s bytes=%s chars=%s", filename, len(data), len(text))
    parsed = await ai_text.parse_resume(ai, text)

    current = _me(db, user)
    now = utcnow()
    current.resume = {
        "filename": filename,
        "url": f"resume_{int(now.timestamp() * 1000)}_{filename}",
        "uploadedAt": to_iso(now),
        "parsed": parsed,
    }
    db.commit()
    db.refresh(current)
    return {"message": "Resume uploaded and parsed successfully", "user": user_public(current), "parsedData": parsed}


@router.post("/resume/generate-bio")
async def generate_bio(db: Session = Depends(get_db), user=Depends(get_current_user), ai: AIClient = Depends(get_ai_client)):
    current = _me(db, user)
    parsed = (current.resume or {}).get("parsed")
    if not parsed:
        raise HTTPException(status_code=400, detail="Please upload a resume first")
    bio = await ai_text.generate_bio(ai, parsed, fallback_name=current.name, fallback_skills=current.skills)
    return {"bio": bio}


@router.post("/resume/upload")
def save_resume_record(payload: ResumeRecord, db: Session = Depends(get_db), user=Depends(get_current_user)):
    if not payload.filename or not payload.url:
        raise HTTPException(status_code=400, detail="Filename and URL are required")
    record = {"filename": payload.filename, "url": payload.url, "uploadedAt": to_iso(utcnow())}
    if payload.parsedData:
        record["parsed"] = payload.parsedData

    current = _me(db, user)
    current.resume = record
    db.commit()
    db.refresh(current)
    return {"message": "Resume uploaded successfully", "user": user_public(current)}


@router.post("/resume/parse")
async def parse_resume_text(payload: ResumeText, user=Depends(get_current_user), ai: AIClient = Depends(get_ai_client)):
    if not payload.resumeText or not payload.resumeText.strip():
        raise HTTPException(status_code=400, detail="Resume text is required")
    parsed = await ai_text.parse_resume(ai, payload.resumeText)
    return {"message": "Resume parsed successfully", "data": parsed}


@router.post("/profile/autofill")
def autofill_profile(payload: AutofillRequest, db: Session = Depends(get_db), user=Depends(get_current_user)):
    if not payload.parsedData:
        raise HTTPException(status_code=400, detail="Parsed data is required")
    current = _me(db, user)
    _apply_parsed_profile(current, payload.parsedData)
    db.commit()
    db.refresh(current)
    return {"message": "Profile auto-filled successfully", "user": user_public(current)}


@router.get("/search/all")
def search_users(
    query: str | None = None,
    q: str | None = None,
    skills: str | None = None,
    location: str | None = None,
    limit: int = Query(default=50, ge=1, le=100),
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
):
    term = (query or q or "").strip()
    skill_list = validate_string_list(skills, "Skills")
    location = (location or "").strip()
    if not term and not skill_list and not location:
        return {"users": [], "count": 0}

    qry = db.query(User).filter(User.id != int(user["sub"]))
    if term:
        pattern = like_contains(term)
        qry = qry.filter(
            or_(
                User.name.ilike(pattern, escape="\\"),
                User.bio.ilike(pattern, escape="\\"),
                User.headline.ilike(pattern, escape="\\"),
                cast(User.skills, String).ilike(pattern, escape="\\"),
                User.location.ilike(pattern, escape="\\"),
            )
        )
    if skill_list:
        qry = qry.filter(_skills_filter(skill_list))
    if location and not term:
        qry = qry.filter(User.location.ilike(like_contains(location), escape="\\"))

    users = qry.order_by(User.name.asc()).limit(limit).all()
    return {"users": [user_card(u) for u in users], "count": len(users)}


@router.post("/connections/{user_id:int}")
def add_connection(
    user_id: int,
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
    notifier: NotificationFanout = Depends(get_notifier),
):
    me_id = int(user["sub"])
    if user_id == me_id:
        raise HTTPException(status_code=400, detail="Cannot connect with yourself")
    if not db.query(User).filter(User.id == user_id).first():
        raise HTTPException(status_code=404, detail=get_error_message("user_not_found"))
    if user_id in _connection_ids(db, me_id):
        raise HTTPException(status_code=400, detail="Already connected")

    db.add(UserConnection(user_id=me_id, connection_id=user_id))
    # The reverse row may already exist from a half-removed connection.
    if me_id not in _connection_ids(db, user_id):
        db.add(UserConnection(user_id=user_id, connection_id=me_id))
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="Already connected")

    notifier.try_notify(user_id, me_id, NotificationType.CONNECTION_ACCEPTED)
    notifier.try_notify(me_id, user_id, NotificationType.CONNECTION_ACCEPTED)
    db.commit()
    return {"message": "Connection added successfully"}


@router.get("/connections/list")
def list_connections(db: Session = Depends(get_db), user=Depends(get_current_user)):
    return {"connections": [user_card(u) for u in _connections(db, int(user["sub"]))]}


@router.delete("/connections/{user_id:int}")
def remove_connection(user_id: int, db: Session = Depends(get_db), user=Depends(get_current_user)):
    me_id = int(user["sub"])
    db.query(UserConnection).filter(
        or_(
            (UserConnection.user_id == me_id) & (UserConnection.connection_id == user_id),
            (UserConnection.user_id == user_id) & (UserConnection.connection_id == me_id),
        )
    ).delete(synchronize_session=False)
    db.commit()
    return {"message": "Connection removed successfully"}


@router.get("/suggestions/connections")
def suggested_connections(
    limit: int = Query(default=10, ge=1, le=50),
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
):
    current = _me(db, user)
    skills = list(current.skills or [])
    if not skills:
        return {"suggestions": []}

    mine = _connection_ids(db, current.id)
    qry = db.query(User).filter(User.id != current.id, _skills_filter(skills))
    if mine:
        qry = qry.filter(User.id.notin_(mine))
    suggestions = qry.order_by(User.id.asc()).limit(limit).all()

    out = []
    for s in suggestions:
        out.append({**user_card(s), "mutualConnections": mutual_connection_count(mine, _connection_ids(db, s.id))})
    return {"suggestions": out}


@router.get("/stats/profile")
def profile_stats(db: Session = Depends(get_db), user=Depends(get_current_user)):
    current = _me(db, user)
    uid = current.id
    return {
        "profileViews": current.profile_views or 0,
        "applicationsCount": db.query(func.count(JobApplication.id)).filter(JobApplication.user_id == uid).scalar(),
        "connectionsCount": db.query(func.count(UserConnection.id)).filter(UserConnection.user_id == uid).scalar(),
        "savedJobsCount": db.query(func.count(SavedJob.id)).filter(SavedJob.user_id == uid).scalar(),
        "postsCount": db.query(func.count(Post.id)).filter(Post.author_id == uid).scalar(),
        "jobsPostedCount": db.query(func.count(Job.id)).filter(Job.posted_by == uid).scalar(),
        "profileCompleteness": profile_completeness(current),
    }
