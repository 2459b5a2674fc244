import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import String, cast, or_
from sqlalchemy.orm import Session, joinedload

from ..database import get_db
from ..models.job import Job
from ..models.user import User, UserConnection
from ..schemas.public import candidate_profile, job_match_input, job_public, user_card
from ..services import ai_text
from ..services.ai_client import AIClient
from ..services.match_scoring import score_match
from ..services.profiles import rank_recommendations
from ..utils.dependencies import get_ai_client, get_current_user
from ..utils.error_handlers import get_error_message
from ..utils.validation import like_json_item

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["AI"])

RECOMMENDED_JOBS_LIMIT = 10
SUGGESTED_CONNECTIONS_LIMIT = 5


class TextIn(BaseModel):
    text: str | None = None


class JobRef(BaseModel):
    jobId: int | None = None


class EnhanceDescriptionIn(BaseModel):
    title: str | None = None
    description: str | None = None


def _me(db: Session, user: dict) -> User:
    current = db.query(User).filter(User.id == int(user["sub"])).first()
    if not current:
        raise HTTPException(status_code=404, detail=get_error_message("user_not_found"))
    return current


def _job(db: Session, job_id: int | None) -> Job:
    if not job_id:
        raise HTTPException(status_code=400, detail="Job ID is required")
    job = db.query(Job).filter(Job.id == job_id).first()
    if not job:
        raise HTTPException(status_code=404, detail=get_error_message("job_not_found"))
    return job


def _any_skill(column, skills: list[str]):
    return or_(*[cast(column, String).ilike(like_json_item(s), escape="\\") for s in skills])


@router.post("/extract-skills")
async def extract_skills(payload: TextIn, user=Depends(get_current_user), ai: AIClient = Depends(get_ai_client)):
    if not payload.text or not payload.text.strip():
        raise HTTPException(status_code=400, detail="Text is required")
    return {"skills": await ai_text.extract_skills(ai, payload.text)}


@router.post("/job-match")
async def job_match(
    payload: JobRef,
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
    ai: AIClient = Depends(get_ai_client),
):
    job = _job(db, payload.jobId)
    current = _me(db, user)

    result = await score_match(candidate_profile(current), job_match_input(job), ai)
    logger.info(
        "Job match user=%s job=%s score=%s source=%s",
        current.id,
        job.id,
        result.score,
        result.source,
    )
    return {"matchData": result.to_match_data()}


@router.get("/recommended-jobs")
def recommended_jobs(db: Session = Depends(get_db), user=Depends(get_current_user)):
    current = _me(db, user)
    skills = list(current.skills or [])
    if not skills:
        return {"jobs": []}

    candidates = (
        db.query(Job)
        .options(joinedload(Job.poster))
        .filter(Job.status == "active", _any_skill(Job.skills, skills))
        .order_by(Job.created_at.desc(), Job.id.desc())
        .all()
    )
    ranked = rank_recommendations(skills, candidates, limit=RECOMMENDED_JOBS_LIMIT)
    return {
        "jobs": [
            {**job_public(job), "matchScore": score, "matchingSkills": matching}
            for job, score, matching in ranked
        ]
    }


@router.get("/suggestions")
async def suggestions(
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
    ai: AIClient = Depends(get_ai_client),
):
    current = _me(db, user)
    skills = list(current.skills or [])

    tips = await ai_text.career_tips(ai, skills=skills, bio=current.bio or "", location=current.location or "")

    similar = []
    if skills:
        connected = [
            r[0] for r in db.query(UserConnection.connection_id).filter(UserConnection.user_id == current.id).all()
        ]
        q = db.query(User).filter(User.id != current.id, _any_skill(User.skills, skills))
        if connected:
            q = q.filter(User.id.notin_(connected))
        similar = q.order_by(User.id.asc()).limit(SUGGESTED_CONNECTIONS_LIMIT).all()

    return {"careerTips": tips, "suggestedConnections": [user_card(u) for u in similar]}


@router.post("/enhance-job-description")
async def enhance_job_description(
    payload: EnhanceDescriptionIn,
    user=Depends(get_current_user),
    ai: AIClient = Depends(get_ai_client),
):
    if not payload.title or not payload.description:
        raise HTTPException(status_code=400, detail="Title and description are required")
    enhanced = await ai_text.enhance_job_description(ai, title=payload.title, description=payload.description)
    return {"enhancedDescription": enhanced}


@router.post("/generate-cover-letter")
async def generate_cover_letter(
    payload: JobRef,
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
    ai: AIClient = Depends(get_ai_client),
):
    job = _job(db, payload.jobId)
    current = _me(db, user)
    letter = await ai_text.generate_cover_letter(
        ai,
        user={"name": current.name, "skills": list(current.skills or []), "bio": current.bio or ""},
        job={"title": job.title, "company": job.company, "description": job.description},
    )
    return {"coverLetter": letter}
