import logging
from typing import Any

from ..utils.error_handlers import AIServiceError, ValidationError, get_error_message
from .ai_client import AIClient, AIClientError
from .ai_common import parse_best_effort
from .ai_prompts import (
    bio_prompt,
    career_tips_prompt,
    cover_letter_prompt,
    enhance_description_prompt,
    extract_skills_prompt,
    resume_parse_prompt,
)

logger = logging.getLogger(__name__)

MAX_SKILLS = 20
DEFAULT_CAREER_TIPS = [
    "Complete your profile with more details",
    "Connect with professionals in your industry",
    "Apply to recommended jobs matching your skills",
]

RESUME_FIELDS = (
    "skills",
    "experience",
    "education",
    "name",
    "phone",
    "email",
    "location",
    "address",
    "headline",
    "bio",
    "linkedinUrl",
    "githubUrl",
    "portfolioUrl",
    "websiteUrl",
)


async def _complete(ai: AIClient, prompt: str, operation: str) -> str:
    try:
        return await ai.complete(prompt)
    except AIClientError as e:
        logger.error("AI %s failed: %s", operation, e)
        raise AIServiceError() from e


async def extract_skills(ai: AIClient, text: str) -> list[str]:
    raw = await _complete(ai, extract_skills_prompt(text=text), "extract_skills")
    parsed = parse_best_effort(raw, "array")
    if parsed.fallback:
        logger.warning("Skill extraction returned no JSON array; split %d items from text", len(parsed.value))
    skills = [str(s).strip() for s in parsed.value if s is not None and str(s).strip()]
    return skills[:MAX_SKILLS]


async def parse_resume(ai: AIClient, resume_text: str) -> dict[str, Any]:
    raw = await _complete(ai, resume_parse_prompt(resume_text=resume_text), "parse_resume")
    parsed = parse_best_effort(raw, "object")
    if parsed.fallback:
        logger.warning("Resume parse returned no JSON object")
        raise ValidationError(get_error_message("resume_parse_failed"))

    data = parsed.value
    out: dict[str, Any] = {}
    for key in RESUME_FIELDS:
        if key in data:
            out[key] = data[key]
    for key in ("skills", "experience", "education"):
        if not isinstance(out.get(key), list):
            out[key] = []
    return out


async def generate_bio(ai: AIClient, parsed: dict, *, fallback_name: str = "", fallback_skills: list | None = None) -> str:
    prompt = bio_prompt(
        name=parsed.get("name") or fallback_name,
        headline=parsed.get("headline") or "",
        skills=parsed.get("skills") or fallback_skills or [],
        experience=parsed.get("experience") or [],
        education=parsed.get("education") or [],
    )
    raw = await _complete(ai, prompt, "generate_bio")
    return parse_best_effort(raw, "text").value


async def generate_cover_letter(ai: AIClient, *, user: dict, job: dict) -> str:
    prompt = cover_letter_prompt(
        name=user.get("name", ""),
        skills=user.get("skills") or [],
        bio=user.get("bio", ""),
        job_title=job.get("title", ""),
        company=job.get("company", ""),
        job_description=job.get("description", ""),
    )
    raw = await _complete(ai, prompt, "generate_cover_letter")
    return parse_best_effort(raw, "text").value


async def enhance_job_description(ai: AIClient, *, title: str, description: str) -> str:
    raw = await _complete(ai, enhance_description_prompt(title=title, description=description), "enhance_description")
    return parse_best_effort(raw, "text").value


async def career_tips(ai: AIClient, *, skills: list, bio: str, location: str) -> list[str]:
    raw = await _complete(ai, career_tips_prompt(skills=skills, bio=bio, location=location), "career_tips")
    parsed = parse_best_effort(raw, "array")
    if parsed.fallback:
        logger.warning("Career tips returned no JSON array; using default tips")
        return list(DEFAULT_CAREER_TIPS)
    tips = [str(t).strip() for t in parsed.value if t is not None and str(t).strip()]
    return tips[:3] or list(DEFAULT_CAREER_TIPS)
