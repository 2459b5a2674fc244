"""
Candidate/job match scoring.

The AI path asks the model for a JSON verdict; anything short of a parseable
object (AI disabled, HTTP failure, prose, broken JSON) drops to the deterministic
heuristic below, which is the only part of scoring with a fixed contract:

  skills 40 + experience 30 + location 15 + education 15, rounded half-up.
"""
import logging
import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from ..schemas.ai_match import AIMatchOutput, category_for
from ..utils.timeutils import utcnow
from .ai_client import AIClient, AIClientError
from .ai_common import parse_best_effort
from .ai_prompts import job_match_prompt

logger = logging.getLogger(__name__)

SKILL_WEIGHT = 40
EXPERIENCE_IN_BAND = 30
EXPERIENCE_ABOVE_BAND = 20
LOCATION_MATCH = 15
LOCATION_MISS = 5
EDUCATION_PRESENT = 15
EDUCATION_MISSING = 5

# Years of experience expected per job level, [min, max].
EXPERIENCE_LEVEL_YEARS = {
    "entry": (0, 2),
    "mid": (2, 5),
    "senior": (5, 10),
    "lead": (8, 20),
}
# Candidates up to this many years past the band still get full experience points.
EXPERIENCE_BAND_SLACK = 2

DEFAULT_START = datetime(2020, 1, 1, tzinfo=timezone.utc)
DAYS_PER_YEAR = 365

_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "sept": 9, "oct": 10, "nov": 11, "dec": 12,
    "january": 1, "february": 2, "march": 3, "april": 4, "june": 6, "july": 7,
    "august": 8, "september": 9, "october": 10, "november": 11, "december": 12,
}
_YEAR_RE = re.compile(r"^(\d{4})$")
_YEAR_MONTH_RE = re.compile(r"^(\d{4})-(\d{1,2})$")
_MONTH_YEAR_RE = re.compile(r"^([A-Za-z]+)\.?\s+(\d{4})$")


@dataclass(frozen=True)
class MatchResult:
    score: int
    category: str
    strengths: list[str] = field(default_factory=list)
    gaps: list[str] = field(default_factory=list)
    recommendation: str = ""
    source: str = "fallback"  # "ai" | "fallback"

    def to_match_data(self) -> dict:
        return {
            "matchScore": self.score,
            "matchCategory": self.category,
            "strengths": list(self.strengths),
            "gaps": list(self.gaps),
            "recommendation": self.recommendation,
            "source": self.source,
        }


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def parse_date(value: Any) -> datetime | None:
    """
    Parse the date shapes profiles carry: YYYY-MM-DD, ISO datetimes, YYYY-MM,
    YYYY (str or int), "Mon YYYY" and "Month YYYY". Returns an aware UTC datetime,
    or None when the value is empty or unrecognised.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        value = str(int(value))

    s = str(value).strip()
    if not s:
        return None

    m = _YEAR_RE.match(s)
    if m:
        return datetime(int(m.group(1)), 1, 1, tzinfo=timezone.utc)

    m = _YEAR_MONTH_RE.match(s)
    if m:
        month = int(m.group(2))
        if 1 <= month <= 12:
            return datetime(int(m.group(1)), month, 1, tzinfo=timezone.utc)
        return None

    m = _MONTH_YEAR_RE.match(s)
    if m:
        month = _MONTHS.get(m.group(1).lower())
        if month:
            return datetime(int(m.group(2)), month, 1, tzinfo=timezone.utc)
        return None

    try:
        dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def experience_years(entry: dict, now: datetime | None = None) -> float:
    """Years covered by one experience entry (days / 365, may be fractional or negative)."""
    now = now or utcnow()
    raw_start = entry.get("startDate") or entry.get("startYear")
    start = parse_date(raw_start) if raw_start else DEFAULT_START
    if start is None:
        start = DEFAULT_START

    if entry.get("current"):
        end = now
    else:
        raw_end = entry.get("endDate") or entry.get("endYear")
        end = parse_date(raw_end) if raw_end else start
        if end is None:
            end = start

    return (end - start).total_seconds() / 86400 / DAYS_PER_YEAR


def total_experience_years(experience: list | None, now: datetime | None = None) -> float:
    now = now or utcnow()
    return sum(experience_years(e, now) for e in (experience or []) if isinstance(e, dict))


def matching_skills(candidate_skills: list | None, job_skills: list | None) -> list[str]:
    """Candidate skills that contain, or are contained in, some job skill (case-insensitive)."""
    job_lower = [str(s).lower() for s in (job_skills or [])]
    matches = []
    for skill in candidate_skills or []:
        s = str(skill).lower()
        if any(js in s or s in js for js in job_lower):
            matches.append(str(skill))
    return matches


def experience_score(years: float, level: str | None) -> int:
    lo, hi = EXPERIENCE_LEVEL_YEARS.get((level or "").lower(), EXPERIENCE_LEVEL_YEARS["entry"])
    if lo <= years <= hi + EXPERIENCE_BAND_SLACK:
        return EXPERIENCE_IN_BAND
    if years >= lo:
        return EXPERIENCE_ABOVE_BAND
    return 0


def location_score(candidate_location: str | None, job_location: str | None, work_mode: str | None) -> int:
    if work_mode == "remote":
        return LOCATION_MATCH
    loc = (candidate_location or "").lower()
    if loc and loc in (job_location or "").lower():
        return LOCATION_MATCH
    return LOCATION_MISS


def fallback_match(candidate: dict, job: dict, now: datetime | None = None) -> MatchResult:
    job_skills = job.get("skills") or []
    matches = matching_skills(candidate.get("skills"), job_skills)

    skill_points = len(matches) / max(len(job_skills), 1) * SKILL_WEIGHT
    years = total_experience_years(candidate.get("experience"), now)
    exp_points = experience_score(years, job.get("experienceLevel"))
    loc_points = location_score(candidate.get("location"), job.get("location"), job.get("workMode"))
    edu_points = EDUCATION_PRESENT if candidate.get("education") else EDUCATION_MISSING

    total = round_half_up(skill_points + exp_points + loc_points + edu_points)

    if matches:
        strengths = [f"{len(matches)} matching skills: {', '.join(matches[:3])}"]
    else:
        strengths = ["Review job requirements carefully"]
    gaps = ["Consider upskilling in required technologies"] if len(matches) < len(job_skills) else []
    recommendation = (
        "Strong candidate - Apply now!"
        if total >= 70
        else "Review requirements and highlight relevant experience"
    )

    return MatchResult(
        score=total,
        category=category_for(total),
        strengths=strengths,
        gaps=gaps,
        recommendation=recommendation,
        source="fallback",
    )


async def score_match(candidate: dict, job: dict, ai: AIClient | None, now: datetime | None = None) -> MatchResult:
    """AI verdict when one can be had, otherwise the deterministic fallback. Never raises for AI problems."""
    now = now or utcnow()
    if ai is None or not ai.enabled:
        return fallback_match(candidate, job, now)

    prompt = job_match_prompt(
        candidate=candidate,
        job=job,
        total_years=total_experience_years(candidate.get("experience"), now),
    )
    try:
        text = await ai.complete(prompt)
    except AIClientError as e:
        logger.warning("Job match AI call failed (%s); using fallback score", e)
        return fallback_match(candidate, job, now)

    parsed = parse_best_effort(text, "object")
    if parsed.fallback:
        logger.warning("Job match AI returned no JSON object; using fallback score")
        return fallback_match(candidate, job, now)

    try:
        out = AIMatchOutput.model_validate(parsed.value).normalized()
    except ValidationError as e:
        logger.warning("Job match AI JSON failed validation (%s); using fallback score", e)
        return fallback_match(candidate, job, now)

    return MatchResult(
        score=out.matchScore,
        category=out.matchCategory,
        strengths=out.strengths,
        gaps=out.gaps,
        recommendation=out.recommendation,
        source="ai",
    )
