from collections.abc import Iterable

# Each filled field is worth 100 / 8 = 12.5 points.
COMPLETENESS_FIELDS = ("name", "email", "bio", "linkedin_url", "location", "skills", "experience", "education")


def profile_completeness(user) -> int:
    filled = 0
    for field in COMPLETENESS_FIELDS:
        value = getattr(user, field, None)
        if isinstance(value, list):
            filled += 1 if value else 0
        elif value:
            filled += 1
    return int(filled * 100 / len(COMPLETENESS_FIELDS) + 0.5)


def skill_overlap(user_skills: Iterable[str], job_skills: Iterable[str]) -> tuple[int, list[str]]:
    """Exact-match overlap used for job recommendations: (round(matching / job skills * 100), matching)."""
    have = set(user_skills or [])
    job_skills = list(job_skills or [])
    matching = [s for s in job_skills if s in have]
    if not job_skills:
        return 0, matching
    return int(len(matching) * 100 / len(job_skills) + 0.5), matching


def rank_recommendations(user_skills: list[str], jobs: Iterable, limit: int = 10) -> list[tuple[object, int, list[str]]]:
    """Jobs sharing at least one skill, highest overlap first (stable for ties)."""
    scored = []
    for job in jobs:
        score, matching = skill_overlap(user_skills, job.skills)
        if matching:
            scored.append((job, score, matching))
    scored.sort(key=lambda t: t[1], reverse=True)
    return scored[:limit]


def mutual_connection_count(my_connection_ids: set[int], their_connection_ids: set[int]) -> int:
    return len(my_connection_ids & their_connection_ids)
