from pydantic import BaseModel, Field, field_validator


MATCH_CATEGORIES = ("Gold Match", "Strong Match", "Good Match", "Partial Match")


def category_for(score: int) -> str:
    """Thresholds are inclusive: 90 is Gold, 70 is Strong, 50 is Good."""
    if score >= 90:
        return "Gold Match"
    if score >= 70:
        return "Strong Match"
    if score >= 50:
        return "Good Match"
    return "Partial Match"


def _str_list(v) -> list[str]:
    if v is None:
        return []
    if isinstance(v, str):
        return [v.strip()] if v.strip() else []
    if isinstance(v, list):
        return [str(x).strip() for x in v if x is not None and str(x).strip()]
    return []


class AIMatchOutput(BaseModel):
    """Shape the model is asked to return for a candidate/job match."""

    matchScore: int = 0
    matchCategory: str = ""
    strengths: list[str] = Field(default_factory=list)
    gaps: list[str] = Field(default_factory=list)
    recommendation: str = ""

    @field_validator("matchScore", mode="before")
    @classmethod
    def _clamp_score(cls, v) -> int:
        try:
            v2 = int(round(float(v)))
        except (TypeError, ValueError):
            return 0
        if v2 < 0:
            return 0
        if v2 > 100:
            return 100
        return v2

    @field_validator("strengths", "gaps", mode="before")
    @classmethod
    def _coerce_list(cls, v) -> list[str]:
        return _str_list(v)

    @field_validator("matchCategory", "recommendation", mode="before")
    @classmethod
    def _coerce_str(cls, v) -> str:
        return str(v).strip() if v is not None else ""

    def normalized(self) -> "AIMatchOutput":
        if self.matchCategory not in MATCH_CATEGORIES:
            return self.model_copy(update={"matchCategory": category_for(self.matchScore)})
        return self
