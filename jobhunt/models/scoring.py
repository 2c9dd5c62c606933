"""Pydantic models for posting scoring — strict oracle schema and effective decision."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

MATCH_THRESHOLD = 60
FALLBACK_SCORE = 50
FALLBACK_REASON = "AI filter failed — passed through for manual review"
NO_SPONSORSHIP_REASON = "Posting states visa sponsorship is unavailable; candidate requires sponsorship"


class ScoringOutput(BaseModel):
    """Strict schema for the scoring oracle's JSON answer."""

    is_match: bool = Field(validation_alias=AliasChoices("is_match", "isMatch"))
    score: int = Field(ge=0, le=100)
    reason: str = ""

    @field_validator("score", mode="before")
    @classmethod
    def round_score(cls, v: Any) -> Any:
        if isinstance(v, float):
            return round(v)
        return v

    @field_validator("reason")
    @classmethod
    def single_line(cls, v: str) -> str:
        lines = [line.strip() for line in v.strip().splitlines() if line.strip()]
        return lines[0] if lines else ""


class MatchResult(BaseModel):
    """Effective scoring decision used downstream."""

    model_config = ConfigDict(frozen=True)

    is_match: bool
    score: int = Field(ge=0, le=100)
    reason: str
    fallback: bool = False  # True when the oracle failed and the posting passed through

    @classmethod
    def from_output(cls, output: ScoringOutput) -> MatchResult:
        """The threshold overrides a match flag that disagrees with it."""
        return cls(
            is_match=output.is_match and output.score >= MATCH_THRESHOLD,
            score=output.score,
            reason=output.reason,
        )

    @classmethod
    def oracle_failure(cls) -> MatchResult:
        return cls(is_match=True, score=FALLBACK_SCORE, reason=FALLBACK_REASON, fallback=True)

    @classmethod
    def no_sponsorship(cls) -> MatchResult:
        return cls(is_match=False, score=0, reason=NO_SPONSORSHIP_REASON)
