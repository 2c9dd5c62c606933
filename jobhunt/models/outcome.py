"""Per-posting outcomes, result-log records and the run summary."""

from __future__ import annotations

from datetime import date
from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from jobhunt.models.job import Posting
from jobhunt.models.scoring import MatchResult

LOG_HEADER: list[str] = [
    "Date",
    "Company",
    "Role",
    "Location",
    "Salary",
    "Job Type",
    "Match Score",
    "Match Reason",
    "Status",
    "Job URL",
    "Resume Path",
]


class LogStatus(str, Enum):
    READY_TO_APPLY = "Ready to Apply"
    FILTERED_OUT = "Filtered Out"
    ERROR = "Error"


# =============================================================================
# Generated material
# =============================================================================


class TailoredDocument(BaseModel):
    """Generated application material for one posting."""

    resume_markdown: str
    cover_letter: str
    matched_bullets: list[str] = Field(default_factory=list)
    fallback: bool = False  # assembled from the profile without tailoring


class RenderedFile(BaseModel):
    """A resume written to disk."""

    path: Path
    file_name: str
    content: bytes
    page_count: int


# =============================================================================
# Result log row
# =============================================================================


class LogRecord(BaseModel):
    """One append-only row in the result log."""

    model_config = ConfigDict(frozen=True)

    date: str
    company: str
    role: str
    location: str = ""
    salary: str = ""
    job_type: str = ""
    score: int | None = None
    reason: str = ""
    status: LogStatus
    job_url: str
    resume_path: str = ""

    @classmethod
    def for_posting(
        cls,
        posting: Posting,
        status: LogStatus,
        match: MatchResult | None = None,
        reason: str | None = None,
        resume_path: str = "",
        on: date | None = None,
    ) -> LogRecord:
        return cls(
            date=(on or date.today()).isoformat(),
            company=posting.company,
            role=posting.title,
            location=posting.location,
            salary=posting.salary or "",
            job_type=posting.job_type or "",
            score=match.score if match else None,
            reason=reason if reason is not None else (match.reason if match else ""),
            status=status,
            job_url=posting.url,
            resume_path=resume_path,
        )

    def as_row(self) -> list[str | int]:
        """Values in LOG_HEADER order."""
        return [
            self.date,
            self.company,
            self.role,
            self.location,
            self.salary,
            self.job_type,
            self.score if self.score is not None else "",
            self.reason,
            self.status.value,
            self.job_url,
            self.resume_path,
        ]


# =============================================================================
# Per-posting outcome variants
# =============================================================================


class ReadyToApply(BaseModel):
    kind: Literal["ready_to_apply"] = "ready_to_apply"
    posting: Posting
    match: MatchResult
    resume_path: str
    cover_letter_path: str = ""
    cover_letter_preview: str = ""
    tailored: bool = True

    @property
    def status(self) -> LogStatus:
        return LogStatus.READY_TO_APPLY


class FilteredOut(BaseModel):
    kind: Literal["filtered_out"] = "filtered_out"
    posting: Posting
    match: MatchResult

    @property
    def status(self) -> LogStatus:
        return LogStatus.FILTERED_OUT


class Errored(BaseModel):
    kind: Literal["error"] = "error"
    posting: Posting
    error: str
    match: MatchResult | None = None

    @property
    def status(self) -> LogStatus:
        return LogStatus.ERROR


PostingOutcome = ReadyToApply | FilteredOut | Errored


# =============================================================================
# Run summary
# =============================================================================


class TopMatch(BaseModel):
    job: str
    score: int
    resume_path: str = ""


class RunSummary(BaseModel):
    """What a run reports, whatever happened to individual postings."""

    status: Literal["completed", "no_postings", "failed"]
    mode: str = "daily"
    duration_secs: float = 0.0
    total_scraped: int = 0
    ready_to_apply: int = 0
    filtered_out: int = 0
    errors: int = 0
    top_matches: list[TopMatch] = Field(default_factory=list)
    phase: str | None = None
    error: str | None = None


def summarize(
    outcomes: list[PostingOutcome],
    top_n: int = 5,
    mode: str = "daily",
    duration_secs: float = 0.0,
) -> RunSummary:
    """Count outcomes by kind and pick the best matches.

    Top matches are ready-to-apply outcomes by score descending; the sort is
    stable so ties keep input order.
    """
    ready = [o for o in outcomes if isinstance(o, ReadyToApply)]
    filtered = [o for o in outcomes if isinstance(o, FilteredOut)]
    errored = [o for o in outcomes if isinstance(o, Errored)]

    ranked = sorted(ready, key=lambda o: -o.match.score)
    return RunSummary(
        status="completed",
        mode=mode,
        duration_secs=round(duration_secs, 1),
        total_scraped=len(outcomes),
        ready_to_apply=len(ready),
        filtered_out=len(filtered),
        errors=len(errored),
        top_matches=[
            TopMatch(job=o.posting.label, score=o.match.score, resume_path=o.resume_path)
            for o in ranked[:top_n]
        ],
    )
