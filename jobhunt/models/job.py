"""Pydantic model for a normalized job posting."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class Posting(BaseModel):
    """One scraped job listing. Identity is the URL."""

    model_config = ConfigDict(frozen=True)

    title: str
    company: str
    url: str
    location: str = ""
    description: str = ""
    salary: str | None = None
    job_type: str | None = None
    posted_at: str | None = None  # as reported by the source
    source: str = "unknown"

    @property
    def key(self) -> str:
        """Deduplication key."""
        return self.url

    @property
    def label(self) -> str:
        return f"{self.title} @ {self.company}"
