"""Shared fixtures: a sample profile, posting factory and in-memory fakes."""

from __future__ import annotations

from typing import Callable

import pytest

from jobhunt.errors import LLMError
from jobhunt.models.job import Posting
from jobhunt.models.outcome import LogRecord
from jobhunt.models.profile import Profile

BULLETS = [
    "Built real-time data pipeline processing 2M+ events/day using Kafka",
    "Reduced API response times by 60% through query optimization and Redis caching",
    "Mentored team of 4 junior engineers",
]

PROFILE_DATA = {
    "id": "user-test",
    "identity": {
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "phone": "+1-555-000-0000",
        "linkedinUrl": "https://linkedin.com/in/ada",
        "location": "San Francisco, CA",
    },
    "preferences": {
        "jobTitles": ["Software Engineer", "Backend Engineer"],
        "locations": ["San Francisco, CA", "Remote"],
        "blacklistedCompanies": ["SpamCorp"],
    },
    "experience": [
        {
            "company": "Acme Inc.",
            "role": "Senior Software Engineer",
            "startDate": "2022-01",
            "endDate": "Present",
            "bullets": BULLETS,
        }
    ],
    "education": [
        {
            "institution": "UC Berkeley",
            "degree": "B.S.",
            "field": "Computer Science",
            "graduationDate": "2020",
        }
    ],
    "skills": [{"category": "Languages", "items": ["Python", "Go", "SQL"]}],
    "coverLetterTemplate": "Dear Hiring Manager,\n\nI want the {{jobTitle}} role at {{company}}.\n\n{{name}}",
}


class FakeProvider:
    """Scripted oracle: returns queued responses, raising any queued exception."""

    def __init__(self, *responses: str | Exception) -> None:
        self.responses = list(responses)
        self.prompts: list[str] = []

    async def complete(self, prompt: str, max_tokens: int = 1024) -> str:
        self.prompts.append(prompt)
        if not self.responses:
            raise LLMError("no scripted response left")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class MemoryResultLog:
    """In-memory result log; optionally fails the first N appends."""

    def __init__(self, fail_appends: int = 0, seen: set[str] | None = None) -> None:
        self.records: list[LogRecord] = []
        self.fail_appends = fail_appends
        self.seen = seen or set()
        self.header_checks = 0

    async def ensure_header(self) -> None:
        self.header_checks += 1

    async def append(self, record: LogRecord) -> None:
        if self.fail_appends > 0:
            self.fail_appends -= 1
            raise OSError("sheet unavailable")
        self.records.append(record)

    async def seen_urls(self) -> set[str]:
        return set(self.seen)


@pytest.fixture
def profile() -> Profile:
    return Profile.model_validate(PROFILE_DATA)


@pytest.fixture
def make_posting() -> Callable[..., Posting]:
    def _make(
        title: str = "Software Engineer",
        company: str = "Globex",
        url: str = "https://indeed.com/viewjob?jk=1",
        **kwargs,
    ) -> Posting:
        kwargs.setdefault("location", "Remote")
        kwargs.setdefault("description", "We build backend services in Python and Go.")
        return Posting(title=title, company=company, url=url, **kwargs)

    return _make


@pytest.fixture
def fake_provider() -> type[FakeProvider]:
    return FakeProvider


@pytest.fixture
def memory_log() -> type[MemoryResultLog]:
    return MemoryResultLog
