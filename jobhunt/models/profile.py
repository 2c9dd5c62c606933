"""Pydantic model for the candidate profile loaded from profile.yaml."""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, EmailStr, Field, HttpUrl, ValidationError
from pydantic.alias_generators import to_camel

from jobhunt.errors import ConfigurationError

logger = logging.getLogger(__name__)


class _ProfileModel(BaseModel):
    """Immutable, accepts both snake_case and camelCase keys."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


class Identity(_ProfileModel):
    name: str = Field(min_length=1)
    email: EmailStr
    phone: str | None = None
    linkedin_url: HttpUrl
    portfolio_url: HttpUrl | None = None
    location: str


class Preferences(_ProfileModel):
    job_titles: list[str]
    locations: list[str]
    remote_only: bool = False
    seniority: str | None = None
    require_sponsorship: bool = False
    min_salary: int | None = None
    max_job_age_days: int = 7
    blacklisted_companies: list[str] = Field(default_factory=list)


class Experience(_ProfileModel):
    company: str
    role: str
    start_date: str
    end_date: str  # "Present" for current roles
    bullets: list[str] = Field(min_length=3, max_length=10)


class Project(_ProfileModel):
    name: str
    description: str
    technologies: list[str] = Field(default_factory=list)
    url: str | None = None


class SkillCategory(_ProfileModel):
    category: str
    items: list[str]


class Education(_ProfileModel):
    institution: str
    degree: str
    field: str
    graduation_date: str


class Profile(_ProfileModel):
    """The candidate: identity, preferences, background and cover-letter template."""

    id: str
    identity: Identity
    preferences: Preferences
    experience: list[Experience]
    education: list[Education] = Field(default_factory=list)
    projects: list[Project] = Field(default_factory=list)
    skills: list[SkillCategory] = Field(default_factory=list)
    cover_letter_template: str

    def with_overrides(
        self,
        job_titles: list[str] | None = None,
        locations: list[str] | None = None,
    ) -> Profile:
        """Return a copy with the title and/or location lists substituted."""
        update: dict[str, list[str]] = {}
        if job_titles:
            update["job_titles"] = list(job_titles)
        if locations:
            update["locations"] = list(locations)
        if not update:
            return self
        return self.model_copy(
            update={"preferences": self.preferences.model_copy(update=update)}
        )

    def skills_summary(self) -> str:
        return "\n".join(f"{cat.category}: {', '.join(cat.items)}" for cat in self.skills)

    def experience_summary(self) -> str:
        return "\n".join(
            f"{exp.role} at {exp.company} ({exp.start_date} - {exp.end_date})"
            for exp in self.experience
        )

    def all_bullets(self) -> list[str]:
        return [bullet for exp in self.experience for bullet in exp.bullets]


def load_profile(filepath: str | Path = "profile.yaml") -> Profile:
    """Read and validate a profile YAML file.

    Raises:
        ConfigurationError: if the file is missing, is not valid YAML, is
            not a mapping, or fails schema validation.
    """
    path = Path(filepath)
    if not path.exists():
        raise ConfigurationError(f"Profile file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Profile file {path} is not valid YAML: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Profile file {path} must contain a mapping")

    try:
        profile = Profile.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid profile {path}:\n{e}") from e

    logger.info(
        "Loaded profile '%s' (%d titles, %d locations, %d experience entries)",
        profile.id,
        len(profile.preferences.job_titles),
        len(profile.preferences.locations),
        len(profile.experience),
    )
    return profile
