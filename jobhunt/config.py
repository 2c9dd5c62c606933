"""Runtime settings read from the environment."""

from __future__ import annotations

import os
from typing import Literal

from pydantic import BaseModel, Field

DEFAULT_ACTOR_ID = "hMvNSpz3JnHgl5jkh"  # Apify Indeed scraper


class Settings(BaseModel):
    """Environment-driven configuration for one run.

    Credentials default to empty strings; the collaborator that needs a
    credential raises ``ConfigurationError`` when it is missing.
    """

    # Job source
    apify_token: str = ""
    apify_actor_id: str = DEFAULT_ACTOR_ID
    apify_country: str = "US"

    # Oracles
    llm_provider: Literal["anthropic", "ollama"] = "anthropic"
    anthropic_api_key: str = ""
    scoring_model: str = "claude-haiku-4-5-20251001"
    tailor_model: str = "claude-sonnet-4-20250514"
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "llama3"

    # Result log
    result_log: Literal["sheets", "sqlite"] = "sheets"
    google_service_account_json: str = ""
    google_sheet_id: str = ""
    google_sheet_name: str = "Sheet1"
    db_path: str = "jobs.db"

    # Files
    output_dir: str = "output/resumes"
    profile_path: str = "profile.yaml"

    # Run policy
    max_run_seconds: float = Field(default=900.0, gt=0)
    posting_max_attempts: int = Field(default=2, ge=1)
    posting_retry_base_delay: float = Field(default=2.0, ge=0)
    posting_retry_max_delay: float = Field(default=15.0, ge=0)
    top_matches: int = Field(default=5, ge=0)

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from environment variables (call ``load_dotenv`` first)."""
        data: dict[str, str] = {}
        for name in cls.model_fields:
            value = os.getenv(name.upper())
            if value is not None and value.strip():
                data[name] = value.strip()
        return cls(**data)
