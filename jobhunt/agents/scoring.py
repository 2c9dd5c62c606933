"""Scoring oracle — asks a hosted model whether a posting fits the candidate."""

from __future__ import annotations

import logging
import re

from pydantic import ValidationError

from jobhunt.agents.llm import LLMProvider, parse_json_object
from jobhunt.errors import LLMError, LLMResponseError
from jobhunt.models.job import Posting
from jobhunt.models.profile import Profile
from jobhunt.models.scoring import MATCH_THRESHOLD, MatchResult, ScoringOutput

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_CHARS = 3000
MAX_TOKENS = 256

SCORING_PROMPT = """You are a job-matching assistant. Evaluate whether this job posting is a good fit for the candidate.

## Candidate Profile
**Target Roles**: {job_titles}
**Preferred Locations**: {locations}
**Remote Only**: {remote_only}
{optional_preferences}
**Skills**:
{skills}

**Experience**:
{experience}

## Job Posting
**Title**: {title}
**Company**: {company}
**Location**: {location}
{optional_posting}
**Description**:
{description}

## Instructions
Respond with ONLY a valid JSON object (no markdown fences, no extra text):
{{
  "isMatch": true/false,
  "score": <integer 0-100>,
  "reason": "<one sentence explanation>"
}}

A job is a match (score >= {threshold}) if:
- The role aligns with the candidate's target roles and experience level
- The required skills overlap significantly with the candidate's skills
- The location matches preferences (or is remote when preferred)
- The salary meets minimum requirements (if specified and listed)
{sponsorship_rule}
Be practical — a "Senior Software Engineer" posting matches a candidate targeting "Software Engineer" roles.
"""

SPONSORSHIP_RULE = (
    "- The candidate requires visa sponsorship: if the posting explicitly says sponsorship "
    "is not available, score 0 and set isMatch to false. If the posting does not mention "
    "sponsorship, do not penalize it.\n"
)

REPAIR_PROMPT = """Your previous response was not valid JSON. Please respond with ONLY a valid JSON object matching this schema:
{{
  "isMatch": true/false,
  "score": <integer 0-100>,
  "reason": "<one sentence explanation>"
}}

Previous response:
{previous_response}

Please fix the JSON and respond with ONLY the corrected JSON object.
"""

NO_SPONSORSHIP_PATTERNS = [
    r"\b(?:unable|not able|cannot|can ?not|can't|will not|won't|do not|does not|don't|are not able) to (?:provide |offer |support )?(?:visa |h-?1b |employment |work )?sponsor",
    r"\b(?:cannot|can ?not|can't|will not|won't|do not|does not|don't) (?:provide |offer |support )?(?:any )?(?:visa |h-?1b |employment |work )?sponsorship",
    r"\bno (?:visa |h-?1b |employment |work )?sponsorship",
    r"\bsponsorship (?:is |will )?(?:not (?:be )?(?:available|offered|provided)|unavailable)",
    r"\b(?:authorized|eligible|able|permitted) to work\b[^.]*?(?<!\bor )\bwithout (?:the need for |requiring |needing )?(?:current or future |future )?(?:visa |h-?1b |employment )?sponsorship",
    r"\bnot (?:eligible for|offering) (?:visa |h-?1b |employment )?sponsorship",
]
_NO_SPONSORSHIP = re.compile("|".join(NO_SPONSORSHIP_PATTERNS), re.IGNORECASE)


def states_no_sponsorship(text: str) -> bool:
    """True if the text explicitly says visa sponsorship is unavailable."""
    return bool(_NO_SPONSORSHIP.search(" ".join(text.split())))


class ScoringOracle:
    """Scores one posting against the profile.

    Never raises for oracle problems: an unreachable model or an answer that
    stays unparseable after one repair attempt yields the optimistic fallback
    (score 50, passed through for manual review).
    """

    def __init__(self, provider: LLMProvider) -> None:
        self.provider = provider

    async def score(self, posting: Posting, profile: Profile) -> MatchResult:
        if profile.preferences.require_sponsorship and states_no_sponsorship(
            f"{posting.title}\n{posting.description}"
        ):
            logger.info("Job filtered (no sponsorship): %s", posting.label)
            return MatchResult.no_sponsorship()

        prompt = build_scoring_prompt(posting, profile)
        try:
            output = await self._ask(prompt, posting)
        except LLMError as e:
            logger.error("Filter AI call failed for %s: %s", posting.label, e)
            return MatchResult.oracle_failure()

        result = MatchResult.from_output(output)
        if output.is_match and not result.is_match:
            logger.debug(
                "Oracle match flag overridden by threshold (%d < %d): %s",
                output.score, MATCH_THRESHOLD, posting.label,
            )
        logger.info(
            "Job filter result: %s score=%d match=%s — %s",
            posting.label, result.score, result.is_match, result.reason,
        )
        return result

    async def _ask(self, prompt: str, posting: Posting) -> ScoringOutput:
        response = await self.provider.complete(prompt, max_tokens=MAX_TOKENS)
        try:
            return parse_scoring_output(response)
        except LLMResponseError as e:
            logger.info("Scoring output unparseable for %s (%s) — retrying with repair prompt", posting.label, e)

        repair_prompt = REPAIR_PROMPT.format(previous_response=response[:500])
        repaired = await self.provider.complete(repair_prompt, max_tokens=MAX_TOKENS)
        return parse_scoring_output(repaired)


def parse_scoring_output(raw: str) -> ScoringOutput:
    """Parse and validate a scoring response.

    Raises:
        LLMResponseError: if the response is not a valid scoring object.
    """
    data = parse_json_object(raw)
    try:
        return ScoringOutput.model_validate(data)
    except ValidationError as e:
        raise LLMResponseError(f"Scoring schema validation failed: {e}", raw=raw) from e


def build_scoring_prompt(posting: Posting, profile: Profile) -> str:
    prefs = profile.preferences

    optional_preferences = []
    if prefs.seniority:
        optional_preferences.append(f"**Seniority**: {prefs.seniority}")
    if prefs.min_salary:
        optional_preferences.append(f"**Minimum Salary**: ${prefs.min_salary:,}")
    if prefs.require_sponsorship:
        optional_preferences.append("**Requires Visa Sponsorship**: Yes")

    optional_posting = []
    if posting.salary:
        optional_posting.append(f"**Salary**: {posting.salary}")
    if posting.job_type:
        optional_posting.append(f"**Type**: {posting.job_type}")

    return SCORING_PROMPT.format(
        job_titles=", ".join(prefs.job_titles),
        locations=", ".join(prefs.locations),
        remote_only="Yes" if prefs.remote_only else "No",
        optional_preferences="\n".join(optional_preferences) + "\n" if optional_preferences else "",
        skills=profile.skills_summary(),
        experience=profile.experience_summary(),
        title=posting.title,
        company=posting.company,
        location=posting.location or "Not specified",
        optional_posting="\n".join(optional_posting) + "\n" if optional_posting else "",
        description=posting.description[:MAX_DESCRIPTION_CHARS] or "No description available",
        threshold=MATCH_THRESHOLD,
        sponsorship_rule=SPONSORSHIP_RULE if prefs.require_sponsorship else "",
    )
