"""Generation oracle — tailored resume and cover letter for one posting."""

from __future__ import annotations

import logging
import re

from jobhunt.agents.llm import LLMProvider, parse_json_object
from jobhunt.errors import LLMError, LLMResponseError
from jobhunt.models.job import Posting
from jobhunt.models.outcome import TailoredDocument
from jobhunt.models.profile import Profile

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_CHARS = 4000
MAX_TOKENS = 4096
FALLBACK_COVER_LETTER = "Cover letter generation failed — please write manually."

_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")

TAILOR_PROMPT = """You are an expert resume writer. Create a tailored resume and cover letter for this specific job posting.

## Job Posting
**Title**: {title}
**Company**: {company}
**Location**: {location}
{salary_line}
**Description**:
{description}

## Candidate's Full Background

{identity}

### Experience
{experience}

### Projects
{projects}

### Skills
{skills}

### Education
{education}

### Cover Letter Template
{cover_letter_template}

## Instructions

Generate a JSON response with EXACTLY this structure (no markdown fences):
{{
  "resume": "<full markdown resume tailored to this job>",
  "coverLetter": "<cover letter with template placeholders filled in>",
  "matchedBullets": ["<bullet 1>", "<bullet 2>", ...]
}}

**Resume rules**:
1. Use clean markdown formatting with clear sections: Header, Summary, Experience, Projects, Skills, Education
2. For each experience entry, select the 3-5 MOST RELEVANT bullet points for this specific job
3. Reword bullets slightly to emphasize skills mentioned in the job posting (but never fabricate)
4. Put the most relevant experience and projects first
5. In the Summary, directly address what the job is looking for

**Cover letter rules**:
1. Fill in ALL template placeholders ({placeholders})
2. Write a compelling customParagraph that connects the candidate's specific achievements to the job requirements
3. Keep it concise — 3-4 paragraphs max

**matchedBullets**: List the exact original bullet points you selected (for tracking).
"""


class Tailor:
    """Produces a TailoredDocument; falls back to an untailored one on any oracle failure."""

    def __init__(self, provider: LLMProvider) -> None:
        self.provider = provider

    async def tailor(self, posting: Posting, profile: Profile) -> TailoredDocument:
        prompt = build_tailor_prompt(posting, profile)
        try:
            response = await self.provider.complete(prompt, max_tokens=MAX_TOKENS)
            document = parse_tailor_output(response, profile)
        except LLMError as e:
            logger.error("Tailor AI call failed for %s: %s", posting.label, e)
            return fallback_document(profile)

        # Placeholders we can fill without the model
        cover_letter = fill_template(
            document.cover_letter,
            {"name": profile.identity.name, "company": posting.company, "jobTitle": posting.title},
        )
        document = document.model_copy(update={"cover_letter": cover_letter})

        leftover = _PLACEHOLDER.findall(document.cover_letter)
        if leftover:
            logger.warning(
                "Cover letter for %s still has placeholders: %s",
                posting.label, ", ".join(sorted(set(leftover))),
            )
        logger.info(
            "Resume tailored for %s (%d bullets kept)",
            posting.label, len(document.matched_bullets),
        )
        return document


def parse_tailor_output(raw: str, profile: Profile) -> TailoredDocument:
    """Parse the generation response into a TailoredDocument.

    Matched bullets are kept only when they appear verbatim in the profile.

    Raises:
        LLMResponseError: if the response lacks a resume or cover letter.
    """
    data = parse_json_object(_strip_fences(raw))

    resume = data.get("resume")
    cover_letter = data.get("coverLetter", data.get("cover_letter"))
    if not isinstance(resume, str) or not resume.strip():
        raise LLMResponseError("Tailor response has no resume", raw=raw)
    if not isinstance(cover_letter, str) or not cover_letter.strip():
        raise LLMResponseError("Tailor response has no cover letter", raw=raw)

    bullets = data.get("matchedBullets") or []
    if not isinstance(bullets, list):
        raise LLMResponseError("Tailor response matchedBullets is not a list", raw=raw)

    originals = set(profile.all_bullets())
    matched: list[str] = []
    for bullet in bullets:
        if not isinstance(bullet, str):
            continue
        text = bullet.strip().lstrip("-*• ").strip()
        if text in originals:
            if text not in matched:
                matched.append(text)
        else:
            logger.warning("Dropping matched bullet not found in profile: %.80s", text)

    return TailoredDocument(
        resume_markdown=resume.strip(),
        cover_letter=cover_letter.strip(),
        matched_bullets=matched,
    )


def fallback_document(profile: Profile) -> TailoredDocument:
    """Untailored resume assembled directly from profile fields."""
    return TailoredDocument(
        resume_markdown=fallback_resume(profile),
        cover_letter=FALLBACK_COVER_LETTER,
        matched_bullets=[],
        fallback=True,
    )


def fallback_resume(profile: Profile) -> str:
    ident = profile.identity
    contact = [ident.email, str(ident.linkedin_url)]
    if ident.phone:
        contact.append(ident.phone)
    header = f"# {ident.name}\n{' | '.join(contact)}\n{ident.location}"

    experience = "\n\n".join(
        f"## {exp.role} | {exp.company}\n*{exp.start_date} – {exp.end_date}*\n"
        + "\n".join(f"- {b}" for b in exp.bullets)
        for exp in profile.experience
    )
    skills = "\n".join(f"**{cat.category}**: {', '.join(cat.items)}" for cat in profile.skills)
    education = "\n".join(
        f"{edu.degree} {edu.field}, {edu.institution} ({edu.graduation_date})"
        for edu in profile.education
    )

    return (
        f"{header}\n\n---\n\n"
        f"## Experience\n{experience}\n\n"
        f"## Skills\n{skills}\n\n"
        f"## Education\n{education}"
    )


def fill_template(template: str, values: dict[str, str]) -> str:
    """Substitute {{key}} placeholders; unknown keys are left as-is."""

    def _sub(match: re.Match[str]) -> str:
        return values.get(match.group(1), match.group(0))

    return _PLACEHOLDER.sub(_sub, template)


def build_tailor_prompt(posting: Posting, profile: Profile) -> str:
    ident = profile.identity

    identity_lines = [f"**Name**: {ident.name}", f"**Email**: {ident.email}"]
    if ident.phone:
        identity_lines.append(f"**Phone**: {ident.phone}")
    identity_lines.append(f"**LinkedIn**: {ident.linkedin_url}")
    if ident.portfolio_url:
        identity_lines.append(f"**Portfolio**: {ident.portfolio_url}")
    identity_lines.append(f"**Location**: {ident.location}")

    experience = "\n\n".join(
        f"### {exp.role} | {exp.company} | {exp.start_date} – {exp.end_date}\n"
        + "\n".join(f"- {b}" for b in exp.bullets)
        for exp in profile.experience
    )
    projects = "\n\n".join(
        f"### {proj.name}\n{proj.description}\nTech: {', '.join(proj.technologies)}"
        + (f"\nURL: {proj.url}" if proj.url else "")
        for proj in profile.projects
    )
    skills = "\n".join(f"**{cat.category}**: {', '.join(cat.items)}" for cat in profile.skills)
    education = "\n".join(
        f"{edu.degree} {edu.field}, {edu.institution} ({edu.graduation_date})"
        for edu in profile.education
    )
    placeholders = sorted(set(_PLACEHOLDER.findall(profile.cover_letter_template)))

    return TAILOR_PROMPT.format(
        title=posting.title,
        company=posting.company,
        location=posting.location or "Not specified",
        salary_line=f"**Salary**: {posting.salary}\n" if posting.salary else "",
        description=posting.description[:MAX_DESCRIPTION_CHARS] or "No description available",
        identity="\n".join(identity_lines),
        experience=experience,
        projects=projects or "None listed",
        skills=skills,
        education=education or "None listed",
        cover_letter_template=profile.cover_letter_template,
        placeholders=", ".join(placeholders) if placeholders else "none",
    )


def _strip_fences(text: str) -> str:
    text = text.strip()
    text = re.sub(r"^```(?:json)?\s*", "", text)
    return re.sub(r"\s*```$", "", text)
