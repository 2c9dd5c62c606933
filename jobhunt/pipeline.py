"""Per-posting orchestration — score, tailor, render, log."""

from __future__ import annotations

import asyncio
import logging
import random
from pathlib import Path
from typing import Protocol

from jobhunt.agents.scoring import ScoringOracle
from jobhunt.agents.tailor import Tailor
from jobhunt.config import Settings
from jobhunt.models.job import Posting
from jobhunt.models.outcome import (
    Errored,
    FilteredOut,
    LogRecord,
    LogStatus,
    PostingOutcome,
    ReadyToApply,
)
from jobhunt.models.profile import Profile
from jobhunt.report.pdf import resume_file_stem, write_resume_pdf

logger = logging.getLogger(__name__)

COVER_LETTER_PREVIEW_CHARS = 200


class ResultLog(Protocol):
    async def ensure_header(self) -> None: ...

    async def append(self, record: LogRecord) -> None: ...

    async def seen_urls(self) -> set[str]: ...


def backoff_delay(attempt: int, base_delay: float, max_delay: float, jitter: bool = True) -> float:
    """Delay before retrying after ``attempt`` (1-based) failed attempts."""
    delay = min(base_delay * (2 ** (attempt - 1)), max_delay)
    if jitter:
        delay *= 0.5 + random.random()
    return min(delay, max_delay)


class PostingProcessor:
    """Takes one posting to exactly one outcome and one log record.

    Oracle failures are absorbed by the scorer and the tailor. Rendering and
    logging failures abort the attempt; the attempt is retried with
    exponential backoff, and once attempts run out the posting is logged as
    an error.
    """

    def __init__(
        self,
        scorer: ScoringOracle,
        tailor: Tailor,
        result_log: ResultLog,
        output_dir: str | Path,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or Settings()
        self.scorer = scorer
        self.tailor = tailor
        self.result_log = result_log
        self.output_dir = Path(output_dir)
        self.max_attempts = settings.posting_max_attempts
        self.base_delay = settings.posting_retry_base_delay
        self.max_delay = settings.posting_retry_max_delay

    async def process(self, posting: Posting, profile: Profile) -> PostingOutcome:
        """Never raises; a posting that keeps failing becomes ``Errored``."""
        last_error: Exception | None = None
        progress: dict = {}

        for attempt in range(1, self.max_attempts + 1):
            try:
                return await self._attempt(posting, profile, progress)
            except Exception as e:
                last_error = e
                if attempt == self.max_attempts:
                    break
                delay = backoff_delay(attempt, self.base_delay, self.max_delay)
                logger.warning(
                    "Processing %s attempt %d/%d failed (%s), retrying in %.1fs",
                    posting.label, attempt, self.max_attempts, e, delay,
                )
                await asyncio.sleep(delay)

        error = f"{type(last_error).__name__}: {last_error}"
        logger.error("Job processing failed for %s after %d attempts: %s", posting.label, self.max_attempts, error)

        match = progress.get("match")
        record = LogRecord.for_posting(
            posting, LogStatus.ERROR, match, reason=error, resume_path=progress.get("resume_path", "")
        )
        try:
            await self.result_log.append(record)
        except Exception as e:
            logger.error("Could not log error row for %s: %s", posting.label, e)

        return Errored(posting=posting, error=error, match=match)

    async def _attempt(self, posting: Posting, profile: Profile, progress: dict) -> PostingOutcome:
        """One pass; ``progress`` keeps the match and rendered path for the error row."""
        progress.clear()
        match = await self.scorer.score(posting, profile)
        progress["match"] = match

        if not match.is_match:
            await self.result_log.append(LogRecord.for_posting(posting, LogStatus.FILTERED_OUT, match))
            return FilteredOut(posting=posting, match=match)

        document = await self.tailor.tailor(posting, profile)

        stem = resume_file_stem(profile.identity.name, posting.company, posting.title, posting.url)
        rendered = await asyncio.to_thread(write_resume_pdf, document.resume_markdown, stem, self.output_dir)
        progress["resume_path"] = str(rendered.path)

        cover_letter_path = rendered.path.with_name(f"{rendered.path.stem}_cover_letter.txt")
        await asyncio.to_thread(cover_letter_path.write_text, document.cover_letter, encoding="utf-8")

        resume_path = progress["resume_path"]
        await self.result_log.append(
            LogRecord.for_posting(posting, LogStatus.READY_TO_APPLY, match, resume_path=resume_path)
        )
        logger.info("Ready to apply: %s (score=%d) -> %s", posting.label, match.score, rendered.file_name)

        return ReadyToApply(
            posting=posting,
            match=match,
            resume_path=resume_path,
            cover_letter_path=str(cover_letter_path),
            cover_letter_preview=document.cover_letter[:COVER_LETTER_PREVIEW_CHARS],
            tailored=not document.fallback,
        )
