"""Job source — Indeed postings through the Apify Indeed scraper actor."""

from __future__ import annotations

import json
import logging
import math
import re
from datetime import datetime, timedelta, timezone
from typing import Any, NamedTuple

import httpx

from jobhunt.config import DEFAULT_ACTOR_ID, Settings
from jobhunt.errors import ConfigurationError, JobSourceError
from jobhunt.models.job import Posting
from jobhunt.models.profile import Preferences
from jobhunt.tools.html_cleaner import clean_html

logger = logging.getLogger(__name__)

APIFY_BASE_URL = "https://api.apify.com/v2"
DEFAULT_WAIT_SECS = 120
UNKNOWN_COMPANY = "Unknown Company"

# Alternate field names seen in scraper output, in order of preference
TITLE_FIELDS = ("positionName", "position", "title", "jobTitle")
COMPANY_FIELDS = ("company", "companyName", "organization", "employer")
LOCATION_FIELDS = ("location", "jobLocation", "place")
DESCRIPTION_FIELDS = ("description", "descriptionText", "descriptionHTML", "jobDescription", "snippet")
URL_FIELDS = ("url", "link", "jobUrl", "externalApplyLink")
POSTED_FIELDS = ("postedAt", "postingDate", "scrapedAt")


class SearchQuery(NamedTuple):
    title: str
    location: str


# =============================================================================
# Apify Indeed source
# =============================================================================


class ApifyIndeedSource:
    """Runs one actor call per job title and normalizes the returned items."""

    name = "Indeed (Apify)"

    def __init__(
        self,
        token: str,
        actor_id: str = DEFAULT_ACTOR_ID,
        country: str = "US",
        client: httpx.AsyncClient | None = None,
        wait_secs: int = DEFAULT_WAIT_SECS,
        base_url: str = APIFY_BASE_URL,
    ) -> None:
        if not token:
            raise ConfigurationError("APIFY_TOKEN environment variable is not set")
        self._token = token
        self.actor_id = actor_id
        self.country = country
        self.wait_secs = wait_secs
        self.base_url = base_url.rstrip("/")
        self._client = client
        self._logged_sample = False

    @classmethod
    def from_settings(cls, settings: Settings) -> ApifyIndeedSource:
        return cls(
            token=settings.apify_token,
            actor_id=settings.apify_actor_id,
            country=settings.apify_country,
        )

    async def fetch(self, preferences: Preferences, max_results: int = 20) -> list[Posting]:
        """Fetch, normalize, dedupe and filter postings for the preferences.

        A failing query is logged and skipped. If every query fails the
        source is considered unreachable.

        Raises:
            JobSourceError: when no query succeeded.
        """
        if max_results <= 0:
            logger.info("Result cap is %d — nothing to fetch", max_results)
            return []

        queries = plan_queries(preferences.job_titles, preferences.locations)
        if not queries:
            logger.warning("No job titles configured — nothing to search")
            return []

        rows_per_query = math.ceil(max_results / len(queries))
        logger.info(
            "Scraping plan: %s (%d rows per query, %d calls)",
            ", ".join(f"{q.title} @ {q.location or 'anywhere'}" for q in queries),
            rows_per_query,
            len(queries),
        )

        if self._client is not None:
            postings = await self._run_queries(self._client, queries, rows_per_query)
        else:
            timeout = httpx.Timeout(self.wait_secs + 30.0, connect=10.0)
            async with httpx.AsyncClient(timeout=timeout) as client:
                postings = await self._run_queries(client, queries, rows_per_query)

        deduped = dedupe_by_url(postings)
        allowed = filter_blacklisted(deduped, preferences.blacklisted_companies)
        fresh = filter_by_age(allowed, preferences.max_job_age_days)

        logger.info(
            "Scraping complete: total=%d, deduplicated=%d, after blacklist=%d, after age filter=%d",
            len(postings), len(deduped), len(allowed), len(fresh),
        )
        return fresh[:max_results]

    async def _run_queries(
        self,
        client: httpx.AsyncClient,
        queries: list[SearchQuery],
        rows_per_query: int,
    ) -> list[Posting]:
        postings: list[Posting] = []
        failures: list[str] = []

        for query in queries:
            logger.info("Scraping jobs: '%s' in '%s'", query.title, query.location)
            try:
                items = await self._call_actor(client, query, rows_per_query)
            except (httpx.HTTPError, ValueError, JobSourceError) as e:
                logger.error("Scrape failed for '%s' in '%s': %s", query.title, query.location, e)
                failures.append(f"{query.title}: {e}")
                continue

            for item in items:
                posting = self.normalize(item)
                if posting:
                    postings.append(posting)
            logger.info("Scraped batch '%s' in '%s': %d items", query.title, query.location, len(items))

        if failures and len(failures) == len(queries):
            raise JobSourceError(
                f"All {len(queries)} job source queries failed; first error: {failures[0]}"
            )
        return postings

    async def _call_actor(
        self,
        client: httpx.AsyncClient,
        query: SearchQuery,
        rows: int,
    ) -> list[dict[str, Any]]:
        """Run the actor synchronously and return its dataset items."""
        response = await client.post(
            f"{self.base_url}/acts/{self.actor_id}/run-sync-get-dataset-items",
            params={"timeout": self.wait_secs},
            headers={"Authorization": f"Bearer {self._token}"},
            json={
                "position": query.title,
                "location": query.location,
                "country": self.country,
                "maxItems": rows,
                "parseCompanyDetails": False,
                "saveOnlyUniqueItems": True,
                "followApplyRedirects": False,
                "proxy": {"useApifyProxy": True},
            },
        )
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, list):
            raise JobSourceError(f"Unexpected actor response type: {type(data).__name__}")
        return [item for item in data if isinstance(item, dict)]

    # -- Normalization ------------------------------------------------------------

    def normalize(self, raw: dict[str, Any]) -> Posting | None:
        """Map one raw scraper record to a Posting; None if title or URL is missing."""
        if not self._logged_sample:
            self._logged_sample = True
            logger.info("Sample raw job keys: %s", sorted(raw.keys()))
            logger.debug("Sample raw job data: %s", json.dumps(raw, default=str)[:2000])

        title = _first(raw, TITLE_FIELDS)
        url = _first(raw, URL_FIELDS)
        if not title or not url:
            logger.warning(
                "Job skipped — missing title or url (title=%r, url=%r, keys=%s)",
                title or None,
                url or None,
                ", ".join(raw.keys()),
            )
            return None

        return Posting(
            title=title,
            company=_first(raw, COMPANY_FIELDS) or UNKNOWN_COMPANY,
            url=url,
            location=_first(raw, LOCATION_FIELDS),
            description=clean_html(_first(raw, DESCRIPTION_FIELDS)),
            salary=_first(raw, ("salary",)) or None,
            job_type=_first(raw, ("jobType",)) or None,
            posted_at=_first(raw, POSTED_FIELDS) or None,
            source=self.name,
        )


# =============================================================================
# Query planning and post-processing
# =============================================================================


def plan_queries(titles: list[str], locations: list[str]) -> list[SearchQuery]:
    """One query per title, locations assigned round-robin."""
    return [
        SearchQuery(title, locations[i % len(locations)] if locations else "")
        for i, title in enumerate(titles)
    ]


def dedupe_by_url(postings: list[Posting]) -> list[Posting]:
    """Keep the first posting for each URL, preserving order."""
    seen: set[str] = set()
    unique: list[Posting] = []
    for posting in postings:
        if posting.key in seen:
            continue
        seen.add(posting.key)
        unique.append(posting)
    return unique


def filter_blacklisted(postings: list[Posting], blacklist: list[str]) -> list[Posting]:
    """Drop postings whose company contains a blacklisted name (case-insensitive)."""
    blocked = [b.lower() for b in blacklist if b.strip()]
    if not blocked:
        return list(postings)
    kept = []
    for posting in postings:
        company = posting.company.lower()
        if any(b in company for b in blocked):
            logger.debug("Blacklisted company skipped: %s", posting.label)
            continue
        kept.append(posting)
    return kept


def filter_by_age(
    postings: list[Posting],
    max_age_days: int,
    now: datetime | None = None,
) -> list[Posting]:
    """Drop postings older than max_age_days; postings with unparseable dates are kept."""
    now = now or datetime.now(timezone.utc)
    kept = []
    for posting in postings:
        age = posting_age_days(posting.posted_at, now)
        if age is not None and age > max_age_days:
            logger.debug("Stale posting skipped (%d days): %s", age, posting.label)
            continue
        kept.append(posting)
    return kept


_RELATIVE_DAYS = re.compile(r"(\d+)\+?\s*days?\s+ago", re.IGNORECASE)
_RELATIVE_RECENT = re.compile(r"just posted|today|hours?\s+ago|minutes?\s+ago", re.IGNORECASE)

_DATE_FORMATS = [
    "%a, %d %b %Y %H:%M:%S %z",  # RFC 822
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
    "%d %b %Y",
    "%B %d, %Y",
]


def posting_age_days(posted_at: str | None, now: datetime) -> int | None:
    """Age in whole days from an absolute or Indeed-style relative date, or None."""
    if not posted_at:
        return None
    text = posted_at.strip()

    match = _RELATIVE_DAYS.search(text)
    if match:
        return int(match.group(1))
    if _RELATIVE_RECENT.search(text):
        return 0

    posted = _parse_date(text)
    if posted is None:
        return None
    return max((now - posted) // timedelta(days=1), 0)


def _parse_date(text: str) -> datetime | None:
    try:
        dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        dt = None
        for fmt in _DATE_FORMATS:
            try:
                dt = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
    if dt is None:
        logger.debug("Could not parse date: %s", text)
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _first(raw: dict[str, Any], fields: tuple[str, ...]) -> str:
    """First non-empty value among alternate field names, as stripped text."""
    for name in fields:
        value = raw.get(name)
        if isinstance(value, (list, tuple)):
            value = ", ".join(str(v) for v in value if v)
        if value in (None, ""):
            continue
        text = str(value).strip()
        if text:
            return text
    return ""
