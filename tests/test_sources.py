"""Tests for the Apify Indeed job source and its post-processing."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone

import httpx
import pytest

from jobhunt.errors import ConfigurationError, JobSourceError
from jobhunt.tools.html_cleaner import clean_html
from jobhunt.tools.sources import (
    UNKNOWN_COMPANY,
    ApifyIndeedSource,
    SearchQuery,
    dedupe_by_url,
    filter_blacklisted,
    filter_by_age,
    plan_queries,
    posting_age_days,
)

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _item(n: int, **overrides) -> dict:
    item = {
        "positionName": f"Software Engineer {n}",
        "company": f"Company {n}",
        "location": "Remote",
        "url": f"https://indeed.com/viewjob?jk={n}",
        "description": "<p>Build <b>APIs</b></p><ul><li>Python</li><li>Go</li></ul>",
        "salary": "$150,000 a year",
        "jobType": "Full-time",
        "postedAt": "Just posted",
    }
    item.update(overrides)
    return item


def _source(handler) -> ApifyIndeedSource:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ApifyIndeedSource(token="apify-test", client=client)


class TestQueryPlanning:
    def test_round_robin_locations(self) -> None:
        queries = plan_queries(["A", "B", "C"], ["NYC", "Remote"])
        assert queries == [
            SearchQuery("A", "NYC"),
            SearchQuery("B", "Remote"),
            SearchQuery("C", "NYC"),
        ]

    def test_no_locations(self) -> None:
        assert plan_queries(["A"], []) == [SearchQuery("A", "")]


class TestPostProcessing:
    """Dedupe, blacklist and age filtering."""

    def test_duplicate_urls_kept_once(self, make_posting) -> None:
        postings = [
            make_posting(title="First", url="https://x/1"),
            make_posting(title="Second", url="https://x/2"),
            make_posting(title="Dupe", url="https://x/1"),
        ]
        unique = dedupe_by_url(postings)
        assert [p.title for p in unique] == ["First", "Second"]

    def test_blacklist_is_case_insensitive_substring(self, make_posting) -> None:
        postings = [
            make_posting(company="SpamCorp Holdings", url="https://x/1"),
            make_posting(company="spamcorp", url="https://x/2"),
            make_posting(company="Globex", url="https://x/3"),
        ]
        kept = filter_blacklisted(postings, ["SPAMCORP"])
        assert [p.company for p in kept] == ["Globex"]

    def test_empty_blacklist_keeps_all(self, make_posting) -> None:
        postings = [make_posting()]
        assert filter_blacklisted(postings, []) == postings

    @pytest.mark.parametrize(
        ("posted_at", "expected"),
        [
            ("Just posted", 0),
            ("Today", 0),
            ("3 days ago", 3),
            ("30+ days ago", 30),
            ("2026-03-07T12:00:00Z", 3),
            ("2026-03-01", 9),
            ("sometime", None),
            (None, None),
        ],
    )
    def test_posting_age(self, posted_at, expected) -> None:
        assert posting_age_days(posted_at, NOW) == expected

    def test_age_filter_keeps_unknown_dates(self, make_posting) -> None:
        postings = [
            make_posting(url="https://x/1", posted_at="2 days ago"),
            make_posting(url="https://x/2", posted_at="14 days ago"),
            make_posting(url="https://x/3", posted_at="whenever"),
        ]
        kept = filter_by_age(postings, max_age_days=7, now=NOW)
        assert [p.url for p in kept] == ["https://x/1", "https://x/3"]


class TestNormalize:
    def test_indeed_fields(self) -> None:
        posting = ApifyIndeedSource(token="t").normalize(_item(1))
        assert posting is not None
        assert posting.title == "Software Engineer 1"
        assert posting.company == "Company 1"
        assert posting.salary == "$150,000 a year"
        assert posting.job_type == "Full-time"
        assert "<" not in posting.description
        assert "Build APIs" in posting.description

    def test_alternate_field_names(self) -> None:
        raw = {"title": "SRE", "companyName": "Initech", "link": "https://x/9", "jobLocation": "Austin"}
        posting = ApifyIndeedSource(token="t").normalize(raw)
        assert posting.title == "SRE"
        assert posting.company == "Initech"
        assert posting.location == "Austin"

    def test_missing_company_defaults(self) -> None:
        posting = ApifyIndeedSource(token="t").normalize(_item(1, company=None))
        assert posting.company == UNKNOWN_COMPANY

    def test_missing_url_skipped(self) -> None:
        assert ApifyIndeedSource(token="t").normalize(_item(1, url=None)) is None


class TestApifyIndeedSource:
    """Test suite for fetching through the actor endpoint."""

    def test_missing_token(self) -> None:
        with pytest.raises(ConfigurationError):
            ApifyIndeedSource(token="")

    def test_fetch_sends_one_call_per_title(self, profile) -> None:
        calls: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            calls.append(body)
            assert request.headers["Authorization"] == "Bearer apify-test"
            assert request.url.path.endswith("/run-sync-get-dataset-items")
            n = len(calls)
            return httpx.Response(200, json=[_item(n * 10 + 1), _item(n * 10 + 2)])

        postings = asyncio.run(_source(handler).fetch(profile.preferences, max_results=3))

        assert [c["position"] for c in calls] == ["Software Engineer", "Backend Engineer"]
        assert [c["location"] for c in calls] == ["San Francisco, CA", "Remote"]
        assert all(c["maxItems"] == 2 for c in calls)  # ceil(3 / 2)
        assert len(postings) == 3

    def test_zero_cap_makes_no_calls(self, profile) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        assert asyncio.run(_source(handler).fetch(profile.preferences, max_results=0)) == []

    def test_fetch_dedupes_and_blacklists(self, profile) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[_item(1), _item(2, company="SpamCorp")])

        postings = asyncio.run(_source(handler).fetch(profile.preferences, max_results=20))

        assert [p.url for p in postings] == ["https://indeed.com/viewjob?jk=1"]

    def test_one_failing_query_is_skipped(self, profile) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if json.loads(request.content)["position"] == "Software Engineer":
                return httpx.Response(502, text="bad gateway")
            return httpx.Response(200, json=[_item(5)])

        postings = asyncio.run(_source(handler).fetch(profile.preferences))
        assert len(postings) == 1

    def test_all_queries_failing_raises(self, profile) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="boom")

        with pytest.raises(JobSourceError):
            asyncio.run(_source(handler).fetch(profile.preferences))


class TestCleanHtml:
    def test_blocks_become_lines(self) -> None:
        text = clean_html("<p>Intro <b>bold</b></p><ul><li>One</li><li>Two</li></ul>")
        assert text.splitlines() == ["Intro bold", "One", "Two"]

    def test_plain_text_passthrough(self) -> None:
        assert clean_html("Already   plain") == "Already plain"

    def test_empty(self) -> None:
        assert clean_html(None) == ""
