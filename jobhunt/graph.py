"""LangGraph workflow — one job hunt run."""

from __future__ import annotations

import logging
import time
from typing import Any, TypedDict

from langgraph.graph import END, StateGraph

from jobhunt.errors import ConfigurationError, JobSourceError
from jobhunt.models.job import Posting
from jobhunt.models.outcome import PostingOutcome, RunSummary, summarize
from jobhunt.models.profile import Profile
from jobhunt.pipeline import PostingProcessor, ResultLog

logger = logging.getLogger(__name__)


# =============================================================================
# Run State
# =============================================================================


class RunState(TypedDict, total=False):
    """State passed between nodes in the LangGraph run."""

    # Config
    profile: Profile
    mode: str  # "daily" or "manual"
    max_results: int
    skip_seen: bool
    top_n: int
    started_at: float
    log_ready: bool

    # Data
    postings: list[Posting]
    outcomes: list[PostingOutcome]

    # Result
    summary: RunSummary | None


class JobHuntGraph:
    """Builds the run graph around its collaborators.

    Nodes are bound methods so the compiled graph closes over the job source,
    the posting processor and the result log.
    """

    def __init__(self, source: Any, processor: PostingProcessor, result_log: ResultLog) -> None:
        self.source = source
        self.processor = processor
        self.result_log = result_log

    # -- Node 1: Result log header ----------------------------------------------

    async def init_log_node(self, state: RunState) -> dict:
        logger.info("=== Node 1: Preparing Result Log ===")
        try:
            await self.result_log.ensure_header()
        except Exception as e:
            logger.warning("Could not verify result log header: %s", e)
            return {"log_ready": False}
        return {"log_ready": True}

    # -- Node 2: Fetch postings ---------------------------------------------------

    async def fetch_postings_node(self, state: RunState) -> dict:
        logger.info("=== Node 2: Fetching Postings ===")
        profile = state["profile"]
        max_results = state.get("max_results", 20)

        try:
            postings = await self.source.fetch(profile.preferences, max_results=max_results)
        except (JobSourceError, ConfigurationError) as e:
            logger.error("Scraping failed: %s", e)
            return {
                "postings": [],
                "summary": RunSummary(
                    status="failed",
                    mode=state.get("mode", "daily"),
                    phase="scraping",
                    error=str(e),
                ),
            }

        if postings and state.get("skip_seen", True):
            postings = await self._drop_seen(postings)

        if not postings:
            logger.info("No jobs found — nothing to process")
            return {
                "postings": [],
                "summary": RunSummary(status="no_postings", mode=state.get("mode", "daily")),
            }

        logger.info("Fetched %d postings to process", len(postings))
        return {"postings": postings}

    async def _drop_seen(self, postings: list[Posting]) -> list[Posting]:
        try:
            seen = await self.result_log.seen_urls()
        except Exception as e:
            logger.warning("Could not read logged URLs, processing all postings: %s", e)
            return postings

        fresh = [p for p in postings if p.key not in seen]
        if len(fresh) < len(postings):
            logger.info("Skipping %d postings already in the result log", len(postings) - len(fresh))
        return fresh

    # -- Node 3: Process postings -------------------------------------------------

    async def process_postings_node(self, state: RunState) -> dict:
        logger.info("=== Node 3: Processing Postings ===")
        profile = state["profile"]
        postings = state.get("postings", [])

        outcomes: list[PostingOutcome] = []
        for i, posting in enumerate(postings, 1):
            logger.info("[%d/%d] %s", i, len(postings), posting.label)
            outcomes.append(await self.processor.process(posting, profile))

        return {"outcomes": outcomes}

    # -- Node 4: Summarize --------------------------------------------------------

    async def summarize_node(self, state: RunState) -> dict:
        logger.info("=== Node 4: Summarizing Run ===")
        duration = time.monotonic() - state.get("started_at", time.monotonic())

        summary = state.get("summary")
        if summary is not None:
            return {"summary": summary.model_copy(update={"duration_secs": round(duration, 1)})}

        summary = summarize(
            state.get("outcomes", []),
            top_n=state.get("top_n", 5),
            mode=state.get("mode", "daily"),
            duration_secs=duration,
        )
        return {"summary": summary}

    # -- Routing ------------------------------------------------------------------

    @staticmethod
    def route_after_fetch(state: RunState) -> str:
        return "process_postings" if state.get("postings") else "summarize"

    # -- Build the Graph ------------------------------------------------------------

    def build(self):
        """Build and compile the LangGraph run."""
        graph = StateGraph(RunState)

        graph.add_node("init_log", self.init_log_node)
        graph.add_node("fetch_postings", self.fetch_postings_node)
        graph.add_node("process_postings", self.process_postings_node)
        graph.add_node("summarize", self.summarize_node)

        graph.set_entry_point("init_log")
        graph.add_edge("init_log", "fetch_postings")
        graph.add_conditional_edges(
            "fetch_postings",
            self.route_after_fetch,
            {"process_postings": "process_postings", "summarize": "summarize"},
        )
        graph.add_edge("process_postings", "summarize")
        graph.add_edge("summarize", END)

        return graph.compile()


async def run_job_hunt(
    profile: Profile,
    source: Any,
    processor: PostingProcessor,
    result_log: ResultLog,
    mode: str = "daily",
    max_results: int = 20,
    skip_seen: bool = True,
    top_n: int = 5,
) -> RunSummary:
    """Run one job hunt and return its summary.

    Scraping failures come back as a ``failed`` summary rather than an
    exception; individual posting failures only show up in the counts.
    """
    pipeline = JobHuntGraph(source, processor, result_log).build()

    initial_state: RunState = {
        "profile": profile,
        "mode": mode,
        "max_results": max_results,
        "skip_seen": skip_seen,
        "top_n": top_n,
        "started_at": time.monotonic(),
        "outcomes": [],
        "summary": None,
    }
    result = await pipeline.ainvoke(initial_state)
    return result["summary"]
