"""Job Hunt Pipeline — CLI entrypoint."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

DAILY_MAX_RESULTS = 20
MANUAL_MAX_RESULTS = 10


def non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be 0 or more, got {number}")
    return number


def resolve_max_results(mode: str, requested: int | None) -> int:
    """The explicit --max-results wins, including 0; otherwise the mode default."""
    if requested is not None:
        return requested
    return DAILY_MAX_RESULTS if mode == "daily" else MANUAL_MAX_RESULTS


def setup_logging(log_level: str = "INFO") -> None:
    """Configure logging to both console and log file."""
    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)

    run_date = datetime.now().strftime("%Y-%m-%d")
    log_file = log_dir / f"run_{run_date}.log"

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file, encoding="utf-8"),
        ],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Job Hunt Pipeline — scrape, score, tailor and log job postings",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --mode daily                                # Scheduled run (cron 0 9 * * * UTC)
  python main.py --mode manual --titles "Data Engineer"      # On-demand run with overrides
  python main.py --mode manual --locations Remote --max-results 5
  python main.py --mode daily --log-backend sqlite           # Log to local SQLite instead of Sheets
        """,
    )
    parser.add_argument(
        "--mode",
        choices=["daily", "manual"],
        default="daily",
        help="'daily' uses the profile's titles and locations; 'manual' accepts overrides. Default: daily",
    )
    parser.add_argument("--titles", nargs="+", default=None, help="Job titles to search (manual mode)")
    parser.add_argument("--locations", nargs="+", default=None, help="Locations to search (manual mode)")
    parser.add_argument(
        "--max-results",
        type=non_negative_int,
        default=None,
        help=f"Maximum postings to process. Default: {DAILY_MAX_RESULTS} daily, {MANUAL_MAX_RESULTS} manual",
    )
    parser.add_argument("--profile", default=None, help="Path to profile YAML. Default: $PROFILE_PATH or profile.yaml")
    parser.add_argument(
        "--log-backend",
        choices=["sheets", "sqlite"],
        default=None,
        help="Result log backend. Default: $RESULT_LOG or sheets",
    )
    parser.add_argument(
        "--no-skip-seen",
        action="store_true",
        help="Process postings even if their URL is already in the result log",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level override (DEBUG, INFO, WARNING, ERROR)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entrypoint; returns the process exit code."""
    args = build_parser().parse_args(argv)

    # Load environment variables
    load_dotenv()

    # Setup logging
    log_level = args.log_level or os.getenv("LOG_LEVEL", "INFO")
    setup_logging(log_level)

    logger = logging.getLogger("jobhunt")
    logger.info("=" * 60)
    logger.info("Job Hunt Pipeline — Starting (%s mode)", args.mode)
    logger.info("=" * 60)

    from jobhunt.agents.llm import get_provider
    from jobhunt.agents.scoring import ScoringOracle
    from jobhunt.agents.tailor import Tailor
    from jobhunt.config import Settings
    from jobhunt.errors import ConfigurationError
    from jobhunt.graph import run_job_hunt
    from jobhunt.models.profile import load_profile
    from jobhunt.pipeline import PostingProcessor
    from jobhunt.storage.database import SQLiteResultLog
    from jobhunt.storage.sheets import GoogleSheetsResultLog
    from jobhunt.tools.sources import ApifyIndeedSource

    try:
        settings = Settings.from_env()
        if args.log_backend:
            settings = settings.model_copy(update={"result_log": args.log_backend})

        profile = load_profile(args.profile or settings.profile_path)
        if args.mode == "manual":
            profile = profile.with_overrides(job_titles=args.titles, locations=args.locations)
        elif args.titles or args.locations:
            logger.warning("--titles/--locations are ignored in daily mode")

        max_results = resolve_max_results(args.mode, args.max_results)

        source = ApifyIndeedSource.from_settings(settings)
        if settings.result_log == "sqlite":
            result_log = SQLiteResultLog(settings.db_path)
        else:
            result_log = GoogleSheetsResultLog.from_settings(settings)

        processor = PostingProcessor(
            scorer=ScoringOracle(get_provider(settings, "scoring")),
            tailor=Tailor(get_provider(settings, "tailor")),
            result_log=result_log,
            output_dir=settings.output_dir,
            settings=settings,
        )
    except (ConfigurationError, ValidationError) as e:
        logger.error("Configuration error: %s", e)
        return 1

    logger.info(
        "Searching %s in %s (max %d results, log=%s)",
        ", ".join(profile.preferences.job_titles),
        ", ".join(profile.preferences.locations),
        max_results,
        settings.result_log,
    )

    run = run_job_hunt(
        profile,
        source,
        processor,
        result_log,
        mode=args.mode,
        max_results=max_results,
        skip_seen=not args.no_skip_seen,
        top_n=settings.top_matches,
    )

    try:
        summary = asyncio.run(asyncio.wait_for(run, timeout=settings.max_run_seconds))
        if isinstance(result_log, SQLiteResultLog):
            result_log.log_run(summary)
    except asyncio.TimeoutError:
        logger.error("Run exceeded the %.0f second budget — aborted", settings.max_run_seconds)
        return 1
    except Exception as e:
        logger.error("Pipeline failed: %s", e, exc_info=True)
        return 1
    finally:
        if isinstance(result_log, SQLiteResultLog):
            result_log.close()

    logger.info("=" * 60)
    logger.info("Run %s in %.1f seconds", summary.status, summary.duration_secs)
    if summary.status == "failed":
        logger.error("Failed during %s: %s", summary.phase, summary.error)
    else:
        logger.info(
            "Results: scraped=%d, ready=%d, filtered=%d, errors=%d",
            summary.total_scraped,
            summary.ready_to_apply,
            summary.filtered_out,
            summary.errors,
        )
        for match in summary.top_matches:
            logger.info("  %3d  %s  %s", match.score, match.job, match.resume_path)
    logger.info("=" * 60)

    print(summary.model_dump_json(indent=2))
    return 1 if summary.status == "failed" else 0


if __name__ == "__main__":
    sys.exit(main())
