"""SQLite result log and run history for local runs."""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path

from jobhunt.models.outcome import LogRecord, LogStatus, RunSummary

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS log_records (
    record_id     INTEGER PRIMARY KEY AUTOINCREMENT,
    date          TEXT NOT NULL,
    company       TEXT NOT NULL,
    role          TEXT NOT NULL,
    location      TEXT,
    salary        TEXT,
    job_type      TEXT,
    match_score   INTEGER,
    match_reason  TEXT,
    status        TEXT NOT NULL,
    job_url       TEXT NOT NULL,
    resume_path   TEXT,
    created_at    TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_log_records_url ON log_records(job_url);
CREATE INDEX IF NOT EXISTS idx_log_records_date ON log_records(date);

CREATE TABLE IF NOT EXISTS runs (
    run_id         INTEGER PRIMARY KEY AUTOINCREMENT,
    mode           TEXT NOT NULL,
    status         TEXT NOT NULL,
    total_scraped  INTEGER DEFAULT 0,
    ready_to_apply INTEGER DEFAULT 0,
    filtered_out   INTEGER DEFAULT 0,
    errors         INTEGER DEFAULT 0,
    top_matches    TEXT,  -- JSON list
    error          TEXT,
    duration_secs  REAL,
    created_at     TEXT NOT NULL DEFAULT (datetime('now'))
);
"""


class SQLiteResultLog:
    """SQLite-backed, append-only result log.

    Exposes the same async interface as the Sheets log; SQLite calls are
    fast and local, so they run inline.
    """

    def __init__(self, db_path: str = "jobs.db") -> None:
        self.db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(db_path)
        self._conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self) -> None:
        self._conn.executescript(SCHEMA_SQL)
        self._conn.commit()

    def close(self) -> None:
        self._conn.close()

    # -- Result log interface -----------------------------------------------------

    async def ensure_header(self) -> None:
        """The table schema is the header; make sure it exists."""
        self._init_schema()

    async def append(self, record: LogRecord) -> None:
        self._conn.execute(
            """
            INSERT INTO log_records (
                date, company, role, location, salary, job_type,
                match_score, match_reason, status, job_url, resume_path
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.date,
                record.company,
                record.role,
                record.location,
                record.salary,
                record.job_type,
                record.score,
                record.reason,
                record.status.value,
                record.job_url,
                record.resume_path,
            ),
        )
        self._conn.commit()
        logger.debug("Logged %s / %s [%s]", record.company, record.role, record.status.value)

    async def seen_urls(self) -> set[str]:
        """Get all logged job URLs for cross-run dedup."""
        rows = self._conn.execute("SELECT DISTINCT job_url FROM log_records").fetchall()
        return {row["job_url"] for row in rows}

    # -- Queries ----------------------------------------------------------------

    def records(self) -> list[LogRecord]:
        """All records in append order."""
        rows = self._conn.execute("SELECT * FROM log_records ORDER BY record_id").fetchall()
        return [
            LogRecord(
                date=row["date"],
                company=row["company"],
                role=row["role"],
                location=row["location"] or "",
                salary=row["salary"] or "",
                job_type=row["job_type"] or "",
                score=row["match_score"],
                reason=row["match_reason"] or "",
                status=LogStatus(row["status"]),
                job_url=row["job_url"],
                resume_path=row["resume_path"] or "",
            )
            for row in rows
        ]

    # -- Run logging ------------------------------------------------------------

    def log_run(self, summary: RunSummary) -> None:
        """Log a pipeline run."""
        self._conn.execute(
            """
            INSERT INTO runs (mode, status, total_scraped, ready_to_apply,
                              filtered_out, errors, top_matches, error, duration_secs)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                summary.mode,
                summary.status,
                summary.total_scraped,
                summary.ready_to_apply,
                summary.filtered_out,
                summary.errors,
                json.dumps([m.model_dump() for m in summary.top_matches]),
                summary.error,
                summary.duration_secs,
            ),
        )
        self._conn.commit()

    def runs(self) -> list[dict]:
        rows = self._conn.execute("SELECT * FROM runs ORDER BY run_id").fetchall()
        return [dict(row) for row in rows]
