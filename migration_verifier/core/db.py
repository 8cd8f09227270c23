"""SQLite database layer for jobs and per-URL results."""

import json
import sqlite3
from datetime import datetime
from pathlib import Path

from migration_verifier.core.config import RunConfig
from migration_verifier.core.schemas import Job, JobStatus, ResultKind, UrlResult

_JOBS_TABLE = """
CREATE TABLE IF NOT EXISTS jobs (
    id              TEXT    PRIMARY KEY,
    name            TEXT,
    source_urls     TEXT    NOT NULL,
    new_domain      TEXT    NOT NULL,
    config_json     TEXT    NOT NULL,
    status          TEXT    NOT NULL DEFAULT 'pending',
    total_urls      INTEGER NOT NULL,
    completed_urls  INTEGER NOT NULL DEFAULT 0,
    created_at      TEXT    NOT NULL
);
"""

_URL_RESULTS_TABLE = """
CREATE TABLE IF NOT EXISTS url_results (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    job_id          TEXT    NOT NULL REFERENCES jobs(id) ON DELETE CASCADE,
    source_url      TEXT    NOT NULL,
    new_url         TEXT    NOT NULL,
    status_code     INTEGER,
    redirect_chain  TEXT    NOT NULL DEFAULT '[]',
    final_url       TEXT,
    result          TEXT    NOT NULL,
    error           TEXT,
    retry_count     INTEGER NOT NULL DEFAULT 0,
    checked_at      TEXT    NOT NULL
);
"""

_URL_RESULTS_INDEX = """
CREATE INDEX IF NOT EXISTS idx_url_results_job ON url_results (job_id, checked_at);
"""


def init_db(path: str | Path) -> sqlite3.Connection:
    """Create the database and tables, returning a connection."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.execute(_JOBS_TABLE)
    conn.execute(_URL_RESULTS_TABLE)
    conn.execute(_URL_RESULTS_INDEX)
    conn.commit()
    return conn


def insert_job(conn: sqlite3.Connection, job: Job) -> None:
    conn.execute(
        """
        INSERT INTO jobs
            (id, name, source_urls, new_domain, config_json, status,
             total_urls, completed_urls, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            job.id,
            job.name,
            json.dumps(job.source_urls),
            job.new_domain,
            job.config.model_dump_json(),
            job.status.value,
            job.total_urls,
            job.completed_urls,
            job.created_at.isoformat(),
        ),
    )
    conn.commit()


def fetch_job(conn: sqlite3.Connection, job_id: str) -> Job | None:
    """Return the job with this id, or None."""
    row = conn.execute("SELECT * FROM jobs WHERE id = ?", (job_id,)).fetchone()
    if row is None:
        return None
    return _row_to_job(row)


def fetch_jobs(conn: sqlite3.Connection) -> list[Job]:
    """Return all jobs, newest first."""
    rows = conn.execute("SELECT * FROM jobs ORDER BY created_at DESC").fetchall()
    return [_row_to_job(row) for row in rows]


def fetch_results(conn: sqlite3.Connection, job_id: str) -> list[UrlResult]:
    """Return a job's results in completion order."""
    rows = conn.execute(
        "SELECT * FROM url_results WHERE job_id = ? ORDER BY checked_at, id",
        (job_id,),
    ).fetchall()
    return [_row_to_result(row) for row in rows]


def set_job_status(conn: sqlite3.Connection, job_id: str, status: JobStatus) -> None:
    conn.execute("UPDATE jobs SET status = ? WHERE id = ?", (status.value, job_id))
    conn.commit()


def set_job_progress(
    conn: sqlite3.Connection,
    job_id: str,
    completed_urls: int,
    status: JobStatus | None = None,
) -> None:
    """Write the completed counter, and the status too when given."""
    if status is None:
        conn.execute(
            "UPDATE jobs SET completed_urls = ? WHERE id = ?",
            (completed_urls, job_id),
        )
    else:
        conn.execute(
            "UPDATE jobs SET completed_urls = ?, status = ? WHERE id = ?",
            (completed_urls, status.value, job_id),
        )
    conn.commit()


def insert_results(conn: sqlite3.Connection, job_id: str, results: list[UrlResult]) -> int:
    """Bulk insert a batch of results in one transaction. Returns rows written."""
    with conn:
        conn.executemany(
            """
            INSERT INTO url_results
                (job_id, source_url, new_url, status_code, redirect_chain,
                 final_url, result, error, retry_count, checked_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    job_id,
                    r.source_url,
                    r.new_url,
                    r.status_code,
                    json.dumps(r.redirect_chain),
                    r.final_url,
                    r.result.value,
                    r.error,
                    r.retry_count,
                    r.checked_at.isoformat(),
                )
                for r in results
            ],
        )
    return len(results)


def delete_job(conn: sqlite3.Connection, job_id: str) -> bool:
    """Delete a job and, by cascade, its results. Returns False if it did not exist."""
    with conn:
        conn.execute("DELETE FROM url_results WHERE job_id = ?", (job_id,))
        cursor = conn.execute("DELETE FROM jobs WHERE id = ?", (job_id,))
    return cursor.rowcount > 0


def _row_to_job(row: sqlite3.Row) -> Job:
    return Job(
        id=row["id"],
        name=row["name"],
        source_urls=json.loads(row["source_urls"]),
        new_domain=row["new_domain"],
        config=RunConfig.model_validate_json(row["config_json"]),
        status=JobStatus(row["status"]),
        total_urls=row["total_urls"],
        completed_urls=row["completed_urls"],
        created_at=datetime.fromisoformat(row["created_at"]),
    )


def _row_to_result(row: sqlite3.Row) -> UrlResult:
    return UrlResult(
        source_url=row["source_url"],
        new_url=row["new_url"],
        status_code=row["status_code"],
        redirect_chain=json.loads(row["redirect_chain"] or "[]"),
        final_url=row["final_url"],
        result=ResultKind(row["result"]),
        error=row["error"],
        retry_count=row["retry_count"],
        checked_at=datetime.fromisoformat(row["checked_at"]),
    )
