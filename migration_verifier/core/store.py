"""Job store: the persistence boundary the orchestrator writes through.

JobStore is the abstract contract; SQLiteJobStore implements it over the
functions in migration_verifier.core.db and enforces the job lifecycle on status writes.
"""

import logging
import sqlite3
import uuid
from abc import ABC, abstractmethod
from datetime import datetime

from migration_verifier.core import db
from migration_verifier.core.config import RunConfig
from migration_verifier.core.errors import JobNotFoundError
from migration_verifier.core.lifecycle import check_transition
from migration_verifier.core.schemas import Job, JobDetail, JobStatus, UrlResult

logger = logging.getLogger(__name__)


class JobStore(ABC):
    """Base class that every job store must implement."""

    @abstractmethod
    def create_job(
        self,
        urls: list[str],
        domain: str,
        config: RunConfig,
        name: str | None = None,
    ) -> str:
        """Persist a new pending job and return its id."""

    @abstractmethod
    def get_job(self, job_id: str) -> JobDetail | None:
        """Return the job and its results so far, or None if unknown."""

    @abstractmethod
    def list_jobs(self) -> list[JobDetail]:
        """Return every job with its results, newest first."""

    @abstractmethod
    def update_job_status(self, job_id: str, status: JobStatus) -> None:
        """Move the job to ``status``."""

    @abstractmethod
    def update_job_progress(
        self,
        job_id: str,
        completed_count: int,
        status: JobStatus | None = None,
    ) -> None:
        """Record how many URLs are done, optionally with a status change."""

    @abstractmethod
    def append_results(self, job_id: str, results: list[UrlResult]) -> None:
        """Persist a batch of results for the job."""

    @abstractmethod
    def delete_job(self, job_id: str) -> bool:
        """Delete the job and its results. Returns False if it did not exist."""


class SQLiteJobStore(JobStore):
    """JobStore backed by a SQLite connection.

    Usage::

        store = SQLiteJobStore(init_db("data/verifier.db"))
        job_id = store.create_job(urls, "https://new.example", RunConfig())
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def create_job(
        self,
        urls: list[str],
        domain: str,
        config: RunConfig,
        name: str | None = None,
    ) -> str:
        job = Job(
            id=uuid.uuid4().hex,
            name=name or f"Comparison {datetime.now().isoformat()}",
            source_urls=list(urls),
            new_domain=domain,
            config=config,
            total_urls=len(urls),
        )
        db.insert_job(self._conn, job)
        logger.info("Created job %s (%d URLs -> %s)", job.id, job.total_urls, domain)
        return job.id

    def get_job(self, job_id: str) -> JobDetail | None:
        job = db.fetch_job(self._conn, job_id)
        if job is None:
            return None
        return JobDetail(job=job, results=db.fetch_results(self._conn, job_id))

    def list_jobs(self) -> list[JobDetail]:
        return [
            JobDetail(job=job, results=db.fetch_results(self._conn, job.id))
            for job in db.fetch_jobs(self._conn)
        ]

    def update_job_status(self, job_id: str, status: JobStatus) -> None:
        job = self._require(job_id)
        check_transition(job.status, status)
        db.set_job_status(self._conn, job_id, status)
        logger.debug("Job %s: %s -> %s", job_id, job.status.value, status.value)

    def update_job_progress(
        self,
        job_id: str,
        completed_count: int,
        status: JobStatus | None = None,
    ) -> None:
        job = self._require(job_id)
        if not job.completed_urls <= completed_count <= job.total_urls:
            msg = (
                f"Invalid progress for job {job_id}: {completed_count} "
                f"(was {job.completed_urls}, total {job.total_urls})"
            )
            raise ValueError(msg)
        if status is not None:
            check_transition(job.status, status)
        db.set_job_progress(self._conn, job_id, completed_count, status)

    def append_results(self, job_id: str, results: list[UrlResult]) -> None:
        self._require(job_id)
        written = db.insert_results(self._conn, job_id, results)
        logger.debug("Job %s: stored %d results", job_id, written)

    def delete_job(self, job_id: str) -> bool:
        deleted = db.delete_job(self._conn, job_id)
        if deleted:
            logger.info("Deleted job %s", job_id)
        return deleted

    def _require(self, job_id: str) -> Job:
        job = db.fetch_job(self._conn, job_id)
        if job is None:
            msg = f"Job not found: {job_id}"
            raise JobNotFoundError(msg)
        return job
