"""Job submission: validate a request, create the job, start it in the background.

The caller never awaits the run itself. Progress is observed through the
store (status, completed_urls, total_urls), e.g. with wait_for_job.
"""

import asyncio
import logging
from collections.abc import Callable

import httpx

from migration_verifier.core.config import RunConfig
from migration_verifier.core.errors import JobNotFoundError
from migration_verifier.core.lifecycle import check_can_start, is_terminal
from migration_verifier.core.schemas import JobDetail, JobStatus
from migration_verifier.core.store import JobStore
from migration_verifier.pipeline.orchestrator import run_job
from migration_verifier.pipeline.path_mapper import is_valid_url

logger = logging.getLogger(__name__)


def validate_sources(source_urls: list[str], new_domain: str) -> None:
    """Reject an empty URL list, any unparseable URL, or an empty domain."""
    if not source_urls:
        msg = "source URLs are required and must be a non-empty list"
        raise ValueError(msg)
    if not new_domain or not new_domain.strip():
        msg = "new domain is required"
        raise ValueError(msg)
    invalid = [url for url in source_urls if not is_valid_url(url)]
    if invalid:
        logger.debug("Invalid source URLs: %s", invalid)
        msg = f"Some URLs are invalid ({len(invalid)}): {', '.join(invalid[:5])}"
        raise ValueError(msg)


def submit_job(
    store: JobStore,
    source_urls: list[str],
    new_domain: str,
    config: RunConfig | None = None,
    name: str | None = None,
    client: httpx.AsyncClient | None = None,
) -> tuple[str, "asyncio.Task[JobStatus]"]:
    """Create a pending job and start running it as a background task.

    Must be called from a running event loop.
    """
    validate_sources(source_urls, new_domain)
    config = config or RunConfig()
    job_id = store.create_job(source_urls, new_domain, config, name)
    task = start_job(store, job_id, client=client)
    return job_id, task


def start_job(
    store: JobStore,
    job_id: str,
    client: httpx.AsyncClient | None = None,
) -> "asyncio.Task[JobStatus]":
    """Spawn the run of an existing pending job.

    Raises:
        JobNotFoundError: No job with this id.
        InvalidTransitionError: The job is not pending (already started or finished).
    """
    detail = store.get_job(job_id)
    if detail is None:
        msg = f"Job not found: {job_id}"
        raise JobNotFoundError(msg)
    job = detail.job
    check_can_start(job.id, job.status)
    return asyncio.create_task(
        run_job(
            job.id,
            job.source_urls,
            job.new_domain,
            job.config,
            store=store,
            client=client,
        ),
        name=f"verify-{job.id}",
    )


def rerun_job(store: JobStore, job_id: str) -> str:
    """Create a new pending job with the same URLs, domain and config."""
    detail = store.get_job(job_id)
    if detail is None:
        msg = f"Job not found: {job_id}"
        raise JobNotFoundError(msg)
    old = detail.job
    new_id = store.create_job(
        old.source_urls,
        old.new_domain,
        old.config,
        name=f"(Rerun) {old.name or 'Job'}",
    )
    logger.info("Job %s rerun as %s", job_id, new_id)
    return new_id


async def wait_for_job(
    store: JobStore,
    job_id: str,
    poll_interval: float = 1.0,
    on_progress: Callable[[JobDetail], None] | None = None,
) -> JobDetail:
    """Poll the store until the job reaches a terminal status."""
    while True:
        detail = store.get_job(job_id)
        if detail is None:
            msg = f"Job not found: {job_id}"
            raise JobNotFoundError(msg)
        if on_progress is not None:
            on_progress(detail)
        if is_terminal(detail.job.status):
            return detail
        await asyncio.sleep(poll_interval)
