"""Orchestrator: drives one job through slices of concurrent URL checks.

Data flow:
  1. Job pending -> running (a job in any other status is refused)
  2. Take the next slice of at most max_concurrency URLs
  3. Check every URL of the slice concurrently, wait for all of them
  4. Persist the slice's results (one bulk write)
  5. Persist progress (completed when the last slice lands)
  6. Confirm completed after the last slice

Slices never overlap: slice N+1 starts only after slice N is persisted, so
progress moves in slice-sized steps. Any error outside a single URL check
marks the job failed and stops; results already written stay.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Iterator
from contextlib import asynccontextmanager

import httpx

from migration_verifier.core.config import RunConfig
from migration_verifier.core.errors import JobNotFoundError
from migration_verifier.core.lifecycle import check_can_start
from migration_verifier.core.schemas import JobStatus, UrlResult
from migration_verifier.core.store import JobStore
from migration_verifier.pipeline.prober import build_client
from migration_verifier.pipeline.retry import check_url, error_result

logger = logging.getLogger(__name__)

Checker = Callable[..., Awaitable[UrlResult]]


def iter_slices(urls: list[str], size: int) -> Iterator[list[str]]:
    """Yield contiguous slices of ``size`` URLs; the last may be shorter."""
    if size < 1:
        msg = f"slice size must be >= 1, got {size}"
        raise ValueError(msg)
    for start in range(0, len(urls), size):
        yield urls[start:start + size]


async def run_slice(
    urls: list[str],
    domain: str,
    config: RunConfig,
    client: httpx.AsyncClient,
    checker: Checker = check_url,
) -> list[UrlResult]:
    """Check every URL in the slice concurrently. Results keep input order."""
    return list(await asyncio.gather(
        *(_check_safely(url, domain, config, client, checker) for url in urls)
    ))


async def run_job(
    job_id: str,
    source_urls: list[str],
    domain: str,
    config: RunConfig,
    *,
    store: JobStore,
    client: httpx.AsyncClient | None = None,
    checker: Checker = check_url,
) -> JobStatus:
    """Verify every source URL of a job, persisting results slice by slice.

    Returns the terminal status the job was left in.

    Raises:
        JobNotFoundError: No job with this id.
        InvalidTransitionError: The job is not pending; it is left untouched.
    """
    detail = store.get_job(job_id)
    if detail is None:
        msg = f"Job not found: {job_id}"
        raise JobNotFoundError(msg)
    # no await between this check and the running transition below
    check_can_start(job_id, detail.job.status)

    total = len(source_urls)
    try:
        store.update_job_status(job_id, JobStatus.RUNNING)
        logger.info(
            "Job %s started: %d URLs, %d per slice", job_id, total, config.max_concurrency,
        )

        completed = 0
        async with _client_scope(client) as http:
            for batch in iter_slices(source_urls, config.max_concurrency):
                results = await run_slice(batch, domain, config, http, checker)
                store.append_results(job_id, results)

                completed += len(batch)
                status = JobStatus.COMPLETED if completed == total else JobStatus.RUNNING
                store.update_job_progress(job_id, completed, status)
                logger.info("Job %s: %d/%d URLs checked", job_id, completed, total)

        store.update_job_status(job_id, JobStatus.COMPLETED)
    except Exception:
        logger.exception("Job %s failed", job_id)
        _mark_failed(store, job_id)
        return JobStatus.FAILED

    logger.info("Job %s completed", job_id)
    return JobStatus.COMPLETED


async def _check_safely(
    url: str,
    domain: str,
    config: RunConfig,
    client: httpx.AsyncClient,
    checker: Checker,
) -> UrlResult:
    """Run the checker; an unexpected exception becomes an Error result for this URL."""
    try:
        return await checker(client, url, domain, config)
    except Exception as e:
        logger.exception("Unexpected error checking %s", url)
        return error_result(url, domain, str(e) or type(e).__name__, config.retry_attempts)


@asynccontextmanager
async def _client_scope(client: httpx.AsyncClient | None) -> AsyncIterator[httpx.AsyncClient]:
    """Yield the given client, or a new one that is closed on exit."""
    if client is not None:
        yield client
        return
    async with build_client() as owned:
        yield owned


def _mark_failed(store: JobStore, job_id: str) -> None:
    try:
        store.update_job_status(job_id, JobStatus.FAILED)
    except Exception:
        logger.exception("Could not mark job %s failed", job_id)
