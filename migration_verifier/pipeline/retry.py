"""Retry controller: bounded retries with linear backoff around the prober.

A failed attempt (ProbeError) is retried after 1s, 2s, 3s... until
``retry_attempts`` failures have been seen. retry_attempts=0 still makes one
attempt, with no backoff. HTTP error statuses are successful probes and are
never retried.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

import httpx

from migration_verifier.core.config import RunConfig
from migration_verifier.core.errors import ProbeError
from migration_verifier.core.schemas import ProbeOutcome, ResultKind, UrlResult
from migration_verifier.pipeline.classifier import classify
from migration_verifier.pipeline.path_mapper import map_url
from migration_verifier.pipeline.prober import probe

logger = logging.getLogger(__name__)

BACKOFF_STEP_SECONDS = 1.0

Prober = Callable[..., Awaitable[ProbeOutcome]]
Sleeper = Callable[[float], Awaitable[Any]]


async def check_url(
    client: httpx.AsyncClient,
    source_url: str,
    domain: str,
    config: RunConfig,
    *,
    prober: Prober = probe,
    sleep: Sleeper | None = None,
) -> UrlResult:
    """Probe ``source_url`` with retries and return its classified result."""
    max_failures = max(config.retry_attempts, 1)
    failures = 0
    last_error: str | None = None

    while True:
        try:
            outcome = await prober(
                client,
                source_url,
                domain,
                follow_redirects=config.follow_redirects,
                timeout_seconds=config.timeout_seconds,
            )
        except ProbeError as e:
            failures += 1
            last_error = str(e)
            if failures >= max_failures:
                break
            delay = BACKOFF_STEP_SECONDS * failures
            logger.warning(
                "Probe failed for %s (%d/%d): %s - retrying in %.0fs",
                source_url, failures, max_failures, last_error, delay,
            )
            await (sleep or asyncio.sleep)(delay)
            continue

        return UrlResult(
            source_url=source_url,
            new_url=map_url(source_url, domain),
            status_code=outcome.status_code,
            redirect_chain=list(outcome.redirect_chain),
            final_url=outcome.final_url,
            result=classify(outcome.status_code, len(outcome.redirect_chain)),
            retry_count=failures,
            checked_at=datetime.now(),
        )

    logger.info("Giving up on %s after %d attempts: %s", source_url, failures, last_error)
    return error_result(source_url, domain, last_error, config.retry_attempts)


def error_result(
    source_url: str,
    domain: str,
    error: str | None,
    retry_count: int,
) -> UrlResult:
    """Result for a URL whose check never produced a response."""
    return UrlResult(
        source_url=source_url,
        new_url=map_url(source_url, domain),
        status_code=None,
        redirect_chain=[],
        final_url=None,
        result=ResultKind.ERROR,
        error=error,
        retry_count=retry_count,
        checked_at=datetime.now(),
    )
