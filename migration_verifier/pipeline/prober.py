"""Single-URL prober: one GET against the mapped target URL.

Only the first redirect hop is inspected. When the request followed
redirects, the same target is requested again without following them and the
Location of that response becomes the (one-entry) redirect chain. Retries are
not handled here; see migration_verifier.pipeline.retry.
"""

import asyncio
import logging

import httpx

from migration_verifier.core.errors import ProbeError
from migration_verifier.core.schemas import ProbeOutcome
from migration_verifier.pipeline.path_mapper import map_url

logger = logging.getLogger(__name__)

REDIRECT_STATUSES = frozenset({301, 302, 307, 308})

DEFAULT_USER_AGENT = "site-migration-verifier/0.1"


def build_client(user_agent: str = DEFAULT_USER_AGENT) -> httpx.AsyncClient:
    """Create the HTTP client shared by all probes of a run."""
    return httpx.AsyncClient(headers={"User-Agent": user_agent})


async def probe(
    client: httpx.AsyncClient,
    source_url: str,
    domain: str,
    *,
    follow_redirects: bool,
    timeout_seconds: float,
) -> ProbeOutcome:
    """Run one verification attempt for ``source_url`` against ``domain``.

    Raises:
        ProbeError: The request produced no response (timeout, DNS failure,
            refused connection, too many redirects...).
    """
    target_url = map_url(source_url, domain)
    logger.debug("Probing %s (follow_redirects=%s)", target_url, follow_redirects)

    response = await _get(client, target_url, follow_redirects, timeout_seconds)

    redirect_chain: list[str] = []
    final_url = target_url
    if response.history:
        first_hop = await _get(client, target_url, False, timeout_seconds)
        location = first_hop.headers.get("location")
        if first_hop.status_code in REDIRECT_STATUSES and location:
            redirect_chain.append(location)
            final_url = location

    return ProbeOutcome(
        status_code=response.status_code,
        redirect_chain=redirect_chain,
        final_url=final_url,
    )


async def _get(
    client: httpx.AsyncClient,
    url: str,
    follow_redirects: bool,
    timeout_seconds: float,
) -> httpx.Response:
    """GET ``url`` within a deadline, mapping failures to ProbeError.

    The deadline covers getting the response headers. The body is never read:
    the response is streamed and closed straight away.
    """
    try:
        request = client.build_request("GET", url, timeout=timeout_seconds)
        response = await asyncio.wait_for(
            client.send(request, follow_redirects=follow_redirects, stream=True),
            timeout=timeout_seconds,
        )
        await response.aclose()
        return response
    except asyncio.TimeoutError as e:
        msg = f"Request timed out after {timeout_seconds:g}s"
        raise ProbeError(msg) from e
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        msg = str(e) or type(e).__name__
        raise ProbeError(msg) from e
