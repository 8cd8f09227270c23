"""Integration test: full verification run with a mocked HTTP transport (no network)."""

import asyncio
import json
import sqlite3
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from migration_verifier.core.config import RunConfig
from migration_verifier.core.db import init_db
from migration_verifier.core.schemas import JobStatus, ResultKind
from migration_verifier.core.store import SQLiteJobStore
from migration_verifier.pipeline.jobs import rerun_job, start_job, submit_job, wait_for_job
from migration_verifier.reporting.export import export_json

# ---------------------------------------------------------------------------
# Mock target site
# ---------------------------------------------------------------------------


def new_site(request: httpx.Request) -> httpx.Response:
    """The migrated site on new.example."""
    if request.url.host != "new.example":
        raise httpx.ConnectError("Name or service not known", request=request)
    path = request.url.path
    if path == "/":
        return httpx.Response(200, text="home")
    if path == "/old-blog":
        return httpx.Response(301, headers={"Location": "https://new.example/blog"})
    if path == "/blog":
        return httpx.Response(200, text="blog")
    if path == "/broken":
        return httpx.Response(500)
    return httpx.Response(404)


@pytest.fixture
def db(tmp_path: pytest.TempPathFactory) -> sqlite3.Connection:  # type: ignore[type-arg]
    return init_db(tmp_path / "test.db")


@pytest.fixture
def store(db: sqlite3.Connection) -> SQLiteJobStore:
    return SQLiteJobStore(db)


@pytest.fixture
async def client():  # type: ignore[no-untyped-def]
    async with httpx.AsyncClient(transport=httpx.MockTransport(new_site)) as c:
        yield c


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestFullPipeline:
    """End-to-end: submit -> slices -> probes -> store -> poll -> export."""

    async def test_ok_and_404(self, store: SQLiteJobStore, client: httpx.AsyncClient) -> None:
        """A 404 on the new domain is reported as Error, not Missing."""
        job_id, task = submit_job(
            store,
            ["https://old.example/", "https://old.example/missing"],
            "https://new.example",
            client=client,
        )
        await task

        detail = store.get_job(job_id)
        assert detail is not None
        assert detail.job.status is JobStatus.COMPLETED
        assert detail.job.completed_urls == detail.job.total_urls == 2

        by_source = {r.source_url: r for r in detail.results}
        assert by_source["https://old.example/"].result is ResultKind.OK
        assert by_source["https://old.example/"].new_url == "https://new.example/"
        assert by_source["https://old.example/missing"].result is ResultKind.ERROR
        assert by_source["https://old.example/missing"].status_code == 404
        assert detail.summary.model_dump() == {
            "total_urls": 2, "ok": 1, "redirected": 0, "missing": 0, "error": 1,
        }

    async def test_mixed_outcomes(self, store: SQLiteJobStore, client: httpx.AsyncClient) -> None:
        sources = [
            "https://old.example/",
            "https://old.example/old-blog",
            "https://old.example/broken",
            "not a url at all",
        ]
        job_id = store.create_job(sources, "https://new.example/", RunConfig(max_concurrency=3))
        await start_job(store, job_id, client=client)

        detail = store.get_job(job_id)
        assert detail is not None
        by_source = {r.source_url: r for r in detail.results}

        redirected = by_source["https://old.example/old-blog"]
        assert redirected.result is ResultKind.REDIRECTED
        assert redirected.status_code == 200
        assert redirected.redirect_chain == ["https://new.example/blog"]
        assert redirected.final_url == "https://new.example/blog"

        assert by_source["https://old.example/broken"].result is ResultKind.ERROR
        assert by_source["https://old.example/broken"].status_code == 500

        # malformed source maps to the target root
        malformed = by_source["not a url at all"]
        assert malformed.new_url == "https://new.example/"
        assert malformed.result is ResultKind.OK

        assert len(detail.results) == len(sources)

    async def test_manual_redirects(self, store: SQLiteJobStore, client: httpx.AsyncClient) -> None:
        job_id, task = submit_job(
            store,
            ["https://old.example/old-blog"],
            "https://new.example",
            RunConfig(follow_redirects=False),
            client=client,
        )
        await task

        (result,) = store.get_job(job_id).results  # type: ignore[union-attr]
        assert result.status_code == 301
        assert result.redirect_chain == []
        assert result.result is ResultKind.OK

    async def test_unreachable_domain_exhausts_retries(
        self, store: SQLiteJobStore, client: httpx.AsyncClient,
    ) -> None:
        with patch.object(asyncio, "sleep", new_callable=AsyncMock) as sleep:
            job_id, task = submit_job(
                store,
                ["https://old.example/a", "https://old.example/b"],
                "https://unreachable.example",
                RunConfig(retry_attempts=3),
                client=client,
            )
            await task

        detail = store.get_job(job_id)
        assert detail is not None
        assert detail.job.status is JobStatus.COMPLETED
        for r in detail.results:
            assert r.result is ResultKind.ERROR
            assert r.status_code is None
            assert r.retry_count == 3
            assert r.error == "Name or service not known"
        assert sleep.await_count == 4  # 1s + 2s per URL

    async def test_progress_polling_and_export(
        self, store: SQLiteJobStore, client: httpx.AsyncClient,
    ) -> None:
        sources = [f"https://old.example/page-{i}" for i in range(25)]
        job_id, task = submit_job(
            store, sources, "https://new.example", RunConfig(max_concurrency=10), client=client,
        )

        observed: list[int] = []
        detail = await wait_for_job(
            store, job_id, poll_interval=0.001,
            on_progress=lambda d: observed.append(d.job.completed_urls),
        )
        await task

        assert detail.job.status is JobStatus.COMPLETED
        assert set(observed) <= {0, 10, 20, 25}
        assert observed[-1] == 25
        assert observed == sorted(observed)

        exported = json.loads(export_json(detail))
        assert exported["summary"]["total_urls"] == 25
        assert exported["summary"]["error"] == 25  # every page is a 404 on the new site

    async def test_rerun_produces_fresh_results(
        self, store: SQLiteJobStore, client: httpx.AsyncClient,
    ) -> None:
        job_id, task = submit_job(
            store, ["https://old.example/"], "https://new.example", name="First", client=client,
        )
        await task

        new_id = rerun_job(store, job_id)
        await start_job(store, new_id, client=client)

        old = store.get_job(job_id)
        new = store.get_job(new_id)
        assert old is not None and new is not None
        assert new.job.name == "(Rerun) First"
        assert len(old.results) == len(new.results) == 1
        assert new.job.status is JobStatus.COMPLETED

    async def test_store_failure_marks_failed_and_keeps_partial_results(
        self, store: SQLiteJobStore, client: httpx.AsyncClient,
    ) -> None:
        sources = [f"https://old.example/p{i}" for i in range(6)]
        job_id = store.create_job(sources, "https://new.example", RunConfig(max_concurrency=2))

        original_append = store.append_results
        calls = {"n": 0}

        def flaky_append(jid, results):  # type: ignore[no-untyped-def]
            calls["n"] += 1
            if calls["n"] == 2:
                raise sqlite3.OperationalError("disk I/O error")
            original_append(jid, results)

        with patch.object(store, "append_results", side_effect=flaky_append):
            status = await start_job(store, job_id, client=client)

        assert status is JobStatus.FAILED
        detail = store.get_job(job_id)
        assert detail is not None
        assert detail.job.status is JobStatus.FAILED
        assert detail.job.completed_urls == 2
        assert len(detail.results) == 2
