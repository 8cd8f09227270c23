"""Tests for core schemas: ProbeOutcome, UrlResult, Job, summaries."""

from datetime import datetime

import pytest
from pydantic import ValidationError

from migration_verifier.core.schemas import (
    Job,
    JobDetail,
    JobStatus,
    ProbeOutcome,
    ResultKind,
    UrlResult,
    summarize,
)


def _result(kind: ResultKind = ResultKind.OK, **overrides: object) -> UrlResult:
    defaults: dict[str, object] = {
        "source_url": "https://old.example/a",
        "new_url": "https://new.example/a",
        "status_code": 200,
        "result": kind,
    }
    defaults.update(overrides)
    return UrlResult(**defaults)  # type: ignore[arg-type]


def _job(**overrides: object) -> Job:
    defaults: dict[str, object] = {
        "id": "job1",
        "source_urls": ["https://old.example/a"],
        "new_domain": "https://new.example",
        "total_urls": 1,
    }
    defaults.update(overrides)
    return Job(**defaults)  # type: ignore[arg-type]


class TestProbeOutcome:
    def test_chain_defaults_empty(self) -> None:
        o = ProbeOutcome(status_code=200)
        assert o.redirect_chain == []
        assert o.final_url is None

    def test_chain_holds_at_most_one_hop(self) -> None:
        with pytest.raises(ValidationError):
            ProbeOutcome(status_code=200, redirect_chain=["/a", "/b"])


class TestUrlResult:
    def test_defaults(self) -> None:
        r = _result()
        assert r.redirect_chain == []
        assert r.error is None
        assert r.retry_count == 0
        assert isinstance(r.checked_at, datetime)

    def test_null_status_allowed(self) -> None:
        r = _result(ResultKind.ERROR, status_code=None, error="timed out")
        assert r.status_code is None

    def test_frozen_model(self) -> None:
        r = _result()
        with pytest.raises(ValidationError):
            r.status_code = 500  # type: ignore[misc]

    def test_result_kind_from_string(self) -> None:
        r = _result(kind="Redirected")  # type: ignore[arg-type]
        assert r.result is ResultKind.REDIRECTED


class TestJob:
    def test_defaults(self) -> None:
        j = _job()
        assert j.status is JobStatus.PENDING
        assert j.completed_urls == 0
        assert j.config.max_concurrency == 10

    def test_completed_cannot_exceed_total(self) -> None:
        with pytest.raises(ValidationError, match="exceeds total_urls"):
            _job(total_urls=1, completed_urls=2)


class TestSummarize:
    def test_empty(self) -> None:
        s = summarize([])
        assert s.total_urls == 0
        assert s.ok == s.redirected == s.missing == s.error == 0

    def test_counts_each_kind(self) -> None:
        results = [
            _result(ResultKind.OK),
            _result(ResultKind.OK),
            _result(ResultKind.REDIRECTED),
            _result(ResultKind.MISSING),
            _result(ResultKind.ERROR),
        ]
        s = summarize(results)
        assert s.model_dump() == {
            "total_urls": 5,
            "ok": 2,
            "redirected": 1,
            "missing": 1,
            "error": 1,
        }

    def test_job_detail_summary(self) -> None:
        detail = JobDetail(job=_job(), results=[_result(ResultKind.ERROR)])
        assert detail.summary.error == 1
        assert detail.summary.total_urls == 1
