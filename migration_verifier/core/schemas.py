"""Core data models for the URL verifier."""

from collections import Counter
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from migration_verifier.core.config import RunConfig


class ResultKind(str, Enum):
    OK = "OK"
    MISSING = "Missing"
    ERROR = "Error"
    REDIRECTED = "Redirected"


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ProbeOutcome(BaseModel):
    """What a single successful probe observed.

    redirect_chain holds at most one location: only the first hop is inspected.
    """

    model_config = ConfigDict(frozen=True)

    status_code: int
    redirect_chain: list[str] = Field(default_factory=list, max_length=1)
    final_url: str | None = None


class UrlResult(BaseModel):
    """Terminal outcome of checking one source URL within a job."""

    model_config = ConfigDict(frozen=True)

    source_url: str
    new_url: str
    status_code: int | None = None
    redirect_chain: list[str] = Field(default_factory=list)
    final_url: str | None = None
    result: ResultKind
    error: str | None = None
    retry_count: int = Field(default=0, ge=0)
    checked_at: datetime = Field(default_factory=datetime.now)


class Job(BaseModel):
    """One verification run over a URL list against a target domain."""

    id: str
    name: str | None = None
    source_urls: list[str]
    new_domain: str
    config: RunConfig = Field(default_factory=RunConfig)
    status: JobStatus = JobStatus.PENDING
    total_urls: int = Field(ge=0)
    completed_urls: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=datetime.now)

    @model_validator(mode="after")
    def completed_within_total(self) -> "Job":
        if self.completed_urls > self.total_urls:
            msg = f"completed_urls ({self.completed_urls}) exceeds total_urls ({self.total_urls})"
            raise ValueError(msg)
        return self


class JobSummary(BaseModel):
    """Counts of result kinds over a job's results."""

    total_urls: int = 0
    ok: int = 0
    redirected: int = 0
    missing: int = 0
    error: int = 0


class JobDetail(BaseModel):
    """A job together with the results persisted so far."""

    job: Job
    results: list[UrlResult] = Field(default_factory=list)

    @property
    def summary(self) -> JobSummary:
        return summarize(self.results)


def summarize(results: list[UrlResult]) -> JobSummary:
    """Count results by kind."""
    counts = Counter(r.result for r in results)
    return JobSummary(
        total_urls=len(results),
        ok=counts[ResultKind.OK],
        redirected=counts[ResultKind.REDIRECTED],
        missing=counts[ResultKind.MISSING],
        error=counts[ResultKind.ERROR],
    )
