"""Job lifecycle: pending -> running -> completed | failed.

Terminal states never go back to running; a rerun is always a new job.
completed -> completed is allowed so the orchestrator can confirm the final
state after the last slice already reported it.
"""

from migration_verifier.core.errors import InvalidTransitionError
from migration_verifier.core.schemas import Job, JobStatus

_ALLOWED: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.RUNNING, JobStatus.FAILED}),
    JobStatus.RUNNING: frozenset({JobStatus.RUNNING, JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.COMPLETED: frozenset({JobStatus.COMPLETED}),
    JobStatus.FAILED: frozenset(),
}

TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})


def can_transition(current: JobStatus, new: JobStatus) -> bool:
    """Return True if a job may move from ``current`` to ``new``."""
    return new in _ALLOWED[current]


def check_transition(current: JobStatus, new: JobStatus) -> None:
    """Raise InvalidTransitionError if ``current -> new`` is not allowed."""
    if not can_transition(current, new):
        msg = f"Invalid job status transition: {current.value} -> {new.value}"
        raise InvalidTransitionError(msg)


def check_can_start(job_id: str, status: JobStatus) -> None:
    """Raise InvalidTransitionError unless the job is still pending.

    running -> running is a valid progress update, so it cannot tell a first
    start from a second one; only pending jobs may be started.
    """
    if status is not JobStatus.PENDING:
        msg = f"Job {job_id} cannot be started: status is {status.value}, expected pending"
        raise InvalidTransitionError(msg)


def is_terminal(status: JobStatus) -> bool:
    return status in TERMINAL_STATUSES


def progress_percent(job: Job) -> float:
    """Completed share of the job in percent (0 for an empty job)."""
    if job.total_urls == 0:
        return 0.0
    return job.completed_urls / job.total_urls * 100
