"""
Job state machine.

Pure functions: each takes the current Job and a timestamp and returns the
Transition to apply (columns to write, and whether to arm a poll callback).
Nothing here performs I/O.

    requested -> starting -> running -> succeeded | failed | expired | canceled
    starting  -> succeeded | failed        (immediate result or start error)
    any non-terminal -> failed | expired | canceled
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from shared.config import settings
from shared.errors import InvalidTransitionError
from shared.models.job import TERMINAL_STATUSES, Job, JobError

ALLOWED_TRANSITIONS = {
    "requested": frozenset({"starting", "failed", "expired", "canceled"}),
    "starting": frozenset({"running", "succeeded", "failed", "expired", "canceled"}),
    "running": frozenset({"succeeded", "failed", "expired", "canceled"}),
}


@dataclass
class Transition:
    status: Optional[str]
    fields: Dict[str, Any] = field(default_factory=dict)
    # Seconds until the next poll callback; None means do not schedule
    schedule_delay: Optional[float] = None


def can_transition(current: str, new: str) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, frozenset())


def check_transition(job: Job, new: str) -> None:
    if not can_transition(job.status, new):
        raise InvalidTransitionError(job.status, new, job_id=job.id)


def is_terminal(job: Job) -> bool:
    return job.status in TERMINAL_STATUSES


def is_expired(job: Job, now: datetime) -> bool:
    deadline = job.meta.ttl_deadline
    return deadline is not None and now > deadline


def _iso(value: datetime) -> str:
    return value.isoformat()


def _status_change(job: Job, new: str, now: datetime, **fields: Any) -> Transition:
    check_transition(job, new)
    return Transition(status=new, fields={"status": new, "updated_at": _iso(now), **fields})


def mark_starting(job: Job, now: datetime) -> Transition:
    return _status_change(job, "starting", now)


def mark_running(job: Job, operation_handle: str, now: datetime) -> Transition:
    """Record the operation and arm the first poll. The TTL deadline never moves back."""
    interval = settings.poll_interval_seconds
    deadline = now + timedelta(seconds=settings.job_ttl_seconds)
    if job.meta.ttl_deadline is not None and job.meta.ttl_deadline > deadline:
        deadline = job.meta.ttl_deadline

    transition = _status_change(
        job,
        "running",
        now,
        operation_handle=operation_handle,
        ttl_deadline=_iso(deadline),
        attempt_count=0,
        next_poll_at=_iso(now + timedelta(seconds=interval)),
    )
    transition.schedule_delay = interval
    return transition


def mark_succeeded(job: Job, response: Dict[str, Any], now: datetime) -> Transition:
    return _status_change(job, "succeeded", now, response=response)


def mark_failed(
    job: Job,
    error: JobError,
    now: datetime,
    response: Optional[Dict[str, Any]] = None,
) -> Transition:
    body = dict(response or {})
    body["error"] = error.model_dump(exclude_none=True)
    return _status_change(job, "failed", now, response=body)


def mark_expired(job: Job, now: datetime) -> Transition:
    return _status_change(job, "expired", now)


def mark_canceled(job: Job, now: datetime) -> Transition:
    return _status_change(job, "canceled", now)


def schedule_next_poll(job: Job, now: datetime, errored: bool = False) -> Transition:
    """
    One more poll cycle: bump the attempt counter and re-arm.

    A failed status query only records last_error_at; it never fails the job
    by itself. The TTL check bounds how long this can go on.
    """
    interval = settings.poll_interval_seconds
    fields: Dict[str, Any] = {
        "attempt_count": job.meta.attempt_count + 1,
        "next_poll_at": _iso(now + timedelta(seconds=interval)),
        "updated_at": _iso(now),
    }
    if errored:
        fields["last_error_at"] = _iso(now)
    return Transition(status=None, fields=fields, schedule_delay=interval)
