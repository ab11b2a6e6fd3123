"""
Job-related data models.

A Job is stored as one flat row: top-level fields plus the bookkeeping fields
of JobMeta as their own columns, so a transition can update exactly the
columns it owns.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, get_args
from pydantic import BaseModel, Field, field_serializer

JobStatus = Literal[
    "requested", "starting", "running", "succeeded", "failed", "expired", "canceled"
]
JOB_STATUSES = get_args(JobStatus)
TERMINAL_STATUSES = frozenset({"succeeded", "failed", "expired", "canceled"})


class JobError(BaseModel):
    """Error payload written to job.response.error."""

    message: str
    code: str
    details: Optional[Dict[str, Any]] = None


class JobMeta(BaseModel):
    """Lifecycle bookkeeping and compilation provenance."""

    ttl_deadline: Optional[datetime] = None
    attempt_count: int = Field(default=0, ge=0)
    next_poll_at: Optional[datetime] = None
    operation_handle: Optional[str] = None
    last_error_at: Optional[datetime] = None
    # Set when the request was compiled from free text
    prompt: Optional[str] = None
    requested_target: Optional[str] = None
    ai_assisted: bool = False
    reasons: List[str] = Field(default_factory=list)
    analyzed_at: Optional[datetime] = None
    version: Optional[str] = None

    @field_serializer("ttl_deadline", "next_poll_at", "last_error_at", "analyzed_at")
    def serialize_datetime(self, value: Optional[datetime]) -> Optional[str]:
        """Serialize datetime to ISO format string."""
        return value.isoformat() if value else None


META_COLUMNS = tuple(JobMeta.model_fields)


class Job(BaseModel):
    """Job model representing one media generation request."""

    id: str
    owner: str
    status: JobStatus = "requested"
    request: Optional[Dict[str, Any]] = None
    response: Optional[Dict[str, Any]] = None
    meta: JobMeta = Field(default_factory=JobMeta)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_serializer("created_at", "updated_at")
    def serialize_datetime(self, value: Optional[datetime]) -> Optional[str]:
        """Serialize datetime to ISO format string."""
        return value.isoformat() if value else None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def target_id(self) -> Optional[str]:
        return (self.request or {}).get("model")

    def to_record(self) -> Dict[str, Any]:
        """Flatten to a store row (JSON-safe values)."""
        data = self.model_dump(mode="json")
        meta = data.pop("meta")
        data.update(meta)
        return data

    @classmethod
    def from_record(cls, row: Dict[str, Any]) -> "Job":
        """Build a Job from a store row; unknown columns are ignored."""
        meta = {k: row[k] for k in META_COLUMNS if row.get(k) is not None}
        top = {k: row[k] for k in cls.model_fields if k != "meta" and k in row}
        return cls(meta=JobMeta(**meta), **top)
