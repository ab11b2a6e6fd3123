"""
Data models shared across modules.
"""

from .job import Job, JobMeta, JobError, JobStatus, JOB_STATUSES, TERMINAL_STATUSES, META_COLUMNS
from .references import ResourceReference, TaggingResult, MediaCategory

__all__ = [
    # Job models
    "Job",
    "JobMeta",
    "JobError",
    "JobStatus",
    "JOB_STATUSES",
    "TERMINAL_STATUSES",
    "META_COLUMNS",
    # Reference models
    "ResourceReference",
    "TaggingResult",
    "MediaCategory",
]
