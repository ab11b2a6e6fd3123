"""
Job Lifecycle module public API.

Start, poll and cancel generation jobs against a JobStore and Scheduler.
"""

from .process import JobRunner, utcnow
from .store import InMemoryJobStore, InMemoryScheduler, JobStore, Scheduler

__all__ = [
    "JobRunner",
    "JobStore",
    "Scheduler",
    "InMemoryJobStore",
    "InMemoryScheduler",
    "utcnow",
]
