"""
Storage and scheduling interfaces used by the job lifecycle.

Production implementations live in api_gateway.services (Supabase table,
Redis sorted set). The in-memory versions back tests and local runs.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from shared.models.job import Job


class JobStore(ABC):
    """Durable job records keyed by id. update() writes only the given columns."""

    @abstractmethod
    async def get(self, job_id: str) -> Optional[Job]:
        ...

    @abstractmethod
    async def create(self, job: Job) -> Job:
        ...

    @abstractmethod
    async def update(self, job_id: str, fields: Dict[str, Any]) -> None:
        ...


class Scheduler(ABC):
    """Arms a future poll callback for a job (at-least-once delivery)."""

    @abstractmethod
    async def schedule_callback(self, job_id: str, delay_seconds: float) -> None:
        ...


class InMemoryJobStore(JobStore):
    def __init__(self):
        self.records: Dict[str, Dict[str, Any]] = {}
        self.updates: List[Tuple[str, Dict[str, Any]]] = []
        self._lock = asyncio.Lock()

    async def get(self, job_id: str) -> Optional[Job]:
        record = self.records.get(job_id)
        return Job.from_record(record) if record is not None else None

    async def create(self, job: Job) -> Job:
        async with self._lock:
            self.records[job.id] = job.to_record()
        return job

    async def update(self, job_id: str, fields: Dict[str, Any]) -> None:
        async with self._lock:
            self.records.setdefault(job_id, {"id": job_id}).update(fields)
            self.updates.append((job_id, dict(fields)))


class InMemoryScheduler(Scheduler):
    def __init__(self):
        self.scheduled: List[Tuple[str, float]] = []

    async def schedule_callback(self, job_id: str, delay_seconds: float) -> None:
        self.scheduled.append((job_id, delay_seconds))
