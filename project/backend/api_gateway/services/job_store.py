"""
Supabase-backed job store.

One row per job in the jobs table; updates write only the given columns.
"""

from typing import Any, Dict, Optional

from shared.config import settings
from shared.database import DatabaseClient, db
from shared.logging import get_logger
from shared.models.job import Job

from modules.job_lifecycle import JobStore

logger = get_logger(__name__)


class SupabaseJobStore(JobStore):
    def __init__(self, db_client: Optional[DatabaseClient] = None, table: Optional[str] = None):
        self.db = db_client or db
        self.table = table or settings.jobs_table

    async def get(self, job_id: str) -> Optional[Job]:
        result = await self.db.table(self.table).select("*").eq("id", job_id).limit(1).execute()
        if not result.data:
            return None
        return Job.from_record(result.data[0])

    async def create(self, job: Job) -> Job:
        await self.db.table(self.table).insert(job.to_record()).execute()
        logger.info("Job created", extra={"job_id": job.id, "owner": job.owner})
        return job

    async def update(self, job_id: str, fields: Dict[str, Any]) -> None:
        await self.db.table(self.table).update(fields).eq("id", job_id).execute()
        logger.debug(
            "Job updated",
            extra={"job_id": job_id, "columns": sorted(fields)},
        )
