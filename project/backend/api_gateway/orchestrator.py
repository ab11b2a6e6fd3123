"""
Job orchestrator.

Creates job records and reacts to creation events: a free-text job is
compiled into a structured request first, a structured job is started
directly. Everything after start belongs to the JobRunner.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

from shared.config import settings
from shared.errors import InvalidPromptError
from shared.logging import get_logger, set_job_id
from shared.models.job import Job, JobMeta

from modules.job_lifecycle import JobRunner, JobStore
from modules.request_compiler import check_prompt, compile_request

logger = get_logger(__name__)

ADMIN_OWNER = "admin-console"

Enqueue = Callable[[str], Awaitable[None]]


class Orchestrator:
    def __init__(self, store: JobStore, runner: JobRunner, enqueue: Enqueue):
        self.store = store
        self.runner = runner
        self.enqueue = enqueue

    async def create_job(
        self,
        prompt: Optional[str] = None,
        request: Optional[Dict[str, Any]] = None,
        target: Optional[str] = None,
        owner: Optional[str] = None,
    ) -> Job:
        """
        Persist a new job in "requested" and publish its creation event.

        Args:
            prompt: Free text to compile (AI-assisted job)
            request: Structured request to run as-is
            target: Target the compiled request must use (prompt jobs only)
            owner: Caller identity; admin-console when absent
        """
        now = datetime.now(timezone.utc)
        job = Job(
            id=str(uuid.uuid4()),
            owner=owner or ADMIN_OWNER,
            request=request,
            meta=JobMeta(
                prompt=prompt,
                requested_target=target,
                ai_assisted=prompt is not None,
                version=settings.service_version,
            ),
            created_at=now,
            updated_at=now,
        )
        await self.store.create(job)
        await self.enqueue(job.id)
        logger.info(
            "Job accepted",
            extra={"job_id": job.id, "owner": job.owner, "ai_assisted": job.meta.ai_assisted},
        )
        return job

    async def handle_job_created(self, job_id: str) -> Optional[Job]:
        """
        Process one creation event. Safe to call more than once per job.
        """
        set_job_id(job_id)
        job = await self.store.get(job_id)
        if job is None:
            logger.warning(f"Creation event for unknown job {job_id}", extra={"job_id": job_id})
            return None
        if job.status != "requested":
            logger.info(
                f"Ignoring creation event for job {job_id} in status {job.status}",
                extra={"job_id": job_id, "status": job.status},
            )
            return job

        if job.request is not None:
            return await self.runner.start_job(job.id)
        if job.meta.prompt is not None:
            return await self.compile_and_start(job)
        return await self.runner.fail_job(
            job,
            "Job needs either a prompt or a structured request",
            "INVALID_FORMAT",
        )

    async def compile_and_start(self, job: Job) -> Job:
        prompt = job.meta.prompt
        try:
            check_prompt(prompt, job_id=job.id)
        except InvalidPromptError as e:
            return await self.runner.fail_job(job, e.message, e.code)

        try:
            result = await compile_request(prompt, target_id=job.meta.requested_target, job_id=job.id)
        except Exception as e:
            logger.error("Request compilation failed", exc_info=e, extra={"job_id": job.id})
            return await self.runner.fail_job(
                job,
                f"AI analysis failed: {str(e)}",
                "AI_ANALYSIS_FAILED",
                details={
                    "error_type": type(e).__name__,
                    "error_code": getattr(e, "code", None),
                    "prompt": prompt,
                },
            )

        now = datetime.now(timezone.utc).isoformat()
        await self.store.update(
            job.id,
            {
                "request": result.request,
                "reasons": result.reasons,
                "ai_assisted": True,
                "analyzed_at": now,
                "updated_at": now,
            },
        )
        logger.info(
            "Request compiled",
            extra={"job_id": job.id, "target": result.target_id, "attempts": result.attempts},
        )
        return await self.runner.start_job(job.id)


_orchestrator: Optional[Orchestrator] = None


def get_orchestrator() -> Orchestrator:
    """Production wiring: Supabase store, Redis scheduler and queue."""
    global _orchestrator
    if _orchestrator is None:
        from api_gateway.services.job_store import SupabaseJobStore
        from api_gateway.services.queue_service import enqueue_job_created
        from api_gateway.services.scheduler import RedisScheduler

        store = SupabaseJobStore()
        runner = JobRunner(store, RedisScheduler())
        _orchestrator = Orchestrator(store, runner, enqueue_job_created)
    return _orchestrator
