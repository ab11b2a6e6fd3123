"""
Job lifecycle runner.

Drives a job from requested to a terminal state: starts the target
operation, then polls it on scheduled callbacks until it finishes, fails or
runs past its TTL deadline. Every write goes through the state machine.
"""

from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from shared.errors import JobNotFoundError, PipelineError, UnknownTargetError, ValidationError
from shared.logging import get_logger, set_job_id
from shared.models.job import Job, JobError
from shared.storage import StorageClient, storage as default_storage

from modules.reference_tagger import guess_mime_type
from modules.targets import ModelOutput, TargetSpec, lookup, validate_request

from . import state_machine
from .state_machine import Transition
from .store import JobStore, Scheduler

logger = get_logger("job_lifecycle")

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _file_name(uri: str) -> str:
    return uri.split("?", 1)[0].rstrip("/").rsplit("/", 1)[-1]


class JobRunner:
    """
    Start/poll/cancel operations over an injected store, scheduler and clock.

    Handlers are safe to run more than once for the same job: terminal jobs
    are never modified and a start for a job that already left "requested"
    is ignored.
    """

    def __init__(
        self,
        store: JobStore,
        scheduler: Scheduler,
        clock: Clock = utcnow,
        storage: Optional[StorageClient] = None,
        lookup_target: Callable[[Optional[str]], TargetSpec] = lookup,
    ):
        self.store = store
        self.scheduler = scheduler
        self.clock = clock
        self.storage = storage or default_storage
        self.lookup_target = lookup_target

    async def _apply(self, job: Job, transition: Transition) -> Job:
        await self.store.update(job.id, transition.fields)
        if transition.schedule_delay is not None:
            await self.scheduler.schedule_callback(job.id, transition.schedule_delay)
        if transition.status:
            logger.info(
                f"Job {job.id}: {job.status} -> {transition.status}",
                extra={"job_id": job.id, "from_status": job.status, "to_status": transition.status},
            )
        return Job.from_record({**job.to_record(), **transition.fields})

    async def fail_job(
        self,
        job: Job,
        message: str,
        code: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> Job:
        logger.warning(
            f"Job {job.id} failed: {message}",
            extra={"job_id": job.id, "error_code": code},
        )
        error = JobError(message=message, code=code, details=details)
        return await self._apply(job, state_machine.mark_failed(job, error, self.clock()))

    async def build_response(
        self, output: ModelOutput, raw: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Shape a ModelOutput into job.response, signing storage locators."""
        response: Dict[str, Any] = {
            "uri": output.uri,
            "mime_type": output.mime_type,
            "text": output.text,
        }
        if output.uri:
            response["url"] = await self.storage.resolve_url(output.uri)
        if output.files:
            response["files"] = [
                {
                    "name": _file_name(uri),
                    "uri": uri,
                    "url": await self.storage.resolve_url(uri),
                    "mime_type": guess_mime_type(uri),
                }
                for uri in output.files
            ]
        if output.metadata:
            response["metadata"] = output.metadata
        if raw:
            response["raw"] = raw
        return {k: v for k, v in response.items() if v is not None}

    async def _load(self, job_id: str) -> Job:
        job = await self.store.get(job_id)
        if job is None:
            raise JobNotFoundError(f"Job not found: {job_id}", job_id=job_id)
        return job

    async def start_job(self, job_id: str) -> Job:
        """
        Validate the stored request and submit it to its target.

        Immediate targets finish here; long-running ones move to "running"
        with a TTL deadline and a first poll callback.

        Raises:
            JobNotFoundError: If no job has this id
        """
        set_job_id(job_id)
        job = await self._load(job_id)
        if job.status != "requested":
            logger.info(
                f"Ignoring start for job {job_id} in status {job.status}",
                extra={"job_id": job_id, "status": job.status},
            )
            return job

        job = await self._apply(job, state_machine.mark_starting(job, self.clock()))

        try:
            spec = self.lookup_target(job.target_id)
        except UnknownTargetError as e:
            return await self.fail_job(job, e.message, e.code)

        failure: Optional[JobError] = None
        response: Optional[Dict[str, Any]] = None
        try:
            request = validate_request(job.request or {}, spec)
            result = await spec.adapter().start(request, job.id)
        except ValidationError as e:
            failure = JobError(
                message=e.message,
                code=e.code,
                details={"errors": [asdict(err) for err in e.errors]},
            )
        except Exception as e:
            logger.error("Failed to start operation", exc_info=e, extra={"job_id": job.id})
            if isinstance(e, PipelineError):
                failure = JobError(message=e.message or type(e).__name__, code=e.code)
            else:
                failure = JobError(message=str(e) or type(e).__name__, code="START_FAILED")
        else:
            if result.output is not None:
                try:
                    response = await self.build_response(result.output)
                except Exception as e:
                    logger.error("Failed to store immediate output", exc_info=e, extra={"job_id": job.id})
                    failure = JobError(message=f"Output could not be stored: {e}", code="OUTPUT_FAILED")

        # A cancel or poll may have finished the job while the adapter ran
        current = await self.store.get(job.id)
        if current is not None and current.status != job.status:
            logger.warning(
                f"Job {job.id} moved to {current.status} during start, keeping it",
                extra={"job_id": job.id, "status": current.status},
            )
            return current

        if failure is not None:
            return await self.fail_job(job, failure.message, failure.code, failure.details)
        if response is not None:
            return await self._apply(job, state_machine.mark_succeeded(job, response, self.clock()))

        return await self._apply(
            job, state_machine.mark_running(job, result.operation_handle, self.clock())
        )

    async def poll_job(self, job_id: str) -> Optional[Job]:
        """
        One poll cycle for a running job.

        Missing and terminal jobs are left alone, as are jobs whose start has
        not recorded a handle yet. A failing status query is recorded and
        re-armed; only the TTL deadline ends such a job.
        """
        set_job_id(job_id)
        job = await self.store.get(job_id)
        if job is None:
            logger.warning(f"Poll for unknown job {job_id}", extra={"job_id": job_id})
            return None
        if job.is_terminal:
            logger.debug(f"Poll for terminal job {job_id}", extra={"job_id": job_id, "status": job.status})
            return job

        now = self.clock()
        if state_machine.is_expired(job, now):
            return await self._apply(job, state_machine.mark_expired(job, now))

        handle = job.meta.operation_handle
        if not handle and job.status in ("requested", "starting"):
            # The start handler owns the job until it records a handle
            logger.info(
                f"Poll for job {job_id} before its operation started",
                extra={"job_id": job_id, "status": job.status},
            )
            return job
        if not handle:
            return await self.fail_job(job, "Job has no operation to poll", "MISSING_OPERATION")

        response = None
        try:
            adapter = self.lookup_target(job.target_id).adapter()
            status = await adapter.poll_status(handle)
            if status.done and not status.error:
                output = await adapter.extract_output(status.data or {}, job.id)
                response = await self.build_response(output, raw=status.data)
        except Exception as e:
            logger.warning(
                "Status query failed, will poll again",
                exc_info=e,
                extra={"job_id": job.id, "attempt_count": job.meta.attempt_count},
            )
            return await self._apply(job, state_machine.schedule_next_poll(job, now, errored=True))

        if not status.done:
            return await self._apply(job, state_machine.schedule_next_poll(job, now))
        if status.error:
            return await self.fail_job(
                job,
                status.error.get("message") or "Generation failed",
                status.error.get("code") or "MODEL_ERROR",
            )
        return await self._apply(job, state_machine.mark_succeeded(job, response, self.clock()))

    async def cancel_job(self, job_id: str) -> Job:
        """
        Mark a job canceled. Terminal jobs are returned unchanged.

        Raises:
            JobNotFoundError: If no job has this id
        """
        set_job_id(job_id)
        job = await self._load(job_id)
        if job.is_terminal:
            return job
        return await self._apply(job, state_machine.mark_canceled(job, self.clock()))
