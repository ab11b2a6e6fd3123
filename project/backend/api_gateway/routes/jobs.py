"""
Job endpoints.

Job creation, status, poll callback entry and cancellation.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, status
from pydantic import BaseModel, Field, model_validator

from shared.errors import JobNotFoundError
from shared.logging import get_logger
from shared.models.job import Job
from shared.redis_client import RedisClient

from api_gateway.dependencies import get_cache, get_job_orchestrator, get_owner
from api_gateway.orchestrator import Orchestrator

logger = get_logger(__name__)

router = APIRouter()

# Terminal jobs never change, so their status can be served from cache
TERMINAL_CACHE_TTL = 3600


class CreateJobBody(BaseModel):
    """Either a free-text prompt (optionally pinned to a target) or a structured request."""

    prompt: Optional[str] = Field(default=None, description="Free-text description to compile")
    target: Optional[str] = Field(default=None, description="Target the compiled request must use")
    request: Optional[Dict[str, Any]] = Field(default=None, description="Structured request with a model field")

    @model_validator(mode="after")
    def check_one_input(self) -> "CreateJobBody":
        if (self.prompt is None) == (self.request is None):
            raise ValueError("provide exactly one of 'prompt' or 'request'")
        if self.target is not None and self.prompt is None:
            raise ValueError("'target' only applies to prompt jobs")
        return self


def job_view(job: Job) -> Dict[str, Any]:
    """Public representation of a job record."""
    view = job.model_dump(mode="json")
    view["target"] = job.target_id
    return view


@router.post("/jobs", status_code=status.HTTP_201_CREATED)
async def create_job(
    body: CreateJobBody,
    owner: str = Depends(get_owner),
    orchestrator: Orchestrator = Depends(get_job_orchestrator),
):
    """
    Create a job and queue it for processing.

    Returns:
        The job record in status "requested"
    """
    job = await orchestrator.create_job(
        prompt=body.prompt,
        request=body.request,
        target=body.target,
        owner=owner,
    )
    return job_view(job)


@router.get("/jobs/{job_id}")
async def get_job(
    job_id: str = Path(...),
    orchestrator: Orchestrator = Depends(get_job_orchestrator),
    cache: RedisClient = Depends(get_cache),
):
    try:
        cached = await cache.get_json(job_id)
        if cached:
            logger.debug("Job status retrieved from cache", extra={"job_id": job_id})
            return cached
    except Exception as e:
        logger.warning("Failed to get job status from cache", exc_info=e, extra={"job_id": job_id})

    job = await orchestrator.store.get(job_id)
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Job {job_id} not found")

    view = job_view(job)
    if job.is_terminal:
        try:
            await cache.set_json(job_id, view, ttl=TERMINAL_CACHE_TTL)
        except Exception as e:
            logger.warning("Failed to cache job status", exc_info=e, extra={"job_id": job_id})
    return view


@router.post("/jobs/{job_id}/poll")
async def poll_job(
    job_id: str = Path(...),
    orchestrator: Orchestrator = Depends(get_job_orchestrator),
):
    """Run one poll cycle now (callback entry point for external schedulers)."""
    job = await orchestrator.runner.poll_job(job_id)
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Job {job_id} not found")
    return job_view(job)


@router.post("/jobs/{job_id}/cancel")
async def cancel_job(
    job_id: str = Path(...),
    orchestrator: Orchestrator = Depends(get_job_orchestrator),
):
    try:
        job = await orchestrator.runner.cancel_job(job_id)
    except JobNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Job {job_id} not found")
    logger.info("Job cancel requested", extra={"job_id": job_id, "status": job.status})
    return job_view(job)
