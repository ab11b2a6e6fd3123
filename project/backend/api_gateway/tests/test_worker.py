"""
Tests for the worker's event and poll handlers.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from api_gateway.worker import Worker


@pytest.fixture()
def parts():
    runner = SimpleNamespace(poll_job=AsyncMock())
    orchestrator = SimpleNamespace(handle_job_created=AsyncMock(), runner=runner)
    scheduler = SimpleNamespace(ack=AsyncMock(), key="polls")
    return SimpleNamespace(
        orchestrator=orchestrator,
        scheduler=scheduler,
        runner=runner,
        worker=Worker(orchestrator, scheduler, max_concurrent=2),
    )


@pytest.mark.asyncio
async def test_handle_poll_acks_after_success(parts):
    await parts.worker.handle_poll("job-1", 123)

    parts.runner.poll_job.assert_awaited_once_with("job-1")
    parts.scheduler.ack.assert_awaited_once_with("job-1", 123)


@pytest.mark.asyncio
async def test_handle_poll_leaves_lease_on_failure(parts):
    parts.runner.poll_job.side_effect = ConnectionError("store down")

    await parts.worker.handle_poll("job-1", 123)

    parts.scheduler.ack.assert_not_awaited()


@pytest.mark.asyncio
async def test_handle_event_dispatches_to_orchestrator(parts):
    await parts.worker.handle_event({"event": "job_created", "job_id": "job-1"})

    parts.orchestrator.handle_job_created.assert_awaited_once_with("job-1")


@pytest.mark.asyncio
async def test_handle_event_without_job_id(parts):
    await parts.worker.handle_event({"event": "job_created"})

    parts.orchestrator.handle_job_created.assert_not_awaited()


@pytest.mark.asyncio
async def test_handle_event_swallows_handler_errors(parts):
    parts.orchestrator.handle_job_created.side_effect = RuntimeError("boom")

    await parts.worker.handle_event({"job_id": "job-1"})
