import asyncio
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Literal, Optional

import pytest

from modules.job_lifecycle import InMemoryJobStore, InMemoryScheduler, JobRunner
from modules.targets.base import (
    ModelOutput,
    Prompt,
    StartResult,
    TargetAdapter,
    TargetRequest,
    TargetSpec,
)
from shared.errors import UnknownTargetError
from shared.models.job import Job, JobMeta


class EchoRequest(TargetRequest):
    model: Literal["echo"]
    prompt: Prompt
    seed: Optional[int] = None


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, milliseconds: int) -> None:
        self.now += timedelta(milliseconds=milliseconds)


class FakeStorage:
    async def resolve_url(self, uri: str) -> str:
        if uri.startswith("https://"):
            return uri
        return "https://signed.example/" + uri.split("://", 1)[1]


class ScriptedAdapter(TargetAdapter):
    """Adapter whose start/poll results are set by the test."""

    def __init__(self):
        self.start_result = StartResult(operation_handle="op-1")
        self.start_error: Optional[Exception] = None
        # When set, start() waits on it after recording the request
        self.gate: Optional[asyncio.Event] = None
        self.statuses = []
        self.output = ModelOutput(uri="gs://out/clip.mp4", mime_type="video/mp4")
        self.started = []
        self.polled = []

    async def start(self, request, job_id):
        self.started.append(request)
        if self.gate is not None:
            await self.gate.wait()
        if self.start_error:
            raise self.start_error
        return self.start_result

    async def poll_status(self, handle):
        self.polled.append(handle)
        status = self.statuses.pop(0)
        if isinstance(status, Exception):
            raise status
        return status

    async def extract_output(self, data, job_id):
        return self.output


@pytest.fixture()
def env():
    adapter = ScriptedAdapter()
    spec = TargetSpec(
        target_id="echo",
        category="text",
        display_name="Echo",
        is_async=True,
        request_model=EchoRequest,
        adapter_factory=lambda: adapter,
        usage="Test target.",
    )

    def lookup_target(target_id):
        if target_id != "echo":
            raise UnknownTargetError(target_id)
        return spec

    store = InMemoryJobStore()
    scheduler = InMemoryScheduler()
    clock = FakeClock()
    runner = JobRunner(store, scheduler, clock=clock, storage=FakeStorage(), lookup_target=lookup_target)
    return SimpleNamespace(
        adapter=adapter, store=store, scheduler=scheduler, clock=clock, runner=runner
    )


@pytest.fixture()
def make_job(env):
    async def _make(status="requested", request=None, **meta):
        job = Job(
            id="job-1",
            owner="admin-console",
            status=status,
            request=request if request is not None else {"model": "echo", "prompt": "hello"},
            meta=JobMeta(**meta),
        )
        await env.store.create(job)
        return job

    return _make
