from types import SimpleNamespace
from typing import Literal, Optional

import pytest
from fastapi.testclient import TestClient

from api_gateway.dependencies import get_cache, get_job_orchestrator
from api_gateway.main import app
from api_gateway.orchestrator import Orchestrator
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


class EchoRequest(TargetRequest):
    model: Literal["echo"]
    prompt: Prompt
    seed: Optional[int] = None


class EchoAdapter(TargetAdapter):
    def __init__(self):
        self.started = []
        self.immediate = False

    async def start(self, request, job_id):
        self.started.append(request)
        if self.immediate:
            return StartResult(output=ModelOutput(text=request["prompt"].upper(), mime_type="text/plain"))
        return StartResult(operation_handle=f"op-{job_id}")


class FakeStorage:
    async def resolve_url(self, uri: str) -> str:
        return "https://signed.example/" + uri.split("://", 1)[1]


class FakeCache:
    def __init__(self):
        self.data = {}

    async def get_json(self, key):
        return self.data.get(key)

    async def set_json(self, key, value, ttl=None):
        self.data[key] = value
        return True


@pytest.fixture()
def env():
    adapter = EchoAdapter()
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
    runner = JobRunner(store, scheduler, storage=FakeStorage(), lookup_target=lookup_target)
    enqueued = []

    async def enqueue(job_id):
        enqueued.append(job_id)

    orchestrator = Orchestrator(store, runner, enqueue)
    return SimpleNamespace(
        adapter=adapter,
        store=store,
        scheduler=scheduler,
        runner=runner,
        enqueued=enqueued,
        orchestrator=orchestrator,
    )


@pytest.fixture()
def cache():
    return FakeCache()


@pytest.fixture()
def client(env, cache):
    app.dependency_overrides[get_job_orchestrator] = lambda: env.orchestrator
    app.dependency_overrides[get_cache] = lambda: cache
    yield TestClient(app)
    app.dependency_overrides.clear()
