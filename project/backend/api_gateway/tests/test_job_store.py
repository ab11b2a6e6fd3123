"""
Tests for the Supabase-backed job store.
"""

from unittest.mock import MagicMock

import pytest

from api_gateway.services.job_store import SupabaseJobStore
from shared.database import DatabaseClient
from shared.models.job import Job, JobMeta


@pytest.fixture
def supabase():
    client = MagicMock()
    query = client.table.return_value
    for name in ("select", "insert", "update", "eq", "limit"):
        getattr(query, name).return_value = query
    return client


@pytest.fixture
def store(supabase):
    return SupabaseJobStore(db_client=DatabaseClient(client=supabase), table="jobs_test")


@pytest.mark.asyncio
async def test_get_builds_job_from_row(store, supabase):
    row = Job(id="job-1", owner="o", status="running", meta=JobMeta(operation_handle="op-1")).to_record()
    supabase.table.return_value.execute.return_value = MagicMock(data=[row])

    job = await store.get("job-1")

    assert job.status == "running"
    assert job.meta.operation_handle == "op-1"
    supabase.table.assert_called_with("jobs_test")


@pytest.mark.asyncio
async def test_get_missing(store, supabase):
    supabase.table.return_value.execute.return_value = MagicMock(data=[])

    assert await store.get("nope") is None


@pytest.mark.asyncio
async def test_create_inserts_flat_record(store, supabase):
    job = Job(id="job-1", owner="o", meta=JobMeta(prompt="rain"))

    await store.create(job)

    inserted = supabase.table.return_value.insert.call_args.args[0]
    assert inserted["id"] == "job-1"
    assert inserted["prompt"] == "rain"


@pytest.mark.asyncio
async def test_update_writes_only_given_columns(store, supabase):
    await store.update("job-1", {"status": "failed", "updated_at": "2026-01-01T00:00:00+00:00"})

    query = supabase.table.return_value
    query.update.assert_called_once_with({"status": "failed", "updated_at": "2026-01-01T00:00:00+00:00"})
    query.eq.assert_called_once_with("id", "job-1")
