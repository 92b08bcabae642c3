"""
Platform plumbing: liveness, tracing headers and the in-process scheduler.
"""
import asyncio

import pytest
from httpx import AsyncClient

from backend.app.workers.scheduled import start_scheduler


@pytest.mark.asyncio
async def test_health_and_root(client: AsyncClient):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "healthy"}

    root = (await client.get("/")).json()
    assert root["name"] == "SalesPulse"
    assert root["docs"] == "/docs"


@pytest.mark.asyncio
async def test_correlation_id_is_echoed(client: AsyncClient):
    resp = await client.get("/health", headers={"X-Correlation-ID": "corr-123"})
    assert resp.headers["X-Correlation-ID"] == "corr-123"
    assert resp.headers["X-Event-ID"]

    generated = await client.get("/health")
    assert generated.headers["X-Correlation-ID"]


@pytest.mark.asyncio
async def test_scheduler_runs_job_and_survives_failures():
    calls = []

    async def job(tag):
        calls.append(tag)
        if len(calls) == 1:
            raise RuntimeError("first run fails")

    task = start_scheduler(0, job, "scan")
    try:
        for _ in range(50):
            if len(calls) >= 2:
                break
            await asyncio.sleep(0.01)
    finally:
        task.cancel()

    assert calls[:2] == ["scan", "scan"]
