"""
Integration tests for the sales scan: task creation, dedup, AI path,
fallback to rules and scan-log bookkeeping.
"""
import json

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import get_settings
from backend.app.core.timeutil import utcnow
from backend.app.models.ai_usage_orm import AIUsageDailyORM
from backend.app.models.sales_task_orm import AISalesScanLogORM, AISalesTaskORM
from backend.app.schemas.sales_tasks import SalesTaskAction, SalesTaskUpdate, TaskSourceName, TriggerType
from backend.app.services.sales_scan import SalesScanService
from backend.app.services.sales_task_service import SalesTaskService
from backend.app.services.task_upserter import TaskUpserter
from tests.data.llm_stubs import ScriptedAdapter
from tests.data.sales_data import add_customer, add_invoice, add_lead, add_tenant, days_ago

BASE = "/api/v1/sales-customers/ai-tasks"


async def _seed_pipeline(db: AsyncSession) -> dict:
    now = utcnow()
    customer = await add_customer(db, "Acme Ltd")
    invoice = await add_invoice(db, customer.id, 8000.0, doc_date=days_ago(75, now),
                                due_date=days_ago(45, now), doc_number="INV-001")
    lead = await add_lead(db, "Jane Buyer", estimated_value=12000.0, last_activity_date=days_ago(20, now))
    return {"customer": customer.id, "invoice": invoice.id, "lead": lead.id}


@pytest.mark.asyncio
async def test_manual_scan_creates_rule_tasks(client: AsyncClient, db_session: AsyncSession):
    ids = await _seed_pipeline(db_session)

    resp = await client.post(f"{BASE}/scan")
    assert resp.status_code == 200, resp.text
    result = resp.json()
    assert result["success"] is True
    assert result["taskSource"] == "rules"
    assert result["tasksCreated"] == 2
    assert result["tasksUpdated"] == 0
    assert result["tasksClosed"] == 0
    assert result["totalTasksGenerated"] == 2

    resp = await client.get(BASE)
    body = resp.json()
    assert body["total"] == 2
    tasks = {t["taskType"]: t for t in body["tasks"]}
    reminder = tasks["payment_reminder"]
    assert reminder["priority"] == "critical"
    assert reminder["salesDocId"] == ids["invoice"]
    assert reminder["scanScore"] == 90
    assert reminder["status"] == "pending"
    assert tasks["hot_lead"]["leadId"] == ids["lead"]
    # critical sorts before high
    assert body["tasks"][0]["taskType"] == "payment_reminder"

    last_scan = body["lastScan"]
    assert last_scan["scanId"] == result["scanId"]
    assert last_scan["status"] == "completed"
    assert last_scan["triggerType"] == "manual"
    assert last_scan["taskSource"] == "rules"
    assert last_scan["entitiesScanned"] == {"customers": 0, "leads": 1, "quotes": 0, "invoices": 1}


@pytest.mark.asyncio
async def test_rescan_updates_instead_of_duplicating(client: AsyncClient, db_session: AsyncSession):
    await _seed_pipeline(db_session)

    first = (await client.post(f"{BASE}/scan")).json()
    second = (await client.post(f"{BASE}/scan", json={"triggerType": "webhook"})).json()

    assert first["tasksCreated"] == 2
    assert second["tasksCreated"] == 0
    assert second["tasksUpdated"] == 2

    rows = (await db_session.execute(select(AISalesTaskORM))).scalars().all()
    assert len(rows) == 2
    assert all(r.last_scan_id == second["scanId"] for r in rows)

    logs = (await db_session.execute(select(AISalesScanLogORM))).scalars().all()
    assert sorted(l.trigger_type for l in logs) == ["manual", "webhook"]


@pytest.mark.asyncio
async def test_closed_task_is_recreated_on_next_scan(db_session: AsyncSession, tenant_ctx):
    await _seed_pipeline(db_session)
    service = SalesScanService(db_session)
    await service.run_scan(tenant_ctx)

    reminder = (await db_session.execute(
        select(AISalesTaskORM).where(AISalesTaskORM.task_type == "payment_reminder")
    )).scalar_one()
    await SalesTaskService(db_session).apply(
        tenant_ctx, reminder.id, SalesTaskUpdate(action=SalesTaskAction.COMPLETE),
    )

    result = await service.run_scan(tenant_ctx)
    assert result.tasks_created == 1
    assert result.tasks_updated == 1


@pytest.mark.asyncio
async def test_empty_tenant_scan_succeeds(client: AsyncClient, db_session: AsyncSession):
    resp = await client.post(f"{BASE}/scan")
    assert resp.status_code == 200
    assert resp.json()["totalTasksGenerated"] == 0


@pytest.mark.asyncio
async def test_ai_scan_for_entitled_tenant(db_session: AsyncSession, tenant_ctx, monkeypatch):
    monkeypatch.setattr(get_settings(), "ai_provider", "mock")
    await add_tenant(db_session, tenant_ctx.tenant_id, plan_code="pro", subscription_status="active")
    ids = await _seed_pipeline(db_session)

    reply = json.dumps([{
        "taskType": "payment_reminder",
        "priority": "high",
        "title": "Chase INV-001",
        "description": "Overdue for 45 days",
        "aiRationale": "Large balance outstanding",
        "entityType": "invoice",
        "entityId": ids["invoice"],
        "suggestedActions": [{"action": "Phone accounts payable", "type": "call"}],
        "potentialValue": 8000,
        "confidence": 88,
    }])
    adapter = ScriptedAdapter(reply)

    result = await SalesScanService(db_session, adapter_factory=lambda: adapter).run_scan(tenant_ctx)

    assert result.task_source == TaskSourceName.AI
    assert result.tasks_created == 1
    task = (await db_session.execute(select(AISalesTaskORM))).scalar_one()
    assert task.title == "Chase INV-001"
    assert task.scan_score == 88
    assert task.suggested_actions == [{"action": "Phone accounts payable", "channel": "call"}]

    usage = (await db_session.execute(select(AIUsageDailyORM))).scalar_one()
    assert usage.requests == 1
    assert usage.tokens_in == 120
    assert usage.tokens_out == 40


@pytest.mark.asyncio
async def test_failing_provider_falls_back_to_rules(db_session: AsyncSession, tenant_ctx, monkeypatch):
    monkeypatch.setattr(get_settings(), "ai_provider", "mock")
    await add_tenant(db_session, tenant_ctx.tenant_id, plan_code="pro", subscription_status="active")
    await _seed_pipeline(db_session)
    adapter = ScriptedAdapter(RuntimeError("provider timeout"))

    result = await SalesScanService(db_session, adapter_factory=lambda: adapter).run_scan(tenant_ctx)

    assert len(adapter.calls) == 1
    assert result.task_source == TaskSourceName.RULES
    assert result.tasks_created == 2
    log = (await db_session.execute(select(AISalesScanLogORM))).scalar_one()
    assert log.status == "completed"
    assert log.task_source == "rules"


@pytest.mark.asyncio
async def test_unentitled_tenant_never_calls_provider(db_session: AsyncSession, tenant_ctx, monkeypatch):
    monkeypatch.setattr(get_settings(), "ai_provider", "mock")
    await add_tenant(db_session, tenant_ctx.tenant_id, plan_code="starter", subscription_status="active")
    await _seed_pipeline(db_session)
    adapter = ScriptedAdapter("[]")

    result = await SalesScanService(db_session, adapter_factory=lambda: adapter).run_scan(
        tenant_ctx, TriggerType.SCHEDULED,
    )

    assert adapter.calls == []
    assert result.task_source == TaskSourceName.RULES


@pytest.mark.asyncio
async def test_failed_scan_is_logged(client: AsyncClient, db_session: AsyncSession, monkeypatch):
    await _seed_pipeline(db_session)

    async def broken_upsert(self, ctx, tasks, scan_id, now):
        raise RuntimeError("task table unavailable")

    monkeypatch.setattr(TaskUpserter, "upsert", broken_upsert)

    resp = await client.post(f"{BASE}/scan")
    assert resp.status_code == 500
    assert resp.json() == {"detail": "Internal server error"}

    log = (await db_session.execute(select(AISalesScanLogORM))).scalar_one()
    assert log.status == "failed"
    assert log.error_message == "task table unavailable"
    assert log.completed_at is not None
    assert (await db_session.execute(select(AISalesTaskORM))).scalars().all() == []


@pytest.mark.asyncio
async def test_invalid_trigger_type_rejected(client: AsyncClient, db_session: AsyncSession):
    resp = await client.post(f"{BASE}/scan", json={"triggerType": "telepathy"})
    assert resp.status_code == 422
