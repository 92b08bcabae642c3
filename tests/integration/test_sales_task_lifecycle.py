"""
Integration tests for sales task status changes (start, snooze, complete, dismiss).
"""
from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.timeutil import utcnow
from backend.app.models.audit_orm import AuditEntryORM
from backend.app.models.sales_task_orm import AISalesTaskORM
from tests.data.sales_data import OTHER_TENANT, TEST_TENANT

BASE = "/api/v1/sales-customers/ai-tasks"


async def _add_task(db: AsyncSession, status: str = "pending", priority: str = "medium",
                    tenant_id: str = TEST_TENANT, **extra) -> AISalesTaskORM:
    task = AISalesTaskORM(
        tenant_id=tenant_id, task_type="follow_up_customer", priority=priority, status=status,
        title="Check in with Acme", customer_id="cust-1", suggested_actions=[], **extra,
    )
    db.add(task)
    await db.flush()
    return task


@pytest.mark.asyncio
async def test_start_then_complete(client: AsyncClient, db_session: AsyncSession):
    task = await _add_task(db_session)

    resp = await client.patch(f"{BASE}/{task.id}", json={"action": "start"})
    assert resp.status_code == 200, resp.text
    assert resp.json()["status"] == "in_progress"

    resp = await client.patch(f"{BASE}/{task.id}", json={"action": "complete", "note": "Order placed"})
    body = resp.json()
    assert body["status"] == "completed"
    assert body["completedBy"] == "test-user"
    assert body["completionNote"] == "Order placed"
    assert body["completedAt"] is not None

    actions = (await db_session.execute(
        select(AuditEntryORM.action).where(AuditEntryORM.entity_id == task.id).order_by(AuditEntryORM.timestamp)
    )).scalars().all()
    assert actions == ["sales_task_start", "sales_task_complete"]


@pytest.mark.asyncio
async def test_terminal_states_reject_changes(client: AsyncClient, db_session: AsyncSession):
    done = await _add_task(db_session, status="completed")
    dismissed = await _add_task(db_session, status="dismissed")

    for task_id in (done.id, dismissed.id):
        for action in ("start", "complete", "dismiss", "unsnooze"):
            resp = await client.patch(f"{BASE}/{task_id}", json={"action": action})
            assert resp.status_code == 409, (task_id, action)


@pytest.mark.asyncio
async def test_illegal_transitions(client: AsyncClient, db_session: AsyncSession):
    in_progress = await _add_task(db_session, status="in_progress")
    pending = await _add_task(db_session)

    resp = await client.patch(f"{BASE}/{in_progress.id}", json={
        "action": "snooze", "snoozedUntil": (utcnow() + timedelta(days=1)).isoformat(),
    })
    assert resp.status_code == 409
    assert (await client.patch(f"{BASE}/{pending.id}", json={"action": "unsnooze"})).status_code == 409


@pytest.mark.asyncio
async def test_snooze_requires_future_time(client: AsyncClient, db_session: AsyncSession):
    task = await _add_task(db_session)

    assert (await client.patch(f"{BASE}/{task.id}", json={"action": "snooze"})).status_code == 400
    resp = await client.patch(f"{BASE}/{task.id}", json={
        "action": "snooze", "snoozedUntil": (utcnow() - timedelta(hours=1)).isoformat(),
    })
    assert resp.status_code == 400
    assert (await client.patch(f"{BASE}/{task.id}", json={"action": "teleport"})).status_code == 422


@pytest.mark.asyncio
async def test_snooze_hides_task_until_it_expires(client: AsyncClient, db_session: AsyncSession):
    snoozed = await _add_task(db_session)
    await _add_task(db_session, status="snoozed", snoozed_until=utcnow() - timedelta(hours=2))

    resp = await client.patch(f"{BASE}/{snoozed.id}", json={
        "action": "snooze", "snoozedUntil": (utcnow() + timedelta(days=2)).isoformat(),
    })
    assert resp.status_code == 200
    assert resp.json()["status"] == "snoozed"

    pending = (await client.get(BASE)).json()
    # only the task whose snooze has run out is back in the pending list
    assert pending["total"] == 1
    assert pending["tasks"][0]["id"] != snoozed.id

    assert (await client.get(BASE, params={"status": "snoozed"})).json()["total"] == 2
    assert (await client.get(BASE, params={"status": "all"})).json()["total"] == 2

    resp = await client.patch(f"{BASE}/{snoozed.id}", json={"action": "unsnooze"})
    assert resp.json()["status"] == "pending"
    assert resp.json()["snoozedUntil"] is None


@pytest.mark.asyncio
async def test_list_orders_by_priority_and_paginates(client: AsyncClient, db_session: AsyncSession):
    for priority in ("low", "critical", "medium", "high"):
        await _add_task(db_session, priority=priority)

    body = (await client.get(BASE)).json()
    assert [t["priority"] for t in body["tasks"]] == ["critical", "high", "medium", "low"]
    assert body["lastScan"] is None

    page = (await client.get(BASE, params={"limit": 2, "offset": 2})).json()
    assert page["total"] == 4
    assert [t["priority"] for t in page["tasks"]] == ["medium", "low"]


@pytest.mark.asyncio
async def test_cannot_touch_other_tenants_task(client: AsyncClient, db_session: AsyncSession):
    foreign = await _add_task(db_session, tenant_id=OTHER_TENANT)
    resp = await client.patch(f"{BASE}/{foreign.id}", json={"action": "dismiss"})
    assert resp.status_code == 404
    assert (await client.patch(f"{BASE}/missing", json={"action": "dismiss"})).status_code == 404
