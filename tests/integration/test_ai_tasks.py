"""
Integration tests for the generic AI task queue.
"""
from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.timeutil import utcnow
from backend.app.models.audit_orm import AuditEntryORM
from backend.app.models.people_orm import PersonORM
from tests.data.sales_data import OTHER_TENANT, add_person, add_user

BASE = "/api/v1/ai-tasks"


def _payload(**overrides) -> dict:
    body = {
        "taskType": "merge_duplicate_people",
        "title": "Merge duplicate contacts",
        "description": "Two people share the same email address",
        "confidenceScore": 80,
    }
    body.update(overrides)
    return body


@pytest.mark.asyncio
async def test_create_and_list(client: AsyncClient, db_session: AsyncSession):
    resp = await client.post(BASE, json=_payload(priority="high", metadata={"source": "hygiene-job"}))
    assert resp.status_code == 201, resp.text
    task_id = resp.json()["taskId"]

    await client.post(BASE, json=_payload(title="Low stock on widgets", taskType="low_stock_reorder"))

    body = (await client.get(BASE)).json()
    assert body["summary"] == {"pending": 2, "inReview": 0, "total": 2}
    assert body["tasks"][0]["id"] == task_id
    assert body["tasks"][0]["priority"] == "high"
    assert body["tasks"][0]["metadata"] == {"source": "hygiene-job"}
    assert body["tasks"][0]["createdBy"] == "test-user"

    filtered = (await client.get(BASE, params={"type": "low_stock_reorder"})).json()
    assert [t["title"] for t in filtered["tasks"]] == ["Low stock on widgets"]
    searched = (await client.get(BASE, params={"q": "duplicate"})).json()
    assert [t["id"] for t in searched["tasks"]] == [task_id]


@pytest.mark.asyncio
async def test_create_validation(client: AsyncClient, db_session: AsyncSession):
    resp = await client.post(BASE, json=_payload(taskType="paint_the_office"))
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Invalid taskType"
    assert (await client.post(BASE, json=_payload(title=""))).status_code == 422
    assert (await client.post(BASE, json=_payload(confidenceScore=101))).status_code == 422


@pytest.mark.asyncio
async def test_duplicate_trigger_hash_conflicts(client: AsyncClient, db_session: AsyncSession):
    first = await client.post(BASE, json=_payload(triggerHash="dup-people:abc"))
    assert first.status_code == 201

    resp = await client.post(BASE, json=_payload(triggerHash="dup-people:abc"))
    assert resp.status_code == 409
    assert resp.json()["existingTaskId"] == first.json()["taskId"]

    # resolved tasks no longer block the same trigger
    await client.put(f"{BASE}/{first.json()['taskId']}", json={"resolution": "rejected"})
    assert (await client.post(BASE, json=_payload(triggerHash="dup-people:abc"))).status_code == 201


@pytest.mark.asyncio
async def test_review_and_resolve(client: AsyncClient, db_session: AsyncSession):
    task_id = (await client.post(BASE, json=_payload())).json()["taskId"]

    resp = await client.put(f"{BASE}/{task_id}", json={"status": "in_review"})
    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert resp.json()["task"]["status"] == "in_review"

    resp = await client.put(f"{BASE}/{task_id}", json={"resolution": "approved", "resolutionNotes": "Merged"})
    task = resp.json()["task"]
    assert task["status"] == "approved"
    assert task["resolvedBy"] == "test-user"
    assert task["resolutionNotes"] == "Merged"

    resp = await client.put(f"{BASE}/{task_id}", json={"resolution": "rejected"})
    assert resp.status_code == 400

    actions = (await db_session.execute(
        select(AuditEntryORM.action).where(AuditEntryORM.entity_id == task_id)
    )).scalars().all()
    assert actions.count("ai_task_updated") == 2
    assert "ai_task_created" in actions


@pytest.mark.asyncio
async def test_approving_link_task_links_person(client: AsyncClient, db_session: AsyncSession):
    person = await add_person(db_session, "Sam Contact")
    user = await add_user(db_session, "sam", "Sam User")
    task_id = (await client.post(BASE, json=_payload(
        taskType="link_person_to_user",
        title="Link Sam to user account",
        primaryEntityType="person",
        primaryEntityId=person.id,
        secondaryEntityType="user",
        secondaryEntityId=user.id,
        suggestedAction={"personId": person.id, "userId": user.id},
        assignedToUserId=user.id,
    ))).json()["taskId"]

    detail = (await client.get(f"{BASE}/{task_id}")).json()
    assert detail["primaryEntityDetails"]["fullName"] == "Sam Contact"
    assert detail["secondaryEntityDetails"]["fullName"] == "Sam User"
    assert detail["assigneeName"] == "Sam User"

    resp = await client.put(f"{BASE}/{task_id}", json={"resolution": "approved"})
    assert resp.status_code == 200

    linked = (await db_session.execute(
        select(PersonORM.linked_user_id).where(PersonORM.id == person.id)
    )).scalar_one()
    assert linked == user.id


@pytest.mark.asyncio
async def test_approving_quick_add_task_completes_person(client: AsyncClient, db_session: AsyncSession):
    person = await add_person(db_session, "Quick Add", is_quick_add=True)
    task_id = (await client.post(BASE, json=_payload(
        taskType="complete_quick_add",
        title="Complete quick-add contact",
        suggestedAction={"personId": person.id},
    ))).json()["taskId"]

    await client.put(f"{BASE}/{task_id}", json={"resolution": "approved"})

    row = (await db_session.execute(
        select(PersonORM.is_quick_add, PersonORM.quick_add_completed_at).where(PersonORM.id == person.id)
    )).one()
    assert row.is_quick_add is False
    assert row.quick_add_completed_at is not None


@pytest.mark.asyncio
async def test_assign_to_unknown_user(client: AsyncClient, db_session: AsyncSession):
    task_id = (await client.post(BASE, json=_payload())).json()["taskId"]
    resp = await client.put(f"{BASE}/{task_id}", json={"assignedToUserId": "ghost"})
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_expire_stale_tasks(client: AsyncClient, db_session: AsyncSession):
    stale = (await client.post(BASE, json=_payload(
        expiresAt=(utcnow() - timedelta(days=1)).isoformat(),
    ))).json()["taskId"]
    fresh = (await client.post(BASE, json=_payload(
        title="Still relevant", expiresAt=(utcnow() + timedelta(days=1)).isoformat(),
    ))).json()["taskId"]

    resp = await client.post(f"{BASE}/expire")
    assert resp.json() == {"expired": 1}

    db_session.expire_all()
    assert (await client.get(f"{BASE}/{stale}")).json()["status"] == "expired"
    assert (await client.get(f"{BASE}/{fresh}")).json()["status"] == "pending"


@pytest.mark.asyncio
async def test_other_tenant_task_is_invisible(client: AsyncClient, db_session: AsyncSession):
    from backend.app.models.ai_task_orm import AITaskORM

    foreign = AITaskORM(tenant_id=OTHER_TENANT, task_type="low_stock_reorder", title="Theirs", description="x")
    db_session.add(foreign)
    await db_session.flush()

    assert (await client.get(f"{BASE}/{foreign.id}")).status_code == 404
    assert (await client.get(BASE)).json()["summary"]["total"] == 0
