"""
Tenant resolution, cross-tenant isolation and scope checks with real JWTs.
"""
import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.security import Role, create_access_token
from tests.data.sales_data import OTHER_TENANT, TEST_TENANT, add_customer, add_health_score

HEALTH = "/api/v1/sales-customers/health"
TASKS = "/api/v1/sales-customers/ai-tasks"


def _headers(role: Role, tenant_id=TEST_TENANT, **extra) -> dict:
    claims = {"sub": f"{role.value}-user", "role": role.value}
    if tenant_id:
        claims["tenant_id"] = tenant_id
    token = create_access_token(claims)
    return {"Authorization": f"Bearer {token}", **extra}


async def _seed(db: AsyncSession):
    mine = await add_customer(db, "Mine Ltd")
    theirs = await add_customer(db, "Theirs Ltd", tenant_id=OTHER_TENANT)
    await add_health_score(db, mine.id, 40, "high")
    await add_health_score(db, theirs.id, 10, "critical", tenant_id=OTHER_TENANT)
    return mine, theirs


@pytest.mark.asyncio
async def test_reads_are_scoped_to_token_tenant(token_client: AsyncClient, db_session: AsyncSession):
    mine, theirs = await _seed(db_session)

    body = (await token_client.get(HEALTH, headers=_headers(Role.VIEWER))).json()
    assert [c["customerId"] for c in body["customers"]] == [mine.id]

    at_risk = (await token_client.get(f"{HEALTH}/at-risk", headers=_headers(Role.VIEWER))).json()
    assert [c["customerId"] for c in at_risk["atRiskCustomers"]] == [mine.id]

    resp = await token_client.post(f"{HEALTH}/{theirs.id}/recalculate", headers=_headers(Role.MANAGER))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_tenant_override_requires_admin(token_client: AsyncClient, db_session: AsyncSession):
    mine, theirs = await _seed(db_session)

    resp = await token_client.get(HEALTH, headers=_headers(Role.MANAGER, **{"X-Tenant-ID": OTHER_TENANT}))
    assert resp.status_code == 403
    assert "error" in resp.json()

    resp = await token_client.get(HEALTH, headers=_headers(Role.ADMIN, **{"X-Tenant-ID": OTHER_TENANT}))
    assert resp.status_code == 200
    assert [c["customerId"] for c in resp.json()["customers"]] == [theirs.id]

    # naming your own tenant is always fine
    resp = await token_client.get(HEALTH, headers=_headers(Role.VIEWER, **{"X-Tenant-ID": TEST_TENANT}))
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_token_without_tenant_is_rejected(token_client: AsyncClient, db_session: AsyncSession):
    resp = await token_client.get(HEALTH, headers=_headers(Role.VIEWER, tenant_id=None))
    assert resp.status_code == 400
    assert resp.json() == {"error": "No tenant associated with this user"}


@pytest.mark.asyncio
async def test_scopes_are_enforced(token_client: AsyncClient, db_session: AsyncSession):
    mine, _ = await _seed(db_session)

    resp = await token_client.post(f"{TASKS}/scan", headers=_headers(Role.VIEWER))
    assert resp.status_code == 403
    assert "not enough permissions" in resp.json()["detail"].lower()

    resp = await token_client.post(f"{HEALTH}/{mine.id}/recalculate", headers=_headers(Role.SALES_REP))
    assert resp.status_code == 403

    resp = await token_client.post(f"{TASKS}/scan", headers=_headers(Role.SALES_REP))
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_missing_or_bad_token(token_client: AsyncClient, db_session: AsyncSession):
    assert (await token_client.get(HEALTH)).status_code == 401
    resp = await token_client.get(HEALTH, headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401
