"""
Integration tests for the OAuth2 token endpoint.
"""
import pytest
from httpx import AsyncClient
from jose import jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import get_settings
from backend.app.core.security import ROLE_SCOPES, Role
from backend.app.models.user_orm import UserORM
from backend.app.services.auth_service import hash_password, seed_default_users, verify_password
from tests.data.sales_data import TEST_TENANT, add_customer


@pytest.mark.asyncio
async def test_login_issues_tenant_scoped_token(token_client: AsyncClient, db_session: AsyncSession):
    user = UserORM(username="maria", full_name="Maria Manager", hashed_password=hash_password("pw-123"),
                   role=Role.MANAGER.value, tenant_id=TEST_TENANT)
    db_session.add(user)
    await db_session.flush()

    resp = await token_client.post("/api/v1/auth/token", data={"username": "maria", "password": "pw-123"})
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["token_type"] == "bearer"
    assert body["role"] == "manager"
    assert body["scopes"] == ROLE_SCOPES[Role.MANAGER]

    settings = get_settings()
    claims = jwt.decode(body["access_token"], settings.secret_key, algorithms=[settings.algorithm])
    assert claims["tenant_id"] == TEST_TENANT
    assert claims["uid"] == user.id

    customer = await add_customer(db_session, "Token Co")
    resp = await token_client.post(
        f"/api/v1/sales-customers/health/{customer.id}/recalculate",
        headers={"Authorization": f"Bearer {body['access_token']}"},
    )
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_login_rejects_bad_password(token_client: AsyncClient, db_session: AsyncSession):
    db_session.add(UserORM(username="rep", hashed_password=hash_password("right"),
                           role=Role.SALES_REP.value, tenant_id=TEST_TENANT))
    await db_session.flush()

    resp = await token_client.post("/api/v1/auth/token", data={"username": "rep", "password": "wrong"})
    assert resp.status_code == 401
    resp = await token_client.post("/api/v1/auth/token", data={"username": "nobody", "password": "x"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_seed_default_users_runs_once(db_session: AsyncSession):
    await seed_default_users(db_session)
    await seed_default_users(db_session)

    users = (await db_session.execute(select(UserORM).order_by(UserORM.username))).scalars().all()
    assert [u.username for u in users] == ["admin", "manager"]
    assert verify_password(get_settings().admin_password, users[0].hashed_password)
    assert not verify_password("not-it", users[0].hashed_password)
