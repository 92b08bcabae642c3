"""
Pytest configuration and fixtures.
"""

import os
from typing import AsyncGenerator

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("AI_PROVIDER", "none")

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from backend.app.main import app
from backend.app.core.database import Base, get_db, get_session_factory
from backend.app.core.resilience import llm_circuit_breaker
from backend.app.core.security import ROLE_SCOPES, Role, User, get_current_user
from backend.app.core.tenant import TenantContext
from tests.data.sales_data import TEST_TENANT

# Import all models to register them with Base.metadata
import backend.app.models  # noqa: F401

# Use in-memory SQLite for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

@pytest.fixture(scope="session")
def session_factory() -> async_sessionmaker[AsyncSession]:
    """Returns the session factory for testing."""
    return TestingSessionLocal

@pytest.fixture(autouse=True)
def reset_llm_breaker():
    llm_circuit_breaker.reset()
    yield
    llm_circuit_breaker.reset()

@pytest.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Creates a fresh database for a test; tables are dropped afterwards.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestingSessionLocal() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

@pytest.fixture
def tenant_ctx() -> TenantContext:
    return TenantContext(tenant_id=TEST_TENANT, actor="test-user", user_id="test-user-id")

def _override_db(db_session: AsyncSession):
    async def override_get_db():
        yield db_session
    return override_get_db

@pytest.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    Test client authenticated as an admin of the test tenant.
    """
    async def override_get_current_user():
        return User(
            username="test-user",
            role=Role.ADMIN.value,
            scopes=ROLE_SCOPES[Role.ADMIN],
            tenant_id=TEST_TENANT,
            user_id="test-user-id",
        )

    app.dependency_overrides[get_db] = _override_db(db_session)
    app.dependency_overrides[get_session_factory] = lambda: TestingSessionLocal
    app.dependency_overrides[get_current_user] = override_get_current_user

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()

@pytest.fixture(scope="function")
async def token_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    Test client with real JWT validation; tests send their own Authorization header.
    """
    app.dependency_overrides[get_db] = _override_db(db_session)
    app.dependency_overrides[get_session_factory] = lambda: TestingSessionLocal

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
