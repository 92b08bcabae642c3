"""
Plan entitlements.

A tenant may use AI task generation when its plan includes the ``ai``
capability, its subscription is live, and an AI provider is configured.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.logging import get_logger
from backend.app.core.tenant import TenantContext
from backend.app.core.timeutil import utcnow, as_utc
from backend.app.models.tenant_orm import TenantORM
from backend.app.services.llm_adapter import provider_configured

logger = get_logger(__name__)

PLAN_CAPABILITIES = {
    "free": {"sales", "health"},
    "starter": {"sales", "health", "ai_tasks"},
    "pro": {"sales", "health", "ai_tasks", "ai"},
}

LIVE_SUBSCRIPTION_STATUSES = {"active", "trialing"}


def plan_allows(plan_code: Optional[str], capability: str) -> bool:
    return capability in PLAN_CAPABILITIES.get(plan_code or "free", set())


def subscription_is_live(tenant: TenantORM, now: datetime) -> bool:
    if tenant.subscription_status not in LIVE_SUBSCRIPTION_STATUSES:
        return False
    period_end = as_utc(tenant.current_period_end)
    return period_end is None or period_end >= now


async def can_use_ai(session: AsyncSession, ctx: TenantContext, now: Optional[datetime] = None) -> bool:
    if not provider_configured():
        return False

    tenant = (await session.execute(
        select(TenantORM).where(TenantORM.id == ctx.tenant_id)
    )).scalar_one_or_none()
    if tenant is None or tenant.status != "active":
        return False

    allowed = plan_allows(tenant.plan_code, "ai") and subscription_is_live(tenant, now or utcnow())
    if not allowed:
        logger.info(f"AI not enabled for tenant {ctx.tenant_id} (plan={tenant.plan_code})")
    return allowed
