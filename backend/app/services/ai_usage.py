"""Daily AI usage metering per tenant."""
from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.logging import get_logger
from backend.app.core.tenant import TenantContext
from backend.app.core.timeutil import utcnow
from backend.app.models.ai_usage_orm import AIUsageDailyORM
from backend.app.services.llm_adapter import TokenUsage

logger = get_logger(__name__)


class AIUsageMeter:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(self, ctx: TenantContext, usage: TokenUsage, day: Optional[date] = None) -> AIUsageDailyORM:
        """Add one request and its tokens to the tenant's counter for ``day`` (UTC today by default)."""
        day = day or utcnow().date()
        result = await self.session.execute(
            select(AIUsageDailyORM).where(
                AIUsageDailyORM.tenant_id == ctx.tenant_id,
                AIUsageDailyORM.usage_date == day,
            )
        )
        row = result.scalar_one_or_none()
        if row is None:
            row = AIUsageDailyORM(tenant_id=ctx.tenant_id, usage_date=day, requests=0, tokens_in=0, tokens_out=0)
            self.session.add(row)

        row.requests += 1
        row.tokens_in += usage.prompt_tokens
        row.tokens_out += usage.completion_tokens
        await self.session.flush()
        return row

    def for_tenant(self, ctx: TenantContext):
        """Bind the meter to a tenant, in the shape LLMTaskSource expects."""
        async def _meter(usage: TokenUsage) -> None:
            await self.record(ctx, usage)
        return _meter
