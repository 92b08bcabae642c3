"""
AI sales task queries and the task status state machine.

    pending -> in_progress | snoozed | completed | dismissed
    snoozed -> pending | completed | dismissed
    in_progress -> completed | dismissed

completed and dismissed are terminal. A snoozed task whose snooze has run
out is listed together with pending tasks.
"""
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import select, func, case, or_, and_
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.logging import get_logger
from backend.app.core.tenant import TenantContext
from backend.app.core.timeutil import utcnow, as_utc
from backend.app.models.sales_task_orm import AISalesTaskORM
from backend.app.schemas.sales_tasks import SalesTaskAction, SalesTaskStatus, SalesTaskUpdate
from backend.app.services.audit import log_audit_event

logger = get_logger(__name__)

DEFAULT_LIMIT = 20
MAX_LIMIT = 200

_S = SalesTaskStatus

# action -> (allowed source states, target state)
TRANSITIONS = {
    SalesTaskAction.START: ({_S.PENDING}, _S.IN_PROGRESS),
    SalesTaskAction.SNOOZE: ({_S.PENDING}, _S.SNOOZED),
    SalesTaskAction.UNSNOOZE: ({_S.SNOOZED}, _S.PENDING),
    SalesTaskAction.COMPLETE: ({_S.PENDING, _S.SNOOZED, _S.IN_PROGRESS}, _S.COMPLETED),
    SalesTaskAction.DISMISS: ({_S.PENDING, _S.SNOOZED, _S.IN_PROGRESS}, _S.DISMISSED),
}

_PRIORITY_RANK = case(
    (AISalesTaskORM.priority == "critical", 4),
    (AISalesTaskORM.priority == "high", 3),
    (AISalesTaskORM.priority == "medium", 2),
    else_=1,
)


class SalesTaskNotFoundError(Exception):
    pass


class InvalidTransitionError(Exception):
    pass


class SalesTaskValidationError(ValueError):
    pass


class SalesTaskService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_tasks(
        self,
        ctx: TenantContext,
        status: str = "pending",
        limit: int = DEFAULT_LIMIT,
        offset: int = 0,
        now: Optional[datetime] = None,
    ) -> Tuple[List[AISalesTaskORM], int]:
        now = now or utcnow()
        limit = max(1, min(limit, MAX_LIMIT))
        offset = max(0, offset)

        conditions = [AISalesTaskORM.tenant_id == ctx.tenant_id]
        if status == _S.PENDING.value:
            conditions.append(or_(
                AISalesTaskORM.status == _S.PENDING.value,
                and_(
                    AISalesTaskORM.status == _S.SNOOZED.value,
                    or_(AISalesTaskORM.snoozed_until.is_(None), AISalesTaskORM.snoozed_until <= now),
                ),
            ))
        elif status != "all":
            conditions.append(AISalesTaskORM.status == status)

        total = (await self.session.execute(
            select(func.count(AISalesTaskORM.id)).where(*conditions)
        )).scalar_one()
        result = await self.session.execute(
            select(AISalesTaskORM)
            .where(*conditions)
            .order_by(_PRIORITY_RANK.desc(), AISalesTaskORM.created_at.desc(), AISalesTaskORM.id)
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars()), total

    async def get(self, ctx: TenantContext, task_id: str) -> AISalesTaskORM:
        result = await self.session.execute(
            select(AISalesTaskORM).where(AISalesTaskORM.id == task_id, AISalesTaskORM.tenant_id == ctx.tenant_id)
        )
        task = result.scalar_one_or_none()
        if task is None:
            raise SalesTaskNotFoundError(f"Task {task_id} not found")
        return task

    async def apply(self, ctx: TenantContext, task_id: str, change: SalesTaskUpdate) -> AISalesTaskORM:
        task = await self.get(ctx, task_id)
        allowed_from, target = TRANSITIONS[change.action]
        current = _S(task.status)
        if current not in allowed_from:
            raise InvalidTransitionError(f"Cannot {change.action.value} a task that is {current.value}")

        now = utcnow()
        if change.action == SalesTaskAction.SNOOZE:
            if change.snoozed_until is None or as_utc(change.snoozed_until) <= now:
                raise SalesTaskValidationError("snoozedUntil must be a future timestamp")
            task.snoozed_until = as_utc(change.snoozed_until)
        elif change.action == SalesTaskAction.UNSNOOZE:
            task.snoozed_until = None
        elif target in (_S.COMPLETED, _S.DISMISSED):
            task.completed_at = now
            task.completed_by = ctx.actor
            task.completion_note = change.note

        task.status = target.value
        task.updated_at = now
        await self.session.flush()

        await log_audit_event(
            self.session, ctx, "ai_sales_task", task.id,
            action=f"sales_task_{change.action.value}",
            details={"from": current.value, "to": target.value, "note": change.note},
        )
        logger.info(f"Sales task {task.id}: {current.value} -> {target.value}")
        return task
