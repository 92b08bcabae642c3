"""
Task deduplication and upsert.

A candidate task matches an existing one when tenant, task type and all
three link columns agree (unset links match NULL) and the existing task is
still active (pending or snoozed). Matches are refreshed in place; anything
else becomes a new pending task. Nothing is ever deleted here.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.logging import get_logger
from backend.app.core.tenant import TenantContext
from backend.app.models.sales_task_orm import AISalesTaskORM
from backend.app.schemas.sales_tasks import (
    ACTIVE_TASK_STATUSES,
    LinkedEntityType,
    SalesTaskStatus,
    TaskSuggestion,
)

logger = get_logger(__name__)

_LINK_COLUMN = {
    LinkedEntityType.CUSTOMER: "customer_id",
    LinkedEntityType.LEAD: "lead_id",
    LinkedEntityType.QUOTE: "sales_doc_id",
    LinkedEntityType.INVOICE: "sales_doc_id",
}


@dataclass
class UpsertCounts:
    created: int = 0
    updated: int = 0


def link_columns(task: TaskSuggestion) -> dict:
    links = {"customer_id": None, "lead_id": None, "sales_doc_id": None}
    links[_LINK_COLUMN[task.entity_type]] = task.entity_id
    return links


def _matches(column, value: Optional[str]):
    return column.is_(None) if value is None else column == value


class TaskUpserter:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_active(self, ctx: TenantContext, task: TaskSuggestion) -> Optional[AISalesTaskORM]:
        links = link_columns(task)
        result = await self.session.execute(
            select(AISalesTaskORM)
            .where(
                AISalesTaskORM.tenant_id == ctx.tenant_id,
                AISalesTaskORM.task_type == task.task_type.value,
                _matches(AISalesTaskORM.customer_id, links["customer_id"]),
                _matches(AISalesTaskORM.lead_id, links["lead_id"]),
                _matches(AISalesTaskORM.sales_doc_id, links["sales_doc_id"]),
                AISalesTaskORM.status.in_(ACTIVE_TASK_STATUSES),
            )
            .order_by(AISalesTaskORM.created_at)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def upsert(
        self, ctx: TenantContext, tasks: Iterable[TaskSuggestion], scan_id: str, now: datetime
    ) -> UpsertCounts:
        counts = UpsertCounts()
        for task in tasks:
            actions = [a.model_dump(mode="json") for a in task.suggested_actions]
            existing = await self.find_active(ctx, task)

            if existing is not None:
                existing.priority = task.priority.value
                existing.description = task.description
                existing.ai_rationale = task.ai_rationale
                existing.suggested_actions = actions
                existing.potential_value = task.potential_value
                existing.scan_score = task.confidence
                existing.last_scan_id = scan_id
                existing.updated_at = now
                counts.updated += 1
            else:
                self.session.add(AISalesTaskORM(
                    tenant_id=ctx.tenant_id,
                    task_type=task.task_type.value,
                    priority=task.priority.value,
                    status=SalesTaskStatus.PENDING.value,
                    title=task.title,
                    description=task.description,
                    ai_rationale=task.ai_rationale,
                    suggested_actions=actions,
                    potential_value=task.potential_value,
                    risk_level=task.risk_level.value if task.risk_level else None,
                    due_date=task.due_date,
                    scan_score=task.confidence,
                    last_scan_id=scan_id,
                    created_at=now,
                    **link_columns(task),
                ))
                counts.created += 1
            # Flush so a duplicate later in the same batch finds this row
            await self.session.flush()

        logger.info(
            f"Upserted sales tasks for tenant {ctx.tenant_id}: "
            f"{counts.created} created, {counts.updated} updated",
        )
        return counts
