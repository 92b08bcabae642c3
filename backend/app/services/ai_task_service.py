"""
AI Task Queue Service.

Cross-domain suggestions (data hygiene, purchasing, inventory, service jobs)
that never execute on their own: a human approves or rejects each one.
Approving certain task types applies their side effect to the linked record.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, func, case, or_, update
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.logging import get_logger
from backend.app.core.tenant import TenantContext
from backend.app.core.timeutil import utcnow
from backend.app.models.ai_task_orm import AITaskORM
from backend.app.models.people_orm import PersonORM
from backend.app.models.user_orm import UserORM
from backend.app.schemas.ai_tasks import (
    OPEN_AI_TASK_STATUSES,
    AITaskCreate,
    AITaskResolution,
    AITaskStatus,
    AITaskSummary,
    AITaskType,
    AITaskUpdate,
)
from backend.app.services.audit import log_audit_event

logger = get_logger(__name__)

DEFAULT_LIMIT = 50
MAX_LIMIT = 200

_PRIORITY_ORDER = case(
    (AITaskORM.priority == "urgent", 1),
    (AITaskORM.priority == "high", 2),
    (AITaskORM.priority == "normal", 3),
    else_=4,
)


class AITaskError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AITaskNotFoundError(AITaskError):
    status_code = 404


class DuplicateAITaskError(AITaskError):
    status_code = 409

    def __init__(self, existing_task_id: str):
        super().__init__("Duplicate task already exists")
        self.existing_task_id = existing_task_id


def _person_details(person: Optional[PersonORM]) -> Optional[Dict[str, Any]]:
    if person is None:
        return None
    return {
        "id": person.id,
        "fullName": person.full_name,
        "primaryEmail": person.primary_email,
        "primaryPhone": person.primary_phone,
    }


class AITaskService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, ctx: TenantContext, data: AITaskCreate) -> AITaskORM:
        valid_types = {t.value for t in AITaskType}
        if data.task_type not in valid_types:
            raise AITaskError("Invalid taskType")

        if data.trigger_hash:
            existing = (await self.session.execute(
                select(AITaskORM.id).where(
                    AITaskORM.tenant_id == ctx.tenant_id,
                    AITaskORM.trigger_hash == data.trigger_hash,
                    AITaskORM.status.in_(OPEN_AI_TASK_STATUSES),
                ).limit(1)
            )).scalar_one_or_none()
            if existing:
                raise DuplicateAITaskError(existing)

        task = AITaskORM(
            tenant_id=ctx.tenant_id,
            task_type=data.task_type,
            status=AITaskStatus.PENDING.value,
            title=data.title,
            description=data.description,
            reasoning=data.reasoning,
            confidence_score=data.confidence_score,
            primary_entity_type=data.primary_entity_type,
            primary_entity_id=data.primary_entity_id,
            secondary_entity_type=data.secondary_entity_type,
            secondary_entity_id=data.secondary_entity_id,
            suggested_action=data.suggested_action or {},
            assigned_to_user_id=data.assigned_to_user_id,
            owner_role_name=data.owner_role_name,
            priority=data.priority.value,
            due_at=data.due_at,
            expires_at=data.expires_at,
            trigger_hash=data.trigger_hash,
            task_metadata=data.metadata or {},
            created_by=ctx.actor,
        )
        self.session.add(task)
        await self.session.flush()

        await log_audit_event(
            self.session, ctx, "ai_task", task.id, "ai_task_created",
            details={"taskType": data.task_type, "title": data.title},
        )
        return task

    async def list_tasks(
        self,
        ctx: TenantContext,
        status: Optional[str] = None,
        task_type: Optional[str] = None,
        priority: Optional[str] = None,
        assigned_to_user_id: Optional[str] = None,
        primary_entity_type: Optional[str] = None,
        primary_entity_id: Optional[str] = None,
        q: Optional[str] = None,
        limit: int = DEFAULT_LIMIT,
    ) -> Tuple[List[AITaskORM], AITaskSummary]:
        limit = max(1, min(limit, MAX_LIMIT))
        conditions = [AITaskORM.tenant_id == ctx.tenant_id]
        # Unknown status/type values are ignored rather than rejected
        if status and status in {s.value for s in AITaskStatus}:
            conditions.append(AITaskORM.status == status)
        if task_type and task_type in {t.value for t in AITaskType}:
            conditions.append(AITaskORM.task_type == task_type)
        if priority:
            conditions.append(AITaskORM.priority == priority)
        if assigned_to_user_id:
            conditions.append(AITaskORM.assigned_to_user_id == assigned_to_user_id)
        if primary_entity_type:
            conditions.append(AITaskORM.primary_entity_type == primary_entity_type)
        if primary_entity_id:
            conditions.append(AITaskORM.primary_entity_id == primary_entity_id)
        if q:
            pattern = f"%{q}%"
            conditions.append(or_(AITaskORM.title.ilike(pattern), AITaskORM.description.ilike(pattern)))

        result = await self.session.execute(
            select(AITaskORM)
            .where(*conditions)
            .order_by(_PRIORITY_ORDER, AITaskORM.created_at.desc(), AITaskORM.id)
            .limit(limit)
        )
        tasks = list(result.scalars())

        pending, in_review, total = (await self.session.execute(
            select(
                func.coalesce(func.sum(case((AITaskORM.status == AITaskStatus.PENDING.value, 1), else_=0)), 0),
                func.coalesce(func.sum(case((AITaskORM.status == AITaskStatus.IN_REVIEW.value, 1), else_=0)), 0),
                func.count(AITaskORM.id),
            ).where(AITaskORM.tenant_id == ctx.tenant_id)
        )).one()
        return tasks, AITaskSummary(pending=pending, in_review=in_review, total=total)

    async def get(self, ctx: TenantContext, task_id: str) -> AITaskORM:
        task = (await self.session.execute(
            select(AITaskORM).where(AITaskORM.tenant_id == ctx.tenant_id, AITaskORM.id == task_id)
        )).scalar_one_or_none()
        if task is None:
            raise AITaskNotFoundError("AI task not found")
        return task

    async def _person(self, ctx: TenantContext, person_id: str) -> Optional[PersonORM]:
        return (await self.session.execute(
            select(PersonORM).where(PersonORM.tenant_id == ctx.tenant_id, PersonORM.id == person_id)
        )).scalar_one_or_none()

    async def _user(self, ctx: TenantContext, user_id: str) -> Optional[UserORM]:
        return (await self.session.execute(
            select(UserORM).where(UserORM.tenant_id == ctx.tenant_id, UserORM.id == user_id)
        )).scalar_one_or_none()

    async def entity_details(self, ctx: TenantContext, task: AITaskORM) -> Dict[str, Any]:
        """Resolve the people/users a task points at, for the detail view."""
        details: Dict[str, Any] = {
            "primary_entity_details": None,
            "secondary_entity_details": None,
            "assignee_name": None,
        }
        if task.primary_entity_type == "person" and task.primary_entity_id:
            details["primary_entity_details"] = _person_details(await self._person(ctx, task.primary_entity_id))
        if task.secondary_entity_type == "person" and task.secondary_entity_id:
            details["secondary_entity_details"] = _person_details(await self._person(ctx, task.secondary_entity_id))
        elif task.secondary_entity_type == "user" and task.secondary_entity_id:
            user = await self._user(ctx, task.secondary_entity_id)
            if user:
                details["secondary_entity_details"] = {"id": user.id, "fullName": user.full_name, "email": user.email}
        if task.assigned_to_user_id:
            assignee = await self._user(ctx, task.assigned_to_user_id)
            details["assignee_name"] = assignee.full_name if assignee else None
        return details

    async def _apply_approval_side_effects(self, ctx: TenantContext, task: AITaskORM, now: datetime) -> None:
        action = task.suggested_action or {}
        person_id = action.get("personId")
        if not person_id:
            return

        if task.task_type == AITaskType.LINK_PERSON_TO_USER.value and action.get("userId"):
            await self.session.execute(
                update(PersonORM)
                .where(PersonORM.tenant_id == ctx.tenant_id, PersonORM.id == person_id)
                .values(linked_user_id=action["userId"])
            )
            await log_audit_event(
                self.session, ctx, "person", person_id, "person_linked_to_user",
                details={"userId": action["userId"], "taskId": task.id},
            )
        elif task.task_type == AITaskType.COMPLETE_QUICK_ADD.value:
            await self.session.execute(
                update(PersonORM)
                .where(PersonORM.tenant_id == ctx.tenant_id, PersonORM.id == person_id)
                .values(is_quick_add=False, quick_add_completed_at=now)
            )

    async def update(self, ctx: TenantContext, task_id: str, change: AITaskUpdate) -> AITaskORM:
        task = await self.get(ctx, task_id)
        provided = change.model_fields_set
        now = utcnow()
        changed: List[str] = []

        if change.resolution is not None:
            if task.status not in OPEN_AI_TASK_STATUSES:
                raise AITaskError(f"Cannot resolve task with status '{task.status}'")
            task.status = change.resolution.value
            task.resolved_at = now
            task.resolved_by = ctx.actor
            task.resolution_action = change.resolution.value
            task.resolution_notes = change.resolution_notes
            changed += ["status", "resolved_at", "resolution_action"]
            if change.resolution == AITaskResolution.APPROVED:
                await self._apply_approval_side_effects(ctx, task, now)
        elif change.status == AITaskStatus.IN_REVIEW and task.status == AITaskStatus.PENDING.value:
            task.status = AITaskStatus.IN_REVIEW.value
            changed.append("status")

        if "assigned_to_user_id" in provided:
            if change.assigned_to_user_id and await self._user(ctx, change.assigned_to_user_id) is None:
                raise AITaskNotFoundError("User not found")
            task.assigned_to_user_id = change.assigned_to_user_id or None
            changed.append("assigned_to_user_id")

        if change.priority is not None:
            task.priority = change.priority.value
            changed.append("priority")

        if "metadata" in provided:
            task.task_metadata = change.metadata
            changed.append("metadata")

        task.updated_at = now
        await self.session.flush()

        await log_audit_event(
            self.session, ctx, "ai_task", task.id, "ai_task_updated",
            details={
                "changes": changed,
                "resolution": change.resolution.value if change.resolution else None,
            },
        )
        return task

    async def expire_stale(self, ctx: TenantContext, now: Optional[datetime] = None) -> int:
        """Mark open tasks past their expiry as expired; returns how many changed."""
        now = now or utcnow()
        result = await self.session.execute(
            update(AITaskORM)
            .where(
                AITaskORM.tenant_id == ctx.tenant_id,
                AITaskORM.status.in_(OPEN_AI_TASK_STATUSES),
                AITaskORM.expires_at.is_not(None),
                AITaskORM.expires_at < now,
            )
            .values(status=AITaskStatus.EXPIRED.value, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            logger.info(f"Expired {result.rowcount} AI task(s) for tenant {ctx.tenant_id}")
        return result.rowcount or 0
