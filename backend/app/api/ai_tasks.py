"""
API Router for the AI task queue (suggestions that require human confirmation).
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.database import get_db
from backend.app.core.security import AI_TASKS_READ, AI_TASKS_WRITE
from backend.app.core.tenant import TenantContext, tenant_context
from backend.app.schemas.ai_tasks import (
    AITaskCreate,
    AITaskCreated,
    AITaskDetail,
    AITaskListResponse,
    AITaskOut,
    AITaskUpdate,
    AITaskUpdated,
    ExpireResult,
)
from backend.app.services.ai_task_service import (
    DEFAULT_LIMIT,
    AITaskError,
    AITaskService,
    DuplicateAITaskError,
)

router = APIRouter()


def _task_error(error: AITaskError):
    if isinstance(error, DuplicateAITaskError):
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": error.message, "existingTaskId": error.existing_task_id},
        )
    raise HTTPException(status_code=error.status_code, detail=error.message)


@router.get("", response_model=AITaskListResponse)
async def list_ai_tasks(
    status_filter: Optional[str] = Query(None, alias="status"),
    task_type: Optional[str] = Query(None, alias="type"),
    priority: Optional[str] = Query(None),
    assigned_to_user_id: Optional[str] = Query(None, alias="assignedToUserId"),
    primary_entity_type: Optional[str] = Query(None, alias="primaryEntityType"),
    primary_entity_id: Optional[str] = Query(None, alias="primaryEntityId"),
    q: Optional[str] = Query(None),
    limit: int = Query(DEFAULT_LIMIT),
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(tenant_context(AI_TASKS_READ)),
):
    tasks, summary = await AITaskService(db).list_tasks(
        ctx,
        status=status_filter,
        task_type=task_type,
        priority=priority,
        assigned_to_user_id=assigned_to_user_id,
        primary_entity_type=primary_entity_type,
        primary_entity_id=primary_entity_id,
        q=q,
        limit=limit,
    )
    return AITaskListResponse(tasks=[AITaskOut.model_validate(t) for t in tasks], summary=summary)


@router.post("", response_model=AITaskCreated, status_code=status.HTTP_201_CREATED)
async def create_ai_task(
    data: AITaskCreate,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(tenant_context(AI_TASKS_WRITE)),
):
    """Queue a new suggestion. A pending task with the same triggerHash is a conflict."""
    try:
        task = await AITaskService(db).create(ctx, data)
    except AITaskError as e:
        return _task_error(e)
    return AITaskCreated(task_id=task.id)


@router.post("/expire", response_model=ExpireResult)
async def expire_ai_tasks(
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(tenant_context(AI_TASKS_WRITE)),
):
    return ExpireResult(expired=await AITaskService(db).expire_stale(ctx))


@router.get("/{task_id}", response_model=AITaskDetail)
async def get_ai_task(
    task_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(tenant_context(AI_TASKS_READ)),
):
    service = AITaskService(db)
    try:
        task = await service.get(ctx, task_id)
    except AITaskError as e:
        return _task_error(e)
    details = await service.entity_details(ctx, task)
    return AITaskDetail.model_validate(task).model_copy(update=details)


@router.put("/{task_id}", response_model=AITaskUpdated)
async def update_ai_task(
    task_id: str,
    change: AITaskUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(tenant_context(AI_TASKS_WRITE)),
):
    """Resolve (approve/reject), move to review, assign, reprioritise or annotate a task."""
    try:
        task = await AITaskService(db).update(ctx, task_id, change)
    except AITaskError as e:
        return _task_error(e)
    return AITaskUpdated(task=AITaskOut.model_validate(task))
