"""
API Router for AI sales tasks: listing, scans and status changes.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.database import get_db
from backend.app.core.logging import get_logger
from backend.app.core.security import SALES_TASKS_READ, SALES_TASKS_WRITE
from backend.app.core.tenant import TenantContext, tenant_context
from backend.app.schemas.sales_tasks import (
    ScanLogOut,
    ScanRequest,
    ScanResult,
    SalesTaskListResponse,
    SalesTaskOut,
    SalesTaskUpdate,
)
from backend.app.services.sales_scan import SalesScanService
from backend.app.services.sales_task_service import (
    DEFAULT_LIMIT,
    InvalidTransitionError,
    SalesTaskNotFoundError,
    SalesTaskService,
    SalesTaskValidationError,
)

router = APIRouter()
logger = get_logger(__name__)


@router.get("", response_model=SalesTaskListResponse)
async def list_sales_tasks(
    status: str = Query("pending"),
    limit: int = Query(DEFAULT_LIMIT),
    offset: int = Query(0),
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(tenant_context(SALES_TASKS_READ)),
):
    """
    List tasks by status ("all" for every status). Pending includes snoozed
    tasks whose snooze has expired. The most recent scan is returned alongside.
    """
    tasks, total = await SalesTaskService(db).list_tasks(ctx, status=status, limit=limit, offset=offset)
    last_scan = await SalesScanService(db).latest_scan(ctx)
    return SalesTaskListResponse(
        tasks=[SalesTaskOut.model_validate(t) for t in tasks],
        total=total,
        last_scan=ScanLogOut.model_validate(last_scan) if last_scan else None,
    )


@router.post("/scan", response_model=ScanResult)
async def run_sales_scan(
    body: Optional[ScanRequest] = None,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(tenant_context(SALES_TASKS_WRITE)),
):
    """Scan the tenant's sales data and create or refresh follow-up tasks."""
    request = body or ScanRequest()
    try:
        return await SalesScanService(db).run_scan(ctx, request.trigger_type)
    except Exception:
        # Details are in the scan log and the error log
        raise HTTPException(status_code=500, detail="Internal server error")


@router.patch("/{task_id}", response_model=SalesTaskOut)
async def update_sales_task(
    task_id: str,
    change: SalesTaskUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(tenant_context(SALES_TASKS_WRITE)),
):
    """Start, snooze, unsnooze, complete or dismiss a task."""
    try:
        task = await SalesTaskService(db).apply(ctx, task_id, change)
    except SalesTaskNotFoundError:
        raise HTTPException(status_code=404, detail="Task not found")
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except SalesTaskValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return SalesTaskOut.model_validate(task)
