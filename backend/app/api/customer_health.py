"""
API Router for customer health scores.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.database import get_db
from backend.app.core.security import HEALTH_READ, HEALTH_WRITE
from backend.app.core.tenant import TenantContext, tenant_context
from backend.app.schemas.customer_health import (
    AtRiskFilters,
    AtRiskResponse,
    HealthOrderBy,
    HealthScoreListResponse,
    RecalculateResponse,
    RiskLevel,
)
from backend.app.services.health_scoring import (
    DEFAULT_LIST_LIMIT,
    MAX_LIST_LIMIT,
    CustomerNotFoundError,
    HealthScoreService,
)

router = APIRouter()


@router.get("", response_model=HealthScoreListResponse)
async def list_health_scores(
    risk_level: Optional[RiskLevel] = Query(None, alias="riskLevel"),
    min_score: Optional[int] = Query(None, alias="minScore", ge=0, le=100),
    max_score: Optional[int] = Query(None, alias="maxScore", ge=0, le=100),
    order_by: HealthOrderBy = Query(HealthOrderBy.OVERALL_SCORE, alias="orderBy"),
    limit: int = Query(DEFAULT_LIST_LIMIT),
    offset: int = Query(0),
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(tenant_context(HEALTH_READ)),
):
    """List health scores with their customer, filtered and paginated."""
    service = HealthScoreService(db)
    items, total = await service.list_scores(
        ctx, risk_level=risk_level, min_score=min_score, max_score=max_score,
        order_by=order_by, limit=limit, offset=offset,
    )
    return HealthScoreListResponse(
        customers=items,
        total=total,
        limit=max(1, min(limit, MAX_LIST_LIMIT)),
        offset=max(0, offset),
    )


@router.get("/at-risk", response_model=AtRiskResponse)
async def list_at_risk_customers(
    days_without_order: int = Query(90, alias="daysWithoutOrder", ge=0),
    include_decline_score: bool = Query(True, alias="includeDeclineScore"),
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(tenant_context(HEALTH_READ)),
):
    """
    Customers in the high or critical tier (and, by default, those with a
    declining trend), worst first, with recommended next steps.
    """
    service = HealthScoreService(db)
    customers = await service.list_at_risk(ctx, days_without_order, include_decline_score)
    return AtRiskResponse(
        at_risk_customers=customers,
        total=len(customers),
        filters=AtRiskFilters(days_without_order=days_without_order, include_decline_score=include_decline_score),
    )


@router.post("/{customer_id}/recalculate", response_model=RecalculateResponse)
async def recalculate_health_score(
    customer_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(tenant_context(HEALTH_WRITE)),
):
    """Recompute and store the health score of one customer."""
    service = HealthScoreService(db)
    try:
        score = await service.recalculate(ctx, customer_id)
    except CustomerNotFoundError:
        raise HTTPException(status_code=404, detail="Customer not found")
    return RecalculateResponse(health_score=score)
