"""
Customer Health Scoring Service.

Combines the five sub-scores into a weighted overall score, classifies it
into a risk tier and persists one health record per (tenant, customer).
Also serves the read side: the filtered health list and the at-risk view
with derived risk factors and recommendations.
"""
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import select, func, case, or_
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.logging import get_logger
from backend.app.core.tenant import TenantContext
from backend.app.core.timeutil import utcnow, as_utc, days_between
from backend.app.models.health_score_orm import CustomerHealthScoreORM
from backend.app.models.party_orm import PartyORM
from backend.app.models.sales_orm import SalesActivityORM, SalesDocORM
from backend.app.schemas.customer_health import (
    AtRiskCustomer,
    HealthMetricsOut,
    HealthOrderBy,
    HealthScoreListItem,
    HealthScoreOut,
    RiskLevel,
    ScoreTrend,
    SubScores,
)
from backend.app.services.health_metrics import MetricAggregator, compute_sub_scores

logger = get_logger(__name__)

# Weights in percent so the overall score is computed in integers
SCORE_WEIGHTS = {
    "payment": 30,
    "engagement": 20,
    "order_frequency": 20,
    "growth": 15,
    "issue": 15,
}

AT_RISK_LIMIT = 50
MAX_LIST_LIMIT = 200
DEFAULT_LIST_LIMIT = 50


class CustomerNotFoundError(Exception):
    pass


def compute_overall_score(scores: SubScores) -> int:
    """Weighted sum of the sub-scores, rounded half-up to an integer in [0, 100]."""
    weighted = sum(getattr(scores, name) * weight for name, weight in SCORE_WEIGHTS.items())
    return (weighted + 50) // 100


def classify_risk(overall: int) -> RiskLevel:
    if overall >= 70:
        return RiskLevel.LOW
    if overall >= 50:
        return RiskLevel.MEDIUM
    if overall >= 30:
        return RiskLevel.HIGH
    return RiskLevel.CRITICAL


def derive_risk_factors(scores: SubScores) -> List[str]:
    factors = []
    if scores.payment < 50:
        factors.append("payment_delays")
    if scores.engagement < 50:
        factors.append("low_engagement")
    if scores.order_frequency < 50:
        factors.append("declining_orders")
    if scores.issue < 70:
        factors.append("multiple_issues")
    return factors


def at_risk_guidance(
    record: CustomerHealthScoreORM,
    days_without_order: int,
    days_since_last_activity: Optional[int],
) -> Tuple[List[str], List[str]]:
    """Human-readable risk factors and recommended next steps for an at-risk customer."""
    factors = list(record.risk_factors or [])
    recommendations = []

    def add_factor(text: str) -> None:
        if text not in factors:
            factors.append(text)

    if record.days_since_last_order and record.days_since_last_order > days_without_order:
        add_factor(f"No orders in {record.days_since_last_order} days")
        recommendations.append("Call to check in and understand current needs")
    if record.score_trend == ScoreTrend.DECLINING.value:
        add_factor("Health score declining")
        recommendations.append("Review account history and schedule meeting")
    if record.payment_delay_days_avg and record.payment_delay_days_avg > 30:
        add_factor("Payment delays")
        recommendations.append("Discuss payment terms and follow up on outstanding")
    if record.issue_count_30d and record.issue_count_30d > 2:
        add_factor("Multiple recent issues")
        recommendations.append("Review and resolve outstanding issues")

    if not recommendations:
        recommendations = ["Schedule a check-in call", "Review if relationship is still active"]

    if days_since_last_activity and days_since_last_activity > 60:
        add_factor(f"Last interaction {days_since_last_activity} days ago")

    return factors, recommendations


# critical first when sorting by tier
_RISK_SEVERITY = case(
    (CustomerHealthScoreORM.risk_level == RiskLevel.CRITICAL.value, 4),
    (CustomerHealthScoreORM.risk_level == RiskLevel.HIGH.value, 3),
    (CustomerHealthScoreORM.risk_level == RiskLevel.MEDIUM.value, 2),
    else_=1,
)


class HealthScoreService:
    """
    Recalculates and queries customer health scores. All methods are scoped
    by the TenantContext they receive.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.aggregator = MetricAggregator(session)

    async def _get_customer(self, ctx: TenantContext, customer_id: str) -> PartyORM:
        result = await self.session.execute(
            select(PartyORM).where(PartyORM.id == customer_id, PartyORM.tenant_id == ctx.tenant_id)
        )
        customer = result.scalar_one_or_none()
        if customer is None:
            raise CustomerNotFoundError(f"Customer {customer_id} not found")
        return customer

    async def recalculate(
        self, ctx: TenantContext, customer_id: str, now: Optional[datetime] = None
    ) -> HealthScoreOut:
        """Aggregate, score and upsert the health record for one customer."""
        now = now or utcnow()
        customer = await self._get_customer(ctx, customer_id)

        metrics = await self.aggregator.collect(ctx, customer_id, now)
        scores = compute_sub_scores(metrics, now)
        overall = compute_overall_score(scores)
        risk = classify_risk(overall)
        factors = derive_risk_factors(scores)
        days_since_order = days_between(metrics.last_order_at, now)

        result = await self.session.execute(
            select(CustomerHealthScoreORM).where(
                CustomerHealthScoreORM.tenant_id == ctx.tenant_id,
                CustomerHealthScoreORM.customer_id == customer_id,
            )
        )
        record = result.scalar_one_or_none()
        if record is None:
            record = CustomerHealthScoreORM(tenant_id=ctx.tenant_id, customer_id=customer_id)
            self.session.add(record)

        record.overall_score = overall
        record.payment_score = scores.payment
        record.engagement_score = scores.engagement
        record.order_frequency_score = scores.order_frequency
        record.growth_score = scores.growth
        record.issue_score = scores.issue
        record.risk_level = risk.value
        record.score_trend = ScoreTrend.STABLE.value
        record.risk_factors = factors
        record.total_orders = metrics.total_orders
        record.total_revenue = round(metrics.total_revenue, 2)
        record.avg_order_value = round(metrics.avg_order_value, 2)
        record.days_since_last_order = days_since_order
        record.payment_delay_days_avg = metrics.payment_delay_days_avg
        record.issue_count_30d = metrics.issue_count_30d
        record.calculated_at = now
        record.updated_at = now
        await self.session.flush()

        logger.info(
            f"Health score for customer {customer_id}: {overall} ({risk.value})",
            extra={"extra_data": {"customer_id": customer_id, "overall": overall, "risk_level": risk.value}},
        )

        return HealthScoreOut(
            customer_id=customer_id,
            customer_name=customer.name,
            overall=overall,
            payment=scores.payment,
            engagement=scores.engagement,
            order_frequency=scores.order_frequency,
            growth=scores.growth,
            issues=scores.issue,
            risk_level=risk,
            risk_factors=factors,
            trend=ScoreTrend.STABLE,
            metrics=HealthMetricsOut(
                total_orders=metrics.total_orders,
                total_revenue=record.total_revenue,
                avg_order_value=record.avg_order_value,
                days_since_last_order=days_since_order,
            ),
            calculated_at=now,
        )

    async def list_scores(
        self,
        ctx: TenantContext,
        risk_level: Optional[RiskLevel] = None,
        min_score: Optional[int] = None,
        max_score: Optional[int] = None,
        order_by: HealthOrderBy = HealthOrderBy.OVERALL_SCORE,
        limit: int = DEFAULT_LIST_LIMIT,
        offset: int = 0,
    ) -> Tuple[List[HealthScoreListItem], int]:
        limit = max(1, min(limit, MAX_LIST_LIMIT))
        offset = max(0, offset)

        conditions = [CustomerHealthScoreORM.tenant_id == ctx.tenant_id]
        if risk_level is not None:
            conditions.append(CustomerHealthScoreORM.risk_level == risk_level.value)
        if min_score is not None:
            conditions.append(CustomerHealthScoreORM.overall_score >= min_score)
        if max_score is not None:
            conditions.append(CustomerHealthScoreORM.overall_score <= max_score)

        ordering = {
            HealthOrderBy.OVERALL_SCORE: CustomerHealthScoreORM.overall_score.desc(),
            HealthOrderBy.PAYMENT_SCORE: CustomerHealthScoreORM.payment_score.desc(),
            HealthOrderBy.RISK_LEVEL: _RISK_SEVERITY.desc(),
        }[order_by]

        total = (await self.session.execute(
            select(func.count(CustomerHealthScoreORM.id)).where(*conditions)
        )).scalar_one()

        rows = (await self.session.execute(
            select(CustomerHealthScoreORM, PartyORM)
            .outerjoin(
                PartyORM,
                (PartyORM.id == CustomerHealthScoreORM.customer_id)
                & (PartyORM.tenant_id == CustomerHealthScoreORM.tenant_id),
            )
            .where(*conditions)
            .order_by(ordering, CustomerHealthScoreORM.customer_id)
            .limit(limit)
            .offset(offset)
        )).all()

        items = [
            HealthScoreListItem(
                customer_id=score.customer_id,
                customer_name=party.name if party else None,
                customer_code=party.code if party else None,
                customer_type=party.type if party else None,
                is_active=party.is_active if party else None,
                overall_score=score.overall_score,
                payment_score=score.payment_score,
                engagement_score=score.engagement_score,
                order_frequency_score=score.order_frequency_score,
                growth_score=score.growth_score,
                issue_score=score.issue_score,
                risk_level=score.risk_level,
                score_trend=score.score_trend,
                risk_factors=score.risk_factors or [],
                total_orders=score.total_orders,
                total_revenue=score.total_revenue or 0,
                avg_order_value=score.avg_order_value or 0,
                days_since_last_order=score.days_since_last_order,
                calculated_at=as_utc(score.calculated_at),
            )
            for score, party in rows
        ]
        return items, total

    async def list_at_risk(
        self,
        ctx: TenantContext,
        days_without_order: int = 90,
        include_declining: bool = True,
        now: Optional[datetime] = None,
    ) -> List[AtRiskCustomer]:
        now = now or utcnow()
        tier_filter = CustomerHealthScoreORM.risk_level.in_([RiskLevel.HIGH.value, RiskLevel.CRITICAL.value])
        if include_declining:
            tier_filter = or_(tier_filter, CustomerHealthScoreORM.score_trend == ScoreTrend.DECLINING.value)

        rows = (await self.session.execute(
            select(CustomerHealthScoreORM, PartyORM)
            .outerjoin(
                PartyORM,
                (PartyORM.id == CustomerHealthScoreORM.customer_id)
                & (PartyORM.tenant_id == CustomerHealthScoreORM.tenant_id),
            )
            .where(CustomerHealthScoreORM.tenant_id == ctx.tenant_id, tier_filter)
            .order_by(_RISK_SEVERITY.desc(), CustomerHealthScoreORM.overall_score.asc())
            .limit(AT_RISK_LIMIT)
        )).all()

        customers = []
        for score, party in rows:
            last_activity = (await self.session.execute(
                select(func.max(SalesActivityORM.activity_date)).where(
                    SalesActivityORM.tenant_id == ctx.tenant_id,
                    SalesActivityORM.customer_id == score.customer_id,
                )
            )).scalar_one_or_none()
            last_order = (await self.session.execute(
                select(func.max(SalesDocORM.doc_date)).where(
                    SalesDocORM.tenant_id == ctx.tenant_id,
                    SalesDocORM.party_id == score.customer_id,
                    SalesDocORM.doc_type == "invoice",
                )
            )).scalar_one_or_none()

            days_since_activity = days_between(last_activity, now)
            factors, recommendations = at_risk_guidance(score, days_without_order, days_since_activity)

            customers.append(AtRiskCustomer(
                customer_id=score.customer_id,
                customer_name=party.name if party else None,
                customer_code=party.code if party else None,
                overall_score=score.overall_score,
                risk_level=score.risk_level,
                score_trend=score.score_trend,
                total_revenue=score.total_revenue or 0,
                total_orders=score.total_orders or 0,
                days_since_last_order=score.days_since_last_order,
                last_order_date=as_utc(last_order),
                last_activity_date=as_utc(last_activity),
                days_since_last_activity=days_since_activity,
                risk_factors=factors,
                recommendations=recommendations,
            ))
        return customers
