"""
Customer metric aggregation and sub-score rules.

The aggregator reads invoices and activities for a single customer of a
single tenant; the sub-score functions are pure and map those figures onto
0-100 scores. Missing data always yields a neutral default, never an error.
"""
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select, func, case, and_
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.logging import get_logger
from backend.app.core.tenant import TenantContext
from backend.app.core.timeutil import as_utc, days_between
from backend.app.models.sales_orm import SalesDocORM, SalesActivityORM
from backend.app.schemas.customer_health import CustomerMetrics, SubScores

logger = get_logger(__name__)

RECENT_WINDOW_DAYS = 30
NEUTRAL_SCORE = 50
GROWTH_SCORE = 50


def clamp_score(value: float) -> int:
    return int(max(0, min(100, value)))


def round_half_up(value: float) -> int:
    return int((value * 2 + 1) // 2)


def payment_score(total_invoices: int, paid: int, overdue: int) -> int:
    if total_invoices <= 0:
        return NEUTRAL_SCORE
    raw = paid / total_invoices * 100 - overdue / total_invoices * 50
    return clamp_score(round_half_up(raw))


def engagement_score(days_since_activity: Optional[int]) -> int:
    if days_since_activity is None:
        return NEUTRAL_SCORE
    if days_since_activity <= 7:
        return 100
    if days_since_activity <= 30:
        return 80
    if days_since_activity <= 90:
        return 60
    return 40


def order_frequency_score(recent_orders: int) -> int:
    if recent_orders >= 4:
        return 100
    if recent_orders >= 2:
        return 80
    if recent_orders >= 1:
        return 60
    return 40


def issue_score(recent_issues: int) -> int:
    if recent_issues == 0:
        return 100
    if recent_issues <= 2:
        return 60
    return 40


def compute_sub_scores(metrics: CustomerMetrics, now: datetime) -> SubScores:
    return SubScores(
        payment=payment_score(metrics.total_invoices, metrics.paid_invoices, metrics.overdue_invoices),
        engagement=engagement_score(days_between(metrics.last_activity_at, now)),
        order_frequency=order_frequency_score(metrics.recent_orders),
        # No historical series to compare against yet
        growth=GROWTH_SCORE,
        issue=issue_score(metrics.issue_count_30d),
    )


class MetricAggregator:
    """Reads the raw figures behind a customer's health score."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _invoice_filter(self, ctx: TenantContext, customer_id: str):
        return and_(
            SalesDocORM.tenant_id == ctx.tenant_id,
            SalesDocORM.party_id == customer_id,
            SalesDocORM.doc_type == "invoice",
        )

    async def collect(self, ctx: TenantContext, customer_id: str, now: datetime) -> CustomerMetrics:
        window_start = now - timedelta(days=RECENT_WINDOW_DAYS)
        invoices = self._invoice_filter(ctx, customer_id)

        invoice_row = (await self.session.execute(
            select(
                func.count(SalesDocORM.id),
                func.sum(case((SalesDocORM.payment_status == "paid", 1), else_=0)),
                func.sum(case((SalesDocORM.payment_status == "overdue", 1), else_=0)),
                func.sum(case((SalesDocORM.doc_date > window_start, 1), else_=0)),
                func.max(SalesDocORM.doc_date),
                func.coalesce(func.sum(SalesDocORM.total_amount), 0),
                func.coalesce(func.avg(SalesDocORM.total_amount), 0),
            ).where(invoices)
        )).one()
        total, paid, overdue, recent, last_order_at, revenue, avg_value = invoice_row

        last_activity_at = (await self.session.execute(
            select(func.max(SalesActivityORM.activity_date)).where(
                SalesActivityORM.tenant_id == ctx.tenant_id,
                SalesActivityORM.customer_id == customer_id,
            )
        )).scalar_one_or_none()

        issue_count = (await self.session.execute(
            select(func.count(SalesActivityORM.id)).where(
                SalesActivityORM.tenant_id == ctx.tenant_id,
                SalesActivityORM.customer_id == customer_id,
                SalesActivityORM.activity_type == "customer_issue",
                SalesActivityORM.activity_date >= window_start,
            )
        )).scalar_one()

        delay_rows = (await self.session.execute(
            select(SalesDocORM.due_date, SalesDocORM.paid_at).where(
                invoices,
                SalesDocORM.payment_status == "paid",
                SalesDocORM.due_date.is_not(None),
                SalesDocORM.paid_at.is_not(None),
            )
        )).all()
        delays = [
            max(0.0, (as_utc(paid_at) - as_utc(due)).total_seconds() / 86400)
            for due, paid_at in delay_rows
        ]

        metrics = CustomerMetrics(
            total_invoices=total or 0,
            paid_invoices=paid or 0,
            overdue_invoices=overdue or 0,
            last_activity_at=as_utc(last_activity_at),
            total_orders=total or 0,
            recent_orders=recent or 0,
            last_order_at=as_utc(last_order_at),
            total_revenue=float(revenue or 0),
            avg_order_value=float(avg_value or 0),
            issue_count_30d=issue_count or 0,
            payment_delay_days_avg=round(sum(delays) / len(delays), 1) if delays else 0.0,
        )
        logger.debug(
            f"Collected metrics for customer {customer_id}",
            extra={"extra_data": {"customer_id": customer_id, "invoices": metrics.total_invoices}},
        )
        return metrics
