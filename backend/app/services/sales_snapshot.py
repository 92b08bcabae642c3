"""
Sales snapshot: the five candidate sets a scan reasons over.

Each set is a bounded, tenant-scoped query. The snapshot is consumed twice:
rendered as text for the language model, and read field by field by the
rule-based task generator.
"""
from datetime import datetime, timedelta
from typing import List, Optional

from pydantic import BaseModel
from sqlalchemy import select, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import get_settings
from backend.app.core.logging import get_logger
from backend.app.core.tenant import TenantContext
from backend.app.core.timeutil import as_utc
from backend.app.models.health_score_orm import CustomerHealthScoreORM
from backend.app.models.party_orm import PartyORM
from backend.app.models.sales_orm import LeadORM, SalesDocORM

logger = get_logger(__name__)

STALE_AFTER_DAYS = 7
DORMANT_AFTER_DAYS = 90
OPEN_LEAD_STATUSES = ("new", "contacted", "qualified")


class LeadCandidate(BaseModel):
    id: str
    contact_name: Optional[str] = None
    company: Optional[str] = None
    status: Optional[str] = None
    estimated_value: Optional[float] = None
    last_activity_date: Optional[datetime] = None
    source: Optional[str] = None


class QuoteCandidate(BaseModel):
    id: str
    doc_number: Optional[str] = None
    party_name: Optional[str] = None
    total_amount: float = 0.0
    sent_at: Optional[datetime] = None
    due_date: Optional[datetime] = None


class InvoiceCandidate(BaseModel):
    id: str
    doc_number: Optional[str] = None
    party_name: Optional[str] = None
    total_amount: float = 0.0
    due_date: Optional[datetime] = None
    reminder_count: int = 0


class AtRiskCandidate(BaseModel):
    customer_id: str
    customer_name: Optional[str] = None
    overall_score: int
    risk_level: Optional[str] = None
    trend: Optional[str] = None
    risk_factors: List[str] = []
    days_since_last_order: Optional[int] = None
    total_revenue: float = 0.0


class DormantCandidate(BaseModel):
    customer_id: str
    customer_name: Optional[str] = None
    total_orders: int = 0
    total_revenue: float = 0.0
    days_since_last_order: Optional[int] = None
    avg_order_value: float = 0.0


class SalesSnapshot(BaseModel):
    generated_at: datetime
    leads: List[LeadCandidate] = []
    quotes: List[QuoteCandidate] = []
    invoices: List[InvoiceCandidate] = []
    at_risk_customers: List[AtRiskCandidate] = []
    dormant_customers: List[DormantCandidate] = []

    def entities_scanned(self) -> dict:
        return {
            "customers": len(self.at_risk_customers) + len(self.dormant_customers),
            "leads": len(self.leads),
            "quotes": len(self.quotes),
            "invoices": len(self.invoices),
        }

    def is_empty(self) -> bool:
        return not any(self.entities_scanned().values())


def _party_join(doc_model=SalesDocORM):
    return and_(PartyORM.id == doc_model.party_id, PartyORM.tenant_id == doc_model.tenant_id)


class SalesSnapshotBuilder:
    def __init__(self, session: AsyncSession):
        self.session = session
        settings = get_settings()
        self.limit = settings.scan_candidate_limit
        self.dormant_limit = settings.scan_dormant_limit

    async def build(self, ctx: TenantContext, now: datetime) -> SalesSnapshot:
        snapshot = SalesSnapshot(
            generated_at=now,
            leads=await self._stale_leads(ctx, now),
            quotes=await self._stale_quotes(ctx, now),
            invoices=await self._overdue_invoices(ctx, now),
            at_risk_customers=await self._at_risk_customers(ctx),
            dormant_customers=await self._dormant_customers(ctx),
        )
        logger.info(
            f"Built sales snapshot for tenant {ctx.tenant_id}",
            extra={"extra_data": snapshot.entities_scanned()},
        )
        return snapshot

    async def _stale_leads(self, ctx: TenantContext, now: datetime) -> List[LeadCandidate]:
        cutoff = now - timedelta(days=STALE_AFTER_DAYS)
        result = await self.session.execute(
            select(LeadORM)
            .where(
                LeadORM.tenant_id == ctx.tenant_id,
                LeadORM.status.in_(OPEN_LEAD_STATUSES),
                or_(LeadORM.last_activity_date.is_(None), LeadORM.last_activity_date < cutoff),
            )
            .order_by(LeadORM.estimated_value.desc().nulls_last(), LeadORM.id)
            .limit(self.limit)
        )
        return [
            LeadCandidate(
                id=lead.id,
                contact_name=lead.contact_name,
                company=lead.company,
                status=lead.status,
                estimated_value=lead.estimated_value,
                last_activity_date=as_utc(lead.last_activity_date),
                source=lead.source,
            )
            for lead in result.scalars()
        ]

    async def _stale_quotes(self, ctx: TenantContext, now: datetime) -> List[QuoteCandidate]:
        cutoff = now - timedelta(days=STALE_AFTER_DAYS)
        result = await self.session.execute(
            select(SalesDocORM, PartyORM.name)
            .outerjoin(PartyORM, _party_join())
            .where(
                SalesDocORM.tenant_id == ctx.tenant_id,
                SalesDocORM.doc_type == "quote",
                SalesDocORM.status == "sent",
                SalesDocORM.sent_at < cutoff,
            )
            .order_by(SalesDocORM.total_amount.desc(), SalesDocORM.id)
            .limit(self.limit)
        )
        return [
            QuoteCandidate(
                id=doc.id,
                doc_number=doc.doc_number,
                party_name=party_name,
                total_amount=doc.total_amount or 0.0,
                sent_at=as_utc(doc.sent_at),
                due_date=as_utc(doc.due_date),
            )
            for doc, party_name in result.all()
        ]

    async def _overdue_invoices(self, ctx: TenantContext, now: datetime) -> List[InvoiceCandidate]:
        start_of_today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        result = await self.session.execute(
            select(SalesDocORM, PartyORM.name)
            .outerjoin(PartyORM, _party_join())
            .where(
                SalesDocORM.tenant_id == ctx.tenant_id,
                SalesDocORM.doc_type == "invoice",
                SalesDocORM.status == "sent",
                SalesDocORM.due_date < start_of_today,
            )
            .order_by(SalesDocORM.total_amount.desc(), SalesDocORM.id)
            .limit(self.limit)
        )
        return [
            InvoiceCandidate(
                id=doc.id,
                doc_number=doc.doc_number,
                party_name=party_name,
                total_amount=doc.total_amount or 0.0,
                due_date=as_utc(doc.due_date),
                reminder_count=doc.reminder_count or 0,
            )
            for doc, party_name in result.all()
        ]

    def _health_with_party(self):
        return select(CustomerHealthScoreORM, PartyORM.name).outerjoin(
            PartyORM,
            and_(
                PartyORM.id == CustomerHealthScoreORM.customer_id,
                PartyORM.tenant_id == CustomerHealthScoreORM.tenant_id,
            ),
        )

    async def _at_risk_customers(self, ctx: TenantContext) -> List[AtRiskCandidate]:
        result = await self.session.execute(
            self._health_with_party()
            .where(
                CustomerHealthScoreORM.tenant_id == ctx.tenant_id,
                or_(
                    CustomerHealthScoreORM.risk_level.in_(("high", "critical")),
                    CustomerHealthScoreORM.score_trend == "declining",
                ),
            )
            .order_by(CustomerHealthScoreORM.overall_score.asc(), CustomerHealthScoreORM.customer_id)
            .limit(self.limit)
        )
        return [
            AtRiskCandidate(
                customer_id=score.customer_id,
                customer_name=name,
                overall_score=score.overall_score,
                risk_level=score.risk_level,
                trend=score.score_trend,
                risk_factors=score.risk_factors or [],
                days_since_last_order=score.days_since_last_order,
                total_revenue=score.total_revenue or 0.0,
            )
            for score, name in result.all()
        ]

    async def _dormant_customers(self, ctx: TenantContext) -> List[DormantCandidate]:
        result = await self.session.execute(
            self._health_with_party()
            .where(
                CustomerHealthScoreORM.tenant_id == ctx.tenant_id,
                CustomerHealthScoreORM.total_orders > 0,
                CustomerHealthScoreORM.days_since_last_order > DORMANT_AFTER_DAYS,
            )
            .order_by(CustomerHealthScoreORM.total_revenue.desc(), CustomerHealthScoreORM.customer_id)
            .limit(self.dormant_limit)
        )
        return [
            DormantCandidate(
                customer_id=score.customer_id,
                customer_name=name,
                total_orders=score.total_orders,
                total_revenue=score.total_revenue or 0.0,
                days_since_last_order=score.days_since_last_order,
                avg_order_value=score.avg_order_value or 0.0,
            )
            for score, name in result.all()
        ]


def _date(value: Optional[datetime], missing: str) -> str:
    return value.date().isoformat() if value else missing


def _money(value: Optional[float]) -> str:
    return f"${(value or 0):,.2f}"


def _section(title: str, rows: List[str], empty: str) -> str:
    body = "\n".join(rows) if rows else empty
    return f"### {title}\n{body}"


def render_snapshot(snapshot: SalesSnapshot) -> str:
    """Render the snapshot as the user message sent to the language model."""
    leads = [
        f"- ID: {l.id}, Name: {l.contact_name or 'N/A'}, Company: {l.company or 'N/A'}, "
        f"Status: {l.status}, Est. Value: {_money(l.estimated_value) if l.estimated_value else 'Unknown'}, "
        f"Last Activity: {_date(l.last_activity_date, 'Never')}, Source: {l.source or 'Unknown'}"
        for l in snapshot.leads
    ]
    quotes = [
        f"- ID: {q.id}, Doc#: {q.doc_number}, Customer: {q.party_name or 'Unknown'}, "
        f"Amount: {_money(q.total_amount)}, Sent: {_date(q.sent_at, 'Unknown')}, "
        f"Due: {_date(q.due_date, 'No due date')}"
        for q in snapshot.quotes
    ]
    invoices = [
        f"- ID: {i.id}, Doc#: {i.doc_number}, Customer: {i.party_name or 'Unknown'}, "
        f"Amount: {_money(i.total_amount)}, Due: {_date(i.due_date, 'Unknown')}, "
        f"Reminders Sent: {i.reminder_count}"
        for i in snapshot.invoices
    ]
    at_risk = [
        f"- ID: {c.customer_id}, Name: {c.customer_name or 'Unknown'}, Health Score: {c.overall_score}/100, "
        f"Risk Level: {c.risk_level}, Trend: {c.trend}, "
        f"Days Since Last Order: {c.days_since_last_order if c.days_since_last_order is not None else 'Unknown'}, "
        f"Total Revenue: {_money(c.total_revenue)}, "
        f"Risk Factors: {', '.join(c.risk_factors) or 'None specified'}"
        for c in snapshot.at_risk_customers
    ]
    dormant = [
        f"- ID: {c.customer_id}, Name: {c.customer_name or 'Unknown'}, Total Orders: {c.total_orders}, "
        f"Total Revenue: {_money(c.total_revenue)}, Days Inactive: {c.days_since_last_order}, "
        f"Avg Order: {_money(c.avg_order_value)}"
        for c in snapshot.dormant_customers
    ]

    sections = [
        "## SALES DATA SNAPSHOT",
        f"Generated: {snapshot.generated_at.isoformat()}",
        _section(f"LEADS NEEDING FOLLOW-UP ({len(leads)} leads)", leads, "No leads needing immediate follow-up"),
        _section(f"QUOTES AWAITING RESPONSE ({len(quotes)} quotes)", quotes, "No quotes pending response"),
        _section(f"OVERDUE INVOICES ({len(invoices)} invoices)", invoices, "No overdue invoices"),
        _section(f"AT-RISK CUSTOMERS ({len(at_risk)} customers)", at_risk, "No at-risk customers identified"),
        _section(
            f"DORMANT CUSTOMERS TO REACTIVATE ({len(dormant)} customers)", dormant,
            "No dormant customers to reactivate",
        ),
        "Please analyze this data and generate actionable tasks. Focus on the highest-impact opportunities first.",
    ]
    return "\n\n".join(sections)
