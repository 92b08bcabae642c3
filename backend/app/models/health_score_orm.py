"""
ORM Model for customer health scores.

One row per (tenant, customer); recalculation overwrites it in place.
"""
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Integer, Float, Numeric, DateTime, JSON, UniqueConstraint

from backend.app.core.database import Base


class CustomerHealthScoreORM(Base):
    __tablename__ = "customer_health_scores"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String(50), nullable=False, index=True)
    customer_id = Column(String(36), nullable=False, index=True)

    overall_score = Column(Integer, nullable=False)
    payment_score = Column(Integer, nullable=False)
    engagement_score = Column(Integer, nullable=False)
    order_frequency_score = Column(Integer, nullable=False)
    growth_score = Column(Integer, nullable=False)
    issue_score = Column(Integer, nullable=False)

    risk_level = Column(String(20), nullable=False, index=True)  # low | medium | high | critical
    score_trend = Column(String(20), nullable=False, default="stable")  # improving | stable | declining
    risk_factors = Column(JSON, nullable=False, default=list)

    total_orders = Column(Integer, nullable=False, default=0)
    total_revenue = Column(Numeric(15, 2, asdecimal=False), nullable=False, default=0)
    avg_order_value = Column(Numeric(15, 2, asdecimal=False), nullable=False, default=0)
    days_since_last_order = Column(Integer, nullable=True)
    payment_delay_days_avg = Column(Float, nullable=False, default=0.0)
    issue_count_30d = Column(Integer, nullable=False, default=0)

    calculated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("tenant_id", "customer_id", name="uq_customer_health_scores_tenant_customer"),
    )

    def __repr__(self):
        return f"<CustomerHealthScore {self.customer_id} {self.overall_score}/{self.risk_level}>"
