import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Integer, Date, DateTime, UniqueConstraint

from backend.app.core.database import Base


class AIUsageDailyORM(Base):
    """Per-tenant daily counters of AI provider requests and tokens."""
    __tablename__ = "ai_usage_daily"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String(50), nullable=False, index=True)
    usage_date = Column(Date, nullable=False)
    requests = Column(Integer, nullable=False, default=0)
    tokens_in = Column(Integer, nullable=False, default=0)
    tokens_out = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("tenant_id", "usage_date", name="uq_ai_usage_daily_tenant_date"),
    )
