import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime

from backend.app.core.database import Base


class TenantORM(Base):
    """
    Tenant with its subscription state; the plan and subscription decide
    whether scans may call an AI provider.
    """
    __tablename__ = "tenants"

    id = Column(String(50), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False)
    status = Column(String(20), nullable=False, default="active", index=True)  # active | suspended
    plan_code = Column(String(20), nullable=False, default="free")  # free | starter | pro
    subscription_status = Column(String(20), nullable=True)  # trialing | active | past_due | canceled
    current_period_end = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<Tenant {self.name} plan={self.plan_code}>"
