"""
Audit trail for human and automated actions on tasks and the records they touch.
"""
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, JSON

from backend.app.core.database import Base


class AuditEntryORM(Base):
    __tablename__ = "audit_entries"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String(50), nullable=False, index=True)
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(String(36), nullable=False, index=True)

    timestamp = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    action = Column(String(100), nullable=False)
    action_type = Column(String(20), nullable=False)  # human | automated
    actor = Column(String(255), nullable=False)
    details = Column(JSON, nullable=True)

    trace_id = Column(String(128), nullable=True)

    def __repr__(self):
        return f"<AuditEntry {self.action} by {self.actor} on {self.entity_type}/{self.entity_id}>"
