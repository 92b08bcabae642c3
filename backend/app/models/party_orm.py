"""
ORM Model for business parties (customers and suppliers).

SQLite-compatible: UUIDs stored as String, no FK constraints.
"""
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Boolean, DateTime

from backend.app.core.database import Base


class PartyORM(Base):
    __tablename__ = "parties"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String(50), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    code = Column(String(50), nullable=True)
    type = Column(String(20), nullable=False, default="customer")  # customer | supplier | both
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<Party {self.name} ({self.type})>"
