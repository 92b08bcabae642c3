import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Boolean, DateTime

from backend.app.core.database import Base


class PersonORM(Base):
    """Contact person; quick-add records are created with minimal data and completed later."""
    __tablename__ = "people"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String(50), nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    primary_email = Column(String(255), nullable=True)
    primary_phone = Column(String(50), nullable=True)
    linked_user_id = Column(String(36), nullable=True)
    is_quick_add = Column(Boolean, nullable=False, default=False)
    quick_add_completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
