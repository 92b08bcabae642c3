"""
ORM Model for the generic, cross-domain AI task queue (data hygiene,
purchasing, inventory and service suggestions awaiting human review).
"""
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, Integer, DateTime, JSON

from backend.app.core.database import Base


class AITaskORM(Base):
    __tablename__ = "ai_tasks"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String(50), nullable=False, index=True)

    task_type = Column(String(50), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="pending", index=True)
    priority = Column(String(20), nullable=False, default="normal")  # low | normal | high | urgent

    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=False)
    reasoning = Column(Text, nullable=True)
    confidence_score = Column(Integer, nullable=True)

    primary_entity_type = Column(String(50), nullable=True)
    primary_entity_id = Column(String(36), nullable=True, index=True)
    secondary_entity_type = Column(String(50), nullable=True)
    secondary_entity_id = Column(String(36), nullable=True)
    suggested_action = Column(JSON, nullable=True)

    assigned_to_user_id = Column(String(36), nullable=True, index=True)
    owner_role_name = Column(String(50), nullable=True)
    due_at = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)

    resolved_by = Column(String(255), nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    resolution_action = Column(String(50), nullable=True)
    resolution_notes = Column(Text, nullable=True)

    trigger_hash = Column(String(128), nullable=True, index=True)
    task_metadata = Column("metadata", JSON, nullable=True)

    created_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=lambda: datetime.now(timezone.utc))
