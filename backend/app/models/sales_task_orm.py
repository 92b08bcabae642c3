"""
ORM Models for AI sales tasks and the scan runs that produce them.
"""
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, Integer, Numeric, DateTime, JSON, Index

from backend.app.core.database import Base


class AISalesTaskORM(Base):
    __tablename__ = "ai_sales_tasks"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String(50), nullable=False, index=True)

    task_type = Column(String(40), nullable=False)  # SalesTaskType values
    priority = Column(String(20), nullable=False, default="medium")  # low | medium | high | critical
    status = Column(String(20), nullable=False, default="pending", index=True)  # SalesTaskStatus values

    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    ai_rationale = Column(Text, nullable=True)

    # At most one link is set (no FK constraints for SQLite compatibility)
    customer_id = Column(String(36), nullable=True, index=True)
    lead_id = Column(String(36), nullable=True, index=True)
    sales_doc_id = Column(String(36), nullable=True, index=True)
    person_id = Column(String(36), nullable=True)

    suggested_actions = Column(JSON, nullable=False, default=list)  # [{"action": ..., "channel": ...}]
    potential_value = Column(Numeric(15, 2, asdecimal=False), nullable=True)
    risk_level = Column(String(20), nullable=True)

    due_date = Column(DateTime(timezone=True), nullable=True)
    snoozed_until = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    completed_by = Column(String(255), nullable=True)
    completion_note = Column(Text, nullable=True)

    last_scan_id = Column(String(36), nullable=True)
    scan_score = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_ai_sales_tasks_dedup", "tenant_id", "task_type", "status"),
    )

    def __repr__(self):
        return f"<AISalesTask {self.task_type} {self.status} {self.title}>"


class AISalesScanLogORM(Base):
    __tablename__ = "ai_sales_scan_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String(50), nullable=False, index=True)
    scan_id = Column(String(36), nullable=False, unique=True)
    trigger_type = Column(String(20), nullable=False)  # scheduled | manual | webhook
    status = Column(String(20), nullable=False, default="running")  # running | completed | failed
    tasks_created = Column(Integer, nullable=False, default=0)
    tasks_updated = Column(Integer, nullable=False, default=0)
    tasks_closed = Column(Integer, nullable=False, default=0)
    entities_scanned = Column(JSON, nullable=False, default=dict)
    task_source = Column(String(20), nullable=True)  # ai | rules
    error_message = Column(Text, nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    completed_at = Column(DateTime(timezone=True), nullable=True)
