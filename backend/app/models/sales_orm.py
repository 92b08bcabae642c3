"""
ORM Models for the sales source records read by health scoring and scans.

Invoices double as "orders" for order-frequency and revenue metrics.
"""
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Integer, Numeric, DateTime, Index

from backend.app.core.database import Base


class SalesDocORM(Base):
    """Quotes, orders and invoices."""
    __tablename__ = "sales_docs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String(50), nullable=False, index=True)
    party_id = Column(String(36), nullable=True, index=True)
    doc_type = Column(String(20), nullable=False)  # quote | order | invoice
    doc_number = Column(String(50), nullable=True)
    status = Column(String(20), nullable=False, default="draft")  # draft | sent | accepted | paid | cancelled
    payment_status = Column(String(20), nullable=True)  # unpaid | partial | paid | overdue
    total_amount = Column(Numeric(15, 2, asdecimal=False), nullable=False, default=0)
    doc_date = Column(DateTime(timezone=True), nullable=True)
    due_date = Column(DateTime(timezone=True), nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    reminder_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_sales_docs_tenant_type_status", "tenant_id", "doc_type", "status"),
    )


class SalesActivityORM(Base):
    """Calls, emails, meetings and logged customer issues."""
    __tablename__ = "sales_activities"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String(50), nullable=False, index=True)
    customer_id = Column(String(36), nullable=True, index=True)
    activity_type = Column(String(30), nullable=False)  # call | email | meeting | note | customer_issue
    activity_date = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    subject = Column(String(255), nullable=True)


class LeadORM(Base):
    __tablename__ = "leads"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String(50), nullable=False, index=True)
    contact_name = Column(String(255), nullable=True)
    company = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default="new")  # new | contacted | qualified | won | lost
    estimated_value = Column(Numeric(15, 2, asdecimal=False), nullable=True)
    source = Column(String(50), nullable=True)
    last_activity_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
