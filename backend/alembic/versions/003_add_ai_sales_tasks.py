"""Add ai_sales_tasks, ai_sales_scan_logs and ai_usage_daily

Revision ID: 003_ai_sales_tasks
Revises: 002_customer_health_scores
Create Date: 2026-09-29 09:15:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '003_ai_sales_tasks'
down_revision: Union[str, Sequence[str], None] = '002_customer_health_scores'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'ai_sales_tasks',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('tenant_id', sa.String(length=50), nullable=False),
        sa.Column('task_type', sa.String(length=40), nullable=False),
        sa.Column('priority', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('ai_rationale', sa.Text(), nullable=True),
        sa.Column('customer_id', sa.String(length=36), nullable=True),
        sa.Column('lead_id', sa.String(length=36), nullable=True),
        sa.Column('sales_doc_id', sa.String(length=36), nullable=True),
        sa.Column('person_id', sa.String(length=36), nullable=True),
        sa.Column('suggested_actions', sa.JSON(), nullable=False),
        sa.Column('potential_value', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('risk_level', sa.String(length=20), nullable=True),
        sa.Column('due_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('snoozed_until', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_by', sa.String(length=255), nullable=True),
        sa.Column('completion_note', sa.Text(), nullable=True),
        sa.Column('last_scan_id', sa.String(length=36), nullable=True),
        sa.Column('scan_score', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_ai_sales_tasks_tenant_id', 'ai_sales_tasks', ['tenant_id'], unique=False)
    op.create_index('ix_ai_sales_tasks_status', 'ai_sales_tasks', ['status'], unique=False)
    op.create_index('ix_ai_sales_tasks_customer_id', 'ai_sales_tasks', ['customer_id'], unique=False)
    op.create_index('ix_ai_sales_tasks_lead_id', 'ai_sales_tasks', ['lead_id'], unique=False)
    op.create_index('ix_ai_sales_tasks_sales_doc_id', 'ai_sales_tasks', ['sales_doc_id'], unique=False)
    op.create_index('ix_ai_sales_tasks_dedup', 'ai_sales_tasks', ['tenant_id', 'task_type', 'status'], unique=False)

    op.create_table(
        'ai_sales_scan_logs',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('tenant_id', sa.String(length=50), nullable=False),
        sa.Column('scan_id', sa.String(length=36), nullable=False),
        sa.Column('trigger_type', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('tasks_created', sa.Integer(), nullable=False),
        sa.Column('tasks_updated', sa.Integer(), nullable=False),
        sa.Column('tasks_closed', sa.Integer(), nullable=False),
        sa.Column('entities_scanned', sa.JSON(), nullable=False),
        sa.Column('task_source', sa.String(length=20), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('scan_id')
    )
    op.create_index('ix_ai_sales_scan_logs_tenant_id', 'ai_sales_scan_logs', ['tenant_id'], unique=False)

    op.create_table(
        'ai_usage_daily',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('tenant_id', sa.String(length=50), nullable=False),
        sa.Column('usage_date', sa.Date(), nullable=False),
        sa.Column('requests', sa.Integer(), nullable=False),
        sa.Column('tokens_in', sa.Integer(), nullable=False),
        sa.Column('tokens_out', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'usage_date', name='uq_ai_usage_daily_tenant_date')
    )
    op.create_index('ix_ai_usage_daily_tenant_id', 'ai_usage_daily', ['tenant_id'], unique=False)


def downgrade() -> None:
    op.drop_table('ai_usage_daily')
    op.drop_table('ai_sales_scan_logs')
    op.drop_table('ai_sales_tasks')
