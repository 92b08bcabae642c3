"""Add ai_tasks queue table

Revision ID: 004_ai_tasks
Revises: 003_ai_sales_tasks
Create Date: 2026-09-30 14:40:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '004_ai_tasks'
down_revision: Union[str, Sequence[str], None] = '003_ai_sales_tasks'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create ai_tasks table."""
    op.create_table(
        'ai_tasks',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('tenant_id', sa.String(length=50), nullable=False),
        sa.Column('task_type', sa.String(length=50), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('priority', sa.String(length=20), nullable=False),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('reasoning', sa.Text(), nullable=True),
        sa.Column('confidence_score', sa.Integer(), nullable=True),
        sa.Column('primary_entity_type', sa.String(length=50), nullable=True),
        sa.Column('primary_entity_id', sa.String(length=36), nullable=True),
        sa.Column('secondary_entity_type', sa.String(length=50), nullable=True),
        sa.Column('secondary_entity_id', sa.String(length=36), nullable=True),
        sa.Column('suggested_action', sa.JSON(), nullable=True),
        sa.Column('assigned_to_user_id', sa.String(length=36), nullable=True),
        sa.Column('owner_role_name', sa.String(length=50), nullable=True),
        sa.Column('due_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resolved_by', sa.String(length=255), nullable=True),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resolution_action', sa.String(length=50), nullable=True),
        sa.Column('resolution_notes', sa.Text(), nullable=True),
        sa.Column('trigger_hash', sa.String(length=128), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_by', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_ai_tasks_tenant_id', 'ai_tasks', ['tenant_id'], unique=False)
    op.create_index('ix_ai_tasks_task_type', 'ai_tasks', ['task_type'], unique=False)
    op.create_index('ix_ai_tasks_status', 'ai_tasks', ['status'], unique=False)
    op.create_index('ix_ai_tasks_primary_entity_id', 'ai_tasks', ['primary_entity_id'], unique=False)
    op.create_index('ix_ai_tasks_assigned_to_user_id', 'ai_tasks', ['assigned_to_user_id'], unique=False)
    op.create_index('ix_ai_tasks_trigger_hash', 'ai_tasks', ['trigger_hash'], unique=False)


def downgrade() -> None:
    op.drop_table('ai_tasks')
