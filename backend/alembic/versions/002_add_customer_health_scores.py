"""Add customer_health_scores table

Revision ID: 002_customer_health_scores
Revises: 001_core_sales_tables
Create Date: 2026-09-28 10:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '002_customer_health_scores'
down_revision: Union[str, Sequence[str], None] = '001_core_sales_tables'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create customer_health_scores, one row per tenant and customer."""
    op.create_table(
        'customer_health_scores',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('tenant_id', sa.String(length=50), nullable=False),
        sa.Column('customer_id', sa.String(length=36), nullable=False),
        sa.Column('overall_score', sa.Integer(), nullable=False),
        sa.Column('payment_score', sa.Integer(), nullable=False),
        sa.Column('engagement_score', sa.Integer(), nullable=False),
        sa.Column('order_frequency_score', sa.Integer(), nullable=False),
        sa.Column('growth_score', sa.Integer(), nullable=False),
        sa.Column('issue_score', sa.Integer(), nullable=False),
        sa.Column('risk_level', sa.String(length=20), nullable=False),
        sa.Column('score_trend', sa.String(length=20), nullable=False),
        sa.Column('risk_factors', sa.JSON(), nullable=False),
        sa.Column('total_orders', sa.Integer(), nullable=False),
        sa.Column('total_revenue', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('avg_order_value', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('days_since_last_order', sa.Integer(), nullable=True),
        sa.Column('payment_delay_days_avg', sa.Float(), nullable=False),
        sa.Column('issue_count_30d', sa.Integer(), nullable=False),
        sa.Column('calculated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'customer_id', name='uq_customer_health_scores_tenant_customer')
    )
    op.create_index('ix_customer_health_scores_tenant_id', 'customer_health_scores', ['tenant_id'], unique=False)
    op.create_index('ix_customer_health_scores_customer_id', 'customer_health_scores', ['customer_id'], unique=False)
    op.create_index('ix_customer_health_scores_risk_level', 'customer_health_scores', ['risk_level'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_customer_health_scores_risk_level', table_name='customer_health_scores')
    op.drop_index('ix_customer_health_scores_customer_id', table_name='customer_health_scores')
    op.drop_index('ix_customer_health_scores_tenant_id', table_name='customer_health_scores')
    op.drop_table('customer_health_scores')
