"""
Customer Health Schemas and Enums.
"""
from enum import Enum
from typing import Optional, List
from datetime import datetime

from pydantic import BaseModel, Field

from backend.app.schemas.common import CamelModel


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ScoreTrend(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


class HealthOrderBy(str, Enum):
    OVERALL_SCORE = "overall_score"
    PAYMENT_SCORE = "payment_score"
    RISK_LEVEL = "risk_level"


class SubScores(BaseModel):
    """The five 0-100 components of a health score."""
    payment: int = Field(..., ge=0, le=100)
    engagement: int = Field(..., ge=0, le=100)
    order_frequency: int = Field(..., ge=0, le=100)
    growth: int = Field(..., ge=0, le=100)
    issue: int = Field(..., ge=0, le=100)


class CustomerMetrics(BaseModel):
    """Raw figures gathered for one customer before scoring."""
    total_invoices: int = 0
    paid_invoices: int = 0
    overdue_invoices: int = 0
    last_activity_at: Optional[datetime] = None
    total_orders: int = 0
    recent_orders: int = 0
    last_order_at: Optional[datetime] = None
    total_revenue: float = 0.0
    avg_order_value: float = 0.0
    issue_count_30d: int = 0
    payment_delay_days_avg: float = 0.0


class HealthMetricsOut(CamelModel):
    total_orders: int
    total_revenue: float
    avg_order_value: float
    days_since_last_order: Optional[int] = None


class HealthScoreOut(CamelModel):
    customer_id: str
    customer_name: Optional[str] = None
    overall: int
    payment: int
    engagement: int
    order_frequency: int
    growth: int
    issues: int
    risk_level: RiskLevel
    risk_factors: List[str]
    trend: ScoreTrend
    metrics: HealthMetricsOut
    calculated_at: datetime


class RecalculateResponse(CamelModel):
    health_score: HealthScoreOut


class HealthScoreListItem(CamelModel):
    customer_id: str
    customer_name: Optional[str] = None
    customer_code: Optional[str] = None
    customer_type: Optional[str] = None
    is_active: Optional[bool] = None
    overall_score: int
    payment_score: int
    engagement_score: int
    order_frequency_score: int
    growth_score: int
    issue_score: int
    risk_level: RiskLevel
    score_trend: ScoreTrend
    risk_factors: List[str] = []
    total_orders: int
    total_revenue: float
    avg_order_value: float
    days_since_last_order: Optional[int] = None
    calculated_at: datetime


class HealthScoreListResponse(CamelModel):
    customers: List[HealthScoreListItem]
    total: int
    limit: int
    offset: int


class AtRiskCustomer(CamelModel):
    customer_id: str
    customer_name: Optional[str] = None
    customer_code: Optional[str] = None
    overall_score: int
    risk_level: RiskLevel
    score_trend: ScoreTrend
    total_revenue: float
    total_orders: int = 0
    days_since_last_order: Optional[int] = None
    last_order_date: Optional[datetime] = None
    last_activity_date: Optional[datetime] = None
    days_since_last_activity: Optional[int] = None
    risk_factors: List[str]
    recommendations: List[str]


class AtRiskFilters(CamelModel):
    days_without_order: int
    include_decline_score: bool


class AtRiskResponse(CamelModel):
    at_risk_customers: List[AtRiskCustomer]
    total: int
    filters: AtRiskFilters
