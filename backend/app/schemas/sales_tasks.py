"""
AI Sales Task Schemas and Enums.

TaskSuggestion is the contract shared by both task sources: the language
model is asked to emit it as JSON, and the rule generator builds it directly.
"""
from enum import Enum
from typing import Optional, List, Dict, Any
from datetime import datetime

from pydantic import AliasChoices, Field, field_validator

from backend.app.schemas.common import CamelModel
from backend.app.schemas.customer_health import RiskLevel


class SalesTaskType(str, Enum):
    FOLLOW_UP_LEAD = "follow_up_lead"
    FOLLOW_UP_QUOTE = "follow_up_quote"
    FOLLOW_UP_CUSTOMER = "follow_up_customer"
    PAYMENT_REMINDER = "payment_reminder"
    AT_RISK_CUSTOMER = "at_risk_customer"
    HOT_LEAD = "hot_lead"
    QUOTE_EXPIRING = "quote_expiring"
    REACTIVATE_CUSTOMER = "reactivate_customer"
    UPSELL_OPPORTUNITY = "upsell_opportunity"
    CHURN_PREVENTION = "churn_prevention"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class SalesTaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SNOOZED = "snoozed"
    COMPLETED = "completed"
    DISMISSED = "dismissed"


ACTIVE_TASK_STATUSES = (SalesTaskStatus.PENDING.value, SalesTaskStatus.SNOOZED.value)


class LinkedEntityType(str, Enum):
    CUSTOMER = "customer"
    LEAD = "lead"
    QUOTE = "quote"
    INVOICE = "invoice"


class ActionChannel(str, Enum):
    CALL = "call"
    EMAIL = "email"
    MEETING = "meeting"
    QUOTE = "quote"
    REMINDER = "reminder"
    OTHER = "other"


class TriggerType(str, Enum):
    SCHEDULED = "scheduled"
    MANUAL = "manual"
    WEBHOOK = "webhook"


class ScanStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class TaskSourceName(str, Enum):
    AI = "ai"
    RULES = "rules"


class SuggestedAction(CamelModel):
    action: str
    # Model output uses "type"; stored as "channel"
    channel: ActionChannel = Field(
        ActionChannel.OTHER,
        validation_alias=AliasChoices("channel", "type"),
    )


class TaskSuggestion(CamelModel):
    """A candidate task produced by a TaskSource, before dedup/upsert."""
    task_type: SalesTaskType
    priority: TaskPriority
    title: str = Field(..., min_length=1, max_length=500)
    description: str = ""
    ai_rationale: str = ""
    entity_type: LinkedEntityType
    entity_id: str = Field(..., min_length=1)
    entity_name: Optional[str] = None
    suggested_actions: List[SuggestedAction] = []
    potential_value: Optional[float] = None
    risk_level: Optional[RiskLevel] = None
    due_date: Optional[datetime] = None
    confidence: int = Field(..., ge=0, le=100)

    @field_validator("confidence", mode="before")
    @classmethod
    def _round_confidence(cls, v):
        if isinstance(v, float):
            return round(v)
        return v


class ScanRequest(CamelModel):
    trigger_type: TriggerType = TriggerType.MANUAL


class ScanResult(CamelModel):
    success: bool = True
    scan_id: str
    tasks_created: int
    tasks_updated: int
    tasks_closed: int
    total_tasks_generated: int
    task_source: TaskSourceName


class SalesTaskOut(CamelModel):
    id: str
    task_type: SalesTaskType
    priority: TaskPriority
    status: SalesTaskStatus
    title: str
    description: Optional[str] = None
    ai_rationale: Optional[str] = None
    customer_id: Optional[str] = None
    lead_id: Optional[str] = None
    sales_doc_id: Optional[str] = None
    suggested_actions: List[Dict[str, Any]] = []
    potential_value: Optional[float] = None
    risk_level: Optional[str] = None
    due_date: Optional[datetime] = None
    snoozed_until: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    completed_by: Optional[str] = None
    completion_note: Optional[str] = None
    scan_score: Optional[int] = None
    last_scan_id: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class ScanLogOut(CamelModel):
    scan_id: str
    trigger_type: TriggerType
    status: ScanStatus
    tasks_created: int
    tasks_updated: int
    tasks_closed: int
    entities_scanned: Dict[str, int] = {}
    task_source: Optional[TaskSourceName] = None
    error_message: Optional[str] = None
    started_at: datetime
    completed_at: Optional[datetime] = None


class SalesTaskListResponse(CamelModel):
    tasks: List[SalesTaskOut]
    total: int
    last_scan: Optional[ScanLogOut] = None


class SalesTaskAction(str, Enum):
    START = "start"
    SNOOZE = "snooze"
    UNSNOOZE = "unsnooze"
    COMPLETE = "complete"
    DISMISS = "dismiss"


class SalesTaskUpdate(CamelModel):
    action: SalesTaskAction
    snoozed_until: Optional[datetime] = None
    note: Optional[str] = None


class TenantScanOutcome(CamelModel):
    tenant_id: str
    success: bool
    scan_id: Optional[str] = None
    tasks_created: int = 0
    tasks_updated: int = 0
    error: Optional[str] = None


class ScheduledScanSummary(CamelModel):
    success: bool = True
    tenants_processed: int
    tenants_successful: int
    total_tasks_created: int
    total_tasks_updated: int
    results: List[TenantScanOutcome]
