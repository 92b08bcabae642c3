"""
Generic AI Task Queue Schemas.
"""
from enum import Enum
from typing import Optional, List, Dict, Any
from datetime import datetime

from pydantic import Field

from backend.app.schemas.common import CamelModel


class AITaskType(str, Enum):
    LINK_PERSON_TO_USER = "link_person_to_user"
    MERGE_DUPLICATE_PEOPLE = "merge_duplicate_people"
    COMPLETE_QUICK_ADD = "complete_quick_add"
    ASSIGN_ITEM_TO_WAREHOUSE = "assign_item_to_warehouse"
    APPROVE_PURCHASE_VARIANCE = "approve_purchase_variance"
    LOW_STOCK_REORDER = "low_stock_reorder"
    SERVICE_JOB_UNASSIGNED = "service_job_unassigned"
    SERVICE_JOB_OVERDUE = "service_job_overdue"
    SUPPLIER_DELAY_IMPACT = "supplier_delay_impact"
    REVIEW_SUBSTITUTION = "review_substitution"
    LANDED_COST_ALLOCATION = "landed_cost_allocation"


class AITaskStatus(str, Enum):
    PENDING = "pending"
    IN_REVIEW = "in_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    AUTO_RESOLVED = "auto_resolved"
    EXPIRED = "expired"


OPEN_AI_TASK_STATUSES = (AITaskStatus.PENDING.value, AITaskStatus.IN_REVIEW.value)


class AITaskPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class AITaskResolution(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


class AITaskCreate(CamelModel):
    task_type: str
    title: str = Field(..., min_length=1, max_length=500)
    description: str = Field(..., min_length=1)
    reasoning: Optional[str] = None
    confidence_score: Optional[int] = Field(None, ge=0, le=100)
    primary_entity_type: Optional[str] = None
    primary_entity_id: Optional[str] = None
    secondary_entity_type: Optional[str] = None
    secondary_entity_id: Optional[str] = None
    suggested_action: Optional[Dict[str, Any]] = None
    assigned_to_user_id: Optional[str] = None
    owner_role_name: Optional[str] = None
    priority: AITaskPriority = AITaskPriority.NORMAL
    due_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    trigger_hash: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class AITaskUpdate(CamelModel):
    status: Optional[AITaskStatus] = None
    resolution: Optional[AITaskResolution] = None
    resolution_notes: Optional[str] = None
    assigned_to_user_id: Optional[str] = None
    priority: Optional[AITaskPriority] = None
    metadata: Optional[Dict[str, Any]] = None


class AITaskOut(CamelModel):
    id: str
    task_type: str
    status: AITaskStatus
    priority: AITaskPriority
    title: str
    description: str
    reasoning: Optional[str] = None
    confidence_score: Optional[int] = None
    primary_entity_type: Optional[str] = None
    primary_entity_id: Optional[str] = None
    secondary_entity_type: Optional[str] = None
    secondary_entity_id: Optional[str] = None
    suggested_action: Optional[Dict[str, Any]] = None
    assigned_to_user_id: Optional[str] = None
    owner_role_name: Optional[str] = None
    due_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolution_action: Optional[str] = None
    resolution_notes: Optional[str] = None
    trigger_hash: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(None, validation_alias="task_metadata")
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class AITaskSummary(CamelModel):
    pending: int
    in_review: int
    total: int


class AITaskListResponse(CamelModel):
    tasks: List[AITaskOut]
    summary: AITaskSummary


class AITaskCreated(CamelModel):
    task_id: str


class AITaskUpdated(CamelModel):
    success: bool = True
    task: AITaskOut


class AITaskDetail(AITaskOut):
    primary_entity_details: Optional[Dict[str, Any]] = None
    secondary_entity_details: Optional[Dict[str, Any]] = None
    assignee_name: Optional[str] = None


class ExpireResult(CamelModel):
    expired: int
