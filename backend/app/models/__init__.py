"""Models package."""

from backend.app.models.tenant_orm import TenantORM
from backend.app.models.user_orm import UserORM
from backend.app.models.party_orm import PartyORM
from backend.app.models.people_orm import PersonORM
from backend.app.models.sales_orm import SalesDocORM, SalesActivityORM, LeadORM
from backend.app.models.health_score_orm import CustomerHealthScoreORM
from backend.app.models.sales_task_orm import AISalesTaskORM, AISalesScanLogORM
from backend.app.models.ai_task_orm import AITaskORM
from backend.app.models.ai_usage_orm import AIUsageDailyORM
from backend.app.models.audit_orm import AuditEntryORM

__all__ = [
    "TenantORM",
    "UserORM",
    "PartyORM",
    "PersonORM",
    "SalesDocORM",
    "SalesActivityORM",
    "LeadORM",
    "CustomerHealthScoreORM",
    "AISalesTaskORM",
    "AISalesScanLogORM",
    "AITaskORM",
    "AIUsageDailyORM",
    "AuditEntryORM",
]
