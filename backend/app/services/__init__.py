"""Services package."""

from backend.app.services.health_scoring import HealthScoreService
from backend.app.services.sales_scan import SalesScanService, run_scheduled_scans
from backend.app.services.sales_task_service import SalesTaskService
from backend.app.services.ai_task_service import AITaskService

__all__ = [
    "HealthScoreService",
    "SalesScanService",
    "run_scheduled_scans",
    "SalesTaskService",
    "AITaskService",
]
