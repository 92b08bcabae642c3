"""
Cron endpoints, called by an external scheduler with a shared bearer secret.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import async_sessionmaker

from backend.app.core.config import get_settings
from backend.app.core.database import get_session_factory
from backend.app.core.logging import get_logger
from backend.app.schemas.sales_tasks import ScheduledScanSummary
from backend.app.services.sales_scan import run_scheduled_scans

router = APIRouter()
logger = get_logger(__name__)


def verify_cron_secret(authorization: Optional[str] = Header(None)) -> None:
    settings = get_settings()
    if not settings.cron_secret:
        if settings.is_production:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Cron secret is not configured",
            )
        return
    if authorization != f"Bearer {settings.cron_secret}":
        logger.warning("Rejected cron call with invalid secret")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


@router.get("/ai-sales-scan", response_model=ScheduledScanSummary, dependencies=[Depends(verify_cron_secret)])
async def cron_ai_sales_scan(session_factory: async_sessionmaker = Depends(get_session_factory)):
    """Run a scheduled sales scan for every active tenant."""
    return await run_scheduled_scans(session_factory)
