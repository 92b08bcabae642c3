"""
Sales Scan Service.

Orchestrates one scan for one tenant: open a scan log, build the sales
snapshot, synthesize tasks (model or rules), upsert them, close the log.
The scan log row is committed before work starts so that a failed scan is
still recorded with its error message.
"""
import uuid
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.app.core.config import get_settings
from backend.app.core.logging import get_logger, tenant_id_ctx
from backend.app.core.tenant import TenantContext
from backend.app.core.timeutil import utcnow
from backend.app.models.sales_task_orm import AISalesScanLogORM
from backend.app.models.tenant_orm import TenantORM
from backend.app.schemas.sales_tasks import (
    ScanResult,
    ScanStatus,
    ScheduledScanSummary,
    TenantScanOutcome,
    TriggerType,
)
from backend.app.services.ai_usage import AIUsageMeter
from backend.app.services.entitlements import can_use_ai
from backend.app.services.llm_adapter import LLMAdapter, get_adapter
from backend.app.services.sales_snapshot import SalesSnapshotBuilder
from backend.app.services.task_sources import LLMTaskSource, TaskSynthesizer
from backend.app.services.task_upserter import TaskUpserter

logger = get_logger(__name__)

SCHEDULER_ACTOR = "salespulse-scheduler"


class SalesScanService:
    def __init__(self, session: AsyncSession, adapter_factory: Callable[[], LLMAdapter] = get_adapter):
        self.session = session
        self.adapter_factory = adapter_factory

    async def _open_log(self, ctx: TenantContext, scan_id: str, trigger_type: TriggerType, now: datetime) -> None:
        self.session.add(AISalesScanLogORM(
            tenant_id=ctx.tenant_id,
            scan_id=scan_id,
            trigger_type=trigger_type.value,
            status=ScanStatus.RUNNING.value,
            entities_scanned={"customers": 0, "leads": 0, "quotes": 0, "invoices": 0},
            started_at=now,
        ))
        await self.session.commit()

    async def _close_log(self, scan_id: str, **values) -> None:
        await self.session.execute(
            update(AISalesScanLogORM).where(AISalesScanLogORM.scan_id == scan_id).values(**values)
        )

    async def _build_synthesizer(self, ctx: TenantContext, ai_enabled: bool) -> TaskSynthesizer:
        ai_source = None
        if ai_enabled:
            meter = AIUsageMeter(self.session)
            ai_source = LLMTaskSource(self.adapter_factory(), usage_meter=meter.for_tenant(ctx))
        return TaskSynthesizer(ai_source)

    async def run_scan(
        self,
        ctx: TenantContext,
        trigger_type: TriggerType = TriggerType.MANUAL,
        now: Optional[datetime] = None,
    ) -> ScanResult:
        now = now or utcnow()
        scan_id = str(uuid.uuid4())
        await self._open_log(ctx, scan_id, trigger_type, now)
        logger.info(f"Sales scan {scan_id} started ({trigger_type.value}) for tenant {ctx.tenant_id}")

        try:
            snapshot = await SalesSnapshotBuilder(self.session).build(ctx, now)
            ai_enabled = await can_use_ai(self.session, ctx, now)
            synthesizer = await self._build_synthesizer(ctx, ai_enabled)
            synthesis = await synthesizer.synthesize(snapshot, ai_enabled)
            counts = await TaskUpserter(self.session).upsert(ctx, synthesis.tasks, scan_id, now)

            await self._close_log(
                scan_id,
                status=ScanStatus.COMPLETED.value,
                tasks_created=counts.created,
                tasks_updated=counts.updated,
                tasks_closed=0,
                entities_scanned=snapshot.entities_scanned(),
                task_source=synthesis.source.value,
                completed_at=utcnow(),
            )
            await self.session.commit()
        except Exception as e:
            logger.error(f"Sales scan {scan_id} failed: {e}", exc_info=True)
            await self.session.rollback()
            await self._close_log(
                scan_id,
                status=ScanStatus.FAILED.value,
                error_message=str(e) or type(e).__name__,
                completed_at=utcnow(),
            )
            await self.session.commit()
            raise

        logger.info(
            f"Sales scan {scan_id} completed",
            extra={"extra_data": {
                "scan_id": scan_id,
                "task_source": synthesis.source.value,
                "tasks_created": counts.created,
                "tasks_updated": counts.updated,
            }},
        )
        return ScanResult(
            scan_id=scan_id,
            tasks_created=counts.created,
            tasks_updated=counts.updated,
            tasks_closed=0,
            total_tasks_generated=len(synthesis.tasks),
            task_source=synthesis.source,
        )

    async def latest_scan(self, ctx: TenantContext) -> Optional[AISalesScanLogORM]:
        result = await self.session.execute(
            select(AISalesScanLogORM)
            .where(AISalesScanLogORM.tenant_id == ctx.tenant_id)
            .order_by(AISalesScanLogORM.started_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()


async def run_scheduled_scans(
    session_factory: async_sessionmaker,
    adapter_factory: Callable[[], LLMAdapter] = get_adapter,
) -> ScheduledScanSummary:
    """Run a scheduled scan for every active tenant; one tenant failing does not stop the others."""
    settings = get_settings()
    async with session_factory() as session:
        tenant_ids = (await session.execute(
            select(TenantORM.id)
            .where(TenantORM.status == "active")
            .order_by(TenantORM.id)
            .limit(settings.cron_max_tenants)
        )).scalars().all()

    results = []
    for tenant_id in tenant_ids:
        ctx = TenantContext(tenant_id=tenant_id, actor=SCHEDULER_ACTOR)
        token = tenant_id_ctx.set(tenant_id)
        try:
            async with session_factory() as session:
                scan = await SalesScanService(session, adapter_factory).run_scan(ctx, TriggerType.SCHEDULED)
            results.append(TenantScanOutcome(
                tenant_id=tenant_id,
                success=True,
                scan_id=scan.scan_id,
                tasks_created=scan.tasks_created,
                tasks_updated=scan.tasks_updated,
            ))
        except Exception as e:
            logger.error(f"Scheduled scan failed for tenant {tenant_id}: {e}")
            results.append(TenantScanOutcome(tenant_id=tenant_id, success=False, error=str(e)))
        finally:
            tenant_id_ctx.reset(token)

    summary = ScheduledScanSummary(
        tenants_processed=len(results),
        tenants_successful=sum(1 for r in results if r.success),
        total_tasks_created=sum(r.tasks_created for r in results),
        total_tasks_updated=sum(r.tasks_updated for r in results),
        results=results,
    )
    logger.info(
        f"Scheduled sales scan finished: {summary.tenants_successful}/{summary.tenants_processed} tenants",
    )
    return summary
