"""Persistent audit entries for task and record changes."""
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.logging import correlation_id_ctx, get_logger
from backend.app.core.tenant import TenantContext
from backend.app.models.audit_orm import AuditEntryORM

logger = get_logger(__name__)


async def log_audit_event(
    db: AsyncSession,
    ctx: TenantContext,
    entity_type: str,
    entity_id: str,
    action: str,
    action_type: str = "human",
    details: Optional[Dict[str, Any]] = None,
    actor: Optional[str] = None,
) -> AuditEntryORM:
    entry = AuditEntryORM(
        tenant_id=ctx.tenant_id,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        action_type=action_type,
        actor=actor or ctx.actor,
        details=details,
        trace_id=correlation_id_ctx.get(),
    )
    db.add(entry)
    await db.flush()
    logger.info(f"Audit: {action} on {entity_type}/{entity_id} by {entry.actor}")
    return entry
