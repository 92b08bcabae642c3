"""
Tenant context resolution.

Every service call takes a TenantContext instead of reading the tenant from
ambient state. The FastAPI dependency built by ``tenant_context()`` resolves
it from the authenticated user; admins holding ``admin:all`` may act on
another tenant through the X-Tenant-ID header.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request, Security

from backend.app.core.logging import tenant_id_ctx
from backend.app.core.security import ADMIN_ALL, User, get_current_user


class TenantError(Exception):
    """Tenant could not be resolved or the caller may not act on it."""

    def __init__(self, message: str, status_code: int = 403):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass(frozen=True)
class TenantContext:
    tenant_id: str
    actor: str
    user_id: Optional[str] = None


def resolve_tenant(user: User, requested_tenant: Optional[str] = None) -> TenantContext:
    if requested_tenant and requested_tenant != user.tenant_id:
        if ADMIN_ALL not in user.scopes:
            raise TenantError(f"Access to tenant '{requested_tenant}' is forbidden", 403)
        tenant_id = requested_tenant
    else:
        tenant_id = user.tenant_id

    if not tenant_id:
        raise TenantError("No tenant associated with this user", 400)

    return TenantContext(tenant_id=tenant_id, actor=user.username, user_id=user.user_id)


def tenant_context(*scopes: str):
    """Build a dependency that authenticates with ``scopes`` and yields a TenantContext."""

    async def _dependency(
        request: Request,
        user: User = Security(get_current_user, scopes=list(scopes)),
    ) -> TenantContext:
        ctx = resolve_tenant(user, request.headers.get("X-Tenant-ID"))
        tenant_id_ctx.set(ctx.tenant_id)
        return ctx

    return _dependency
