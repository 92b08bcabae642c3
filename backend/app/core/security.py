"""
Security and Authentication for the SalesPulse API.

OAuth2 password flow with JWT bearer tokens. Roles map to scopes; endpoints
declare the scopes they need with Security(get_current_user, scopes=[...]).
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, List

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import OAuth2PasswordBearer, SecurityScopes
from jose import JWTError, jwt
from pydantic import BaseModel

from backend.app.core.config import get_settings

settings = get_settings()

# Customer health scopes
HEALTH_READ = "health:read"
HEALTH_WRITE = "health:write"

# AI sales task scopes
SALES_TASKS_READ = "sales_tasks:read"
SALES_TASKS_WRITE = "sales_tasks:write"

# Generic AI task queue scopes
AI_TASKS_READ = "ai_tasks:read"
AI_TASKS_WRITE = "ai_tasks:write"

# Cross-tenant access (X-Tenant-ID override)
ADMIN_ALL = "admin:all"

oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl="api/v1/auth/token",
    scopes={
        HEALTH_READ: "Read customer health scores and at-risk customers",
        HEALTH_WRITE: "Recalculate customer health scores",
        SALES_TASKS_READ: "Read AI sales tasks and scan status",
        SALES_TASKS_WRITE: "Trigger sales scans and change task status",
        AI_TASKS_READ: "Read the AI task queue",
        AI_TASKS_WRITE: "Create, assign and resolve AI tasks",
        ADMIN_ALL: "Act on behalf of any tenant",
    },
)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    """
    Generate a signed JWT token.
    """
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=15)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


class Role(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    SALES_REP = "sales_rep"
    VIEWER = "viewer"


_READ_SCOPES = [HEALTH_READ, SALES_TASKS_READ, AI_TASKS_READ]

ROLE_SCOPES = {
    Role.ADMIN: _READ_SCOPES + [HEALTH_WRITE, SALES_TASKS_WRITE, AI_TASKS_WRITE, ADMIN_ALL],
    Role.MANAGER: _READ_SCOPES + [HEALTH_WRITE, SALES_TASKS_WRITE, AI_TASKS_WRITE],
    Role.SALES_REP: _READ_SCOPES + [SALES_TASKS_WRITE],
    Role.VIEWER: list(_READ_SCOPES),
}


class User(BaseModel):
    username: str
    role: str
    scopes: List[str] = []
    tenant_id: Optional[str] = None
    user_id: Optional[str] = None


async def get_current_user(
    security_scopes: SecurityScopes,
    token: str = Depends(oauth2_scheme)
) -> User:
    """
    Validate JWT token and check required scopes based on Role-Based Access Control.
    """
    if security_scopes.scopes:
        authenticate_value = f'Bearer scope="{security_scopes.scope_str}"'
    else:
        authenticate_value = "Bearer"

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": authenticate_value},
    )

    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        raise credentials_exception

    username = payload.get("sub")
    if username is None:
        raise credentials_exception

    role = payload.get("role", Role.VIEWER.value)
    token_scopes = payload.get("scopes") or ROLE_SCOPES.get(role, [])

    for scope in security_scopes.scopes:
        if scope not in token_scopes:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Not enough permissions. Required scope: {scope}",
                headers={"WWW-Authenticate": authenticate_value},
            )

    return User(
        username=username,
        role=role,
        scopes=list(token_scopes),
        tenant_id=payload.get("tenant_id"),
        user_id=payload.get("uid"),
    )
