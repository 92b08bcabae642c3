import logging
from typing import Optional

import bcrypt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import get_settings
from backend.app.core.security import Role
from backend.app.models.user_orm import UserORM

logger = logging.getLogger(__name__)


def hash_password(plain: str) -> str:
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(plain.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(plain.encode('utf-8'), hashed.encode('utf-8'))
    except ValueError as e:
        logger.error(f"Password verification error: {e}")
        return False


async def get_user_by_username(db: AsyncSession, username: str) -> Optional[UserORM]:
    result = await db.execute(select(UserORM).where(UserORM.username == username))
    return result.scalar_one_or_none()


async def authenticate_user(db: AsyncSession, username: str, password: str) -> Optional[UserORM]:
    user = await get_user_by_username(db, username)
    if not user or not user.is_active:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


async def seed_default_users(db: AsyncSession) -> None:
    """Seed an admin and a manager for the default tenant on first startup."""
    existing = await db.execute(select(UserORM).limit(1))
    if existing.scalar_one_or_none():
        return
    settings = get_settings()
    db.add_all([
        UserORM(username="admin", full_name="Administrator",
                hashed_password=hash_password(settings.admin_password),
                role=Role.ADMIN.value, tenant_id=settings.default_tenant_id),
        UserORM(username="manager", full_name="Sales Manager",
                hashed_password=hash_password(settings.manager_password),
                role=Role.MANAGER.value, tenant_id=settings.default_tenant_id),
    ])
    await db.commit()
    logger.info("Seeded default users")
