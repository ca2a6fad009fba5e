"""Admin account queries and password flows."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select

from boreview.auth.password import hash_password, needs_rehash, validate_password_strength, verify_password
from boreview.db.base import utcnow
from boreview.db.models import User

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


class InvalidCredentialsError(Exception):
    """Email unknown or password mismatch."""


async def get_user_by_id(db: AsyncSession, user_id: str) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Fetch a user by email (case-insensitive)."""
    result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
    return result.scalar_one_or_none()


async def create_admin_user(
    db: AsyncSession,
    email: str,
    password: str,
    name: str | None = None,
    role: str = "ADMIN",
) -> User:
    """Create a back-office account. Password must pass the strength rules."""
    validate_password_strength(password)
    user = User(email=email.lower().strip(), name=name, password_hash=hash_password(password), role=role)
    db.add(user)
    await db.flush()
    logger.info("admin_user_created", user_id=user.id, role=role)
    return user


async def authenticate_admin(db: AsyncSession, email: str, password: str) -> User:
    """Return the user for valid credentials; raises InvalidCredentialsError otherwise."""
    user = await get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        msg = "Email hoặc mật khẩu không đúng"
        raise InvalidCredentialsError(msg)
    if needs_rehash(user.password_hash):
        user.password_hash = hash_password(password)
        await db.flush()
        logger.info("admin_password_rehashed", user_id=user.id)
    return user


async def change_admin_password(
    db: AsyncSession,
    user: User,
    current_password: str,
    new_password: str,
) -> None:
    """
    Replace an admin password.

    Raises InvalidCredentialsError when the current password is wrong and
    PasswordStrengthError (a ValueError) when the new one is weak or unchanged.
    """
    if not verify_password(current_password, user.password_hash):
        msg = "Mật khẩu hiện tại không đúng"
        raise InvalidCredentialsError(msg)
    if current_password == new_password:
        msg = "Mật khẩu mới phải khác mật khẩu hiện tại"
        raise ValueError(msg)
    validate_password_strength(new_password)

    user.password_hash = hash_password(new_password)
    user.updated_at = utcnow()
    await db.flush()
    logger.info("admin_password_changed", user_id=user.id)
