"""Startup seeding: default administrator and default site settings."""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from linkdeck.core.config import Settings
from linkdeck.models.user import User, UserRole
from linkdeck.schemas.user import UserCreate
from linkdeck.services import setting as setting_service
from linkdeck.services import user as user_service

logger = structlog.get_logger()


async def ensure_admin(session: AsyncSession, settings: Settings) -> User | None:
    """Create the configured administrator unless that username exists.

    Nothing is created when no admin password is configured.
    """
    existing = await user_service.get_user_by_username(session, settings.admin_username)
    if existing is not None:
        return existing
    if not settings.admin_password:
        logger.warning("No admin password configured, skipping default admin")
        return None

    admin = await user_service.create_user(
        session,
        UserCreate(
            email=settings.admin_email,
            username=settings.admin_username,
            password=settings.admin_password,
            role=UserRole.ADMIN,
        ),
    )
    logger.info("Default admin created", username=admin.username)
    return admin


async def bootstrap(session: AsyncSession, settings: Settings) -> None:
    """Seed everything a fresh installation needs."""
    await ensure_admin(session, settings)
    created = await setting_service.seed_default_settings(session)
    if created:
        logger.info("Default settings seeded", count=created)
    await session.commit()
