"""Admin dashboard and site settings endpoints."""

from typing import Annotated

import structlog
from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from linkdeck.aggregators.stats_aggregator import get_aggregator
from linkdeck.core.database import get_async_session
from linkdeck.core.deps import AdminUser
from linkdeck.schemas.common import Envelope, ok
from linkdeck.schemas.stats import DashboardStats
from linkdeck.services import setting_service

logger = structlog.get_logger()

router = APIRouter(tags=["admin: site"])


@router.get("/dashboard", response_model=Envelope[DashboardStats])
async def get_dashboard(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    limit: Annotated[int | None, Query(ge=1, le=50)] = None,
) -> Envelope[DashboardStats]:
    """Counts by status, click windows, popular links and recent clicks."""
    return ok(await get_aggregator().dashboard(session, limit=limit))


@router.get("/settings", response_model=Envelope[dict[str, str]])
async def get_settings(
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[dict[str, str]]:
    """Every site setting, defaults included."""
    return ok(await setting_service.get_site_settings(session))


@router.put("/settings", response_model=Envelope[dict[str, str]])
async def update_settings(
    updates: Annotated[dict[str, str], Body()],
    admin: AdminUser,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[dict[str, str]]:
    """Update some settings. Unknown keys or badly typed values reject the whole request."""
    values = await setting_service.update_site_settings(session, updates)
    await session.commit()
    logger.info("Settings updated", keys=sorted(updates), user_id=admin.id)
    return ok(values)
