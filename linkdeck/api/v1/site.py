"""Public site overview: statistics and display settings."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from linkdeck.aggregators.stats_aggregator import get_aggregator
from linkdeck.core.database import get_async_session
from linkdeck.schemas.common import Envelope, ok
from linkdeck.schemas.stats import PublicStats
from linkdeck.services import setting_service

router = APIRouter(tags=["site"])


@router.get("/stats", response_model=Envelope[PublicStats])
async def get_stats(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    limit: Annotated[int | None, Query(ge=1, le=50)] = None,
) -> Envelope[PublicStats]:
    """Directory totals, click windows and the most popular links."""
    stats = await get_aggregator().public_stats(session, limit=limit)
    return ok(stats)


@router.get("/settings", response_model=Envelope[dict[str, str]])
async def get_public_settings(
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[dict[str, str]]:
    """Display settings visible to everyone."""
    return ok(await setting_service.get_public_settings(session))
