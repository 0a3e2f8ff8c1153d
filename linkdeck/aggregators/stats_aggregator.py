"""Statistics aggregation for the public overview and the admin dashboard."""

import time
from datetime import datetime, timedelta, timezone

import structlog
from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from linkdeck.core.config import get_settings
from linkdeck.core.database import utcnow
from linkdeck.core.observability import record_stats_cache
from linkdeck.core.redis import cache_stats, get_cached_stats, get_stats_generation
from linkdeck.models.category import Category
from linkdeck.models.engagement import ClickRecord
from linkdeck.models.link import Link, LinkStatus
from linkdeck.models.tag import Tag
from linkdeck.models.user import User
from linkdeck.schemas.link import LinkSummary
from linkdeck.schemas.stats import ClickWindows, DashboardStats, PublicStats, RecentClick

logger = structlog.get_logger()

WEEK = timedelta(days=7)
MONTH = timedelta(days=30)


def local_midnight(now: datetime) -> datetime:
    """Start of the server-local day containing ``now``, expressed in UTC."""
    local = now.astimezone()
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight.astimezone(timezone.utc)


class StatsAggregator:
    """Computes directory statistics on demand.

    Results are cached in Redis for ``cache_ttl`` seconds. Writes that
    change any count bump the cache generation after they commit, so a
    cached snapshot is never served after the data behind it changed.

    Usage:
        aggregator = get_aggregator()
        overview = await aggregator.public_stats(session)
        dashboard = await aggregator.dashboard(session, limit=10)
    """

    def __init__(
        self,
        cache_ttl: int = 60,
        popular_limit: int = 5,
        recent_limit: int = 10,
    ):
        """Initialize the aggregator.

        Args:
            cache_ttl: Seconds a computed snapshot stays in cache.
            popular_limit: Default number of popular links returned.
            recent_limit: Number of recent clicks on the dashboard.
        """
        self._cache_ttl = cache_ttl
        self._popular_limit = popular_limit
        self._recent_limit = recent_limit
        self._computations = 0
        self._cache_hits = 0

    async def click_windows(
        self,
        session: AsyncSession,
        now: datetime | None = None,
    ) -> ClickWindows:
        """Count clicks overall, today, in the last 7 and the last 30 days."""
        now = now or utcnow()
        today_start = local_midnight(now)
        week_start = now - WEEK
        month_start = now - MONTH

        result = await session.execute(
            select(
                func.count(ClickRecord.id),
                func.count(case((ClickRecord.clicked_at >= today_start, ClickRecord.id))),
                func.count(case((ClickRecord.clicked_at >= week_start, ClickRecord.id))),
                func.count(case((ClickRecord.clicked_at >= month_start, ClickRecord.id))),
            )
        )
        total, today, week, month = result.one()
        return ClickWindows(total=total, today=today, this_week=week, this_month=month)

    async def popular_links(self, session: AsyncSession, limit: int) -> list[LinkSummary]:
        """Active links by click count, ties broken by ascending id."""
        result = await session.execute(
            select(Link)
            .where(Link.status == LinkStatus.ACTIVE)
            .order_by(Link.click_count.desc(), Link.id)
            .limit(limit)
        )
        return [LinkSummary.model_validate(link) for link in result.scalars().all()]

    async def _link_counts(self, session: AsyncSession) -> dict[LinkStatus, int]:
        result = await session.execute(
            select(Link.status, func.count(Link.id)).group_by(Link.status)
        )
        counts = {status: 0 for status in LinkStatus}
        for status, count in result.all():
            counts[LinkStatus(status)] = count
        return counts

    async def _category_counts(self, session: AsyncSession) -> tuple[int, int]:
        result = await session.execute(
            select(
                func.count(Category.id),
                func.count(case((Category.active == True, Category.id))),  # noqa: E712
            )
        )
        total, active = result.one()
        return total, active

    async def _count(self, session: AsyncSession, column) -> int:
        result = await session.execute(select(func.count(column)))
        return result.scalar() or 0

    async def public_stats(
        self,
        session: AsyncSession,
        limit: int | None = None,
        now: datetime | None = None,
    ) -> PublicStats:
        """Overview for anonymous visitors: active links and categories only."""
        limit = limit or self._popular_limit
        scope = f"public:{limit}"
        generation = await self._generation(now)
        if generation is not None:
            cached = await self._from_cache(generation, scope)
            if cached is not None:
                return PublicStats.model_validate(cached)

        start = time.perf_counter()
        link_counts = await self._link_counts(session)
        _, active_categories = await self._category_counts(session)
        snapshot = PublicStats(
            total_links=link_counts[LinkStatus.ACTIVE],
            total_categories=active_categories,
            total_tags=await self._count(session, Tag.id),
            clicks=await self.click_windows(session, now),
            popular_links=await self.popular_links(session, limit),
        )
        await self._store(generation, scope, snapshot.model_dump(mode="json"), start)
        return snapshot

    async def dashboard(
        self,
        session: AsyncSession,
        limit: int | None = None,
        now: datetime | None = None,
    ) -> DashboardStats:
        """Full snapshot for administrators."""
        limit = limit or self._popular_limit
        scope = f"dashboard:{limit}"
        generation = await self._generation(now)
        if generation is not None:
            cached = await self._from_cache(generation, scope)
            if cached is not None:
                return DashboardStats.model_validate(cached)

        start = time.perf_counter()
        link_counts = await self._link_counts(session)
        total_categories, active_categories = await self._category_counts(session)
        recent = await session.execute(
            select(ClickRecord)
            .order_by(ClickRecord.clicked_at.desc(), ClickRecord.id.desc())
            .limit(self._recent_limit)
        )
        snapshot = DashboardStats(
            total_links=sum(link_counts.values()),
            active_links=link_counts[LinkStatus.ACTIVE],
            inactive_links=link_counts[LinkStatus.INACTIVE],
            error_links=link_counts[LinkStatus.ERROR],
            total_categories=total_categories,
            active_categories=active_categories,
            total_tags=await self._count(session, Tag.id),
            total_users=await self._count(session, User.id),
            clicks=await self.click_windows(session, now),
            popular_links=await self.popular_links(session, limit),
            recent_clicks=[RecentClick.model_validate(c) for c in recent.scalars().all()],
            generated_at=now or utcnow(),
        )
        await self._store(generation, scope, snapshot.model_dump(mode="json"), start)
        return snapshot

    async def _generation(self, now: datetime | None) -> str | None:
        # Snapshots for an injected clock are not "current" and bypass the cache
        if now is not None:
            return None
        return await get_stats_generation()

    async def _from_cache(self, generation: str, scope: str) -> dict | None:
        cached = await get_cached_stats(generation, scope)
        record_stats_cache(hit=cached is not None)
        if cached is not None:
            self._cache_hits += 1
        return cached

    async def _store(
        self,
        generation: str | None,
        scope: str,
        payload: dict,
        started: float,
    ) -> None:
        self._computations += 1
        duration = time.perf_counter() - started
        logger.debug(
            "Stats computed",
            scope=scope,
            duration_ms=round(duration * 1000, 2),
        )
        if generation is not None:
            await cache_stats(generation, scope, payload, self._cache_ttl)

    @property
    def stats(self) -> dict:
        """Get aggregator statistics."""
        return {
            "computations": self._computations,
            "cache_hits": self._cache_hits,
            "cache_ttl": self._cache_ttl,
        }


# Global aggregator instance
_aggregator: StatsAggregator | None = None


def get_aggregator() -> StatsAggregator:
    """Get the global aggregator instance."""
    global _aggregator
    if _aggregator is None:
        settings = get_settings()
        _aggregator = StatsAggregator(
            cache_ttl=settings.stats_cache_ttl,
            popular_limit=settings.popular_links_limit,
        )
    return _aggregator
