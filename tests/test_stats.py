"""Stats aggregation and its cache."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.ext.asyncio import AsyncSession

from linkdeck.aggregators.stats_aggregator import StatsAggregator, local_midnight
from linkdeck.models.engagement import ClickRecord
from linkdeck.models.link import LinkStatus
from linkdeck.services import engagement_service
from tests.factories import create_category, create_link, create_user

# Noon (server-local) on a fixed day
NOW = local_midnight(datetime(2026, 3, 10, 12, tzinfo=timezone.utc)) + timedelta(hours=12)


async def add_clicks(session: AsyncSession, link_id: int, *moments: datetime) -> None:
    for moment in moments:
        session.add(ClickRecord(link_id=link_id, clicked_at=moment))
    await session.commit()


async def test_click_windows(session: AsyncSession):
    category = await create_category("Dev")
    link = await create_link("Git", category.id)
    midnight = local_midnight(NOW)

    await add_clicks(
        session,
        link.id,
        midnight + timedelta(seconds=1),  # today
        midnight - timedelta(seconds=1),  # yesterday
        NOW - timedelta(days=6),
        NOW - timedelta(days=8),
        NOW - timedelta(days=29),
        NOW - timedelta(days=45),
    )

    windows = await StatsAggregator().click_windows(session, now=NOW)

    assert windows.total == 6
    assert windows.today == 1
    assert windows.this_week == 3
    assert windows.this_month == 5


async def test_public_stats_only_count_visible_entities(session: AsyncSession):
    dev = await create_category("Dev")
    await create_category("Hidden", active=False)
    git = await create_link("Git", dev.id, tag_names=["vcs"])
    ci = await create_link("CI", dev.id)
    old = await create_link("Old", dev.id, status=LinkStatus.INACTIVE)

    for link_id in (ci.id, ci.id, git.id, old.id, old.id, old.id):
        await engagement_service.record_click(session, link_id)
    await session.commit()

    stats = await StatsAggregator(popular_limit=5).public_stats(session, now=NOW)

    assert stats.total_links == 2
    assert stats.total_categories == 1
    assert stats.total_tags == 1
    assert [link.title for link in stats.popular_links] == ["CI", "Git"]


async def test_popular_links_break_ties_by_id(session: AsyncSession):
    dev = await create_category("Dev")
    first = await create_link("First", dev.id)
    second = await create_link("Second", dev.id)
    third = await create_link("Third", dev.id)

    for link_id in (third.id, second.id):
        await engagement_service.record_click(session, link_id)
    await session.commit()

    popular = await StatsAggregator().popular_links(session, limit=2)

    assert [link.id for link in popular] == [second.id, third.id]
    assert first.id not in [link.id for link in popular]


async def test_dashboard_counts_everything(session: AsyncSession):
    dev = await create_category("Dev")
    await create_category("Hidden", active=False)
    git = await create_link("Git", dev.id)
    await create_link("Old", dev.id, status=LinkStatus.INACTIVE)
    await create_link("Broken", dev.id, status=LinkStatus.ERROR)
    user = await create_user("bob")

    await engagement_service.record_click(session, git.id, user_id=user.id)
    await session.commit()

    stats = await StatsAggregator().dashboard(session)

    assert stats.total_links == 3
    assert (stats.active_links, stats.inactive_links, stats.error_links) == (1, 1, 1)
    assert (stats.total_categories, stats.active_categories) == (2, 1)
    assert stats.total_users == 1
    assert stats.clicks.total == 1
    assert [click.user_id for click in stats.recent_clicks] == [user.id]


async def test_snapshots_are_cached_until_a_write(session: AsyncSession):
    dev = await create_category("Dev")
    git = await create_link("Git", dev.id)
    aggregator = StatsAggregator()

    first = await aggregator.public_stats(session)
    second = await aggregator.public_stats(session)
    assert aggregator.stats["computations"] == 1
    assert aggregator.stats["cache_hits"] == 1
    assert second == first

    await engagement_service.record_click(session, git.id)
    await session.commit()

    third = await aggregator.public_stats(session)
    assert aggregator.stats["computations"] == 2
    assert third.clicks.total == 1
    assert third.popular_links[0].click_count == 1


async def test_injected_clock_bypasses_cache(session: AsyncSession, fake_redis):
    aggregator = StatsAggregator()

    await aggregator.public_stats(session, now=NOW)
    await aggregator.public_stats(session, now=NOW)

    assert aggregator.stats["computations"] == 2
    assert not any(key.startswith("stats:") for key in fake_redis.store)


async def test_unreachable_redis_still_computes(session: AsyncSession, monkeypatch):
    failing = AsyncMock()
    failing.get.side_effect = RedisConnectionError("down")
    failing.setex.side_effect = RedisConnectionError("down")
    monkeypatch.setattr("linkdeck.core.redis._redis_client", failing)
    aggregator = StatsAggregator()

    stats = await aggregator.public_stats(session)

    assert stats.total_links == 0
    assert aggregator.stats["cache_hits"] == 0


async def test_cached_snapshot_ages_out_at_ttl(session: AsyncSession, fake_redis):
    dev = await create_category("Dev")
    await create_link("Git", dev.id)
    aggregator = StatsAggregator(cache_ttl=60)

    await aggregator.public_stats(session)
    fake_redis.advance(59)
    await aggregator.public_stats(session)
    assert aggregator.stats["computations"] == 1

    fake_redis.advance(1)
    await aggregator.public_stats(session)
    assert aggregator.stats["computations"] == 2
