"""Click accounting and favorites."""

import asyncio

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from linkdeck.core.database import async_session_factory
from linkdeck.core.errors import NotFound
from linkdeck.models.engagement import ClickRecord, Favorite
from linkdeck.models.link import Link, LinkStatus
from linkdeck.services import engagement_service
from tests.factories import create_category, create_link, create_user


async def test_click_increments_and_logs(session: AsyncSession, fake_redis):
    category = await create_category("Dev")
    link = await create_link("Git", category.id)
    user = await create_user("bob")
    generation = int(fake_redis.store.get("stats:generation", "0"))

    count = await engagement_service.record_click(
        session,
        link.id,
        user_id=user.id,
        ip_address="203.0.113.7",
        user_agent="pytest",
        referer="https://intranet.example.com",
    )
    await session.commit()

    assert count == 1
    record = (await session.execute(select(ClickRecord))).scalar_one()
    assert record.link_id == link.id
    assert record.user_id == user.id
    assert record.ip_address == "203.0.113.7"
    assert record.referer == "https://intranet.example.com"
    assert record.clicked_at.tzinfo is not None
    # Any click invalidates cached statistics
    assert fake_redis.store["stats:generation"] == str(generation + 1)


async def test_click_counts_for_any_status(session: AsyncSession):
    category = await create_category("Dev")
    link = await create_link("Broken", category.id, status=LinkStatus.ERROR)

    assert await engagement_service.record_click(session, link.id) == 1


async def test_click_unknown_link(session: AsyncSession):
    with pytest.raises(NotFound):
        await engagement_service.record_click(session, 404)


async def test_concurrent_clicks_are_not_lost():
    category = await create_category("Dev")
    link = await create_link("Git", category.id)

    async def click() -> None:
        async with async_session_factory() as session:
            await engagement_service.record_click(session, link.id)
            await session.commit()

    await asyncio.gather(*(click() for _ in range(20)))

    async with async_session_factory() as session:
        click_count = await session.scalar(select(Link.click_count).where(Link.id == link.id))
        records = await session.scalar(select(func.count(ClickRecord.id)))
    assert click_count == 20
    assert records == 20


async def test_favorite_is_idempotent(session: AsyncSession):
    category = await create_category("Dev")
    link = await create_link("Git", category.id)
    user = await create_user("bob")

    assert await engagement_service.favorite_link(session, user.id, link.id) is True
    assert await engagement_service.favorite_link(session, user.id, link.id) is False
    await session.commit()

    rows = await session.scalar(select(func.count(Favorite.id)))
    assert rows == 1
    assert await engagement_service.is_favorited(session, user.id, link.id)


async def test_unfavorite_is_idempotent(session: AsyncSession):
    category = await create_category("Dev")
    link = await create_link("Git", category.id)
    user = await create_user("bob")

    await engagement_service.favorite_link(session, user.id, link.id)
    assert await engagement_service.unfavorite_link(session, user.id, link.id) is True
    assert await engagement_service.unfavorite_link(session, user.id, link.id) is False
    assert not await engagement_service.is_favorited(session, user.id, link.id)


async def test_toggle_flips_state(session: AsyncSession):
    category = await create_category("Dev")
    link = await create_link("Git", category.id)
    user = await create_user("bob")

    assert await engagement_service.toggle_favorite(session, user.id, link.id) is True
    assert await engagement_service.toggle_favorite(session, user.id, link.id) is False
    assert await engagement_service.toggle_favorite(session, user.id, link.id) is True


async def test_favorite_unknown_link(session: AsyncSession):
    user = await create_user("bob")

    with pytest.raises(NotFound):
        await engagement_service.favorite_link(session, user.id, 404)


async def test_list_favorites_in_link_order(session: AsyncSession):
    category = await create_category("Dev")
    git = await create_link("Git", category.id)
    wiki = await create_link("Wiki", category.id, status=LinkStatus.INACTIVE)
    ci = await create_link("CI", category.id)
    user = await create_user("bob")
    other = await create_user("carol")

    for link in (ci, wiki, git):
        await engagement_service.favorite_link(session, user.id, link.id)
    await engagement_service.favorite_link(session, other.id, git.id)

    favorites = await engagement_service.list_favorites(session, user.id)

    assert [link.id for link in favorites] == [git.id, wiki.id, ci.id]
