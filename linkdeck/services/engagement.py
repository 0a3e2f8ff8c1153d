"""Engagement service: click accounting and favorites.

Click counts are incremented with a single UPDATE expression so concurrent
clicks never lose updates. Favorites rely on the (user_id, link_id) unique
constraint; a losing concurrent insert is rolled back to a savepoint and
treated as "already favorited".
"""

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from linkdeck.core.database import utcnow
from linkdeck.core.errors import NotFound
from linkdeck.core.redis import invalidate_stats_cache
from linkdeck.models.engagement import ClickRecord, Favorite
from linkdeck.models.link import Link

logger = structlog.get_logger()


async def _require_link(session: AsyncSession, link_id: int) -> None:
    result = await session.execute(select(Link.id).where(Link.id == link_id))
    if result.scalar_one_or_none() is None:
        raise NotFound("Link not found")


async def record_click(
    session: AsyncSession,
    link_id: int,
    user_id: int | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    referer: str | None = None,
) -> int:
    """Count one click and append it to the click log.

    Counts regardless of link status; no deduplication.

    Returns:
        The link's click count after this click.

    Raises:
        NotFound: no link has this id.
    """
    result = await session.execute(
        update(Link)
        .where(Link.id == link_id)
        .values(click_count=Link.click_count + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFound("Link not found")

    session.add(
        ClickRecord(
            link_id=link_id,
            user_id=user_id,
            ip_address=ip_address,
            user_agent=user_agent,
            referer=referer,
            clicked_at=utcnow(),
        )
    )
    await session.flush()

    count_result = await session.execute(select(Link.click_count).where(Link.id == link_id))
    click_count = count_result.scalar_one()

    await invalidate_stats_cache(session)
    return click_count


async def is_favorited(session: AsyncSession, user_id: int, link_id: int) -> bool:
    result = await session.execute(
        select(Favorite.id).where(Favorite.user_id == user_id, Favorite.link_id == link_id)
    )
    return result.first() is not None


async def favorite_link(session: AsyncSession, user_id: int, link_id: int) -> bool:
    """Mark a link as favorite. A no-op when it already is.

    Returns:
        True if a favorite was added, False if it already existed.

    Raises:
        NotFound: no link has this id.
    """
    await _require_link(session, link_id)
    if await is_favorited(session, user_id, link_id):
        return False

    try:
        async with session.begin_nested():
            session.add(Favorite(user_id=user_id, link_id=link_id, created_at=utcnow()))
    except IntegrityError:
        # A concurrent request got there first
        logger.debug("Favorite already present", user_id=user_id, link_id=link_id)
        return False
    return True


async def unfavorite_link(session: AsyncSession, user_id: int, link_id: int) -> bool:
    """Remove a favorite. A no-op when there is none.

    Returns:
        True if a favorite was removed.

    Raises:
        NotFound: no link has this id.
    """
    await _require_link(session, link_id)
    result = await session.execute(
        delete(Favorite).where(Favorite.user_id == user_id, Favorite.link_id == link_id)
    )
    return result.rowcount > 0


async def toggle_favorite(session: AsyncSession, user_id: int, link_id: int) -> bool:
    """Flip the favorite state.

    Returns:
        The resulting state: True if the link is now a favorite.
    """
    if await unfavorite_link(session, user_id, link_id):
        return False
    await favorite_link(session, user_id, link_id)
    return True


async def list_favorites(session: AsyncSession, user_id: int) -> list[Link]:
    """Every link the user has favorited, in ascending link id order."""
    result = await session.execute(
        select(Link)
        .join(Favorite, Favorite.link_id == Link.id)
        .where(Favorite.user_id == user_id)
        .order_by(Link.id)
    )
    return list(result.scalars().all())
