"""Link service for database operations."""

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from linkdeck.core.errors import NotFound
from linkdeck.core.redis import invalidate_stats_cache
from linkdeck.models.category import Category
from linkdeck.models.engagement import Favorite
from linkdeck.models.link import Link, LinkStatus, link_tags
from linkdeck.models.tag import Tag
from linkdeck.schemas.link import LinkCreate, LinkUpdate
from linkdeck.services import tag as tag_service
from linkdeck.services.ordering import next_link_position, ordering_transaction, repack_links

RELATED_LINKS_LIMIT = 6


async def _require_category(session: AsyncSession, category_id: int) -> Category:
    category = await session.get(Category, category_id)
    if category is None:
        raise NotFound("Category not found")
    return category


async def _reload(session: AsyncSession, link_id: int) -> Link:
    """Re-read a link so its category and tags reflect the last flush."""
    result = await session.execute(
        select(Link).where(Link.id == link_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def get_link(session: AsyncSession, link_id: int) -> Link:
    """Get a link by its ID.

    Raises:
        NotFound: no link has this id.
    """
    result = await session.execute(select(Link).where(Link.id == link_id))
    link = result.scalar_one_or_none()
    if link is None:
        raise NotFound("Link not found")
    return link


async def list_links(
    session: AsyncSession,
    search: str | None = None,
    category_id: int | None = None,
    tag: str | None = None,
    status: LinkStatus | None = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Link], int]:
    """Get paginated links matching the filters.

    ``search`` matches title, description and URL; ``tag`` is an exact tag
    name. Links come back grouped by category display order.

    Returns tuple of (links, total_count).
    """
    filters = []
    if search:
        pattern = f"%{search}%"
        filters.append(
            or_(
                Link.title.ilike(pattern),
                Link.description.ilike(pattern),
                Link.url.ilike(pattern),
            )
        )
    if category_id is not None:
        filters.append(Link.category_id == category_id)
    if status is not None:
        filters.append(Link.status == status)
    if tag:
        filters.append(
            Link.id.in_(
                select(link_tags.c.link_id)
                .join(Tag, Tag.id == link_tags.c.tag_id)
                .where(Tag.name == tag)
            )
        )

    count_result = await session.execute(select(func.count(Link.id)).where(*filters))
    total = count_result.scalar() or 0

    offset = (page - 1) * page_size
    query = (
        select(Link)
        .join(Category, Category.id == Link.category_id)
        .where(*filters)
        .order_by(Category.sort_order, Link.sort_order, Link.id)
        .offset(offset)
        .limit(page_size)
    )
    result = await session.execute(query)
    return list(result.scalars().all()), total


async def get_related_links(
    session: AsyncSession,
    link: Link,
    limit: int = RELATED_LINKS_LIMIT,
) -> list[Link]:
    """Most clicked active links from the same category, excluding this one."""
    result = await session.execute(
        select(Link)
        .where(
            Link.category_id == link.category_id,
            Link.id != link.id,
            Link.status == LinkStatus.ACTIVE,
        )
        .order_by(Link.click_count.desc(), Link.id)
        .limit(limit)
    )
    return list(result.scalars().all())


async def create_link(session: AsyncSession, link_data: LinkCreate) -> Link:
    """Create a link at the end of its category.

    Raises:
        NotFound: the category does not exist.
    """
    async with ordering_transaction(session):
        await _require_category(session, link_data.category_id)
        tags = await tag_service.upsert_tags(session, link_data.tag_names or [])

        link = Link(
            title=link_data.title,
            url=link_data.url,
            description=link_data.description,
            icon=link_data.icon,
            status=link_data.status,
            category_id=link_data.category_id,
            sort_order=await next_link_position(session, link_data.category_id),
            click_count=0,
            tags=tags,
        )
        session.add(link)
        await session.flush()

    await invalidate_stats_cache()
    return await _reload(session, link.id)


async def update_link(
    session: AsyncSession,
    link: Link,
    link_data: LinkUpdate,
) -> Link:
    """Update an existing link.

    Moving it to another category appends it there and closes the gap it
    leaves behind. ``tag_names`` replaces the tag set when provided.

    Raises:
        NotFound: the new category does not exist.
    """
    update_data = link_data.model_dump(exclude_unset=True, exclude_none=True)
    tag_names = update_data.pop("tag_names", None)
    old_category_id = link.category_id
    new_category_id = update_data.pop("category_id", old_category_id)

    async with ordering_transaction(session):
        if new_category_id != old_category_id:
            await _require_category(session, new_category_id)
            link.sort_order = await next_link_position(session, new_category_id)
            link.category_id = new_category_id

        for field, value in update_data.items():
            setattr(link, field, value)

        if tag_names is not None:
            await tag_service.set_link_tags(session, link, tag_names)

        await session.flush()
        if new_category_id != old_category_id:
            await repack_links(session, old_category_id)

    await invalidate_stats_cache()
    return await _reload(session, link.id)


async def delete_link(session: AsyncSession, link_id: int) -> None:
    """Delete a link with its favorites and tag associations.

    Click records are history and stay.

    Raises:
        NotFound: no link has this id.
    """
    async with ordering_transaction(session):
        link = await get_link(session, link_id)
        category_id = link.category_id

        await session.execute(delete(Favorite).where(Favorite.link_id == link_id))
        await session.execute(delete(link_tags).where(link_tags.c.link_id == link_id))
        await session.execute(delete(Link).where(Link.id == link_id))
        session.expunge(link)
        await repack_links(session, category_id)

    await invalidate_stats_cache()
