"""Category service for database operations.

Every write that adds or removes an active category runs inside an
ordering transaction so positions stay dense.
"""

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from linkdeck.core.errors import Conflict, NotFound
from linkdeck.core.redis import invalidate_stats_cache
from linkdeck.models.category import DEFAULT_CATEGORY_COLOR, DEFAULT_CATEGORY_ICON, Category
from linkdeck.models.link import Link, LinkStatus
from linkdeck.schemas.category import CategoryCreate, CategoryUpdate
from linkdeck.services.ordering import (
    next_category_position,
    ordering_transaction,
    repack_categories,
)

logger = structlog.get_logger()


async def _name_taken(
    session: AsyncSession,
    name: str,
    exclude_id: int | None = None,
) -> bool:
    query = select(Category.id).where(Category.name == name)
    if exclude_id is not None:
        query = query.where(Category.id != exclude_id)
    result = await session.execute(query)
    return result.first() is not None


async def get_category(session: AsyncSession, category_id: int) -> Category:
    """Get a category by its ID.

    Raises:
        NotFound: no category has this id.
    """
    category = await session.get(Category, category_id)
    if category is None:
        raise NotFound("Category not found")
    return category


async def list_categories(
    session: AsyncSession,
    active_only: bool = True,
    search: str | None = None,
) -> list[Category]:
    """List categories in display order. Inactive ones follow the active ones."""
    query = select(Category)
    if active_only:
        query = query.where(Category.active == True)  # noqa: E712
    if search:
        query = query.where(Category.name.ilike(f"%{search}%"))
    query = query.order_by(Category.active.desc(), Category.sort_order, Category.id)
    result = await session.execute(query)
    return list(result.scalars().all())


async def list_categories_with_stats(
    session: AsyncSession,
    category_id: int | None = None,
) -> list[tuple[Category, int, int]]:
    """Active categories with their active link count and summed clicks.

    Pass ``category_id`` to fetch a single one.

    Returns list of (category, links_count, total_clicks).
    """
    link_totals = (
        select(
            Link.category_id.label("category_id"),
            func.count(Link.id).label("links_count"),
            func.coalesce(func.sum(Link.click_count), 0).label("total_clicks"),
        )
        .where(Link.status == LinkStatus.ACTIVE)
        .group_by(Link.category_id)
        .subquery()
    )
    query = (
        select(
            Category,
            func.coalesce(link_totals.c.links_count, 0),
            func.coalesce(link_totals.c.total_clicks, 0),
        )
        .outerjoin(link_totals, link_totals.c.category_id == Category.id)
        .where(Category.active == True)  # noqa: E712
        .order_by(Category.sort_order, Category.id)
    )
    if category_id is not None:
        query = query.where(Category.id == category_id)
    result = await session.execute(query)
    return [(row[0], int(row[1]), int(row[2])) for row in result.all()]


async def create_category(session: AsyncSession, category_data: CategoryCreate) -> Category:
    """Create a category. Active categories are appended at the end.

    Raises:
        Conflict: the name is already used.
    """
    async with ordering_transaction(session):
        if await _name_taken(session, category_data.name):
            raise Conflict(f"Category '{category_data.name}' already exists")

        category = Category(
            name=category_data.name,
            description=category_data.description,
            icon=category_data.icon or DEFAULT_CATEGORY_ICON,
            color=category_data.color or DEFAULT_CATEGORY_COLOR,
            active=category_data.active,
            sort_order=0,
        )
        if category.active:
            category.sort_order = await next_category_position(session)
        session.add(category)
        try:
            await session.flush()
        except IntegrityError:
            raise Conflict(f"Category '{category_data.name}' already exists") from None

    await invalidate_stats_cache()
    return category


async def update_category(
    session: AsyncSession,
    category: Category,
    category_data: CategoryUpdate,
) -> Category:
    """Update a category.

    Deactivating removes it from the ordering and closes the gap;
    reactivating appends it at the end.

    Raises:
        Conflict: the new name is already used.
    """
    update_data = category_data.model_dump(exclude_unset=True, exclude_none=True)

    async with ordering_transaction(session):
        name = update_data.get("name")
        if name is not None and await _name_taken(session, name, exclude_id=category.id):
            raise Conflict(f"Category '{name}' already exists")

        becomes_active = update_data.pop("active", category.active)
        was_active = category.active

        for field, value in update_data.items():
            setattr(category, field, value)

        if becomes_active and not was_active:
            category.sort_order = await next_category_position(session)
            category.active = True
        elif was_active and not becomes_active:
            category.active = False

        try:
            await session.flush()
        except IntegrityError:
            raise Conflict("Category already exists") from None

        if was_active and not becomes_active:
            await repack_categories(session)

    if was_active != becomes_active:
        await invalidate_stats_cache()
    return category


async def delete_category(session: AsyncSession, category_id: int) -> None:
    """Delete a category that owns no links.

    Raises:
        NotFound: no category has this id.
        Conflict: links still belong to the category.
    """
    async with ordering_transaction(session):
        category = await get_category(session, category_id)
        result = await session.execute(
            select(func.count(Link.id)).where(Link.category_id == category_id)
        )
        links_count = result.scalar() or 0
        if links_count:
            raise Conflict(
                f"Category still contains {links_count} link(s); move or delete them first"
            )

        was_active = category.active
        await session.execute(delete(Category).where(Category.id == category_id))
        session.expunge(category)
        if was_active:
            await repack_categories(session)

    logger.debug("Category removed from ordering", category_id=category_id)
    await invalidate_stats_cache()
