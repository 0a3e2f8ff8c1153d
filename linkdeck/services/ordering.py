"""Display ordering for categories, and for links within a category.

Active categories always occupy positions 1..n. Every reorder runs under a
process-wide lock plus row locks and commits before the lock is released,
so two admins pressing move-up at the same time serialize instead of
producing duplicate positions.
"""

import asyncio
import enum
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Protocol

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from linkdeck.core.errors import NotFound
from linkdeck.models.category import Category
from linkdeck.models.link import Link

logger = structlog.get_logger()

_lock: asyncio.Lock | None = None
_lock_loop: asyncio.AbstractEventLoop | None = None


class Direction(str, enum.Enum):
    UP = "up"
    DOWN = "down"

    @property
    def offset(self) -> int:
        return -1 if self is Direction.UP else 1


class Positioned(Protocol):
    id: int
    sort_order: int


def _ordering_lock() -> asyncio.Lock:
    """Lock shared by every reorder in this process (one per event loop)."""
    global _lock, _lock_loop
    loop = asyncio.get_running_loop()
    if _lock is None or _lock_loop is not loop:
        _lock = asyncio.Lock()
        _lock_loop = loop
    return _lock


@asynccontextmanager
async def ordering_transaction(session: AsyncSession) -> AsyncIterator[None]:
    """Serialize a reorder and commit it before releasing the lock.

    Work already pending on the session is committed first: the process
    lock is always taken before any database lock.
    """
    if session.in_transaction():
        await session.commit()
    async with _ordering_lock():
        try:
            yield
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def _pack(session: AsyncSession, rows: Sequence[Positioned]) -> None:
    """Renumber rows to 1..n in their current order.

    Rows first move to negative temporaries so no intermediate state ever
    holds two rows at the same positive position.
    """
    if [row.sort_order for row in rows] == list(range(1, len(rows) + 1)):
        return
    for row in rows:
        row.sort_order = -row.id
    await session.flush()
    for position, row in enumerate(rows, start=1):
        row.sort_order = position
    await session.flush()


async def _swap_positions(session: AsyncSession, a: Positioned, b: Positioned) -> None:
    """Exchange the positions of two rows through a temporary slot."""
    a_position, b_position = a.sort_order, b.sort_order
    a.sort_order = -a.id
    await session.flush()
    b.sort_order = a_position
    await session.flush()
    a.sort_order = b_position
    await session.flush()


async def _move_within(
    session: AsyncSession,
    rows: Sequence[Positioned],
    target_id: int,
    direction: Direction,
) -> bool:
    """Swap the target with its neighbour. Returns False at a boundary."""
    index = next(i for i, row in enumerate(rows) if row.id == target_id)
    neighbour = index + direction.offset
    if neighbour < 0 or neighbour >= len(rows):
        return False
    await _pack(session, rows)
    await _swap_positions(session, rows[index], rows[neighbour])
    return True


async def _locked_active_categories(session: AsyncSession) -> list[Category]:
    result = await session.execute(
        select(Category)
        .where(Category.active == True)  # noqa: E712
        .order_by(Category.sort_order, Category.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def next_category_position(session: AsyncSession) -> int:
    """Position a newly active category should take (end of the list)."""
    result = await session.execute(
        select(func.coalesce(func.max(Category.sort_order), 0)).where(
            Category.active == True  # noqa: E712
        )
    )
    return int(result.scalar_one()) + 1


async def repack_categories(session: AsyncSession) -> None:
    """Restore 1..n over active categories after a removal."""
    await _pack(session, await _locked_active_categories(session))


async def move_category(
    session: AsyncSession,
    category_id: int,
    direction: Direction,
) -> Category:
    """Swap a category with its active neighbour.

    Moving the first category up, the last one down, or any inactive
    category is a successful no-op.

    Raises:
        NotFound: no category has this id.
    """
    async with ordering_transaction(session):
        result = await session.execute(
            select(Category)
            .where(Category.id == category_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        category = result.scalar_one_or_none()
        if category is None:
            raise NotFound("Category not found")

        moved = False
        if category.active:
            rows = await _locked_active_categories(session)
            moved = await _move_within(session, rows, category.id, direction)

    logger.info(
        "Category moved" if moved else "Category move skipped",
        category_id=category_id,
        direction=direction.value,
        sort_order=category.sort_order,
    )
    return category


async def move_category_up(session: AsyncSession, category_id: int) -> Category:
    return await move_category(session, category_id, Direction.UP)


async def move_category_down(session: AsyncSession, category_id: int) -> Category:
    return await move_category(session, category_id, Direction.DOWN)


async def _locked_category_links(session: AsyncSession, category_id: int) -> list[Link]:
    result = await session.execute(
        select(Link)
        .where(Link.category_id == category_id)
        .order_by(Link.sort_order, Link.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def next_link_position(session: AsyncSession, category_id: int) -> int:
    """Position a new link takes at the end of its category."""
    result = await session.execute(
        select(func.coalesce(func.max(Link.sort_order), 0)).where(
            Link.category_id == category_id
        )
    )
    return int(result.scalar_one()) + 1


async def repack_links(session: AsyncSession, category_id: int) -> None:
    """Restore 1..n over a category's links after one leaves it."""
    await _pack(session, await _locked_category_links(session, category_id))


async def move_link(
    session: AsyncSession,
    link_id: int,
    direction: Direction,
) -> Link:
    """Swap a link with its neighbour inside the same category.

    Raises:
        NotFound: no link has this id.
    """
    async with ordering_transaction(session):
        result = await session.execute(
            select(Link)
            .where(Link.id == link_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        link = result.scalar_one_or_none()
        if link is None:
            raise NotFound("Link not found")

        rows = await _locked_category_links(session, link.category_id)
        moved = await _move_within(session, rows, link.id, direction)

    logger.info(
        "Link moved" if moved else "Link move skipped",
        link_id=link_id,
        category_id=link.category_id,
        direction=direction.value,
        sort_order=link.sort_order,
    )
    return link
