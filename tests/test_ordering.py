"""Display ordering of categories and of links within a category."""

import asyncio

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from linkdeck.core.database import async_session_factory
from linkdeck.core.errors import NotFound
from linkdeck.models.category import Category
from linkdeck.models.link import Link
from linkdeck.schemas.category import CategoryCreate, CategoryUpdate
from linkdeck.schemas.link import LinkUpdate
from linkdeck.services import category_service, link_service, ordering_service
from linkdeck.services.ordering import Direction
from tests.factories import create_category, create_link


async def active_order() -> list[tuple[str, int]]:
    """(name, sort_order) of active categories, read through a fresh session."""
    async with async_session_factory() as session:
        result = await session.execute(
            select(Category.name, Category.sort_order)
            .where(Category.active == True)  # noqa: E712
            .order_by(Category.sort_order)
        )
        return [tuple(row) for row in result.all()]


async def link_order(category_id: int) -> list[tuple[str, int]]:
    async with async_session_factory() as session:
        result = await session.execute(
            select(Link.title, Link.sort_order)
            .where(Link.category_id == category_id)
            .order_by(Link.sort_order)
        )
        return [tuple(row) for row in result.all()]


async def seed(*names: str) -> list[Category]:
    return [await create_category(name) for name in names]


async def test_new_active_categories_are_appended(session: AsyncSession):
    for name in ("Dev", "Ops", "Docs"):
        await category_service.create_category(session, CategoryCreate(name=name))

    assert await active_order() == [("Dev", 1), ("Ops", 2), ("Docs", 3)]


async def test_inactive_category_takes_no_position(session: AsyncSession):
    await seed("Dev", "Ops")
    hidden = await category_service.create_category(
        session,
        CategoryCreate(name="Hidden", active=False),
    )

    assert hidden.sort_order == 0
    assert await active_order() == [("Dev", 1), ("Ops", 2)]


async def test_move_up_swaps_with_previous(session: AsyncSession):
    _, _, docs = await seed("Dev", "Ops", "Docs")

    moved = await ordering_service.move_category_up(session, docs.id)

    assert moved.sort_order == 2
    assert await active_order() == [("Dev", 1), ("Docs", 2), ("Ops", 3)]


async def test_move_down_swaps_with_next(session: AsyncSession):
    dev, _, _ = await seed("Dev", "Ops", "Docs")

    await ordering_service.move_category_down(session, dev.id)

    assert await active_order() == [("Ops", 1), ("Dev", 2), ("Docs", 3)]


async def test_boundary_moves_are_noops(session: AsyncSession):
    dev, _, docs = await seed("Dev", "Ops", "Docs")

    first = await ordering_service.move_category_up(session, dev.id)
    last = await ordering_service.move_category_down(session, docs.id)

    assert first.sort_order == 1
    assert last.sort_order == 3
    assert await active_order() == [("Dev", 1), ("Ops", 2), ("Docs", 3)]


async def test_moving_inactive_category_is_noop(session: AsyncSession):
    await seed("Dev", "Ops")
    hidden = await create_category("Hidden", active=False)

    result = await ordering_service.move_category_up(session, hidden.id)

    assert result.active is False
    assert await active_order() == [("Dev", 1), ("Ops", 2)]


async def test_move_unknown_category_raises_not_found(session: AsyncSession):
    with pytest.raises(NotFound):
        await ordering_service.move_category(session, 999, Direction.UP)


async def test_deactivate_repacks_and_reactivate_appends(session: AsyncSession):
    dev, ops, _ = await seed("Dev", "Ops", "Docs")

    ops = await category_service.get_category(session, ops.id)
    await category_service.update_category(session, ops, CategoryUpdate(active=False))
    assert await active_order() == [("Dev", 1), ("Docs", 2)]

    await category_service.update_category(session, ops, CategoryUpdate(active=True))
    assert await active_order() == [("Dev", 1), ("Docs", 2), ("Ops", 3)]


async def test_delete_repacks_remaining(session: AsyncSession):
    dev, _, _ = await seed("Dev", "Ops", "Docs")

    await category_service.delete_category(session, dev.id)

    assert await active_order() == [("Ops", 1), ("Docs", 2)]


async def test_concurrent_moves_keep_a_dense_permutation():
    categories = await seed("A", "B", "C", "D", "E")

    async def move(category_id: int, direction: Direction) -> None:
        async with async_session_factory() as session:
            await ordering_service.move_category(session, category_id, direction)

    await asyncio.gather(
        *(
            move(category.id, Direction.UP if index % 2 else Direction.DOWN)
            for index, category in enumerate(categories * 2)
        )
    )

    positions = [position for _, position in await active_order()]
    assert positions == [1, 2, 3, 4, 5]


async def test_links_append_within_their_category():
    category = await create_category("Dev")
    for title in ("Git", "CI", "Wiki"):
        await create_link(title, category.id)

    assert await link_order(category.id) == [("Git", 1), ("CI", 2), ("Wiki", 3)]


async def test_move_link_up_and_down(session: AsyncSession):
    category = await create_category("Dev")
    git = await create_link("Git", category.id)
    await create_link("CI", category.id)
    wiki = await create_link("Wiki", category.id)

    await ordering_service.move_link(session, wiki.id, Direction.UP)
    await ordering_service.move_link(session, git.id, Direction.UP)

    assert await link_order(category.id) == [("Git", 1), ("Wiki", 2), ("CI", 3)]


async def test_deleting_a_link_closes_the_gap(session: AsyncSession):
    category = await create_category("Dev")
    git = await create_link("Git", category.id)
    await create_link("CI", category.id)
    await create_link("Wiki", category.id)

    await link_service.delete_link(session, git.id)

    assert await link_order(category.id) == [("CI", 1), ("Wiki", 2)]


async def test_moving_a_link_between_categories(session: AsyncSession):
    dev = await create_category("Dev")
    ops = await create_category("Ops")
    git = await create_link("Git", dev.id)
    await create_link("CI", dev.id)
    await create_link("Grafana", ops.id)

    link = await link_service.get_link(session, git.id)
    moved = await link_service.update_link(session, link, LinkUpdate(category_id=ops.id))
    await session.commit()

    assert moved.category_id == ops.id
    assert moved.category.name == "Ops"
    assert await link_order(dev.id) == [("CI", 1)]
    assert await link_order(ops.id) == [("Grafana", 1), ("Git", 2)]
