"""Tag service: CRUD plus upsert-by-name association with links."""

import secrets
from collections.abc import Iterable

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from linkdeck.core.errors import Conflict, NotFound
from linkdeck.models.link import Link, LinkStatus, link_tags
from linkdeck.models.tag import Tag
from linkdeck.schemas.tag import TagCreate, TagUpdate

logger = structlog.get_logger()


def random_color() -> str:
    """Random #rrggbb color for tags created without one."""
    return f"#{secrets.token_hex(3)}"


def normalize_tag_names(names: Iterable[str]) -> list[str]:
    """Strip names, drop empties and duplicates, keep first-seen order.

    Matching is case-sensitive: "Go" and "go" are different tags.
    """
    seen: set[str] = set()
    normalized = []
    for name in names:
        name = name.strip()
        if name and name not in seen:
            seen.add(name)
            normalized.append(name)
    return normalized


async def get_tag(session: AsyncSession, tag_id: int) -> Tag:
    """Get a tag by its ID.

    Raises:
        NotFound: no tag has this id.
    """
    tag = await session.get(Tag, tag_id)
    if tag is None:
        raise NotFound("Tag not found")
    return tag


async def get_tag_by_name(session: AsyncSession, name: str) -> Tag | None:
    result = await session.execute(select(Tag).where(Tag.name == name))
    return result.scalar_one_or_none()


async def list_tags(
    session: AsyncSession,
    search: str | None = None,
    page: int = 1,
    page_size: int = 50,
) -> tuple[list[tuple[Tag, int]], int]:
    """Get paginated tags with the number of links carrying each.

    Returns tuple of ([(tag, links_count)], total_count).
    """
    count_query = select(func.count(Tag.id))
    usage = (
        select(link_tags.c.tag_id, func.count().label("links_count"))
        .group_by(link_tags.c.tag_id)
        .subquery()
    )
    query = select(Tag, func.coalesce(usage.c.links_count, 0)).outerjoin(
        usage, usage.c.tag_id == Tag.id
    )

    if search:
        query = query.where(Tag.name.ilike(f"%{search}%"))
        count_query = count_query.where(Tag.name.ilike(f"%{search}%"))

    total_result = await session.execute(count_query)
    total = total_result.scalar() or 0

    offset = (page - 1) * page_size
    query = query.order_by(Tag.name).offset(offset).limit(page_size)
    result = await session.execute(query)
    return [(row[0], int(row[1])) for row in result.all()], total


async def popular_tags(session: AsyncSession, limit: int = 20) -> list[tuple[Tag, int]]:
    """Tags ordered by how many active links carry them."""
    links_count = func.count(Link.id).label("links_count")
    result = await session.execute(
        select(Tag, links_count)
        .join(link_tags, link_tags.c.tag_id == Tag.id)
        .join(Link, Link.id == link_tags.c.link_id)
        .where(Link.status == LinkStatus.ACTIVE)
        .group_by(Tag.id)
        .order_by(links_count.desc(), Tag.name)
        .limit(limit)
    )
    return [(row[0], int(row[1])) for row in result.all()]


async def create_tag(session: AsyncSession, tag_data: TagCreate) -> Tag:
    """Create a tag.

    Raises:
        Conflict: the name is already used.
    """
    if await get_tag_by_name(session, tag_data.name) is not None:
        raise Conflict(f"Tag '{tag_data.name}' already exists")

    tag = Tag(name=tag_data.name, color=tag_data.color or random_color())
    session.add(tag)
    try:
        await session.flush()
    except IntegrityError:
        raise Conflict(f"Tag '{tag_data.name}' already exists") from None
    await session.refresh(tag)
    return tag


async def update_tag(session: AsyncSession, tag: Tag, tag_data: TagUpdate) -> Tag:
    """Update a tag. Renaming onto an existing name is a conflict."""
    update_data = tag_data.model_dump(exclude_unset=True, exclude_none=True)
    name = update_data.get("name")
    if name is not None and name != tag.name:
        existing = await get_tag_by_name(session, name)
        if existing is not None:
            raise Conflict(f"Tag '{name}' already exists")

    for field, value in update_data.items():
        setattr(tag, field, value)
    try:
        await session.flush()
    except IntegrityError:
        raise Conflict("Tag already exists") from None
    return tag


async def delete_tag(session: AsyncSession, tag_id: int) -> None:
    """Delete a tag and its link associations. Links are untouched."""
    tag = await get_tag(session, tag_id)
    await session.execute(delete(link_tags).where(link_tags.c.tag_id == tag_id))
    await session.execute(delete(Tag).where(Tag.id == tag_id))
    session.expunge(tag)
    await session.flush()


async def upsert_tags(session: AsyncSession, names: Iterable[str]) -> list[Tag]:
    """Resolve tag names to rows, creating the missing ones.

    Two requests creating the same new name race on the unique index; the
    loser's insert is rolled back to a savepoint and the winner's row is
    read instead.

    Returns tags in the order the (normalized) names were given.
    """
    wanted = normalize_tag_names(names)
    if not wanted:
        return []

    result = await session.execute(select(Tag).where(Tag.name.in_(wanted)))
    by_name = {tag.name: tag for tag in result.scalars().all()}

    for name in wanted:
        if name in by_name:
            continue
        try:
            async with session.begin_nested():
                tag = Tag(name=name, color=random_color())
                session.add(tag)
            by_name[name] = tag
            logger.info("Tag created on demand", tag=name)
        except IntegrityError:
            existing = await get_tag_by_name(session, name)
            if existing is None:
                raise
            by_name[name] = existing

    return [by_name[name] for name in wanted]


async def set_link_tags(session: AsyncSession, link: Link, names: Iterable[str]) -> Link:
    """Replace a link's tag set with exactly the given names."""
    link.tags = await upsert_tags(session, names)
    await session.flush()
    return link


async def attach_tags(session: AsyncSession, link: Link, names: Iterable[str]) -> Link:
    """Add tags to a link, keeping the ones it already has."""
    current = {tag.name for tag in link.tags}
    additions = [tag for tag in await upsert_tags(session, names) if tag.name not in current]
    if additions:
        link.tags = [*link.tags, *additions]
        await session.flush()
    return link


async def detach_tags(session: AsyncSession, link: Link, names: Iterable[str]) -> Link:
    """Remove the named tags from a link. Unknown names are ignored."""
    removing = set(normalize_tag_names(names))
    remaining = [tag for tag in link.tags if tag.name not in removing]
    if len(remaining) != len(link.tags):
        link.tags = remaining
        await session.flush()
    return link
