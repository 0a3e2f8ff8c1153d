"""Admin link endpoints: CRUD, ordering within a category and tagging."""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from linkdeck.core.database import get_async_session
from linkdeck.core.deps import AdminUser
from linkdeck.core.observability import record_catalog_operation
from linkdeck.models.link import LinkStatus
from linkdeck.schemas.common import Envelope, Page, ok
from linkdeck.schemas.link import LinkCreate, LinkResponse, LinkUpdate
from linkdeck.schemas.tag import TagNames
from linkdeck.services import link_service, ordering_service, tag_service
from linkdeck.services.ordering import Direction

logger = structlog.get_logger()

router = APIRouter(prefix="/links", tags=["admin: links"])


@router.get("", response_model=Envelope[Page[LinkResponse]])
async def list_links(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    search: str | None = None,
    category_id: int | None = None,
    tag: str | None = None,
    link_status: Annotated[LinkStatus | None, Query(alias="status")] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 20,
) -> Envelope[Page[LinkResponse]]:
    """List links in any status (paginated)."""
    links, total = await link_service.list_links(
        session=session,
        search=search,
        category_id=category_id,
        tag=tag,
        status=link_status,
        page=page,
        page_size=page_size,
    )
    return ok(
        Page.build(
            [LinkResponse.model_validate(link) for link in links],
            total=total,
            page=page,
            page_size=page_size,
        )
    )


@router.get("/{link_id}", response_model=Envelope[LinkResponse])
async def get_link(
    link_id: int,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[LinkResponse]:
    link = await link_service.get_link(session, link_id)
    return ok(LinkResponse.model_validate(link))


@router.post("", response_model=Envelope[LinkResponse], status_code=status.HTTP_201_CREATED)
async def create_link(
    link_data: LinkCreate,
    admin: AdminUser,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[LinkResponse]:
    """Create a link. Tags named in ``tag_names`` are created if needed."""
    link = await link_service.create_link(session, link_data)
    await session.commit()
    logger.info(
        "Link created",
        link_id=link.id,
        category_id=link.category_id,
        user_id=admin.id,
    )
    record_catalog_operation("link", "create")
    return ok(LinkResponse.model_validate(link))


@router.put("/{link_id}", response_model=Envelope[LinkResponse])
async def update_link(
    link_id: int,
    link_data: LinkUpdate,
    admin: AdminUser,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[LinkResponse]:
    link = await link_service.get_link(session, link_id)
    link = await link_service.update_link(session, link, link_data)
    await session.commit()
    logger.info("Link updated", link_id=link_id, user_id=admin.id)
    record_catalog_operation("link", "update")
    return ok(LinkResponse.model_validate(link))


@router.delete("/{link_id}", response_model=Envelope[None])
async def delete_link(
    link_id: int,
    admin: AdminUser,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[None]:
    """Delete a link with its favorites and tag associations."""
    await link_service.delete_link(session, link_id)
    await session.commit()
    logger.info("Link deleted", link_id=link_id, user_id=admin.id)
    record_catalog_operation("link", "delete")
    return ok(message="Link deleted")


@router.patch("/{link_id}/move-up", response_model=Envelope[LinkResponse])
async def move_link_up(
    link_id: int,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[LinkResponse]:
    link = await ordering_service.move_link(session, link_id, Direction.UP)
    record_catalog_operation("link", "move")
    return ok(LinkResponse.model_validate(link))


@router.patch("/{link_id}/move-down", response_model=Envelope[LinkResponse])
async def move_link_down(
    link_id: int,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[LinkResponse]:
    link = await ordering_service.move_link(session, link_id, Direction.DOWN)
    record_catalog_operation("link", "move")
    return ok(LinkResponse.model_validate(link))


@router.post("/{link_id}/tags", response_model=Envelope[LinkResponse])
async def attach_tags(
    link_id: int,
    tag_names: TagNames,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[LinkResponse]:
    """Attach tags by name, creating unknown ones."""
    link = await link_service.get_link(session, link_id)
    await tag_service.attach_tags(session, link, tag_names.names)
    await session.commit()
    record_catalog_operation("link", "tag")
    return ok(LinkResponse.model_validate(link))


@router.delete("/{link_id}/tags", response_model=Envelope[LinkResponse])
async def detach_tags(
    link_id: int,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    names: Annotated[list[str], Query(min_length=1)],
) -> Envelope[LinkResponse]:
    """Detach the tags given as repeated ``names`` query parameters."""
    link = await link_service.get_link(session, link_id)
    await tag_service.detach_tags(session, link, names)
    await session.commit()
    record_catalog_operation("link", "untag")
    return ok(LinkResponse.model_validate(link))
