"""Admin tag endpoints."""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from linkdeck.core.database import get_async_session
from linkdeck.core.deps import AdminUser
from linkdeck.core.observability import record_catalog_operation
from linkdeck.schemas.common import Envelope, Page, ok
from linkdeck.schemas.tag import TagCreate, TagResponse, TagUpdate, TagWithCount
from linkdeck.services import tag_service

logger = structlog.get_logger()

router = APIRouter(prefix="/tags", tags=["admin: tags"])


@router.get("", response_model=Envelope[Page[TagWithCount]])
async def list_tags(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    search: str | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 50,
) -> Envelope[Page[TagWithCount]]:
    """List all tags with usage counts (paginated)."""
    rows, total = await tag_service.list_tags(
        session,
        search=search,
        page=page,
        page_size=page_size,
    )
    items = [
        TagWithCount(
            id=tag.id,
            name=tag.name,
            color=tag.color,
            links_count=count,
            created_at=tag.created_at,
        )
        for tag, count in rows
    ]
    return ok(Page.build(items, total=total, page=page, page_size=page_size))


@router.post("", response_model=Envelope[TagResponse], status_code=status.HTTP_201_CREATED)
async def create_tag(
    tag_data: TagCreate,
    admin: AdminUser,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[TagResponse]:
    tag = await tag_service.create_tag(session, tag_data)
    await session.commit()
    logger.info("Tag created", tag_id=tag.id, name=tag.name, user_id=admin.id)
    record_catalog_operation("tag", "create")
    return ok(TagResponse.model_validate(tag))


@router.put("/{tag_id}", response_model=Envelope[TagResponse])
async def update_tag(
    tag_id: int,
    tag_data: TagUpdate,
    admin: AdminUser,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[TagResponse]:
    tag = await tag_service.get_tag(session, tag_id)
    tag = await tag_service.update_tag(session, tag, tag_data)
    await session.commit()
    logger.info("Tag updated", tag_id=tag_id, user_id=admin.id)
    record_catalog_operation("tag", "update")
    return ok(TagResponse.model_validate(tag))


@router.delete("/{tag_id}", response_model=Envelope[None])
async def delete_tag(
    tag_id: int,
    admin: AdminUser,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[None]:
    """Delete a tag. Links that carried it are kept."""
    await tag_service.delete_tag(session, tag_id)
    await session.commit()
    logger.info("Tag deleted", tag_id=tag_id, user_id=admin.id)
    record_catalog_operation("tag", "delete")
    return ok(message="Tag deleted")
