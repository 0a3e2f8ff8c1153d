"""Public tag endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from linkdeck.core.database import get_async_session
from linkdeck.schemas.common import Envelope, ok
from linkdeck.schemas.tag import TagResponse, TagWithCount
from linkdeck.services import tag_service

router = APIRouter(prefix="/tags", tags=["tags"])


@router.get("", response_model=Envelope[list[TagWithCount]])
async def list_tags(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> Envelope[list[TagWithCount]]:
    """Most used tags among active links."""
    rows = await tag_service.popular_tags(session, limit=limit)
    return ok(
        [
            TagWithCount(id=tag.id, name=tag.name, color=tag.color, links_count=count)
            for tag, count in rows
        ]
    )


@router.get("/{tag_id}", response_model=Envelope[TagResponse])
async def get_tag(
    tag_id: int,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[TagResponse]:
    tag = await tag_service.get_tag(session, tag_id)
    return ok(TagResponse.model_validate(tag))
