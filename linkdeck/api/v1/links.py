"""Public link endpoints plus click and favorite actions for signed-in users."""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from linkdeck.core.database import get_async_session
from linkdeck.core.deps import CurrentUser, CurrentUserOptional
from linkdeck.core.errors import NotFound
from linkdeck.core.observability import record_click
from linkdeck.core.rate_limit import RATE_LIMIT_API, RATE_LIMIT_CLICK, get_real_client_ip, limiter
from linkdeck.models.link import LinkStatus
from linkdeck.schemas.common import Envelope, Page, ok
from linkdeck.schemas.engagement import ClickResult, FavoriteState
from linkdeck.schemas.link import LinkDetail, LinkResponse
from linkdeck.services import engagement_service, link_service

logger = structlog.get_logger()

router = APIRouter(prefix="/links", tags=["links"])


@router.get("", response_model=Envelope[Page[LinkResponse]])
@limiter.limit(RATE_LIMIT_API)
async def list_links(
    request: Request,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    search: str | None = None,
    category_id: int | None = None,
    tag: str | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 20,
) -> Envelope[Page[LinkResponse]]:
    """List active links (paginated), optionally filtered."""
    links, total = await link_service.list_links(
        session=session,
        search=search,
        category_id=category_id,
        tag=tag,
        status=LinkStatus.ACTIVE,
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


@router.get("/{link_id}", response_model=Envelope[LinkDetail])
async def get_link(
    link_id: int,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    user: CurrentUserOptional,
) -> Envelope[LinkDetail]:
    """Get an active link with related links from its category."""
    link = await link_service.get_link(session, link_id)
    if link.status != LinkStatus.ACTIVE:
        raise NotFound("Link not found")

    related = await link_service.get_related_links(session, link)
    favorited = (
        await engagement_service.is_favorited(session, user.id, link.id) if user else False
    )
    detail = LinkDetail.model_validate(link).model_copy(
        update={
            "is_favorited": favorited,
            "related_links": [LinkResponse.model_validate(item) for item in related],
        }
    )
    return ok(detail)


@router.post("/{link_id}/click", response_model=Envelope[ClickResult])
@limiter.limit(RATE_LIMIT_CLICK)
async def click_link(
    request: Request,
    link_id: int,
    user: CurrentUser,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[ClickResult]:
    """Record a click on a link."""
    click_count = await engagement_service.record_click(
        session,
        link_id,
        user_id=user.id,
        ip_address=get_real_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
        referer=request.headers.get("Referer"),
    )
    await session.commit()

    record_click()
    logger.debug("Click recorded", link_id=link_id, user_id=user.id)
    return ok(ClickResult(link_id=link_id, click_count=click_count))


@router.post("/{link_id}/favorite", response_model=Envelope[FavoriteState])
async def favorite_link(
    link_id: int,
    user: CurrentUser,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[FavoriteState]:
    """Add a link to the current user's favorites. Idempotent."""
    changed = await engagement_service.favorite_link(session, user.id, link_id)
    await session.commit()
    logger.info("Link favorited", link_id=link_id, user_id=user.id, changed=changed)
    return ok(FavoriteState(link_id=link_id, favorited=True, changed=changed))


@router.delete("/{link_id}/unfavorite", response_model=Envelope[FavoriteState])
async def unfavorite_link(
    link_id: int,
    user: CurrentUser,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[FavoriteState]:
    """Remove a link from the current user's favorites. Idempotent."""
    changed = await engagement_service.unfavorite_link(session, user.id, link_id)
    await session.commit()
    logger.info("Link unfavorited", link_id=link_id, user_id=user.id, changed=changed)
    return ok(FavoriteState(link_id=link_id, favorited=False, changed=changed))


@router.post("/{link_id}/toggle-favorite", response_model=Envelope[FavoriteState])
async def toggle_favorite(
    link_id: int,
    user: CurrentUser,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[FavoriteState]:
    """Flip the favorite state of a link."""
    favorited = await engagement_service.toggle_favorite(session, user.id, link_id)
    await session.commit()
    return ok(FavoriteState(link_id=link_id, favorited=favorited, changed=True))
