"""Public category endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from linkdeck.core.database import get_async_session
from linkdeck.core.errors import NotFound
from linkdeck.schemas.category import CategoryWithStats
from linkdeck.schemas.common import Envelope, ok
from linkdeck.services import category_service

router = APIRouter(prefix="/categories", tags=["categories"])


def _with_stats(row: tuple) -> CategoryWithStats:
    category, links_count, total_clicks = row
    return CategoryWithStats.model_validate(category).model_copy(
        update={"links_count": links_count, "total_clicks": total_clicks}
    )


@router.get("", response_model=Envelope[list[CategoryWithStats]])
async def list_categories(
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[list[CategoryWithStats]]:
    """List active categories in display order with link and click totals."""
    rows = await category_service.list_categories_with_stats(session)
    return ok([_with_stats(row) for row in rows])


@router.get("/{category_id}", response_model=Envelope[CategoryWithStats])
async def get_category(
    category_id: int,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[CategoryWithStats]:
    """Get an active category. Its links are listed via ``/links?category_id=``."""
    rows = await category_service.list_categories_with_stats(session, category_id=category_id)
    if not rows:
        raise NotFound("Category not found")
    return ok(_with_stats(rows[0]))
