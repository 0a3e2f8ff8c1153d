"""Admin category endpoints, including display-order moves."""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from linkdeck.core.database import get_async_session
from linkdeck.core.deps import AdminUser
from linkdeck.core.observability import record_catalog_operation
from linkdeck.schemas.category import CategoryCreate, CategoryResponse, CategoryUpdate
from linkdeck.schemas.common import Envelope, ok
from linkdeck.services import category_service, ordering_service

logger = structlog.get_logger()

router = APIRouter(prefix="/categories", tags=["admin: categories"])


@router.get("", response_model=Envelope[list[CategoryResponse]])
async def list_categories(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    search: str | None = None,
    include_inactive: bool = True,
) -> Envelope[list[CategoryResponse]]:
    """All categories: active ones in display order, then inactive ones."""
    categories = await category_service.list_categories(
        session,
        active_only=not include_inactive,
        search=search,
    )
    return ok([CategoryResponse.model_validate(category) for category in categories])


@router.get("/{category_id}", response_model=Envelope[CategoryResponse])
async def get_category(
    category_id: int,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[CategoryResponse]:
    category = await category_service.get_category(session, category_id)
    return ok(CategoryResponse.model_validate(category))


@router.post(
    "",
    response_model=Envelope[CategoryResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_category(
    category_data: CategoryCreate,
    admin: AdminUser,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[CategoryResponse]:
    """Create a category at the end of the display order."""
    category = await category_service.create_category(session, category_data)
    logger.info(
        "Category created",
        category_id=category.id,
        sort_order=category.sort_order,
        user_id=admin.id,
    )
    record_catalog_operation("category", "create")
    return ok(CategoryResponse.model_validate(category))


@router.put("/{category_id}", response_model=Envelope[CategoryResponse])
async def update_category(
    category_id: int,
    category_data: CategoryUpdate,
    admin: AdminUser,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[CategoryResponse]:
    category = await category_service.get_category(session, category_id)
    category = await category_service.update_category(session, category, category_data)
    logger.info("Category updated", category_id=category_id, user_id=admin.id)
    record_catalog_operation("category", "update")
    return ok(CategoryResponse.model_validate(category))


@router.delete("/{category_id}", response_model=Envelope[None])
async def delete_category(
    category_id: int,
    admin: AdminUser,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[None]:
    """Delete an empty category. Categories that still hold links are refused."""
    await category_service.delete_category(session, category_id)
    logger.info("Category deleted", category_id=category_id, user_id=admin.id)
    record_catalog_operation("category", "delete")
    return ok(message="Category deleted")


@router.patch("/{category_id}/move-up", response_model=Envelope[CategoryResponse])
async def move_category_up(
    category_id: int,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[CategoryResponse]:
    """Swap with the previous active category. No-op at the top."""
    category = await ordering_service.move_category_up(session, category_id)
    record_catalog_operation("category", "move")
    return ok(CategoryResponse.model_validate(category))


@router.patch("/{category_id}/move-down", response_model=Envelope[CategoryResponse])
async def move_category_down(
    category_id: int,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[CategoryResponse]:
    """Swap with the next active category. No-op at the bottom."""
    category = await ordering_service.move_category_down(session, category_id)
    record_catalog_operation("category", "move")
    return ok(CategoryResponse.model_validate(category))
