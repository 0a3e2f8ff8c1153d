"""Admin user management endpoints."""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from linkdeck.core.database import get_async_session
from linkdeck.core.deps import AdminUser
from linkdeck.core.observability import record_catalog_operation
from linkdeck.models.user import UserRole
from linkdeck.schemas.common import Envelope, Page, ok
from linkdeck.schemas.user import UserCreate, UserResponse, UserUpdate
from linkdeck.services import user_service

logger = structlog.get_logger()

router = APIRouter(prefix="/users", tags=["admin: users"])


@router.get("", response_model=Envelope[Page[UserResponse]])
async def list_users(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    search: str | None = None,
    role: UserRole | None = None,
    active: bool | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 20,
) -> Envelope[Page[UserResponse]]:
    users, total = await user_service.list_users(
        session,
        search=search,
        role=role,
        active=active,
        page=page,
        page_size=page_size,
    )
    return ok(
        Page.build(
            [UserResponse.model_validate(user) for user in users],
            total=total,
            page=page,
            page_size=page_size,
        )
    )


@router.get("/{user_id}", response_model=Envelope[UserResponse])
async def get_user(
    user_id: int,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[UserResponse]:
    user = await user_service.get_user(session, user_id)
    return ok(UserResponse.model_validate(user))


@router.post("", response_model=Envelope[UserResponse], status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    admin: AdminUser,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[UserResponse]:
    user = await user_service.create_user(session, user_data)
    await session.commit()
    logger.info("User created", new_user_id=user.id, role=user.role.value, user_id=admin.id)
    record_catalog_operation("user", "create")
    return ok(UserResponse.model_validate(user))


@router.put("/{user_id}", response_model=Envelope[UserResponse])
async def update_user(
    user_id: int,
    user_data: UserUpdate,
    admin: AdminUser,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[UserResponse]:
    """Update a user. Role and active changes apply to their next request."""
    user = await user_service.get_user(session, user_id)
    user = await user_service.update_user(session, user, user_data)
    await session.commit()
    logger.info("User updated", target_user_id=user_id, user_id=admin.id)
    record_catalog_operation("user", "update")
    return ok(UserResponse.model_validate(user))


@router.delete("/{user_id}", response_model=Envelope[None])
async def delete_user(
    user_id: int,
    admin: AdminUser,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[None]:
    """Delete a user, their favorites and API tokens. Admins cannot delete themselves."""
    await user_service.delete_user(session, user_id, acting_user_id=admin.id)
    await session.commit()
    logger.info("User deleted", target_user_id=user_id, user_id=admin.id)
    record_catalog_operation("user", "delete")
    return ok(message="User deleted")
