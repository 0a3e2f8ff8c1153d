"""Admin API token endpoints."""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from linkdeck.core.database import get_async_session
from linkdeck.core.deps import AdminUser
from linkdeck.core.observability import record_catalog_operation
from linkdeck.schemas.common import Envelope, Page, ok
from linkdeck.schemas.token import TokenCreate, TokenCreated, TokenResponse, TokenUpdate
from linkdeck.services import token_service

logger = structlog.get_logger()

router = APIRouter(prefix="/tokens", tags=["admin: tokens"])


@router.get("", response_model=Envelope[Page[TokenResponse]])
async def list_tokens(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    user_id: int | None = None,
    active: bool | None = None,
    search: str | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 20,
) -> Envelope[Page[TokenResponse]]:
    tokens, total = await token_service.list_tokens(
        session,
        user_id=user_id,
        active=active,
        search=search,
        page=page,
        page_size=page_size,
    )
    return ok(
        Page.build(
            [TokenResponse.model_validate(token) for token in tokens],
            total=total,
            page=page,
            page_size=page_size,
        )
    )


@router.get("/{token_id}", response_model=Envelope[TokenResponse])
async def get_token(
    token_id: int,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[TokenResponse]:
    token = await token_service.get_token(session, token_id)
    return ok(TokenResponse.model_validate(token))


@router.post("", response_model=Envelope[TokenCreated], status_code=status.HTTP_201_CREATED)
async def create_token(
    token_data: TokenCreate,
    admin: AdminUser,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[TokenCreated]:
    """Issue a token. The secret in this response is never shown again."""
    token, secret = await token_service.create_token(
        session,
        name=token_data.name,
        user_id=token_data.user_id or admin.id,
        expires_at=token_data.expires_at,
    )
    await session.commit()
    record_catalog_operation("token", "create")
    created = TokenCreated(**TokenResponse.model_validate(token).model_dump(), token=secret)
    return ok(created, message="Store this token now; it cannot be shown again")


@router.put("/{token_id}", response_model=Envelope[TokenResponse])
async def update_token(
    token_id: int,
    token_data: TokenUpdate,
    admin: AdminUser,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[TokenResponse]:
    """Rename, (de)activate or change the expiry of a token."""
    token = await token_service.get_token(session, token_id)
    token = await token_service.update_token(session, token, token_data)
    await session.commit()
    logger.info("API token updated", token_id=token_id, user_id=admin.id)
    record_catalog_operation("token", "update")
    return ok(TokenResponse.model_validate(token))


@router.delete("/{token_id}", response_model=Envelope[None])
async def delete_token(
    token_id: int,
    admin: AdminUser,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[None]:
    await token_service.delete_token(session, token_id)
    await session.commit()
    logger.info("API token deleted", token_id=token_id, user_id=admin.id)
    record_catalog_operation("token", "delete")
    return ok(message="API token deleted")
