"""Authentication endpoints for password login, registration and logout."""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from linkdeck.core.database import get_async_session
from linkdeck.core.deps import CurrentPrincipal, CurrentUser
from linkdeck.core.rate_limit import RATE_LIMIT_AUTH, limiter
from linkdeck.schemas.auth import LoginRequest, RegisterRequest, SessionResponse
from linkdeck.schemas.common import Envelope, ok
from linkdeck.schemas.user import UserResponse
from linkdeck.services import session_service

logger = structlog.get_logger()

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=Envelope[SessionResponse])
@limiter.limit(RATE_LIMIT_AUTH)
async def login(
    request: Request,
    credentials: LoginRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[SessionResponse]:
    """Exchange username and password for a session token."""
    user, token, expires_at = await session_service.login(
        session,
        credentials.username,
        credentials.password,
    )
    logger.info("User logged in", user_id=user.id)
    return ok(
        SessionResponse(
            access_token=token,
            expires_at=expires_at,
            user=UserResponse.model_validate(user),
        )
    )


@router.post(
    "/register",
    response_model=Envelope[SessionResponse],
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(RATE_LIMIT_AUTH)
async def register(
    request: Request,
    registration: RegisterRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[SessionResponse]:
    """Create an account (when registration is enabled) and sign it in."""
    user = await session_service.register(
        session,
        email=registration.email,
        username=registration.username,
        password=registration.password,
    )
    await session.commit()

    token, expires_at = session_service.issue_session(user)
    return ok(
        SessionResponse(
            access_token=token,
            expires_at=expires_at,
            user=UserResponse.model_validate(user),
        )
    )


@router.post("/logout", response_model=Envelope[None])
async def logout(principal: CurrentPrincipal) -> Envelope[None]:
    """Revoke the current session token.

    API tokens are not sessions; revoke those through the admin token API.
    """
    if principal.claims is not None:
        await session_service.logout(principal.claims)
    logger.info("User logged out", user_id=principal.user.id)
    return ok(message="Logged out")


@router.get("/me", response_model=Envelope[UserResponse])
async def get_current_user_info(user: CurrentUser) -> Envelope[UserResponse]:
    """Get the current authenticated user's information."""
    return ok(UserResponse.model_validate(user))
