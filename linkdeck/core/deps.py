"""Dependency injection utilities for FastAPI routes.

A bearer credential is either an API token (recognized by its prefix) or a
session JWT. Both resolve to a ``Principal`` carrying the user, freshly
loaded from the database.
"""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from linkdeck.core.database import get_async_session
from linkdeck.core.errors import Forbidden, Unauthorized
from linkdeck.core.observability import record_auth_attempt
from linkdeck.core.security import SessionClaims, is_api_token
from linkdeck.models.api_token import APIToken
from linkdeck.models.user import User
from linkdeck.services import session_service, token_service

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class Principal:
    """The authenticated caller of a request."""

    user: User
    claims: SessionClaims | None = None
    api_token: APIToken | None = None


async def _resolve(session: AsyncSession, credential: str) -> Principal:
    if is_api_token(credential):
        try:
            token = await token_service.validate_token(session, credential)
        except Unauthorized:
            record_auth_attempt("api_token", success=False)
            raise
        record_auth_attempt("api_token", success=True)
        return Principal(user=token.user, api_token=token)

    user, claims = await session_service.validate_session(session, credential)
    return Principal(user=user, claims=claims)


async def get_principal_optional(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> Principal | None:
    """Get the caller if a valid credential is present, otherwise None.

    Use this for routes that work with or without authentication.
    """
    if credentials is None:
        return None
    try:
        return await _resolve(session, credentials.credentials)
    except Unauthorized:
        return None


async def get_principal(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> Principal:
    """Get the authenticated caller.

    Raises Unauthorized if no valid credential was sent.
    """
    if credentials is None:
        raise Unauthorized("Not authenticated")
    return await _resolve(session, credentials.credentials)


async def get_current_user(
    principal: Annotated[Principal, Depends(get_principal)],
) -> User:
    return principal.user


async def get_current_user_optional(
    principal: Annotated[Principal | None, Depends(get_principal_optional)],
) -> User | None:
    return principal.user if principal else None


async def require_admin(
    principal: Annotated[Principal, Depends(get_principal)],
) -> User:
    """Get the caller, who must hold the admin role.

    Raises Forbidden for authenticated non-admins.
    """
    if not principal.user.is_admin:
        raise Forbidden("Admin privileges required")
    return principal.user


# Type aliases for dependency injection
CurrentPrincipal = Annotated[Principal, Depends(get_principal)]
CurrentUser = Annotated[User, Depends(get_current_user)]
CurrentUserOptional = Annotated[User | None, Depends(get_current_user_optional)]
AdminUser = Annotated[User, Depends(require_admin)]
