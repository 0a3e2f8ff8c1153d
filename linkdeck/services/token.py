"""API token service: issue, validate and manage machine credentials.

Secrets are 256-bit random values shown once at creation. Only their
SHA-256 hash is persisted, and every validation reads the token row so
revocation and expiry take effect on the very next request.
"""

from datetime import datetime

import structlog
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from linkdeck.core.database import as_utc, utcnow
from linkdeck.core.errors import NotFound, Unauthorized, ValidationError
from linkdeck.core.security import (
    API_TOKEN_DISPLAY_LENGTH,
    api_token_hash_matches,
    generate_api_token,
    hash_api_token,
)
from linkdeck.models.api_token import APIToken
from linkdeck.schemas.token import TokenUpdate
from linkdeck.services import user as user_service

logger = structlog.get_logger()

INVALID_TOKEN_MESSAGE = "Invalid API token"


def _check_expiry(expires_at: datetime | None) -> None:
    if expires_at is not None and as_utc(expires_at) <= utcnow():
        raise ValidationError("expires_at must be in the future")


async def create_token(
    session: AsyncSession,
    name: str,
    user_id: int,
    expires_at: datetime | None = None,
) -> tuple[APIToken, str]:
    """Issue a token for a user.

    Returns:
        Tuple of (token row, plaintext secret). The secret cannot be
        recovered later.

    Raises:
        NotFound: the owner does not exist.
        ValidationError: the expiry is not in the future.
    """
    _check_expiry(expires_at)
    await user_service.get_user(session, user_id)

    secret = generate_api_token()
    token = APIToken(
        name=name,
        token_hash=hash_api_token(secret),
        token_prefix=secret[:API_TOKEN_DISPLAY_LENGTH],
        user_id=user_id,
        active=True,
        expires_at=expires_at,
    )
    session.add(token)
    await session.flush()
    await session.refresh(token)

    logger.info("API token issued", token_id=token.id, user_id=user_id)
    return token, secret


async def validate_token(session: AsyncSession, secret: str) -> APIToken:
    """Resolve a presented secret to its token and owner.

    Rejections for unknown, inactive, expired or orphaned tokens are
    indistinguishable to the caller. Recording ``last_used_at`` is best
    effort and never fails the request.

    Raises:
        Unauthorized: the secret does not identify a usable token.
    """
    token_hash = hash_api_token(secret)
    result = await session.execute(
        select(APIToken)
        .where(APIToken.token_hash == token_hash)
        .execution_options(populate_existing=True)
    )
    token = result.scalar_one_or_none()

    now = utcnow()
    if (
        token is None
        or not api_token_hash_matches(secret, token.token_hash)
        or not token.is_usable(now)
    ):
        raise Unauthorized(INVALID_TOKEN_MESSAGE)

    try:
        async with session.begin_nested():
            await session.execute(
                update(APIToken)
                .where(APIToken.id == token.id)
                .values(last_used_at=now, updated_at=APIToken.updated_at)
                .execution_options(synchronize_session=False)
            )
        set_committed_value(token, "last_used_at", now)
    except SQLAlchemyError as e:
        logger.warning("Failed to record token use", token_id=token.id, error=str(e))

    return token


async def get_token(session: AsyncSession, token_id: int) -> APIToken:
    token = await session.get(APIToken, token_id)
    if token is None:
        raise NotFound("API token not found")
    return token


async def list_tokens(
    session: AsyncSession,
    user_id: int | None = None,
    active: bool | None = None,
    search: str | None = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[APIToken], int]:
    """Get paginated tokens, newest first.

    Returns tuple of (tokens, total_count).
    """
    filters = []
    if user_id is not None:
        filters.append(APIToken.user_id == user_id)
    if active is not None:
        filters.append(APIToken.active == active)
    if search:
        filters.append(APIToken.name.ilike(f"%{search}%"))

    total_result = await session.execute(select(func.count(APIToken.id)).where(*filters))
    total = total_result.scalar() or 0

    offset = (page - 1) * page_size
    result = await session.execute(
        select(APIToken)
        .where(*filters)
        .order_by(APIToken.created_at.desc(), APIToken.id.desc())
        .offset(offset)
        .limit(page_size)
    )
    return list(result.scalars().all()), total


async def update_token(
    session: AsyncSession,
    token: APIToken,
    token_data: TokenUpdate,
) -> APIToken:
    """Change a token's name, active flag or expiry."""
    update_data = token_data.model_dump(exclude_unset=True)
    if "expires_at" in update_data:
        _check_expiry(update_data["expires_at"])
    for field, value in update_data.items():
        if field in ("name", "active") and value is None:
            continue
        setattr(token, field, value)
    await session.flush()
    await session.refresh(token)
    return token


async def delete_token(session: AsyncSession, token_id: int) -> None:
    token = await get_token(session, token_id)
    await session.execute(delete(APIToken).where(APIToken.id == token_id))
    session.expunge(token)
