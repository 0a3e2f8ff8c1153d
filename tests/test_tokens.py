"""API token issue, validation and management."""

from datetime import timedelta

import pytest
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from linkdeck.core.database import utcnow
from linkdeck.core.errors import NotFound, Unauthorized, ValidationError
from linkdeck.core.security import hash_api_token, is_api_token
from linkdeck.models.api_token import APIToken
from linkdeck.models.user import User
from linkdeck.schemas.token import TokenUpdate
from linkdeck.services import token_service
from tests.factories import create_user


async def issue(session: AsyncSession, user_id: int, **kwargs) -> tuple[APIToken, str]:
    token, secret = await token_service.create_token(session, "ci", user_id, **kwargs)
    await session.commit()
    return token, secret


async def test_secret_is_shown_once_and_stored_hashed(session: AsyncSession):
    user = await create_user("bot")

    token, secret = await issue(session, user.id)

    assert is_api_token(secret)
    assert len(secret) == 4 + 64
    assert token.token_hash == hash_api_token(secret)
    assert token.token_hash != secret
    assert token.token_prefix == secret[:12]
    stored = await session.scalar(select(APIToken.token_hash).where(APIToken.id == token.id))
    assert secret not in stored


async def test_secrets_are_unique(session: AsyncSession):
    user = await create_user("bot")

    _, first = await issue(session, user.id)
    _, second = await issue(session, user.id)

    assert first != second


async def test_validate_resolves_owner_and_records_use(session: AsyncSession):
    user = await create_user("bot")
    token, secret = await issue(session, user.id)
    assert token.last_used_at is None

    validated = await token_service.validate_token(session, secret)

    assert validated.id == token.id
    assert validated.user.username == "bot"
    assert validated.last_used_at is not None


@pytest.mark.parametrize("secret", ["ldk_unknown", "ldk_" + "0" * 64, ""])
async def test_unknown_secret_rejected(session: AsyncSession, secret: str):
    with pytest.raises(Unauthorized):
        await token_service.validate_token(session, secret)


async def test_deactivated_token_rejected_immediately(session: AsyncSession):
    user = await create_user("bot")
    token, secret = await issue(session, user.id)

    token = await token_service.get_token(session, token.id)
    await token_service.update_token(session, token, TokenUpdate(active=False))
    await session.commit()

    with pytest.raises(Unauthorized) as excinfo:
        await token_service.validate_token(session, secret)
    assert excinfo.value.message == token_service.INVALID_TOKEN_MESSAGE


async def test_expired_token_rejected(session: AsyncSession):
    user = await create_user("bot")
    token, secret = await issue(session, user.id, expires_at=utcnow() + timedelta(hours=1))

    await session.execute(
        update(APIToken)
        .where(APIToken.id == token.id)
        .values(expires_at=utcnow() - timedelta(seconds=1))
    )
    await session.commit()

    with pytest.raises(Unauthorized):
        await token_service.validate_token(session, secret)


async def test_inactive_owner_rejected(session: AsyncSession):
    user = await create_user("bot")
    _, secret = await issue(session, user.id)

    await session.execute(update(User).where(User.id == user.id).values(active=False))
    await session.commit()

    with pytest.raises(Unauthorized):
        await token_service.validate_token(session, secret)


async def test_expiry_must_be_in_the_future(session: AsyncSession):
    user = await create_user("bot")

    with pytest.raises(ValidationError):
        await token_service.create_token(
            session,
            "ci",
            user.id,
            expires_at=utcnow() - timedelta(minutes=1),
        )


async def test_owner_must_exist(session: AsyncSession):
    with pytest.raises(NotFound):
        await token_service.create_token(session, "ci", 999)


async def test_deleted_token_rejected(session: AsyncSession):
    user = await create_user("bot")
    token, secret = await issue(session, user.id)

    await token_service.delete_token(session, token.id)
    await session.commit()

    with pytest.raises(Unauthorized):
        await token_service.validate_token(session, secret)
    with pytest.raises(NotFound):
        await token_service.get_token(session, token.id)


async def test_list_filters(session: AsyncSession):
    bot = await create_user("bot")
    other = await create_user("other")
    first, _ = await issue(session, bot.id)
    await issue(session, other.id)

    first = await token_service.get_token(session, first.id)
    await token_service.update_token(session, first, TokenUpdate(active=False))
    await session.commit()

    tokens, total = await token_service.list_tokens(session, user_id=bot.id)
    assert total == 1
    assert tokens[0].active is False

    tokens, total = await token_service.list_tokens(session, active=True)
    assert total == 1
    assert tokens[0].user_id == other.id


async def test_failed_usage_stamp_does_not_reject(session: AsyncSession, monkeypatch):
    user = await create_user("bot")
    token, secret = await issue(session, user.id)

    def broken_update(*args, **kwargs):
        raise SQLAlchemyError("database is locked")

    monkeypatch.setattr("linkdeck.services.token.update", broken_update)

    validated = await token_service.validate_token(session, secret)

    assert validated.id == token.id
    assert validated.last_used_at is None
