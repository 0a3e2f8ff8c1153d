"""Password login, session validation and logout."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from linkdeck.core.errors import Conflict, Forbidden, Unauthorized, Unavailable
from linkdeck.core.redis import REVOKED_SESSION_PREFIX
from linkdeck.core.security import create_session_token, decode_session_token
from linkdeck.models.user import User, UserRole
from linkdeck.services import session_service, setting_service
from tests.factories import create_user


async def test_login_issues_a_session(session: AsyncSession):
    await create_user("bob", password="s3cret-pass")

    user, token, expires_at = await session_service.login(session, "bob", "s3cret-pass")

    claims = decode_session_token(token)
    assert claims is not None
    assert claims.user_id == user.id
    assert claims.role == UserRole.USER.value
    assert claims.exp == expires_at.replace(microsecond=0)


@pytest.mark.parametrize(
    ("username", "password"),
    [("bob", "wrong-password"), ("nobody", "s3cret-pass")],
)
async def test_failures_are_indistinguishable(session: AsyncSession, username: str, password: str):
    await create_user("bob", password="s3cret-pass")

    with pytest.raises(Unauthorized) as excinfo:
        await session_service.authenticate(session, username, password)

    assert excinfo.value.message == session_service.INVALID_LOGIN_MESSAGE


async def test_inactive_user_cannot_log_in(session: AsyncSession):
    await create_user("bob", password="s3cret-pass", active=False)

    with pytest.raises(Unauthorized) as excinfo:
        await session_service.authenticate(session, "bob", "s3cret-pass")

    assert excinfo.value.message == session_service.INVALID_LOGIN_MESSAGE


async def test_validate_reads_the_current_user(session: AsyncSession):
    bob = await create_user("bob")
    token, _ = create_session_token(bob.id, bob.username, bob.role.value)

    await session.execute(update(User).where(User.id == bob.id).values(role=UserRole.ADMIN))
    await session.commit()

    user, claims = await session_service.validate_session(session, token)

    assert user.is_admin
    # Claims keep the role the token was issued with
    assert claims.role == UserRole.USER.value


async def test_deactivated_user_session_rejected(session: AsyncSession):
    bob = await create_user("bob")
    token, _ = create_session_token(bob.id, bob.username, bob.role.value)

    await session.execute(update(User).where(User.id == bob.id).values(active=False))
    await session.commit()

    with pytest.raises(Unauthorized):
        await session_service.validate_session(session, token)


@pytest.mark.parametrize("token", ["garbage", "a.b.c", ""])
async def test_malformed_session_rejected(session: AsyncSession, token: str):
    with pytest.raises(Unauthorized):
        await session_service.validate_session(session, token)


async def test_expired_session_rejected(session: AsyncSession):
    bob = await create_user("bob")
    token, _ = create_session_token(
        bob.id,
        bob.username,
        bob.role.value,
        expires_delta=timedelta(seconds=-1),
    )

    with pytest.raises(Unauthorized):
        await session_service.validate_session(session, token)


async def test_logout_revokes_for_remaining_lifetime(session: AsyncSession, fake_redis):
    bob = await create_user("bob")
    token, _ = create_session_token(bob.id, bob.username, bob.role.value)
    _, claims = await session_service.validate_session(session, token)

    await session_service.logout(claims)

    key = f"{REVOKED_SESSION_PREFIX}{claims.jti}"
    assert key in fake_redis.store
    assert 0 < fake_redis.ttls[key] <= 30 * 60 + 1
    with pytest.raises(Unauthorized):
        await session_service.validate_session(session, token)


async def test_logout_reports_unreachable_redis(session: AsyncSession, monkeypatch):
    bob = await create_user("bob")
    token, _ = create_session_token(bob.id, bob.username, bob.role.value)
    claims = decode_session_token(token)

    failing = AsyncMock()
    failing.setex.side_effect = RedisConnectionError("down")
    monkeypatch.setattr("linkdeck.core.redis._redis_client", failing)

    with pytest.raises(Unavailable):
        await session_service.logout(claims)


async def test_revocation_check_fails_open(session: AsyncSession, monkeypatch):
    bob = await create_user("bob")
    token, _ = create_session_token(bob.id, bob.username, bob.role.value)

    failing = AsyncMock()
    failing.exists.side_effect = RedisConnectionError("down")
    monkeypatch.setattr("linkdeck.core.redis._redis_client", failing)

    user, _ = await session_service.validate_session(session, token)
    assert user.id == bob.id


async def test_register_creates_regular_user(session: AsyncSession):
    user = await session_service.register(session, "new@example.com", "newbie", "password123")

    assert user.role == UserRole.USER
    assert user.active is True
    assert user.password_hash != "password123"


async def test_register_rejects_taken_username(session: AsyncSession):
    await create_user("bob")

    with pytest.raises(Conflict):
        await session_service.register(session, "other@example.com", "bob", "password123")


async def test_register_when_disabled(session: AsyncSession):
    await setting_service.update_site_settings(session, {"enable_registration": "false"})

    with pytest.raises(Forbidden):
        await session_service.register(session, "new@example.com", "newbie", "password123")
