"""Session service: password login, registration and logout.

Sessions are signed JWTs. Logout revokes the credential server-side by
putting its ``jti`` on a Redis denylist until the token would have expired
anyway, so a copied token stops working immediately.
"""

from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from linkdeck.core.database import utcnow
from linkdeck.core.errors import Forbidden, Unauthorized
from linkdeck.core.observability import record_auth_attempt
from linkdeck.core.redis import is_session_revoked, revoke_session
from linkdeck.core.security import (
    SessionClaims,
    create_session_token,
    decode_session_token,
    verify_password,
)
from linkdeck.models.user import User, UserRole
from linkdeck.schemas.user import UserCreate
from linkdeck.services import setting as setting_service
from linkdeck.services import user as user_service

logger = structlog.get_logger()

INVALID_LOGIN_MESSAGE = "Invalid username or password"
INVALID_SESSION_MESSAGE = "Invalid or expired session"


async def authenticate(session: AsyncSession, username: str, password: str) -> User:
    """Check credentials.

    Unknown users still pay for one bcrypt verification, and every failure
    carries the same message.

    Raises:
        Unauthorized: wrong username, wrong password or inactive account.
    """
    user = await user_service.get_user_by_username(session, username)
    password_ok = verify_password(password, user.password_hash if user else None)

    if user is None or not password_ok or not user.active:
        record_auth_attempt("password", success=False)
        logger.info("Login rejected", username=username)
        raise Unauthorized(INVALID_LOGIN_MESSAGE)

    record_auth_attempt("password", success=True)
    return user


def issue_session(user: User) -> tuple[str, datetime]:
    """Issue a session credential for an authenticated user.

    Returns:
        Tuple of (token, expires_at)
    """
    token, expires_at = create_session_token(user.id, user.username, user.role.value)
    logger.info("Session issued", user_id=user.id)
    return token, expires_at


async def login(session: AsyncSession, username: str, password: str) -> tuple[User, str, datetime]:
    """Authenticate and issue a session in one step."""
    user = await authenticate(session, username, password)
    token, expires_at = issue_session(user)
    return user, token, expires_at


async def register(
    session: AsyncSession,
    email: str,
    username: str,
    password: str,
) -> User:
    """Self-service sign-up, available while the site allows registration.

    Raises:
        Forbidden: registration is switched off.
        Conflict: email or username already in use.
    """
    if not await setting_service.is_enabled(session, "enable_registration"):
        raise Forbidden("Registration is disabled")

    user = await user_service.create_user(
        session,
        UserCreate(email=email, username=username, password=password, role=UserRole.USER),
    )
    logger.info("User registered", user_id=user.id, username=user.username)
    return user


async def validate_session(session: AsyncSession, token: str) -> tuple[User, SessionClaims]:
    """Resolve a session credential to its user.

    The user row is read on every call, so role changes and deactivation
    take effect without waiting for the token to expire.

    Raises:
        Unauthorized: bad signature, expired, revoked, or user gone/inactive.
    """
    claims = decode_session_token(token)
    if claims is None or await is_session_revoked(claims.jti):
        record_auth_attempt("session", success=False)
        raise Unauthorized(INVALID_SESSION_MESSAGE)

    user = await user_service.get_user_by_id(session, claims.user_id)
    if user is None or not user.active:
        record_auth_attempt("session", success=False)
        raise Unauthorized(INVALID_SESSION_MESSAGE)

    return user, claims


async def logout(claims: SessionClaims) -> None:
    """Revoke a session for the rest of its lifetime.

    Raises:
        Unavailable: the denylist could not be written.
    """
    remaining = int((claims.exp - utcnow()).total_seconds()) + 1
    if remaining <= 0:
        return
    await revoke_session(claims.jti, remaining)
    logger.info("Session revoked", user_id=claims.user_id)
