"""Security utilities: password hashing, session JWTs and API token secrets."""

import hashlib
import hmac
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

from linkdeck.core.config import get_settings

settings = get_settings()

# JWT Configuration
ALGORITHM = "HS256"

# API token secrets carry a recognizable prefix so the auth layer can tell
# them apart from session JWTs
API_TOKEN_PREFIX = "ldk_"
API_TOKEN_BYTES = 32
API_TOKEN_DISPLAY_LENGTH = 12

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Verified against when the username is unknown so both paths cost one bcrypt round
_DUMMY_PASSWORD_HASH = pwd_context.hash("linkdeck-timing-equalizer")


class SessionClaims(BaseModel):
    """Data encoded in a session JWT."""

    user_id: int
    username: str
    role: str
    jti: str
    exp: datetime


def hash_password(password: str) -> str:
    """Hash a password with bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, password_hash: str | None) -> bool:
    """Check a password in constant time.

    A missing hash is still checked against a dummy so that unknown users
    take as long to reject as wrong passwords.
    """
    if password_hash is None:
        pwd_context.verify(plain_password, _DUMMY_PASSWORD_HASH)
        return False
    try:
        return pwd_context.verify(plain_password, password_hash)
    except ValueError:
        return False


def create_session_token(
    user_id: int,
    username: str,
    role: str,
    expires_delta: timedelta | None = None,
) -> tuple[str, datetime]:
    """Create a signed session JWT.

    Args:
        user_id: The user's id
        username: The user's username
        role: The user's role at issue time
        expires_delta: Optional custom expiration time

    Returns:
        Tuple of (encoded token, expiry)
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.session_expire_minutes))

    to_encode: dict[str, Any] = {
        "sub": str(user_id),
        "username": username,
        "role": role,
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": expire,
    }

    encoded_jwt = jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)
    return encoded_jwt, expire


def decode_session_token(token: str) -> SessionClaims | None:
    """Decode and validate a session JWT.

    Returns:
        SessionClaims if valid, None if invalid or expired
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
        user_id = payload.get("sub")
        jti = payload.get("jti")
        exp = payload.get("exp")

        if user_id is None or jti is None or exp is None:
            return None

        return SessionClaims(
            user_id=int(user_id),
            username=payload.get("username", ""),
            role=payload.get("role", ""),
            jti=jti,
            exp=datetime.fromtimestamp(exp, tz=timezone.utc),
        )
    except (JWTError, ValueError):
        return None


def is_api_token(credential: str) -> bool:
    """Whether a bearer credential looks like an API token secret."""
    return credential.startswith(API_TOKEN_PREFIX)


def generate_api_token() -> str:
    """Generate a new API token secret with 256 bits of randomness."""
    return API_TOKEN_PREFIX + secrets.token_hex(API_TOKEN_BYTES)


def hash_api_token(secret: str) -> str:
    """One-way hash stored in place of the secret."""
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()


def api_token_hash_matches(secret: str, token_hash: str) -> bool:
    """Compare a presented secret against a stored hash in constant time."""
    return hmac.compare_digest(hash_api_token(secret), token_hash)
