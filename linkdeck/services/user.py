"""User service for database operations."""

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from linkdeck.core.errors import Conflict, NotFound, ValidationError
from linkdeck.core.redis import invalidate_stats_cache
from linkdeck.core.security import hash_password
from linkdeck.models.api_token import APIToken
from linkdeck.models.engagement import Favorite
from linkdeck.models.user import User, UserRole
from linkdeck.schemas.user import UserCreate, UserUpdate


async def get_user_by_id(session: AsyncSession, user_id: int) -> User | None:
    """Get a user by their ID."""
    result = await session.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    """Get a user by their email address."""
    result = await session.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def get_user_by_username(session: AsyncSession, username: str) -> User | None:
    """Get a user by their username."""
    result = await session.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


async def get_user(session: AsyncSession, user_id: int) -> User:
    """Get a user by ID or raise NotFound."""
    user = await get_user_by_id(session, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


async def _ensure_unique(
    session: AsyncSession,
    email: str | None,
    username: str | None,
    exclude_id: int | None = None,
) -> None:
    conditions = []
    if email is not None:
        conditions.append(User.email == email)
    if username is not None:
        conditions.append(User.username == username)
    if not conditions:
        return
    query = select(User).where(or_(*conditions))
    if exclude_id is not None:
        query = query.where(User.id != exclude_id)
    result = await session.execute(query.limit(1))
    existing = result.scalar_one_or_none()
    if existing is None:
        return
    if email is not None and existing.email == email:
        raise Conflict("Email is already registered")
    raise Conflict("Username is already taken")


async def list_users(
    session: AsyncSession,
    search: str | None = None,
    role: UserRole | None = None,
    active: bool | None = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[User], int]:
    """Get paginated users.

    Returns tuple of (users, total_count).
    """
    filters = []
    if search:
        pattern = f"%{search}%"
        filters.append(or_(User.username.ilike(pattern), User.email.ilike(pattern)))
    if role is not None:
        filters.append(User.role == role)
    if active is not None:
        filters.append(User.active == active)

    total_result = await session.execute(select(func.count(User.id)).where(*filters))
    total = total_result.scalar() or 0

    offset = (page - 1) * page_size
    result = await session.execute(
        select(User).where(*filters).order_by(User.id).offset(offset).limit(page_size)
    )
    return list(result.scalars().all()), total


async def create_user(session: AsyncSession, user_data: UserCreate) -> User:
    """Create a new user with a hashed password."""
    await _ensure_unique(session, user_data.email, user_data.username)
    user = User(
        email=user_data.email,
        username=user_data.username,
        password_hash=hash_password(user_data.password),
        role=user_data.role,
        active=user_data.active,
    )
    session.add(user)
    try:
        await session.flush()
    except IntegrityError:
        raise Conflict("Email or username is already registered") from None
    await session.refresh(user)
    await invalidate_stats_cache(session)
    return user


async def update_user(
    session: AsyncSession,
    user: User,
    user_data: UserUpdate,
) -> User:
    """Update an existing user."""
    update_data = user_data.model_dump(exclude_unset=True, exclude_none=True)
    await _ensure_unique(
        session,
        update_data.get("email"),
        update_data.get("username"),
        exclude_id=user.id,
    )

    password = update_data.pop("password", None)
    if password is not None:
        user.password_hash = hash_password(password)
    for field, value in update_data.items():
        setattr(user, field, value)
    try:
        await session.flush()
    except IntegrityError:
        raise Conflict("Email or username is already registered") from None
    await session.refresh(user)
    return user


async def delete_user(session: AsyncSession, user_id: int, acting_user_id: int) -> None:
    """Delete a user together with their favorites and API tokens.

    Raises:
        ValidationError: an admin tried to delete their own account.
        NotFound: no user has this id.
    """
    if user_id == acting_user_id:
        raise ValidationError("You cannot delete your own account")
    user = await get_user(session, user_id)

    await session.execute(delete(Favorite).where(Favorite.user_id == user_id))
    await session.execute(delete(APIToken).where(APIToken.user_id == user_id))
    await session.execute(delete(User).where(User.id == user_id))
    session.expunge(user)
    await invalidate_stats_cache(session)
