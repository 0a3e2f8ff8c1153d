"""Helpers that create committed rows, each in a session of its own."""

from linkdeck.core.database import async_session_factory
from linkdeck.core.security import create_session_token
from linkdeck.models.category import Category
from linkdeck.models.link import Link, LinkStatus
from linkdeck.models.user import User, UserRole
from linkdeck.schemas.category import CategoryCreate
from linkdeck.schemas.link import LinkCreate
from linkdeck.schemas.user import UserCreate
from linkdeck.services import category_service, link_service, user_service


async def create_user(
    username: str,
    role: UserRole = UserRole.USER,
    password: str = "password123",
    active: bool = True,
) -> User:
    """Create and commit a user in its own session."""
    async with async_session_factory() as session:
        user = await user_service.create_user(
            session,
            UserCreate(
                email=f"{username}@example.com",
                username=username,
                password=password,
                role=role,
                active=active,
            ),
        )
        await session.commit()
        return user


async def create_category(name: str, active: bool = True) -> Category:
    async with async_session_factory() as session:
        return await category_service.create_category(
            session,
            CategoryCreate(name=name, active=active),
        )


async def create_link(
    title: str,
    category_id: int,
    status: LinkStatus = LinkStatus.ACTIVE,
    tag_names: list[str] | None = None,
) -> Link:
    async with async_session_factory() as session:
        link = await link_service.create_link(
            session,
            LinkCreate(
                title=title,
                url=f"https://{title.lower().replace(' ', '-')}.example.com",
                category_id=category_id,
                status=status,
                tag_names=tag_names,
            ),
        )
        await session.commit()
        return link


def auth_headers(user: User) -> dict[str, str]:
    token, _ = create_session_token(user.id, user.username, user.role.value)
    return {"Authorization": f"Bearer {token}"}
