"""SQLAlchemy models.

All models should be imported here for Alembic to detect them.
"""

from linkdeck.core.database import Base
from linkdeck.models.api_token import APIToken
from linkdeck.models.category import Category
from linkdeck.models.engagement import ClickRecord, Favorite
from linkdeck.models.link import Link, LinkStatus, link_tags
from linkdeck.models.setting import Setting
from linkdeck.models.tag import Tag
from linkdeck.models.user import User, UserRole

__all__ = [
    "Base",
    "APIToken",
    "Category",
    "ClickRecord",
    "Favorite",
    "Link",
    "LinkStatus",
    "link_tags",
    "Setting",
    "Tag",
    "User",
    "UserRole",
]
