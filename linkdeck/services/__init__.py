"""Service layer: plain async functions operating on an AsyncSession."""

from linkdeck.services import category as category_service
from linkdeck.services import engagement as engagement_service
from linkdeck.services import link as link_service
from linkdeck.services import ordering as ordering_service
from linkdeck.services import session as session_service
from linkdeck.services import setting as setting_service
from linkdeck.services import tag as tag_service
from linkdeck.services import token as token_service
from linkdeck.services import user as user_service

__all__ = [
    "category_service",
    "engagement_service",
    "link_service",
    "ordering_service",
    "session_service",
    "setting_service",
    "tag_service",
    "token_service",
    "user_service",
]
