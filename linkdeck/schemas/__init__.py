"""Pydantic schemas for request/response validation."""

from linkdeck.schemas.auth import LoginRequest, RegisterRequest, SessionResponse
from linkdeck.schemas.category import (
    CategoryBrief,
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    CategoryWithStats,
)
from linkdeck.schemas.common import Envelope, Page, ok
from linkdeck.schemas.engagement import ClickResult, FavoriteState
from linkdeck.schemas.link import (
    LinkCreate,
    LinkDetail,
    LinkResponse,
    LinkSummary,
    LinkUpdate,
)
from linkdeck.schemas.stats import ClickWindows, DashboardStats, PublicStats, RecentClick
from linkdeck.schemas.tag import TagCreate, TagNames, TagResponse, TagUpdate, TagWithCount
from linkdeck.schemas.token import TokenCreate, TokenCreated, TokenResponse, TokenUpdate
from linkdeck.schemas.user import UserCreate, UserResponse, UserUpdate

__all__ = [
    "CategoryBrief",
    "CategoryCreate",
    "CategoryResponse",
    "CategoryUpdate",
    "CategoryWithStats",
    "ClickResult",
    "ClickWindows",
    "DashboardStats",
    "Envelope",
    "FavoriteState",
    "LinkCreate",
    "LinkDetail",
    "LinkResponse",
    "LinkSummary",
    "LinkUpdate",
    "LoginRequest",
    "Page",
    "PublicStats",
    "RecentClick",
    "RegisterRequest",
    "SessionResponse",
    "TagCreate",
    "TagNames",
    "TagResponse",
    "TagUpdate",
    "TagWithCount",
    "TokenCreate",
    "TokenCreated",
    "TokenResponse",
    "TokenUpdate",
    "UserCreate",
    "UserResponse",
    "UserUpdate",
    "ok",
]
