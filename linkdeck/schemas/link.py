"""Link Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, TypeAdapter, field_validator

from linkdeck.models.link import LinkStatus
from linkdeck.schemas.category import CategoryBrief
from linkdeck.schemas.tag import TagResponse

_http_url = TypeAdapter(HttpUrl)


def normalize_url(value: str) -> str:
    """Turn user input into an absolute http(s) URL.

    A bare host such as ``grafana.example.com`` gets an ``https://`` scheme.
    Anything that still fails to parse is rejected.
    """
    value = value.strip()
    if not value:
        raise ValueError("URL cannot be empty")
    lowered = value.lower()
    if not (lowered.startswith("http://") or lowered.startswith("https://")):
        if "://" in value:
            raise ValueError("URL scheme must be http or https")
        value = f"https://{value}"
    try:
        url = _http_url.validate_python(value)
    except ValueError:
        raise ValueError("URL is not a valid absolute http(s) URL") from None
    if not url.host:
        raise ValueError("URL must include a valid host")
    return value


class LinkCreate(BaseModel):
    """Schema for creating a link."""

    title: str = Field(min_length=1, max_length=255)
    url: str = Field(min_length=1, max_length=2048)
    description: str = ""
    icon: str = Field(default="", max_length=255)
    status: LinkStatus = LinkStatus.ACTIVE
    category_id: int
    tag_names: list[str] | None = Field(
        default=None,
        description="Tag names, created on demand",
    )

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title cannot be empty")
        return v

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        return normalize_url(v)


class LinkUpdate(BaseModel):
    """Schema for updating a link. ``tag_names`` replaces the tag set when given."""

    title: str | None = Field(default=None, min_length=1, max_length=255)
    url: str | None = Field(default=None, min_length=1, max_length=2048)
    description: str | None = None
    icon: str | None = Field(default=None, max_length=255)
    status: LinkStatus | None = None
    category_id: int | None = None
    tag_names: list[str] | None = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Title cannot be empty")
        return v

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return normalize_url(v)


class LinkResponse(BaseModel):
    """Schema for link response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    url: str
    description: str
    icon: str
    status: LinkStatus
    click_count: int
    sort_order: int
    category_id: int
    category: CategoryBrief | None = None
    tags: list[TagResponse] = []
    last_checked_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class LinkDetail(LinkResponse):
    """Single link with neighbours from the same category."""

    is_favorited: bool = False
    related_links: list[LinkResponse] = []


class LinkSummary(BaseModel):
    """Compact link representation used in stats."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    url: str
    icon: str
    click_count: int
    category_id: int
