"""Category Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

HEX_COLOR_PATTERN = r"^#[0-9a-fA-F]{6}$"


def strip_name(v: str | None) -> str | None:
    """Trim surrounding whitespace and reject names that end up empty."""
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("Name cannot be empty")
    return v


class CategoryCreate(BaseModel):
    """Schema for creating a category."""

    name: str = Field(min_length=1, max_length=100)
    description: str = ""
    icon: str | None = Field(default=None, max_length=50)
    color: str | None = Field(default=None, pattern=HEX_COLOR_PATTERN)
    active: bool = True

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        return strip_name(v)


class CategoryUpdate(BaseModel):
    """Schema for updating a category. Position changes go through move-up/down."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    icon: str | None = Field(default=None, max_length=50)
    color: str | None = Field(default=None, pattern=HEX_COLOR_PATTERN)
    active: bool | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        return strip_name(v)


class CategoryResponse(BaseModel):
    """Schema for category response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str
    icon: str
    color: str
    sort_order: int
    active: bool
    created_at: datetime
    updated_at: datetime


class CategoryBrief(BaseModel):
    """Category fields embedded in link responses."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    icon: str
    color: str


class CategoryWithStats(CategoryResponse):
    """Category with the counts shown on the public directory."""

    links_count: int = 0
    total_clicks: int = 0
