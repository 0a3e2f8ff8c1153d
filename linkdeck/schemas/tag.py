"""Tag Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from linkdeck.schemas.category import HEX_COLOR_PATTERN, strip_name


class TagCreate(BaseModel):
    """Schema for creating a tag. A random color is picked when omitted."""

    name: str = Field(min_length=1, max_length=100)
    color: str | None = Field(default=None, pattern=HEX_COLOR_PATTERN)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return strip_name(v)


class TagUpdate(BaseModel):
    """Schema for updating a tag."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    color: str | None = Field(default=None, pattern=HEX_COLOR_PATTERN)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        return strip_name(v)


class TagResponse(BaseModel):
    """Schema for tag response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    color: str


class TagWithCount(TagResponse):
    """Tag with the number of links carrying it."""

    links_count: int = 0
    created_at: datetime | None = None


class TagNames(BaseModel):
    """Body for attaching tags to a link by name."""

    names: list[str] = Field(min_length=1)
