"""API token Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class TokenCreate(BaseModel):
    """Schema for issuing a token. Defaults to the calling admin as owner."""

    name: str = Field(min_length=1, max_length=100)
    user_id: int | None = None
    expires_at: datetime | None = None


class TokenUpdate(BaseModel):
    """Only these fields of a token can change after issue."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    active: bool | None = None
    expires_at: datetime | None = None


class TokenResponse(BaseModel):
    """Schema for token response. Never carries the secret or its hash."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    token_prefix: str
    user_id: int
    active: bool
    expires_at: datetime | None
    last_used_at: datetime | None
    created_at: datetime
    updated_at: datetime


class TokenCreated(TokenResponse):
    """Issue response. ``token`` is shown here and nowhere else."""

    token: str
