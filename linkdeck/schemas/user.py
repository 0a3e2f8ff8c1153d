"""User Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from linkdeck.models.user import UserRole


class UserCreate(BaseModel):
    """Schema for creating a user (admin)."""

    email: EmailStr
    username: str = Field(min_length=3, max_length=100)
    password: str = Field(min_length=6, max_length=128)
    role: UserRole = UserRole.USER
    active: bool = True


class UserUpdate(BaseModel):
    """Schema for updating user data. A password given here is re-hashed."""

    email: EmailStr | None = None
    username: str | None = Field(default=None, min_length=3, max_length=100)
    password: str | None = Field(default=None, min_length=6, max_length=128)
    role: UserRole | None = None
    active: bool | None = None


class UserResponse(BaseModel):
    """Schema for user response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    username: str
    role: UserRole
    active: bool
    created_at: datetime
    updated_at: datetime
