"""Authentication Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from linkdeck.schemas.user import UserResponse


class LoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=1, max_length=128)


class RegisterRequest(BaseModel):
    email: EmailStr
    username: str = Field(min_length=3, max_length=100)
    password: str = Field(min_length=6, max_length=128)


class SessionResponse(BaseModel):
    """Issued session credential."""

    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserResponse
