"""
Pydantic schemas for user-related responses.
"""
from datetime import datetime
from pydantic import BaseModel, EmailStr


class UserResponse(BaseModel):
    """Schema for the authenticated user's own profile."""
    id: str
    email: EmailStr
    name: str
    avatar_url: str | None = None
    is_active: bool
    last_login_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class UserPublic(BaseModel):
    """Public user information (limited fields)."""
    id: str
    name: str
    avatar_url: str | None = None

    model_config = {"from_attributes": True}
