"""
Pydantic schemas for user-related responses.
"""
from datetime import datetime
from pydantic import BaseModel, EmailStr


class UserPublic(BaseModel):
    """Public user information (limited fields)."""
    id: str
    name: str
    email: EmailStr

    model_config = {"from_attributes": True}


class UserResponse(UserPublic):
    """Schema for the acting user's own profile."""
    is_active: bool
    current_team_id: str | None = None
    last_login_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
