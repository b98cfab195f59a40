"""
Pydantic schemas for teams.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from taskhub.features.users.schemas import UserPublic


class TeamBase(BaseModel):
    """Base team schema."""
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)


class TeamCreate(TeamBase):
    """Schema for creating a team. The slug is generated from the name."""


class TeamUpdate(BaseModel):
    """Schema for updating a team (all fields optional)."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)


class TeamResponse(TeamBase):
    """Schema for team response."""
    id: str
    slug: str
    owner_id: str
    owner: UserPublic
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SwitchTeamRequest(BaseModel):
    """Schema for switching the current team."""
    slug: str = Field(..., min_length=1)


class SwitchTeamResponse(BaseModel):
    message: str
    current_team_id: str
    current_team_slug: str
