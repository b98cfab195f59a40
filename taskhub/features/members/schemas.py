"""
Pydantic schemas for team membership.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from taskhub.features.users.schemas import UserPublic
from taskhub.features.permissions.models import RoleScope


class RoleSummary(BaseModel):
    """Role as shown next to a member."""
    id: str
    name: str
    slug: str
    scope: RoleScope

    model_config = ConfigDict(from_attributes=True)


class MemberAdd(BaseModel):
    """Schema for adding a user to a team, picked by ID or by email."""
    user_id: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    role_id: Optional[str] = Field(None, description="Global or team role ID; omit for no role")

    @model_validator(mode='after')
    def one_user_reference(self) -> 'MemberAdd':
        if (self.user_id is None) == (self.email is None):
            raise ValueError('Provide exactly one of user_id or email')
        return self


class MemberRoleUpdate(BaseModel):
    """Schema for changing a member's role."""
    role_id: Optional[str] = Field(None, description="New role ID; null clears the role")


class MemberResponse(BaseModel):
    """Schema for membership response."""
    id: str
    team_id: str
    user: UserPublic
    role: Optional[RoleSummary] = None
    is_owner: bool = False
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MemberListResponse(BaseModel):
    """Members plus the roles that can be assigned to them."""
    members: List[MemberResponse]
    assignable_roles: List[RoleSummary]


class CandidateUserResponse(BaseModel):
    """User offered by the add-member search."""
    id: str
    name: str
    email: str
    is_already_member: bool
    is_current_user: bool

    model_config = ConfigDict(from_attributes=True)
