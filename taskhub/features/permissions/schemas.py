"""
Pydantic schemas for team roles, permissions and audit logs.
"""
from datetime import datetime
from typing import Dict, Any, List, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator

from taskhub.core.slugs import is_valid_slug
from taskhub.features.permissions.models import RoleScope


# ============================================================================
# Permission Schemas
# ============================================================================

class PermissionResponse(BaseModel):
    """A catalog permission."""
    id: str
    slug: str
    name: str
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class PermissionCheckResponse(BaseModel):
    """Schema for a single permission check."""
    permission: str
    allowed: bool
    team_id: str


class TeamPermissionsResponse(BaseModel):
    """What the acting user can do on a team."""
    team_id: str
    is_owner: bool
    permissions: List[str]
    abilities: Dict[str, bool]


# ============================================================================
# Role Schemas
# ============================================================================

class RoleBase(BaseModel):
    """Base role schema."""
    name: str = Field(..., min_length=1, max_length=255, description="Role display name")
    description: Optional[str] = Field(None, max_length=1000, description="Role description")
    permission_ids: List[str] = Field(default_factory=list, description="Complete set of permission IDs")


class RoleCreate(RoleBase):
    """Schema for creating a team role. The slug defaults to one derived from the name."""
    slug: Optional[str] = Field(None, max_length=100)

    @field_validator('slug')
    @classmethod
    def slug_format(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not is_valid_slug(v):
            raise ValueError('Slug must be lowercase letters and digits separated by single hyphens')
        return v


class RoleUpdate(RoleBase):
    """Schema for updating a team role; ``permission_ids`` replaces the whole set."""


class RoleResponse(BaseModel):
    """Schema for role response."""
    id: str
    team_id: Optional[str] = None
    name: str
    slug: str
    description: Optional[str] = None
    scope: RoleScope
    permissions: List[PermissionResponse] = []
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RoleListResponse(BaseModel):
    """Roles usable by a team plus the permission catalog for the role editor."""
    team_roles: List[RoleResponse]
    global_roles: List[RoleResponse]
    all_permissions: List[PermissionResponse]


class RoleDeleteResponse(BaseModel):
    message: str
    cleared_memberships: int


# ============================================================================
# Audit Log Schemas
# ============================================================================

class AuditLogResponse(BaseModel):
    """Schema for audit log response."""
    id: str
    user_id: Optional[str]
    action: str
    resource_type: str
    resource_id: Optional[str]
    team_id: Optional[str]
    details: Optional[Dict[str, Any]]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AuditLogListResponse(BaseModel):
    """Schema for paginated audit log list."""
    items: List[AuditLogResponse]
    total: int
    skip: int
    limit: int
