"""
Team role and permission API routes.

Mounted under ``/teams/{slug}``. Role management and the audit trail need
``role.manage``; the permission introspection endpoints only need an
authenticated user.
"""
from typing import Annotated, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.core.database.engine import get_db
from taskhub.features.users.models import User
from taskhub.features.users.dependencies import get_current_user
from taskhub.features.teams.models import Team
from taskhub.features.teams.dependencies import get_team
from taskhub.features.permissions import service
from taskhub.features.permissions.dependencies import require_team_permission
from taskhub.features.permissions.registry import ROLE_MANAGE
from taskhub.features.permissions.resolver import (
    has_team_permission,
    is_team_owner,
    team_abilities_for,
    team_permissions_for,
)
from taskhub.features.permissions.schemas import (
    AuditLogListResponse,
    AuditLogResponse,
    PermissionCheckResponse,
    PermissionResponse,
    RoleCreate,
    RoleDeleteResponse,
    RoleListResponse,
    RoleResponse,
    RoleUpdate,
    TeamPermissionsResponse,
)
from taskhub.utils import get_logger


log = get_logger(__name__)
router = APIRouter()


# ============================================================================
# Permission Introspection
# ============================================================================

@router.get("/permissions/me", response_model=TeamPermissionsResponse)
async def get_my_team_permissions(
    team: Annotated[Team, Depends(get_team)],
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Get the acting user's effective permissions and abilities on the team."""
    permissions = await team_permissions_for(db, current_user, team)
    abilities = await team_abilities_for(db, current_user, team)
    return TeamPermissionsResponse(
        team_id=team.id,
        is_owner=is_team_owner(current_user, team),
        permissions=sorted(permissions),
        abilities=abilities,
    )


@router.get("/permissions/check", response_model=PermissionCheckResponse)
async def check_team_permission(
    team: Annotated[Team, Depends(get_team)],
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    permission: str = Query(..., min_length=1, description="Permission slug, e.g. member.add")
):
    """Check whether the acting user holds one permission on the team."""
    allowed = await has_team_permission(db, current_user, team, permission)
    return PermissionCheckResponse(permission=permission, allowed=allowed, team_id=team.id)


# ============================================================================
# Role Routes
# ============================================================================

@router.get("/roles", response_model=RoleListResponse)
async def list_team_roles(
    team: Annotated[Team, Depends(require_team_permission(ROLE_MANAGE))],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """List the team's roles, the global roles and the permission catalog."""
    listing = await service.list_roles(db, team)
    all_permissions = await service.list_permissions(db)
    return RoleListResponse(
        team_roles=[RoleResponse.model_validate(role) for role in listing.team_roles],
        global_roles=[RoleResponse.model_validate(role) for role in listing.global_roles],
        all_permissions=[PermissionResponse.model_validate(permission) for permission in all_permissions],
    )


@router.post("/roles", response_model=RoleResponse, status_code=status.HTTP_201_CREATED)
async def create_team_role(
    role_data: RoleCreate,
    team: Annotated[Team, Depends(require_team_permission(ROLE_MANAGE))],
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Create a role private to the team."""
    role = await service.create_team_role(
        db,
        team,
        name=role_data.name,
        slug=role_data.slug,
        description=role_data.description,
        permission_ids=role_data.permission_ids,
    )

    await service.create_audit_log(
        db,
        user_id=current_user.id,
        action="create",
        resource_type="role",
        resource_id=role.id,
        team_id=team.id,
        details={"slug": role.slug, "permissions": sorted(role.permission_slugs)},
    )

    return role


@router.put("/roles/{role_id}", response_model=RoleResponse)
async def update_team_role(
    role_id: str,
    role_data: RoleUpdate,
    team: Annotated[Team, Depends(require_team_permission(ROLE_MANAGE))],
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Update a team role and replace its permissions."""
    role = await service.get_role(db, role_id)
    role = await service.update_team_role(
        db,
        team,
        role,
        name=role_data.name,
        description=role_data.description,
        permission_ids=role_data.permission_ids,
    )

    await service.create_audit_log(
        db,
        user_id=current_user.id,
        action="update",
        resource_type="role",
        resource_id=role.id,
        team_id=team.id,
        details={"slug": role.slug, "permissions": sorted(role.permission_slugs)},
    )

    return role


@router.delete("/roles/{role_id}", response_model=RoleDeleteResponse)
async def delete_team_role(
    role_id: str,
    team: Annotated[Team, Depends(require_team_permission(ROLE_MANAGE))],
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Delete a team role. Members holding it are left without a role."""
    role = await service.get_role(db, role_id)
    role_slug = role.slug
    cleared = await service.delete_team_role(db, team, role)

    await service.create_audit_log(
        db,
        user_id=current_user.id,
        action="delete",
        resource_type="role",
        resource_id=role_id,
        team_id=team.id,
        details={"slug": role_slug, "cleared_memberships": cleared},
    )

    return RoleDeleteResponse(message="Role deleted successfully", cleared_memberships=cleared)


# ============================================================================
# Audit Log Routes
# ============================================================================

@router.get("/audit-logs", response_model=AuditLogListResponse)
async def list_team_audit_logs(
    team: Annotated[Team, Depends(require_team_permission(ROLE_MANAGE))],
    db: Annotated[AsyncSession, Depends(get_db)],
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    action: Optional[str] = None,
    resource_type: Optional[str] = None
):
    """List the team's audit trail, newest first."""
    logs, total = await service.list_audit_logs(
        db, team, skip=skip, limit=limit, action=action, resource_type=resource_type
    )
    return AuditLogListResponse(
        items=[AuditLogResponse.model_validate(entry) for entry in logs],
        total=total,
        skip=skip,
        limit=limit,
    )
