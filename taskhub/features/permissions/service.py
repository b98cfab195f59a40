"""
Role and permission management for teams.

These functions keep the role store consistent; they do not authorize.
Routes call ``has_team_permission`` before calling in here.
"""
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy import select, delete, insert, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from taskhub.core.exceptions import (
    DuplicateRoleSlug,
    ForeignRole,
    GlobalRoleImmutable,
    NotFound,
    UnknownPermission,
)
from taskhub.core.slugs import random_slug, slugify, truncate
from taskhub.features.teams.models import Team
from taskhub.features.members.models import TeamMembership
from taskhub.features.permissions.models import (
    TeamAuditLog,
    TeamPermission,
    TeamRole,
    team_permission_role,
)
from taskhub.utils import get_logger


log = get_logger(__name__)

# Width of TeamRole.slug
ROLE_SLUG_MAX_LENGTH = 100


@dataclass
class RoleListing:
    team_roles: list[TeamRole]
    global_roles: list[TeamRole]


# ============================================================================
# Lookups
# ============================================================================

async def get_role(db: AsyncSession, role_id: str) -> TeamRole:
    """Load a role with its current permissions or raise NotFound."""
    stmt = (
        select(TeamRole)
        .where(TeamRole.id == role_id)
        .options(selectinload(TeamRole.permissions))
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    role = result.scalar_one_or_none()
    if role is None:
        raise NotFound("Role not found")
    return role


async def get_global_role(db: AsyncSession, slug: str) -> TeamRole | None:
    stmt = (
        select(TeamRole)
        .where(TeamRole.team_id.is_(None), TeamRole.slug == slug)
        .options(selectinload(TeamRole.permissions))
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def list_permissions(db: AsyncSession) -> list[TeamPermission]:
    result = await db.execute(select(TeamPermission).order_by(TeamPermission.slug))
    return list(result.scalars().all())


async def list_roles(db: AsyncSession, team: Team) -> RoleListing:
    """All roles usable by ``team``: its own roles plus every global role."""
    stmt = (
        select(TeamRole)
        .where((TeamRole.team_id == team.id) | TeamRole.team_id.is_(None))
        .options(selectinload(TeamRole.permissions))
        .order_by(TeamRole.name)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    roles = result.scalars().all()
    return RoleListing(
        team_roles=[role for role in roles if role.team_id == team.id],
        global_roles=[role for role in roles if role.team_id is None],
    )


# ============================================================================
# Permission assignment
# ============================================================================

async def resolve_permission_ids(db: AsyncSession, permission_ids: Iterable[str]) -> set[str]:
    """
    Validate permission ids against the registry.

    Raises:
        UnknownPermission: if any id is not a registered permission
    """
    wanted = set(permission_ids)
    if not wanted:
        return wanted

    result = await db.execute(select(TeamPermission.id).where(TeamPermission.id.in_(wanted)))
    known = set(result.scalars().all())
    missing = wanted - known
    if missing:
        raise UnknownPermission(f"Unknown permission ids: {', '.join(sorted(missing))}")
    return wanted


async def sync_role_permissions(db: AsyncSession, role_id: str, permission_ids: Iterable[str]) -> None:
    """
    Make the role's permission set exactly ``permission_ids``.

    Adds what is missing and removes what is surplus. Does not commit; the
    caller commits once so readers never see a partial set.
    """
    desired = set(permission_ids)

    result = await db.execute(
        select(team_permission_role.c.permission_id).where(team_permission_role.c.role_id == role_id)
    )
    current = set(result.scalars().all())

    additions = desired - current
    removals = current - desired

    if removals:
        await db.execute(
            delete(team_permission_role).where(
                team_permission_role.c.role_id == role_id,
                team_permission_role.c.permission_id.in_(removals),
            )
        )
    if additions:
        await db.execute(
            insert(team_permission_role),
            [{"role_id": role_id, "permission_id": permission_id} for permission_id in sorted(additions)],
        )

    log.debug(f"Synced role {role_id} permissions: +{len(additions)} -{len(removals)}")


# ============================================================================
# Team roles
# ============================================================================

def ensure_team_role(team: Team, role: TeamRole) -> None:
    """
    Raises:
        GlobalRoleImmutable: for global roles
        ForeignRole: for another team's role
    """
    if role.is_global:
        raise GlobalRoleImmutable("Cannot edit global roles")
    if role.team_id != team.id:
        raise ForeignRole()


async def _team_slug_taken(db: AsyncSession, team: Team, slug: str, exclude_role_id: str | None = None) -> bool:
    stmt = select(TeamRole.id).where(TeamRole.team_id == team.id, TeamRole.slug == slug)
    if exclude_role_id is not None:
        stmt = stmt.where(TeamRole.id != exclude_role_id)
    result = await db.execute(stmt.limit(1))
    return result.first() is not None


def _role_slug(name: str, slug: str | None = None) -> str:
    return truncate(slugify(slug or name) or random_slug(), ROLE_SLUG_MAX_LENGTH)


async def create_team_role(
    db: AsyncSession,
    team: Team,
    name: str,
    slug: Optional[str] = None,
    description: Optional[str] = None,
    permission_ids: Iterable[str] = (),
) -> TeamRole:
    """
    Create a role private to ``team``.

    Raises:
        DuplicateRoleSlug: if the team already has a role with this slug
        UnknownPermission: if a permission id is not registered
    """
    role_slug = _role_slug(name, slug)
    if await _team_slug_taken(db, team, role_slug):
        raise DuplicateRoleSlug(f"Role '{role_slug}' already exists in this team")

    wanted = await resolve_permission_ids(db, permission_ids)

    role = TeamRole(team_id=team.id, name=name, slug=role_slug, description=description)
    db.add(role)
    try:
        await db.flush()
        await sync_role_permissions(db, role.id, wanted)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise DuplicateRoleSlug(f"Role '{role_slug}' already exists in this team")

    log.info(f"Created role '{role_slug}' in team {team.id} with {len(wanted)} permissions")
    return await get_role(db, role.id)


async def update_team_role(
    db: AsyncSession,
    team: Team,
    role: TeamRole,
    name: str,
    description: Optional[str],
    permission_ids: Iterable[str],
) -> TeamRole:
    """
    Rename, re-describe and fully replace the permissions of a team role.

    The slug follows the new name.

    Raises:
        GlobalRoleImmutable, ForeignRole, DuplicateRoleSlug, UnknownPermission
    """
    ensure_team_role(team, role)

    role_slug = _role_slug(name)
    if role_slug != role.slug and await _team_slug_taken(db, team, role_slug, exclude_role_id=role.id):
        raise DuplicateRoleSlug(f"Role '{role_slug}' already exists in this team")

    wanted = await resolve_permission_ids(db, permission_ids)

    role.name = name
    role.slug = role_slug
    role.description = description
    try:
        await db.flush()
        await sync_role_permissions(db, role.id, wanted)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise DuplicateRoleSlug(f"Role '{role_slug}' already exists in this team")

    log.info(f"Updated role {role.id} in team {team.id}")
    return await get_role(db, role.id)


async def delete_team_role(db: AsyncSession, team: Team, role: TeamRole) -> int:
    """
    Delete a team role. Memberships holding it keep existing with no role.

    Returns:
        Number of memberships whose role reference was cleared

    Raises:
        GlobalRoleImmutable, ForeignRole
    """
    ensure_team_role(team, role)

    result = await db.execute(
        update(TeamMembership)
        .where(TeamMembership.team_role_id == role.id)
        .values(team_role_id=None)
    )
    cleared = result.rowcount or 0

    await db.execute(delete(team_permission_role).where(team_permission_role.c.role_id == role.id))
    await db.delete(role)
    await db.commit()

    log.info(f"Deleted role {role.id} from team {team.id}; cleared {cleared} memberships")
    return cleared


# ============================================================================
# Audit Logging
# ============================================================================

async def create_audit_log(
    db: AsyncSession,
    user_id: Optional[str],
    action: str,
    resource_type: str,
    resource_id: Optional[str] = None,
    team_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> TeamAuditLog:
    """
    Record a team management action.

    Args:
        db: Database session
        user_id: Acting user
        action: Action performed (e.g. "create", "update", "delete", "assign_role")
        resource_type: Type of resource (e.g. "role", "member", "team")
        resource_id: ID of the resource
        team_id: Team context
        details: Additional details
    """
    audit_log = TeamAuditLog(
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        team_id=team_id,
        details=details,
    )

    db.add(audit_log)
    await db.commit()

    log.info(
        f"Audit: user={user_id} action={action} resource={resource_type}:{resource_id} team={team_id}"
    )

    return audit_log


async def list_audit_logs(
    db: AsyncSession,
    team: Team,
    skip: int = 0,
    limit: int = 50,
    action: Optional[str] = None,
    resource_type: Optional[str] = None,
) -> tuple[list[TeamAuditLog], int]:
    stmt = select(TeamAuditLog).where(TeamAuditLog.team_id == team.id)
    if action:
        stmt = stmt.where(TeamAuditLog.action == action)
    if resource_type:
        stmt = stmt.where(TeamAuditLog.resource_type == resource_type)

    total_result = await db.execute(select(func.count()).select_from(stmt.subquery()))
    total = total_result.scalar() or 0

    stmt = stmt.order_by(TeamAuditLog.created_at.desc(), TeamAuditLog.id.desc()).offset(skip).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all()), total
