"""
Team authorization resolver.

``has_team_permission`` is the single predicate behind every guarded team
operation. It never raises for a denial; callers decide how to surface a
``False``.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.features.users.models import User
from taskhub.features.teams.models import Team
from taskhub.features.members.models import TeamMembership
from taskhub.features.permissions.models import TeamPermission, TeamRole, team_permission_role
from taskhub.features.permissions.registry import PERMISSION_SLUGS, TeamAbility
from taskhub.utils import get_logger


log = get_logger(__name__)


def is_team_owner(user: User, team: Team) -> bool:
    return user.id == team.owner_id


async def get_membership_role_id(
    db: AsyncSession,
    user_id: str,
    team_id: str
) -> tuple[bool, str | None]:
    """
    Look up the (user, team) membership.

    Returns:
        (is_member, role_id) - role_id is None for members without a role
    """
    stmt = select(TeamMembership.team_role_id).where(
        TeamMembership.team_id == team_id,
        TeamMembership.user_id == user_id,
    )
    result = await db.execute(stmt)
    row = result.first()
    if row is None:
        return False, None
    return True, row[0]


async def has_team_permission(
    db: AsyncSession,
    user: User,
    team: Team,
    permission_slug: str
) -> bool:
    """
    Decide whether ``user`` may exercise ``permission_slug`` on ``team``.

    Checked in order, first match wins:
    1. The team owner is always allowed, whatever the membership data says
    2. No membership row -> denied
    3. Membership without a role -> denied
    4. Allowed iff the membership's role grants the permission. The role is
       looked up by id alone, global and team roles alike.

    Args:
        db: Database session
        user: Acting user
        team: Team being acted on
        permission_slug: Permission slug, e.g. "member.add"

    Returns:
        True if allowed, False otherwise
    """
    if is_team_owner(user, team):
        return True

    is_member, role_id = await get_membership_role_id(db, user.id, team.id)
    if not is_member:
        log.debug(f"User {user.id} is not a member of team {team.id} - denied {permission_slug}")
        return False

    if role_id is None:
        log.debug(f"User {user.id} has no role in team {team.id} - denied {permission_slug}")
        return False

    stmt = (
        select(TeamPermission.id)
        .join(team_permission_role, team_permission_role.c.permission_id == TeamPermission.id)
        .join(TeamRole, TeamRole.id == team_permission_role.c.role_id)
        .where(
            TeamRole.id == role_id,
            TeamPermission.slug == permission_slug,
        )
        .limit(1)
    )
    result = await db.execute(stmt)
    granted = result.first() is not None

    if not granted:
        log.debug(f"User {user.id} denied {permission_slug} in team {team.id} (role {role_id})")
    return granted


async def team_permissions_for(db: AsyncSession, user: User, team: Team) -> set[str]:
    """
    Effective permission slugs of ``user`` on ``team``.

    The owner gets the whole catalog; everyone else gets their role's set.
    """
    if is_team_owner(user, team):
        return set(PERMISSION_SLUGS)

    is_member, role_id = await get_membership_role_id(db, user.id, team.id)
    if not is_member or role_id is None:
        return set()

    stmt = (
        select(TeamPermission.slug)
        .join(team_permission_role, team_permission_role.c.permission_id == TeamPermission.id)
        .where(team_permission_role.c.role_id == role_id)
    )
    result = await db.execute(stmt)
    return set(result.scalars().all())


async def team_abilities_for(db: AsyncSession, user: User, team: Team) -> dict[str, bool]:
    """Map each ``TeamAbility`` to whether ``user`` has it on ``team``."""
    granted = await team_permissions_for(db, user, team)
    return {ability.value: ability.permission in granted for ability in TeamAbility}
