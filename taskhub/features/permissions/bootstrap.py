"""
Seed the team permission catalog and global roles, then repair owner memberships.

Run after database initialization:
- Upserts every catalog permission (keyed by slug)
- Upserts the global owner/admin/member roles and full-replaces their permissions
- Makes sure every team owner has a membership holding the global owner role

Everything here is idempotent; running it twice leaves the same state as
running it once.

Usage:
    uv run python -m scripts.seed_team_management
"""
import asyncio
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.core.exceptions import BootstrapError
from taskhub.features.teams.models import Team
from taskhub.features.members.models import TeamMembership
from taskhub.features.permissions.models import TeamPermission, TeamRole
from taskhub.features.permissions.registry import GLOBAL_ROLES, OWNER_ROLE, PERMISSIONS
from taskhub.features.permissions.service import get_global_role, sync_role_permissions
from taskhub.utils import get_logger


log = get_logger(__name__)


@dataclass
class RepairReport:
    teams: int = 0
    created: int = 0
    updated: int = 0
    unchanged: int = 0


async def seed_permissions(db: AsyncSession) -> dict[str, TeamPermission]:
    """
    Create or update the catalog permissions.

    Returns:
        Dictionary mapping permission slugs to TeamPermission objects
    """
    log.info("Seeding team permissions...")
    result = await db.execute(select(TeamPermission))
    existing = {permission.slug: permission for permission in result.scalars().all()}
    permissions_map: dict[str, TeamPermission] = {}

    for definition in PERMISSIONS:
        permission = existing.get(definition.slug)
        if permission is None:
            permission = TeamPermission(
                slug=definition.slug,
                name=definition.name,
                description=definition.description,
            )
            db.add(permission)
            log.info(f"Created permission: {definition.slug}")
        elif permission.name != definition.name or permission.description != definition.description:
            permission.name = definition.name
            permission.description = definition.description
            log.info(f"Updated permission: {definition.slug}")
        else:
            log.debug(f"Permission '{definition.slug}' up to date, skipping")
        permissions_map[definition.slug] = permission

    await db.commit()
    log.info(f"Seeded {len(permissions_map)} permissions")
    return permissions_map


async def seed_global_roles(
    db: AsyncSession,
    permissions_map: dict[str, TeamPermission] | None = None
) -> dict[str, TeamRole]:
    """
    Create or update the global roles and replace their permission sets.

    Args:
        db: Database session
        permissions_map: Permission slug -> TeamPermission, loaded if not given

    Returns:
        Dictionary mapping role slugs to TeamRole objects
    """
    log.info("Seeding global roles...")
    if permissions_map is None:
        result = await db.execute(select(TeamPermission))
        permissions_map = {permission.slug: permission for permission in result.scalars().all()}

    roles: dict[str, TeamRole] = {}
    for definition in GLOBAL_ROLES:
        role = await get_global_role(db, definition.slug)
        if role is None:
            role = TeamRole(
                team_id=None,
                slug=definition.slug,
                name=definition.name,
                description=definition.description,
            )
            db.add(role)
            await db.flush()
            log.info(f"Created global role '{definition.slug}'")
        else:
            role.name = definition.name
            role.description = definition.description

        permission_ids = []
        for slug in definition.permissions:
            if slug in permissions_map:
                permission_ids.append(permissions_map[slug].id)
            else:
                log.warning(f"Permission '{slug}' not found for role '{definition.slug}'")

        await sync_role_permissions(db, role.id, permission_ids)
        await db.commit()
        roles[definition.slug] = role
        log.info(f"Global role '{definition.slug}' has {len(permission_ids)} permissions")

    return roles


async def repair_memberships(db: AsyncSession) -> RepairReport:
    """
    Ensure every team owner is a member holding the global owner role.

    Creates the membership when missing and overwrites whatever role the
    owner's membership had otherwise.

    Raises:
        BootstrapError: if the global owner role does not exist
    """
    owner_role = await get_global_role(db, OWNER_ROLE)
    if owner_role is None:
        raise BootstrapError("Global 'owner' role is missing; seed global roles before repairing memberships")

    report = RepairReport()
    result = await db.execute(select(Team).order_by(Team.id))
    for team in result.scalars().all():
        report.teams += 1
        membership_result = await db.execute(
            select(TeamMembership).where(
                TeamMembership.team_id == team.id,
                TeamMembership.user_id == team.owner_id,
            )
        )
        membership = membership_result.scalar_one_or_none()

        if membership is None:
            db.add(TeamMembership(team_id=team.id, user_id=team.owner_id, team_role_id=owner_role.id))
            report.created += 1
            log.info(f"Added owner {team.owner_id} to team {team.slug}")
        elif membership.team_role_id != owner_role.id:
            membership.team_role_id = owner_role.id
            report.updated += 1
            log.info(f"Reset owner role for {team.owner_id} in team {team.slug}")
        else:
            report.unchanged += 1

    await db.commit()
    log.info(
        f"Membership repair done: teams={report.teams} created={report.created} "
        f"updated={report.updated} unchanged={report.unchanged}"
    )
    return report


async def run_bootstrap(db: AsyncSession) -> RepairReport:
    """Seed permissions, then global roles, then repair memberships."""
    permissions_map = await seed_permissions(db)
    await seed_global_roles(db, permissions_map)
    return await repair_memberships(db)


async def main():
    """Create tables, then seed and repair."""
    from taskhub.core.database.engine import get_db, init_db

    log.info("Starting team management seeding...")

    log.info("Initializing database tables...")
    await init_db()

    async for db in get_db():
        try:
            await run_bootstrap(db)
        except Exception as e:
            log.error(f"Error seeding team management data: {e}", exc_info=True)
            await db.rollback()
            raise

        break  # Only use first session

    log.info("Team management seeding completed successfully!")
    for definition in GLOBAL_ROLES:
        log.info(f"  - {definition.slug}: {definition.description}")


if __name__ == "__main__":
    asyncio.run(main())
