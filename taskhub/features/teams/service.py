"""
Team lifecycle: create, look up, rename, delete and switch.
"""
from sqlalchemy import select, delete, update, or_
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.core.exceptions import NotFound
from taskhub.core.slugs import generate_unique_slug
from taskhub.features.users.models import User
from taskhub.features.teams.models import Team
from taskhub.features.members.models import TeamMembership
from taskhub.features.permissions.models import TeamRole, team_permission_role
from taskhub.features.permissions.registry import OWNER_ROLE
from taskhub.features.permissions.service import get_global_role
from taskhub.utils import get_logger


log = get_logger(__name__)


async def get_team_by_slug(db: AsyncSession, slug: str) -> Team:
    result = await db.execute(
        select(Team).where(Team.slug == slug).execution_options(populate_existing=True)
    )
    team = result.scalar_one_or_none()
    if team is None:
        raise NotFound("Team not found")
    return team


async def create_team(
    db: AsyncSession,
    owner: User,
    name: str,
    description: str | None = None
) -> Team:
    """
    Create a team owned by ``owner`` and make it their current team.

    The owner membership gets the global owner role when it exists. Before
    the bootstrap has run the membership is created without a role; the
    owner bypass still grants everything and repair fills the role in later.
    """
    slug = await generate_unique_slug(db, name, Team.slug)
    team = Team(name=name, slug=slug, description=description, owner_id=owner.id)
    db.add(team)
    await db.flush()

    owner_role = await get_global_role(db, OWNER_ROLE)
    if owner_role is None:
        log.warning(f"Global '{OWNER_ROLE}' role missing; team {slug} owner membership has no role")

    db.add(TeamMembership(
        team_id=team.id,
        user_id=owner.id,
        team_role_id=owner_role.id if owner_role else None,
    ))
    owner.current_team_id = team.id
    await db.commit()

    log.info(f"User {owner.id} created team {team.slug}")
    return await get_team_by_slug(db, team.slug)


async def list_user_teams(db: AsyncSession, user: User) -> list[Team]:
    """Teams ``user`` belongs to or owns, by name."""
    member_of = select(TeamMembership.team_id).where(TeamMembership.user_id == user.id)
    stmt = (
        select(Team)
        .where(or_(Team.id.in_(member_of), Team.owner_id == user.id))
        .order_by(Team.name, Team.id)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def update_team(
    db: AsyncSession,
    team: Team,
    name: str | None = None,
    description: str | None = None
) -> Team:
    """
    Rename and/or re-describe ``team``.

    The slug only changes when the name does; the new slug is unique
    among the other teams.
    """
    if name is not None and name != team.name:
        team.slug = await generate_unique_slug(db, name, Team.slug, Team.id != team.id)
        team.name = name
    if description is not None:
        team.description = description

    await db.commit()
    log.info(f"Updated team {team.id} ({team.slug})")
    return team


async def delete_team(db: AsyncSession, team: Team) -> None:
    """
    Delete ``team`` with its memberships and private roles.

    Users whose current team it was are left without a current team.
    """
    team_id = team.id

    await db.execute(
        update(User).where(User.current_team_id == team_id).values(current_team_id=None)
    )
    await db.execute(delete(TeamMembership).where(TeamMembership.team_id == team_id))

    role_ids = select(TeamRole.id).where(TeamRole.team_id == team_id)
    await db.execute(delete(team_permission_role).where(team_permission_role.c.role_id.in_(role_ids)))
    await db.execute(delete(TeamRole).where(TeamRole.team_id == team_id))

    await db.delete(team)
    await db.commit()

    log.info(f"Deleted team {team_id}")


async def switch_team(db: AsyncSession, user: User, team: Team) -> User:
    """
    Make ``team`` the user's current team.

    Raises:
        NotFound: if the user neither owns nor belongs to the team
    """
    if team.owner_id != user.id:
        result = await db.execute(
            select(TeamMembership.id).where(
                TeamMembership.team_id == team.id,
                TeamMembership.user_id == user.id,
            )
        )
        if result.first() is None:
            raise NotFound("Team not found")

    user.current_team_id = team.id
    await db.commit()

    log.info(f"User {user.id} switched to team {team.slug}")
    return user
