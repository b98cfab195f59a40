"""
Team membership management.

Like the role service, nothing here authorizes; routes check the acting
user's permission first.
"""
from dataclasses import dataclass

from sqlalchemy import select, or_, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.core import config
from taskhub.core.exceptions import AlreadyMember, CannotRemoveOwner, NotFound, RoleNotAssignable
from taskhub.features.users.models import User
from taskhub.features.teams.models import Team
from taskhub.features.members.models import TeamMembership
from taskhub.features.permissions.models import TeamRole
from taskhub.utils import get_logger


log = get_logger(__name__)


@dataclass
class CandidateUser:
    """A user offered by the add-member search."""
    id: str
    name: str
    email: str
    is_already_member: bool
    is_current_user: bool


def ensure_assignable(team: Team, role: TeamRole | None) -> None:
    """
    A membership may hold a global role or one of its own team's roles.

    Raises:
        RoleNotAssignable: for another team's private role
    """
    if role is not None and role.team_id is not None and role.team_id != team.id:
        raise RoleNotAssignable()


async def get_membership(db: AsyncSession, team: Team, user_id: str) -> TeamMembership | None:
    stmt = (
        select(TeamMembership)
        .where(TeamMembership.team_id == team.id, TeamMembership.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def list_members(db: AsyncSession, team: Team) -> list[TeamMembership]:
    """Memberships of ``team`` with their user and role loaded, oldest first."""
    stmt = (
        select(TeamMembership)
        .where(TeamMembership.team_id == team.id)
        .order_by(TeamMembership.created_at, TeamMembership.id)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def assignable_roles(db: AsyncSession, team: Team) -> list[TeamRole]:
    """Global roles first, then the team's own roles, each by name."""
    stmt = (
        select(TeamRole)
        .where(or_(TeamRole.team_id.is_(None), TeamRole.team_id == team.id))
        .order_by(TeamRole.team_id.is_not(None), TeamRole.name)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def add_member(
    db: AsyncSession,
    team: Team,
    user: User,
    role: TeamRole | None
) -> TeamMembership:
    """
    Add ``user`` to ``team`` holding ``role`` (which may be None).

    Raises:
        RoleNotAssignable: if ``role`` is another team's role
        AlreadyMember: if the user is already in the team
    """
    ensure_assignable(team, role)

    if await get_membership(db, team, user.id) is not None:
        raise AlreadyMember()

    membership = TeamMembership(
        team_id=team.id,
        user_id=user.id,
        team_role_id=role.id if role else None,
    )
    db.add(membership)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race against a concurrent add of the same user
        await db.rollback()
        raise AlreadyMember()

    log.info(f"Added user {user.id} to team {team.id} with role {membership.team_role_id}")
    return await get_membership(db, team, user.id)


async def update_member_role(
    db: AsyncSession,
    team: Team,
    member: User,
    new_role: TeamRole | None
) -> TeamMembership:
    """
    Replace the role of ``member`` in ``team``.

    The owner's membership can be changed too; the owner keeps full access
    through the owner bypass either way.

    Raises:
        RoleNotAssignable: if ``new_role`` is another team's role
        NotFound: if ``member`` is not in the team
    """
    ensure_assignable(team, new_role)

    membership = await get_membership(db, team, member.id)
    if membership is None:
        raise NotFound("User is not a member of this team")

    membership.team_role_id = new_role.id if new_role else None
    await db.commit()

    log.info(f"Changed role of user {member.id} in team {team.id} to {membership.team_role_id}")
    return await get_membership(db, team, member.id)


async def remove_member(db: AsyncSession, team: Team, member: User) -> None:
    """
    Raises:
        CannotRemoveOwner: if ``member`` owns the team
        NotFound: if ``member`` is not in the team
    """
    if member.id == team.owner_id:
        raise CannotRemoveOwner()

    membership = await get_membership(db, team, member.id)
    if membership is None:
        raise NotFound("User is not a member of this team")

    await db.delete(membership)
    if member.current_team_id == team.id:
        member.current_team_id = None
    await db.commit()

    log.info(f"Removed user {member.id} from team {team.id}")


async def search_candidate_users(
    db: AsyncSession,
    team: Team,
    query: str,
    acting_user: User,
    limit: int | None = None
) -> list[CandidateUser]:
    """
    Case-insensitive substring search on email or name for the add-member form.

    Returns at most ``limit`` (default ``MEMBER_SEARCH_LIMIT``) users, each
    flagged with whether they already belong to the team and whether they
    are the acting user. A blank query returns nothing.
    """
    query = (query or "").strip()
    if not query:
        return []

    limit = limit or config.MEMBER_SEARCH_LIMIT
    # LIKE wildcards typed by the user are matched literally
    escaped = query.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    pattern = f"%{escaped}%"

    stmt = (
        select(User)
        .where(
            or_(
                func.lower(User.email).like(pattern, escape="\\"),
                func.lower(User.name).like(pattern, escape="\\"),
            )
        )
        .order_by(User.name, User.email)
        .limit(limit)
    )
    result = await db.execute(stmt)
    users = list(result.scalars().all())
    if not users:
        return []

    member_result = await db.execute(
        select(TeamMembership.user_id).where(
            TeamMembership.team_id == team.id,
            TeamMembership.user_id.in_([user.id for user in users]),
        )
    )
    member_ids = set(member_result.scalars().all())

    return [
        CandidateUser(
            id=user.id,
            name=user.name,
            email=user.email,
            is_already_member=user.id in member_ids,
            is_current_user=user.id == acting_user.id,
        )
        for user in users
    ]


async def get_user(db: AsyncSession, user_id: str) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFound("User not found")
    return user


async def get_user_by_email(db: AsyncSession, email: str) -> User:
    """Emails are matched case-insensitively."""
    result = await db.execute(select(User).where(func.lower(User.email) == email.strip().lower()))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFound("User not found")
    return user
