"""
FastAPI dependencies for team permission checks.
"""
from typing import Annotated
from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.core.database.engine import get_db
from taskhub.features.users.models import User
from taskhub.features.users.dependencies import get_current_user
from taskhub.features.teams.models import Team
from taskhub.features.teams.dependencies import get_team
from taskhub.features.permissions.resolver import has_team_permission
from taskhub.utils import get_logger


log = get_logger(__name__)


def require_team_permission(permission_slug: str):
    """
    FastAPI dependency to require a team permission on the ``{slug}`` team.

    Usage:
        @router.post("/members")
        async def add_member(
            team: Team = Depends(require_team_permission(MEMBER_ADD))
        ):
            # Acting user may add members to ``team``
            pass

    Args:
        permission_slug: Permission slug, e.g. "member.add"

    Returns:
        Dependency function that returns the team if the user has the permission

    Raises:
        HTTPException: 403 if the user doesn't have the permission
    """
    async def permission_dependency(
        team: Annotated[Team, Depends(get_team)],
        current_user: Annotated[User, Depends(get_current_user)],
        db: Annotated[AsyncSession, Depends(get_db)]
    ) -> Team:
        if not await has_team_permission(db, current_user, team, permission_slug):
            log.info(f"User {current_user.id} denied {permission_slug} on team {team.slug}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied: {permission_slug}"
            )

        return team

    return permission_dependency
