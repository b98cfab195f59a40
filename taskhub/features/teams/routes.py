"""
Team feature routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.core.database.engine import get_db
from taskhub.features.users.models import User
from taskhub.features.users.dependencies import get_current_user
from taskhub.features.teams import service
from taskhub.features.teams.models import Team
from taskhub.features.teams.schemas import (
    SwitchTeamRequest,
    SwitchTeamResponse,
    TeamCreate,
    TeamResponse,
    TeamUpdate,
)
from taskhub.features.permissions.dependencies import require_team_permission
from taskhub.features.permissions.registry import TEAM_DELETE, TEAM_UPDATE, TEAM_VIEW
from taskhub.features.permissions.service import create_audit_log


router = APIRouter(tags=["teams"])


@router.post("/", response_model=TeamResponse, status_code=status.HTTP_201_CREATED)
async def create_team(
    team_data: TeamCreate,
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Create a team owned by the acting user and switch to it."""
    team = await service.create_team(db, user, team_data.name, team_data.description)

    await create_audit_log(
        db,
        user_id=user.id,
        action="create",
        resource_type="team",
        resource_id=team.id,
        team_id=team.id,
        details={"slug": team.slug},
    )

    return team


@router.get("/my", response_model=list[TeamResponse])
async def list_my_teams(
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """List teams the acting user belongs to."""
    return await service.list_user_teams(db, user)


@router.post("/switch", response_model=SwitchTeamResponse)
async def switch_team(
    switch_data: SwitchTeamRequest,
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Switch to a different team."""
    team = await service.get_team_by_slug(db, switch_data.slug)
    await service.switch_team(db, user, team)

    return SwitchTeamResponse(
        message="Team switched successfully",
        current_team_id=team.id,
        current_team_slug=team.slug,
    )


@router.get("/{slug}", response_model=TeamResponse)
async def get_team(
    team: Annotated[Team, Depends(require_team_permission(TEAM_VIEW))]
):
    """Get team by slug."""
    return team


@router.patch("/{slug}", response_model=TeamResponse)
async def update_team(
    update_data: TeamUpdate,
    team: Annotated[Team, Depends(require_team_permission(TEAM_UPDATE))],
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Update team name and description."""
    previous_slug = team.slug
    team = await service.update_team(db, team, update_data.name, update_data.description)

    await create_audit_log(
        db,
        user_id=user.id,
        action="update",
        resource_type="team",
        resource_id=team.id,
        team_id=team.id,
        details={"slug": team.slug, "previous_slug": previous_slug},
    )

    return team


@router.delete("/{slug}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_team(
    team: Annotated[Team, Depends(require_team_permission(TEAM_DELETE))],
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Delete the team with its memberships and private roles."""
    team_id, team_slug = team.id, team.slug
    await service.delete_team(db, team)

    await create_audit_log(
        db,
        user_id=user.id,
        action="delete",
        resource_type="team",
        resource_id=team_id,
        details={"slug": team_slug},
    )
