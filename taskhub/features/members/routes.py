"""
Team member API routes.

Mounted under ``/teams/{slug}``.
"""
from typing import Annotated, List
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.core import config
from taskhub.core.database.engine import get_db
from taskhub.core.rate_limit import limiter
from taskhub.features.users.models import User
from taskhub.features.users.dependencies import get_current_user
from taskhub.features.teams.models import Team
from taskhub.features.teams.dependencies import get_team
from taskhub.features.members import service
from taskhub.features.members.models import TeamMembership
from taskhub.features.members.schemas import (
    CandidateUserResponse,
    MemberAdd,
    MemberListResponse,
    MemberResponse,
    MemberRoleUpdate,
    RoleSummary,
)
from taskhub.features.permissions.dependencies import require_team_permission
from taskhub.features.permissions.registry import MEMBER_ADD, MEMBER_REMOVE, MEMBER_UPDATE, MEMBER_VIEW
from taskhub.features.permissions.service import create_audit_log, get_role


router = APIRouter(tags=["members"])


def _member_response(team: Team, membership: TeamMembership) -> MemberResponse:
    response = MemberResponse.model_validate(membership)
    response.is_owner = membership.user_id == team.owner_id
    return response


@router.get("/members", response_model=MemberListResponse)
async def list_team_members(
    team: Annotated[Team, Depends(require_team_permission(MEMBER_VIEW))],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """List team members and the roles that can be assigned to them."""
    memberships = await service.list_members(db, team)
    roles = await service.assignable_roles(db, team)
    return MemberListResponse(
        members=[_member_response(team, membership) for membership in memberships],
        assignable_roles=[RoleSummary.model_validate(role) for role in roles],
    )


@router.get("/members/search", response_model=List[CandidateUserResponse])
@limiter.limit(config.MEMBER_SEARCH_RATE_LIMIT)
async def search_users_to_add(
    request: Request,
    team: Annotated[Team, Depends(get_team)],
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    query: str = Query("", max_length=255)
):
    """Search users by email or name for the add-member form."""
    candidates = await service.search_candidate_users(db, team, query, current_user)
    return [CandidateUserResponse.model_validate(candidate) for candidate in candidates]


@router.post("/members", response_model=MemberResponse, status_code=status.HTTP_201_CREATED)
async def add_team_member(
    member_data: MemberAdd,
    team: Annotated[Team, Depends(require_team_permission(MEMBER_ADD))],
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Add a user, by ID or by email, to the team, optionally with a role."""
    if member_data.user_id is not None:
        user = await service.get_user(db, member_data.user_id)
    else:
        user = await service.get_user_by_email(db, member_data.email)
    role = await get_role(db, member_data.role_id) if member_data.role_id else None

    membership = await service.add_member(db, team, user, role)

    await create_audit_log(
        db,
        user_id=current_user.id,
        action="add",
        resource_type="member",
        resource_id=user.id,
        team_id=team.id,
        details={"role_id": membership.team_role_id},
    )

    return _member_response(team, membership)


@router.patch("/members/{user_id}", response_model=MemberResponse)
async def update_team_member_role(
    user_id: str,
    role_data: MemberRoleUpdate,
    team: Annotated[Team, Depends(require_team_permission(MEMBER_UPDATE))],
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Change a member's role."""
    member = await service.get_user(db, user_id)
    role = await get_role(db, role_data.role_id) if role_data.role_id else None

    membership = await service.update_member_role(db, team, member, role)

    await create_audit_log(
        db,
        user_id=current_user.id,
        action="assign_role",
        resource_type="member",
        resource_id=member.id,
        team_id=team.id,
        details={"role_id": membership.team_role_id},
    )

    return _member_response(team, membership)


@router.delete("/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_team_member(
    user_id: str,
    team: Annotated[Team, Depends(require_team_permission(MEMBER_REMOVE))],
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Remove a member from the team. The owner cannot be removed."""
    member = await service.get_user(db, user_id)
    await service.remove_member(db, team, member)

    await create_audit_log(
        db,
        user_id=current_user.id,
        action="remove",
        resource_type="member",
        resource_id=member.id,
        team_id=team.id,
    )
