# tests/test_resolver.py
from __future__ import annotations

import pytest

from taskhub.features.members.service import add_member, get_membership, update_member_role
from taskhub.features.permissions.registry import (
    MEMBER_ADD,
    MEMBER_VIEW,
    PERMISSION_SLUGS,
    ROLE_MANAGE,
    TEAM_DELETE,
    TEAM_UPDATE,
    TEAM_VIEW,
    TeamAbility,
)
from taskhub.features.permissions.resolver import (
    has_team_permission,
    team_abilities_for,
    team_permissions_for,
)
from taskhub.features.permissions.service import (
    create_team_role,
    get_global_role,
    list_permissions,
    sync_role_permissions,
)
from taskhub.features.teams.service import create_team


async def permission_ids(db, *slugs: str) -> list[str]:
    by_slug = {p.slug: p.id for p in await list_permissions(db)}
    return [by_slug[slug] for slug in slugs]


@pytest.mark.asyncio
async def test_owner_allowed_without_membership(db, team, owner):
    membership = await get_membership(db, team, owner.id)
    await db.delete(membership)
    await db.commit()

    for slug in PERMISSION_SLUGS:
        assert await has_team_permission(db, owner, team, slug)


@pytest.mark.asyncio
async def test_owner_allowed_even_with_member_role(db, team, owner):
    member_role = await get_global_role(db, "member")
    await update_member_role(db, team, owner, member_role)

    assert await has_team_permission(db, owner, team, TEAM_DELETE)
    assert await team_permissions_for(db, owner, team) == set(PERMISSION_SLUGS)


@pytest.mark.asyncio
async def test_non_member_denied(db, team, make_user):
    stranger = await make_user("stranger@example.com")

    assert not await has_team_permission(db, stranger, team, TEAM_VIEW)
    assert await team_permissions_for(db, stranger, team) == set()


@pytest.mark.asyncio
async def test_member_without_role_denied(db, team, make_user):
    user = await make_user("norole@example.com")
    await add_member(db, team, user, None)

    assert not await has_team_permission(db, user, team, TEAM_VIEW)
    assert await team_permissions_for(db, user, team) == set()


@pytest.mark.asyncio
async def test_member_role_grants_only_its_permissions(db, team, make_user):
    user = await make_user("member@example.com")
    await add_member(db, team, user, await get_global_role(db, "member"))

    assert await has_team_permission(db, user, team, TEAM_VIEW)
    assert await has_team_permission(db, user, team, MEMBER_VIEW)
    assert not await has_team_permission(db, user, team, MEMBER_ADD)
    assert not await has_team_permission(db, user, team, TEAM_UPDATE)


@pytest.mark.asyncio
async def test_admin_cannot_delete_team(db, team, make_user):
    user = await make_user("admin@example.com")
    await add_member(db, team, user, await get_global_role(db, "admin"))

    assert await has_team_permission(db, user, team, ROLE_MANAGE)
    assert await has_team_permission(db, user, team, TEAM_UPDATE)
    assert not await has_team_permission(db, user, team, TEAM_DELETE)


@pytest.mark.asyncio
async def test_unknown_slug_is_denied_for_members(db, team, make_user):
    user = await make_user("admin@example.com")
    await add_member(db, team, user, await get_global_role(db, "admin"))

    assert not await has_team_permission(db, user, team, "billing.manage")


@pytest.mark.asyncio
async def test_team_role_grants_exactly_its_set(db, team, make_user):
    ids = await permission_ids(db, MEMBER_ADD)
    role = await create_team_role(db, team, "Recruiter", permission_ids=ids)
    user = await make_user("recruiter@example.com")
    await add_member(db, team, user, role)

    assert await has_team_permission(db, user, team, MEMBER_ADD)
    assert not await has_team_permission(db, user, team, TEAM_VIEW)


@pytest.mark.asyncio
async def test_membership_is_per_team(db, team, owner, make_user):
    user = await make_user("admin@example.com")
    await add_member(db, team, user, await get_global_role(db, "admin"))
    other_team = await create_team(db, owner, "Other Team")

    assert await has_team_permission(db, user, team, TEAM_UPDATE)
    assert not await has_team_permission(db, user, other_team, TEAM_VIEW)


@pytest.mark.asyncio
async def test_permission_change_visible_on_next_check(db, team, make_user):
    user = await make_user("member@example.com")
    member_role = await get_global_role(db, "member")
    await add_member(db, team, user, member_role)
    assert not await has_team_permission(db, user, team, MEMBER_ADD)

    await sync_role_permissions(db, member_role.id, await permission_ids(db, TEAM_VIEW, MEMBER_VIEW, MEMBER_ADD))
    await db.commit()

    assert await has_team_permission(db, user, team, MEMBER_ADD)


@pytest.mark.asyncio
async def test_abilities_follow_permissions(db, team, make_user):
    user = await make_user("member@example.com")
    await add_member(db, team, user, await get_global_role(db, "member"))

    abilities = await team_abilities_for(db, user, team)

    assert set(abilities) == {ability.value for ability in TeamAbility}
    assert abilities["view"] is True
    assert abilities["manage_members"] is True
    assert abilities["add_member"] is False
    assert abilities["manage_roles"] is False
