# tests/test_api.py
from __future__ import annotations

import pytest

from taskhub.features.members.service import add_member, get_membership
from taskhub.features.permissions.registry import MEMBER_ADD, MEMBER_VIEW, PERMISSION_SLUGS, ROLE_MANAGE, TEAM_VIEW
from taskhub.features.permissions.service import create_team_role, get_global_role, list_permissions
from taskhub.features.teams.service import create_team


async def add_with_global_role(db, team, user, slug: str):
    return await add_member(db, team, user, await get_global_role(db, slug))


@pytest.mark.asyncio
async def test_health(client):
    r = await client.get("/health")

    assert r.status_code == 200
    assert r.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_users_me(client, owner, auth_headers):
    r = await client.get("/users/me", headers=auth_headers(owner))

    assert r.status_code == 200, r.text
    assert r.json()["email"] == "owner@example.com"


@pytest.mark.asyncio
async def test_requests_without_valid_token_rejected(client, seeded):
    r = await client.get("/teams/my")
    assert r.status_code in (401, 403)

    r = await client.get("/teams/my", headers={"Authorization": "Bearer not-a-token"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_create_and_list_teams(client, seeded, owner, auth_headers):
    r = await client.post("/teams/", json={"name": "Acme", "description": "Rockets"}, headers=auth_headers(owner))

    assert r.status_code == 201, r.text
    body = r.json()
    assert body["slug"] == "acme"
    assert body["owner"]["id"] == owner.id

    r = await client.get("/teams/my", headers=auth_headers(owner))
    assert [t["slug"] for t in r.json()] == ["acme"]

    r = await client.get("/users/me", headers=auth_headers(owner))
    assert r.json()["current_team_id"] == body["id"]


@pytest.mark.asyncio
async def test_create_team_validation_error(client, owner, auth_headers):
    r = await client.post("/teams/", json={"name": ""}, headers=auth_headers(owner))

    assert r.status_code == 400
    assert "name" in r.json()


@pytest.mark.asyncio
async def test_team_view_guard(client, db, team, make_user, auth_headers):
    member = await make_user("member@example.com")
    stranger = await make_user("stranger@example.com")
    await add_with_global_role(db, team, member, "member")

    r = await client.get(f"/teams/{team.slug}", headers=auth_headers(member))
    assert r.status_code == 200, r.text

    r = await client.get(f"/teams/{team.slug}", headers=auth_headers(stranger))
    assert r.status_code == 403
    assert r.json()["detail"] == f"Permission denied: {TEAM_VIEW}"


@pytest.mark.asyncio
async def test_unknown_team_is_404(client, seeded, owner, auth_headers):
    r = await client.get("/teams/missing", headers=auth_headers(owner))

    assert r.status_code == 404
    assert r.json()["error"] == "not_found"


@pytest.mark.asyncio
async def test_update_team_renames_slug(client, db, team, make_user, auth_headers):
    admin = await make_user("admin@example.com")
    member = await make_user("member@example.com")
    await add_with_global_role(db, team, admin, "admin")
    await add_with_global_role(db, team, member, "member")

    r = await client.patch(f"/teams/{team.slug}", json={"name": "Renamed"}, headers=auth_headers(member))
    assert r.status_code == 403

    r = await client.patch(f"/teams/{team.slug}", json={"name": "Renamed"}, headers=auth_headers(admin))
    assert r.status_code == 200, r.text
    assert r.json()["slug"] == "renamed"


@pytest.mark.asyncio
async def test_delete_team_requires_team_delete(client, db, team, owner, make_user, auth_headers):
    admin = await make_user("admin@example.com")
    await add_with_global_role(db, team, admin, "admin")

    r = await client.delete(f"/teams/{team.slug}", headers=auth_headers(admin))
    assert r.status_code == 403

    r = await client.delete(f"/teams/{team.slug}", headers=auth_headers(owner))
    assert r.status_code == 204

    r = await client.get(f"/teams/{team.slug}", headers=auth_headers(owner))
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_switch_team(client, db, team, owner, make_user, auth_headers):
    stranger = await make_user("stranger@example.com")
    other = await create_team(db, owner, "Other")

    r = await client.post("/teams/switch", json={"slug": team.slug}, headers=auth_headers(owner))
    assert r.status_code == 200, r.text
    assert r.json()["current_team_id"] == team.id

    r = await client.post("/teams/switch", json={"slug": other.slug}, headers=auth_headers(stranger))
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_member_management_flow(client, db, team, owner, make_user, auth_headers):
    u2 = await make_user("u2@example.com")
    u3 = await make_user("u3@example.com")
    member_role = await get_global_role(db, "member")

    r = await client.post(
        f"/teams/{team.slug}/members",
        json={"user_id": u2.id, "role_id": member_role.id},
        headers=auth_headers(owner),
    )
    assert r.status_code == 201, r.text
    assert r.json()["role"]["slug"] == "member"
    assert r.json()["is_owner"] is False

    # member role cannot add people
    r = await client.post(f"/teams/{team.slug}/members", json={"user_id": u3.id}, headers=auth_headers(u2))
    assert r.status_code == 403
    assert r.json()["detail"] == f"Permission denied: {MEMBER_ADD}"

    r = await client.post(f"/teams/{team.slug}/members", json={"user_id": u2.id}, headers=auth_headers(owner))
    assert r.status_code == 409
    assert r.json()["error"] == "already_member"

    r = await client.get(f"/teams/{team.slug}/members", headers=auth_headers(u2))
    assert r.status_code == 200, r.text
    body = r.json()
    assert [m["user"]["email"] for m in body["members"]] == ["owner@example.com", "u2@example.com"]
    assert body["members"][0]["is_owner"] is True
    assert {role["slug"] for role in body["assignable_roles"]} == {"owner", "admin", "member"}

    admin_role = await get_global_role(db, "admin")
    r = await client.patch(
        f"/teams/{team.slug}/members/{u2.id}",
        json={"role_id": admin_role.id},
        headers=auth_headers(owner),
    )
    assert r.status_code == 200, r.text
    assert r.json()["role"]["slug"] == "admin"

    r = await client.delete(f"/teams/{team.slug}/members/{owner.id}", headers=auth_headers(u2))
    assert r.status_code == 400
    assert r.json()["error"] == "cannot_remove_owner"

    r = await client.delete(f"/teams/{team.slug}/members/{u2.id}", headers=auth_headers(owner))
    assert r.status_code == 204
    assert await get_membership(db, team, u2.id) is None


@pytest.mark.asyncio
async def test_add_member_by_email(client, db, team, owner, make_user, auth_headers):
    u2 = await make_user("u2@example.com")

    r = await client.post(
        f"/teams/{team.slug}/members",
        json={"email": "U2@example.com"},
        headers=auth_headers(owner),
    )
    assert r.status_code == 201, r.text
    assert r.json()["user"]["id"] == u2.id
    assert r.json()["role"] is None

    r = await client.post(
        f"/teams/{team.slug}/members",
        json={"email": "nobody@example.com"},
        headers=auth_headers(owner),
    )
    assert r.status_code == 404
    assert r.json()["error"] == "not_found"

    r = await client.post(
        f"/teams/{team.slug}/members",
        json={"user_id": u2.id, "email": "u2@example.com"},
        headers=auth_headers(owner),
    )
    assert r.status_code == 400

    r = await client.post(f"/teams/{team.slug}/members", json={}, headers=auth_headers(owner))
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_assign_foreign_role_rejected(client, db, team, owner, make_user, auth_headers):
    u2 = await make_user("u2@example.com")
    other = await create_team(db, owner, "Other")
    foreign = await create_team_role(db, other, "Theirs")

    r = await client.post(
        f"/teams/{team.slug}/members",
        json={"user_id": u2.id, "role_id": foreign.id},
        headers=auth_headers(owner),
    )

    assert r.status_code == 400
    assert r.json()["error"] == "role_not_assignable"


@pytest.mark.asyncio
async def test_member_search(client, db, team, owner, make_user, auth_headers):
    alice = await make_user("alice@example.com", "Alice")
    await make_user("alicia@example.com", "Alicia")
    await add_member(db, team, alice, None)

    r = await client.get(f"/teams/{team.slug}/members/search", params={"query": "ali"}, headers=auth_headers(owner))

    assert r.status_code == 200, r.text
    flags = {u["email"]: u["is_already_member"] for u in r.json()}
    assert flags == {"alice@example.com": True, "alicia@example.com": False}

    r = await client.get(f"/teams/{team.slug}/members/search", params={"query": ""}, headers=auth_headers(owner))
    assert r.json() == []


@pytest.mark.asyncio
async def test_role_management_flow(client, db, team, owner, make_user, auth_headers):
    u2 = await make_user("u2@example.com")
    await add_with_global_role(db, team, u2, "member")
    by_slug = {p.slug: p.id for p in await list_permissions(db)}

    r = await client.get(f"/teams/{team.slug}/roles", headers=auth_headers(u2))
    assert r.status_code == 403
    assert r.json()["detail"] == f"Permission denied: {ROLE_MANAGE}"

    r = await client.post(
        f"/teams/{team.slug}/roles",
        json={"name": "Lead", "permission_ids": [by_slug[MEMBER_VIEW], by_slug[MEMBER_ADD]]},
        headers=auth_headers(owner),
    )
    assert r.status_code == 201, r.text
    lead = r.json()
    assert lead["slug"] == "lead"
    assert lead["scope"] == "team"
    assert {p["slug"] for p in lead["permissions"]} == {MEMBER_VIEW, MEMBER_ADD}

    r = await client.post(f"/teams/{team.slug}/roles", json={"name": "Lead"}, headers=auth_headers(owner))
    assert r.status_code == 409
    assert r.json()["error"] == "duplicate_role_slug"

    r = await client.post(
        f"/teams/{team.slug}/roles",
        json={"name": "Ghost", "permission_ids": ["does-not-exist"]},
        headers=auth_headers(owner),
    )
    assert r.status_code == 422
    assert r.json()["error"] == "unknown_permission"

    r = await client.patch(
        f"/teams/{team.slug}/members/{u2.id}", json={"role_id": lead["id"]}, headers=auth_headers(owner)
    )
    assert r.status_code == 200, r.text

    r = await client.get(
        f"/teams/{team.slug}/permissions/check", params={"permission": MEMBER_ADD}, headers=auth_headers(u2)
    )
    assert r.json()["allowed"] is True

    r = await client.put(
        f"/teams/{team.slug}/roles/{lead['id']}",
        json={"name": "Team Lead", "permission_ids": [by_slug[MEMBER_VIEW]]},
        headers=auth_headers(owner),
    )
    assert r.status_code == 200, r.text
    assert r.json()["slug"] == "team-lead"
    assert [p["slug"] for p in r.json()["permissions"]] == [MEMBER_VIEW]

    r = await client.get(f"/teams/{team.slug}/roles", headers=auth_headers(owner))
    assert r.status_code == 200, r.text
    listing = r.json()
    assert [role["slug"] for role in listing["team_roles"]] == ["team-lead"]
    assert {role["slug"] for role in listing["global_roles"]} == {"owner", "admin", "member"}
    assert {p["slug"] for p in listing["all_permissions"]} == set(PERMISSION_SLUGS)

    r = await client.delete(f"/teams/{team.slug}/roles/{lead['id']}", headers=auth_headers(owner))
    assert r.status_code == 200, r.text
    assert r.json()["cleared_memberships"] == 1

    membership = await get_membership(db, team, u2.id)
    assert membership is not None
    assert membership.team_role_id is None

    r = await client.get(f"/teams/{team.slug}/audit-logs", headers=auth_headers(owner))
    assert r.status_code == 200, r.text
    actions = [(entry["resource_type"], entry["action"]) for entry in r.json()["items"]]
    assert ("role", "create") in actions
    assert ("role", "update") in actions
    assert ("role", "delete") in actions
    assert ("member", "assign_role") in actions


@pytest.mark.asyncio
async def test_global_and_foreign_roles_are_protected(client, db, team, owner, auth_headers):
    admin_role = await get_global_role(db, "admin")
    other = await create_team(db, owner, "Other")
    foreign = await create_team_role(db, other, "Theirs")

    r = await client.put(
        f"/teams/{team.slug}/roles/{admin_role.id}",
        json={"name": "Hacked", "permission_ids": []},
        headers=auth_headers(owner),
    )
    assert r.status_code == 403
    assert r.json()["error"] == "global_role_immutable"

    r = await client.delete(f"/teams/{team.slug}/roles/{foreign.id}", headers=auth_headers(owner))
    assert r.status_code == 403
    assert r.json()["error"] == "foreign_role"

    r = await client.delete(f"/teams/{team.slug}/roles/01HZZZZZZZZZZZZZZZZZZZZZZZ", headers=auth_headers(owner))
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_my_permissions(client, db, team, owner, make_user, auth_headers):
    u2 = await make_user("u2@example.com")
    await add_with_global_role(db, team, u2, "member")

    r = await client.get(f"/teams/{team.slug}/permissions/me", headers=auth_headers(u2))
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["is_owner"] is False
    assert body["permissions"] == sorted([MEMBER_VIEW, TEAM_VIEW])
    assert body["abilities"]["view"] is True
    assert body["abilities"]["delete"] is False

    r = await client.get(f"/teams/{team.slug}/permissions/me", headers=auth_headers(owner))
    assert r.json()["is_owner"] is True
    assert set(r.json()["permissions"]) == set(PERMISSION_SLUGS)
