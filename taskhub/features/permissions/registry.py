"""
The closed catalog of team permissions and the seeded global roles.

The database copy of the catalog is written by
``taskhub.features.permissions.bootstrap``; nothing else creates
permissions.
"""
import enum
from dataclasses import dataclass


@dataclass(frozen=True)
class PermissionDef:
    slug: str
    name: str
    description: str | None = None


@dataclass(frozen=True)
class GlobalRoleDef:
    slug: str
    name: str
    description: str
    permissions: tuple[str, ...]


TEAM_VIEW = "team.view"
TEAM_UPDATE = "team.update"
TEAM_DELETE = "team.delete"
MEMBER_VIEW = "member.view"
MEMBER_ADD = "member.add"
MEMBER_UPDATE = "member.update"
MEMBER_REMOVE = "member.remove"
ROLE_MANAGE = "role.manage"


PERMISSIONS: tuple[PermissionDef, ...] = (
    PermissionDef(TEAM_VIEW, "View Team Settings"),
    PermissionDef(TEAM_UPDATE, "Update Team Settings"),
    PermissionDef(TEAM_DELETE, "Delete Team"),
    PermissionDef(MEMBER_VIEW, "View Members"),
    PermissionDef(MEMBER_ADD, "Add Members"),
    PermissionDef(MEMBER_UPDATE, "Update Member Role"),
    PermissionDef(MEMBER_REMOVE, "Remove Members"),
    PermissionDef(ROLE_MANAGE, "Manage Roles & Permissions"),
)

PERMISSION_SLUGS: frozenset[str] = frozenset(p.slug for p in PERMISSIONS)


OWNER_ROLE = "owner"
ADMIN_ROLE = "admin"
MEMBER_ROLE = "member"

GLOBAL_ROLES: tuple[GlobalRoleDef, ...] = (
    GlobalRoleDef(
        slug=OWNER_ROLE,
        name="Owner",
        description="Full access to all team features",
        permissions=tuple(p.slug for p in PERMISSIONS),
    ),
    GlobalRoleDef(
        slug=ADMIN_ROLE,
        name="Administrator",
        description="Can manage members and settings but cannot delete the team",
        permissions=tuple(p.slug for p in PERMISSIONS if p.slug != TEAM_DELETE),
    ),
    GlobalRoleDef(
        slug=MEMBER_ROLE,
        name="Member",
        description="Standard member with limited access",
        permissions=(TEAM_VIEW, MEMBER_VIEW),
    ),
)


class TeamAbility(str, enum.Enum):
    """Named team actions and the permission each one requires."""
    VIEW = "view"
    UPDATE = "update"
    DELETE = "delete"
    MANAGE_MEMBERS = "manage_members"
    ADD_MEMBER = "add_member"
    UPDATE_MEMBER = "update_member"
    REMOVE_MEMBER = "remove_member"
    MANAGE_ROLES = "manage_roles"

    @property
    def permission(self) -> str:
        return ABILITY_PERMISSIONS[self]


ABILITY_PERMISSIONS: dict[TeamAbility, str] = {
    TeamAbility.VIEW: TEAM_VIEW,
    TeamAbility.UPDATE: TEAM_UPDATE,
    TeamAbility.DELETE: TEAM_DELETE,
    TeamAbility.MANAGE_MEMBERS: MEMBER_VIEW,
    TeamAbility.ADD_MEMBER: MEMBER_ADD,
    TeamAbility.UPDATE_MEMBER: MEMBER_UPDATE,
    TeamAbility.REMOVE_MEMBER: MEMBER_REMOVE,
    TeamAbility.MANAGE_ROLES: ROLE_MANAGE,
}
