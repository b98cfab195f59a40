"""
Domain errors raised by the team access-control services.

Services raise these instead of ``HTTPException``; ``taskhub.main`` turns
any ``TeamAccessError`` into a JSON response using ``status_code`` and
``code``.
"""
from fastapi import status


class TeamAccessError(Exception):
    """Base class for recoverable, caller-visible team management errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "team_access_error"
    default_message: str = "Team management request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class AlreadyMember(TeamAccessError):
    status_code = status.HTTP_409_CONFLICT
    code = "already_member"
    default_message = "User is already a member of this team"


class CannotRemoveOwner(TeamAccessError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "cannot_remove_owner"
    default_message = "The owner cannot be removed"


class RoleNotAssignable(TeamAccessError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "role_not_assignable"
    default_message = "Role belongs to another team"


class GlobalRoleImmutable(TeamAccessError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "global_role_immutable"
    default_message = "Global roles cannot be changed from a team"


class ForeignRole(TeamAccessError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "foreign_role"
    default_message = "Role does not belong to this team"


class DuplicateRoleSlug(TeamAccessError):
    status_code = status.HTTP_409_CONFLICT
    code = "duplicate_role_slug"
    default_message = "A role with this slug already exists"


class UnknownPermission(TeamAccessError):
    status_code = 422
    code = "unknown_permission"
    default_message = "Unknown permission"


class NotFound(TeamAccessError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_message = "Not found"


class BootstrapError(RuntimeError):
    """Raised when seeding/repair cannot converge (e.g. the owner role is missing)."""
