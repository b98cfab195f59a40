"""
Permission, role and audit models for team-scoped RBAC.

This module implements:
- A closed catalog of team permissions (seeded, never created via the API)
- Roles that are either global (team_id NULL, shared by every team) or
  private to one team
- The role <-> permission assignment
- An audit trail of management actions
"""
import enum
from typing import Any, Dict
from sqlalchemy import String, ForeignKey, Table, Column, JSON, Text, Index, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskhub.core.database.base import Base, TimestampMixin, generate_ulid


# ============================================================================
# Association Tables
# ============================================================================

# Role-Permission relationship
team_permission_role = Table(
    "team_permission_role",
    Base.metadata,
    Column("role_id", String(26), ForeignKey("team_roles.id", ondelete="CASCADE"), primary_key=True),
    Column("permission_id", String(26), ForeignKey("team_permissions.id", ondelete="CASCADE"), primary_key=True),
)


# ============================================================================
# Core Models
# ============================================================================

class RoleScope(str, enum.Enum):
    """Where a role can be used and who may change it."""
    GLOBAL = "global"
    TEAM = "team"


class TeamPermission(Base, TimestampMixin):
    """
    An atomic capability checked by the resolver, e.g. ``member.add``.

    The slug is the stable identifier; name/description are display text
    and are updated in place by the seeder.
    """
    __tablename__ = "team_permissions"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<TeamPermission(id={self.id}, slug={self.slug!r})>"


class TeamRole(Base, TimestampMixin):
    """
    Role model for grouping permissions.

    Global roles (team_id NULL) are seeded and immutable from team
    management. Team roles are owned by one team. Slugs are unique per
    scope: per team for team roles, among global roles for global ones.
    """
    __tablename__ = "team_roles"
    __table_args__ = (
        UniqueConstraint("team_id", "slug", name="uq_team_roles_team_slug"),
        # NULL team_id values never collide in a plain unique constraint
        Index(
            "uq_team_roles_global_slug",
            "slug",
            unique=True,
            sqlite_where=text("team_id IS NULL"),
            postgresql_where=text("team_id IS NULL"),
        ),
    )

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    # null = global role
    team_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("teams.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    # Read-only view; writes go through sync_role_permissions()
    permissions: Mapped[list["TeamPermission"]] = relationship(
        "TeamPermission",
        secondary=team_permission_role,
        lazy="selectin",
        viewonly=True,
        order_by="TeamPermission.slug",
    )

    @property
    def is_global(self) -> bool:
        return self.team_id is None

    @property
    def scope(self) -> RoleScope:
        return RoleScope.GLOBAL if self.team_id is None else RoleScope.TEAM

    @property
    def permission_slugs(self) -> set[str]:
        return {permission.slug for permission in self.permissions}

    def __repr__(self) -> str:
        return f"<TeamRole(id={self.id}, slug={self.slug!r}, team_id={self.team_id})>"


class TeamAuditLog(Base, TimestampMixin):
    """
    Audit log for team management actions.

    Tracks who changed which role or membership, and on which team.
    """
    __tablename__ = "team_audit_logs"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    # Actor
    user_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    # Action details
    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    resource_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    resource_id: Mapped[str | None] = mapped_column(String(26), nullable=True, index=True)

    # Context
    team_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("teams.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    details: Mapped[Dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<TeamAuditLog(id={self.id}, user_id={self.user_id}, action={self.action}, resource={self.resource_type})>"
