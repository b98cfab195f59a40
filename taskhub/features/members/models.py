"""
Team membership: the ``team_user`` pivot between users and teams.
"""
from datetime import datetime
from sqlalchemy import String, ForeignKey, UniqueConstraint, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskhub.core.database.base import Base, generate_ulid, utcnow


class TeamMembership(Base):
    """
    A user's membership in a team, carrying at most one role.

    ``team_role_id`` may reference a global role or one of the team's own
    roles. Deleting the role nulls the reference; the membership stays.
    """
    __tablename__ = "team_user"
    __table_args__ = (
        UniqueConstraint("team_id", "user_id", name="uq_team_user_team_user"),
    )

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    team_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("teams.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    team_role_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("team_roles.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    # Relationships
    user: Mapped["User"] = relationship("User", lazy="selectin")  # type: ignore
    role: Mapped["TeamRole | None"] = relationship("TeamRole", lazy="selectin")  # type: ignore

    def __repr__(self) -> str:
        return f"<TeamMembership(team_id={self.team_id}, user_id={self.user_id}, role_id={self.team_role_id})>"
