"""
Team model: the tenant boundary for projects, tasks, roles and memberships.
"""
from sqlalchemy import String, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskhub.core.database.base import Base, TimestampMixin, generate_ulid


class Team(Base, TimestampMixin):
    """
    Team model.

    A team has exactly one owner, fixed at creation. The owner is always
    allowed everything on the team regardless of membership rows.
    """
    __tablename__ = "teams"

    # Primary key using ULID
    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    owner_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    # Relationships
    owner: Mapped["User"] = relationship(  # type: ignore
        "User",
        foreign_keys=[owner_id],
        lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<Team(id={self.id}, slug={self.slug!r}, owner_id={self.owner_id})>"
