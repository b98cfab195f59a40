"""
Team-related dependency injection functions.
"""
from typing import Annotated
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.core.database.engine import get_db
from taskhub.features.teams.models import Team
from taskhub.features.teams.service import get_team_by_slug


async def get_team(
    slug: str,
    db: Annotated[AsyncSession, Depends(get_db)]
) -> Team:
    """
    Get team by slug from the path.

    Raises:
        NotFound: 404 if no team has this slug
    """
    return await get_team_by_slug(db, slug)
