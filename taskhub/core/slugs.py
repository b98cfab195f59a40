"""
Unique, URL-safe identifier generation.

    slug = await generate_unique_slug(db, "Acme Corp", Team.slug)  # "acme-corp", "acme-corp-1", ...
"""
import re
import secrets
import string
import unicodedata
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_VALID_SLUG = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


def slugify(value: str) -> str:
    """Lowercase ASCII words joined by single hyphens. May return ''."""
    normalized = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    return _NON_ALNUM.sub("-", normalized.lower()).strip("-")


def is_valid_slug(slug: str) -> bool:
    return bool(_VALID_SLUG.match(slug))


def random_slug(length: int = 8) -> str:
    alphabet = string.ascii_lowercase + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


def truncate(slug: str, max_length: int) -> str:
    return slug[:max_length].rstrip("-")


async def is_slug_available(db: AsyncSession, slug: str, column: Any, *criteria: Any) -> bool:
    stmt = select(column).where(column == slug, *criteria).limit(1)
    result = await db.execute(stmt)
    return result.first() is None


async def generate_unique_slug(
    db: AsyncSession,
    candidate: str,
    column: Any,
    *criteria: Any,
    max_length: int = 100,
) -> str:
    """
    Turn arbitrary text into a slug that is free in ``column``.

    Args:
        db: Database session
        candidate: Source text (e.g. a team name)
        column: Mapped column holding the slugs (defines the uniqueness scope)
        criteria: Extra WHERE clauses narrowing the scope
        max_length: Maximum slug length, suffix included

    Returns:
        The bare slug if free, otherwise the slug with the first free
        ``-1``, ``-2``, ... suffix.
    """
    base = truncate(slugify(candidate) or random_slug(), max_length)

    if await is_slug_available(db, base, column, *criteria):
        return base

    counter = 1
    while True:
        suffix = f"-{counter}"
        slug = truncate(base, max_length - len(suffix)) + suffix
        if await is_slug_available(db, slug, column, *criteria):
            return slug
        counter += 1
