"""
Seed team permissions and global roles, then repair owner memberships.

Safe to run repeatedly.

Usage:
    uv run python -m scripts.seed_team_management
"""
import asyncio

from taskhub.features.permissions.bootstrap import main


if __name__ == "__main__":
    asyncio.run(main())
