from __future__ import annotations

import uuid

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from taskhub.core.database.base import Base
from taskhub.core.database.engine import enable_sqlite_foreign_keys, get_db, import_models
from taskhub.features.users.auth import create_access_token
from taskhub.features.users.models import User
from taskhub.features.permissions.bootstrap import run_bootstrap
from taskhub.features.teams.service import create_team

# Ensure every model is registered before create_all
import_models()


# ---------------------------------------------------------
# Engine (one SQLite file per test)
# ---------------------------------------------------------
@pytest_asyncio.fixture()
async def engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        future=True,
        echo=False,
        poolclass=NullPool,
    )
    enable_sqlite_foreign_keys(engine.sync_engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture()
def sessionmaker(engine):
    return async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )


# ---------------------------------------------------------
# DB session for setup, service calls and assertions
# ---------------------------------------------------------
@pytest_asyncio.fixture()
async def db(sessionmaker):
    async with sessionmaker() as session:
        yield session
        await session.rollback()


# ---------------------------------------------------------
# FastAPI app + dependency override
# ---------------------------------------------------------
@pytest.fixture()
def app(sessionmaker):
    from taskhub.main import app as fastapi_app

    async def _override_get_db():
        async with sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    fastapi_app.dependency_overrides[get_db] = _override_get_db
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


# ---------------------------------------------------------
# HTTP client
# ---------------------------------------------------------
@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
    ) as ac:
        yield ac


# ---------------------------------------------------------
# Factories
# ---------------------------------------------------------
@pytest.fixture()
def make_user(db):
    async def _make_user(email: str | None = None, name: str | None = None) -> User:
        email = email or f"user-{uuid.uuid4().hex[:8]}@example.com"
        user = User(email=email, name=name or email.split("@")[0], is_active=True)
        db.add(user)
        await db.commit()
        return user

    return _make_user


@pytest.fixture()
def auth_headers():
    def _auth_headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _auth_headers


@pytest_asyncio.fixture()
async def seeded(db):
    """Permission catalog and global roles in place."""
    await run_bootstrap(db)
    return db


@pytest_asyncio.fixture()
async def owner(make_user):
    return await make_user("owner@example.com", "Olivia Owner")


@pytest_asyncio.fixture()
async def team(seeded, db, owner):
    return await create_team(db, owner, "Acme Corp", "Test team")
