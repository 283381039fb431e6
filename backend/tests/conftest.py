"""Shared fixtures: a throwaway SQLite database per test and an HTTP client."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("RUN_MIGRATIONS", "false")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from treenote.database import Base, get_db, make_engine
from treenote.main import app
from treenote.models import Node, User
from treenote.services import tree_engine
from treenote.services.auth import create_access_token


@pytest.fixture
async def engine(tmp_path):
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'treenote.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


async def _create_user(session_maker, username: str) -> int:
    async with session_maker() as session:
        user = User(username=username, hashed_password="not-a-real-hash")
        session.add(user)
        await session.commit()
        return user.id


@pytest.fixture
async def owner_id(session_maker) -> int:
    return await _create_user(session_maker, "alice")


@pytest.fixture
async def other_owner_id(session_maker) -> int:
    return await _create_user(session_maker, "bob")


def auth_headers(user_id: int, username: str = "alice") -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id, username)}"}


@pytest.fixture
async def anon_client(session_maker):
    async def _get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
async def client(anon_client, owner_id):
    anon_client.headers.update(auth_headers(owner_id))
    return anon_client


async def make_node(db, owner_id: int, kind: str, name: str, parent_id: int | None = None, content: str | None = None) -> int:
    """Create a node through the engine and return its id."""
    node = await tree_engine.create_node(db, owner_id, kind=kind, name=name, parent_id=parent_id, content=content)
    return node.id


async def snapshot(db, owner_id: int) -> list[tuple]:
    """Column-level view of an owner's rows, bypassing the identity map."""
    result = await db.execute(
        select(Node.id, Node.parent_id, Node.kind, Node.name, Node.content, Node.sort_order, Node.updated_at)
        .where(Node.user_id == owner_id)
        .order_by(Node.id)
    )
    return [tuple(row) for row in result.all()]


async def children_of(db, owner_id: int, parent_id: int | None) -> list[tuple[int, int]]:
    """(id, sort_order) of a sibling group in display order."""
    parent_clause = Node.parent_id.is_(None) if parent_id is None else Node.parent_id == parent_id
    result = await db.execute(
        select(Node.id, Node.sort_order)
        .where(Node.user_id == owner_id, parent_clause)
        .order_by(Node.sort_order, Node.id)
    )
    return [tuple(row) for row in result.all()]
