"""
Shared pytest fixtures for Lineage tests.

Provides:
- In-memory fakes for trees, persons and relationship counts
- Repository doubles (AsyncMock) for strategy and service unit tests
- A PermissionService wired with the default strategy chain over those doubles
- An in-memory SQLite database, seeded users/trees/persons, and an API client
"""

import os
from datetime import date
from types import SimpleNamespace
from unittest.mock import AsyncMock

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

from lineage.core import config
from lineage.core.database.base import Base
from lineage.core.database.engine import enable_sqlite_foreign_keys, get_db, register_models
from lineage.features.permissions.cache import PermissionCache
from lineage.features.permissions.service import PermissionService
from lineage.features.permissions.strategies import (
    AttributeBasedStrategy,
    OwnerOnlyStrategy,
    RoleBasedStrategy,
)

TEST_JWT_SECRET = "lineage-test-secret-at-least-32-bytes-long"


# ============================================================================
# In-memory Fakes
# ============================================================================

def make_tree(tree_id, owner_id, is_public=False, collaborators=()):
    return SimpleNamespace(
        id=tree_id,
        owner_id=owner_id,
        is_public=is_public,
        collaborators=[
            SimpleNamespace(user_id=user_id, permission_level=level)
            for user_id, level in collaborators
        ],
    )


def make_person(person_id, tree_id, date_of_death=None):
    return SimpleNamespace(id=person_id, tree_id=tree_id, date_of_death=date_of_death)


@pytest.fixture
def trees():
    """
    tree1    private, owned by owner1; admin1/editor1/viewer1 collaborate,
             odd1 holds a level the engine does not know
    public1  public, owned by owner1; editor1 collaborates
    """
    return {
        "tree1": make_tree(
            "tree1",
            "owner1",
            collaborators=[
                ("admin1", "admin"),
                ("editor1", "editor"),
                ("viewer1", "viewer"),
                ("odd1", "curator"),
            ],
        ),
        "public1": make_tree("public1", "owner1", is_public=True, collaborators=[("editor1", "editor")]),
    }


@pytest.fixture
def persons():
    return {
        "living1": make_person("living1", "tree1"),
        "deceased1": make_person("deceased1", "tree1", date_of_death=date(1901, 1, 22)),
        "linked1": make_person("linked1", "tree1"),
        "public-living": make_person("public-living", "public1"),
        "public-deceased": make_person("public-deceased", "public1", date_of_death=date(1837, 6, 20)),
    }


@pytest.fixture
def relationship_counts():
    return {"linked1": 2}


@pytest.fixture
def tree_repository(trees):
    repository = AsyncMock()
    repository.find_by_id.side_effect = lambda tree_id: trees.get(tree_id)
    return repository


@pytest.fixture
def person_repository(persons):
    repository = AsyncMock()
    repository.find_by_id.side_effect = lambda person_id: persons.get(person_id)
    return repository


@pytest.fixture
def relationship_repository(relationship_counts):
    repository = AsyncMock()
    repository.count_by_person_id.side_effect = lambda person_id: relationship_counts.get(person_id, 0)
    return repository


@pytest.fixture
def permission_service(tree_repository, person_repository, relationship_repository):
    return PermissionService(
        [
            OwnerOnlyStrategy(tree_repository),
            AttributeBasedStrategy(person_repository, relationship_repository, tree_repository),
            RoleBasedStrategy(tree_repository),
        ],
        cache=PermissionCache(),
    )


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest_asyncio.fixture
async def db_engine():
    """Fresh in-memory database with every table created."""
    register_models()
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def seeded(session_factory):
    """
    Users owner1, admin1, editor1, viewer1, outsider1 and inactive1.

    tree1 is private with the three collaborators; public1 is public and
    owned by owner1 with no collaborators.
    """
    from lineage.features.persons.models import Person
    from lineage.features.trees.models import FamilyTree, TreeCollaborator
    from lineage.features.users.models import User

    async with session_factory() as session:
        session.add_all([
            User(id=user_id, email=f"{user_id}@example.com", name=user_id.title(), is_active=user_id != "inactive1")
            for user_id in ("owner1", "admin1", "editor1", "viewer1", "outsider1", "inactive1")
        ])
        await session.flush()

        session.add_all([
            FamilyTree(id="tree1", owner_id="owner1", name="Private tree", is_public=False),
            FamilyTree(id="public1", owner_id="owner1", name="Public tree", is_public=True),
        ])
        await session.flush()

        session.add_all([
            TreeCollaborator(tree_id="tree1", user_id="admin1", permission_level="admin", added_by_id="owner1"),
            TreeCollaborator(tree_id="tree1", user_id="editor1", permission_level="editor", added_by_id="owner1"),
            TreeCollaborator(tree_id="tree1", user_id="viewer1", permission_level="viewer", added_by_id="owner1"),
        ])
        session.add_all([
            Person(id="deceased1", tree_id="tree1", first_name="Augusta", last_name="Byron",
                   date_of_birth=date(1815, 12, 10), date_of_death=date(1852, 11, 27)),
            Person(id="living1", tree_id="tree1", first_name="Ada", last_name="King"),
            Person(id="child1", tree_id="tree1", first_name="Byron", last_name="King"),
            Person(id="public-living", tree_id="public1", first_name="Alan", last_name="Turing"),
            Person(id="public-deceased", tree_id="public1", first_name="Charles", last_name="Babbage",
                   date_of_death=date(1871, 10, 18)),
        ])
        await session.commit()


# ============================================================================
# API Client Fixtures
# ============================================================================

@pytest.fixture
def auth_headers():
    """Build a bearer header for a user id."""
    def _headers(user_id: str) -> dict:
        token = jwt.encode({"sub": user_id}, TEST_JWT_SECRET, algorithm="HS256")
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest_asyncio.fixture
async def client(session_factory, seeded, monkeypatch):
    from lineage.main import app

    monkeypatch.setattr(config, "AUTH_JWT_SECRET", TEST_JWT_SECRET)
    monkeypatch.setattr(config, "AUTH_JWT_ALGORITHM", "HS256")

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.state.permission_cache = PermissionCache()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
