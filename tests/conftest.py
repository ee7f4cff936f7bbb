"""
Pytest fixtures for testing.

Provides:
- In-memory SQLite engine with the RBAC tables created per test
- Empty and pre-populated storage fixtures
- A helper counting rows of the items-children table
"""

from collections.abc import Callable, Generator

import pytest
from sqlalchemy import Engine, create_engine, func, insert, select
from sqlalchemy.pool import StaticPool

from rbac_db.services.items_storage import ItemsStorage

# 2023-12-24 17:51:18 UTC
CREATED_AT = 1703440278

ROLES = ["admin", "posts.admin", "posts.redactor", "posts.viewer", "guest"]
PERMISSIONS = ["posts.view", "posts.create", "posts.update", "posts.delete", "posts.update.own"]

ROLE_EDGES = [
    ("admin", "posts.admin"),
    ("posts.admin", "posts.redactor"),
    ("posts.redactor", "posts.viewer"),
]
PERMISSION_EDGES = [
    ("posts.update", "posts.update.own"),
    ("posts.update", "posts.view"),
]
MIXED_EDGES = [
    ("posts.viewer", "posts.view"),
    ("posts.redactor", "posts.create"),
    ("posts.redactor", "posts.update"),
    ("posts.admin", "posts.delete"),
]
EDGES = ROLE_EDGES + PERMISSION_EDGES + MIXED_EDGES


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """Single shared in-memory database (StaticPool keeps one connection)."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield engine
    engine.dispose()


@pytest.fixture
def storage(engine: Engine) -> ItemsStorage:
    storage = ItemsStorage(engine)
    storage.metadata.create_all(engine)
    return storage


@pytest.fixture
def populated_storage(storage: ItemsStorage, engine: Engine) -> ItemsStorage:
    """Storage pre-filled with a batch insert of the fixture hierarchy."""
    items = [
        {"name": name, "type": "role", "created_at": CREATED_AT, "updated_at": CREATED_AT}
        for name in ROLES
    ] + [
        {"name": name, "type": "permission", "created_at": CREATED_AT, "updated_at": CREATED_AT}
        for name in PERMISSIONS
    ]
    with engine.begin() as conn:
        conn.execute(insert(storage.items), items)
        conn.execute(
            insert(storage.items_children),
            [{"parent": parent, "child": child} for parent, child in EDGES],
        )
    return storage


@pytest.fixture
def edge_count(storage: ItemsStorage, engine: Engine) -> Callable[[], int]:
    def count() -> int:
        with engine.connect() as conn:
            return conn.scalar(select(func.count()).select_from(storage.items_children))

    return count
