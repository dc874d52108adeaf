"""Pytest configuration shared across the suite."""

import os
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Keep any database the application opens on its own out of the working tree
os.environ.setdefault(
    "SQLITE_DB_PATH",
    str(Path(tempfile.mkdtemp(prefix="tokenable-tests-")) / "tokens.sqlite3")
)

import pytest
from fastapi.testclient import TestClient

from tokenable.main import app
from tokenable.settings import settings
from tokenable.storage.sqlite_base import ensure_schema, open_sqlite_connection
from tokenable.tokens.dependencies import get_token_manager_dependency, get_token_store_dependency
from tokenable.tokens.models import OwnerRef
from tokenable.tokens.sqlite_token_store import SQLiteTokenStore
from tokenable.tokens.token_manager import TokenManager

ADMIN_API_KEY = "test-admin-key"


class FakeClock:
    """Controllable clock returning a fixed UTC instant until advanced."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def db_connection():
    conn = open_sqlite_connection(":memory:")
    ensure_schema(conn)
    yield conn
    conn.close()


@pytest.fixture
def token_store(db_connection) -> SQLiteTokenStore:
    # Small batches so purge tests cross batch boundaries
    return SQLiteTokenStore(connection=db_connection, purge_batch_size=2)


@pytest.fixture
def token_manager(token_store, clock) -> TokenManager:
    return TokenManager(token_store, clock=clock)


@pytest.fixture
def owner() -> OwnerRef:
    return OwnerRef(owner_type="user", owner_id="U1")


@pytest.fixture
def admin_headers() -> dict:
    return {"X-Admin-API-Key": ADMIN_API_KEY}


@pytest.fixture
def client(monkeypatch, token_store, clock):
    monkeypatch.setattr(settings, "admin_api_key", ADMIN_API_KEY)
    app.dependency_overrides[get_token_store_dependency] = lambda: token_store
    app.dependency_overrides[get_token_manager_dependency] = lambda: TokenManager(token_store, clock=clock)
    # No context manager: the lifespan (and the on-disk database) is not needed
    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()
