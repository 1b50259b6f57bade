"""Common test fixtures for the Keeper note store."""

import pytest

from keeper_store.config import config
from keeper_store.observability import metrics
from keeper_store.services.keeper_service import KeeperService
from keeper_store.storage.sqlalchemy_adapter import SQLAlchemyAdapter
from keeper_store.storage.sqlite_adapter import SqliteAdapter
from tests.fakes import CounterIds, FakeClock, InMemoryBlobStore

ADAPTERS = ["sqlalchemy_memory", "sqlalchemy_file", "sqlite_memory"]


def make_adapter(kind, tmp_path):
    """Build one of the three adapters the engine runs on."""
    if kind == "sqlalchemy_memory":
        return SQLAlchemyAdapter.in_memory()
    if kind == "sqlalchemy_file":
        return SQLAlchemyAdapter.from_path(tmp_path / "keeper.sqlite3")
    if kind == "sqlite_memory":
        return SqliteAdapter(":memory:")
    raise ValueError(kind)


@pytest.fixture(autouse=True)
def _reset_metrics():
    """Keep the global metrics collector isolated between tests."""
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def test_config(tmp_path, monkeypatch):
    """Point the global config at a temp directory (auto-restored)."""
    monkeypatch.setattr(config, "base_dir", tmp_path)
    monkeypatch.setattr(config, "database_path", tmp_path / "db" / "keeper.sqlite3")
    monkeypatch.setattr(config, "media_dir", tmp_path / "media")
    monkeypatch.setattr(config, "backend", "sqlalchemy")
    monkeypatch.setattr(config, "log_dir", None)
    yield config


@pytest.fixture(params=ADAPTERS)
def adapter(request, tmp_path):
    """Every adapter the engine must behave identically on."""
    db = make_adapter(request.param, tmp_path)
    yield db
    db.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def service(adapter, clock):
    """Engine without a blob store, on each adapter."""
    return KeeperService(adapter, generate_id=CounterIds(), now=clock)


@pytest.fixture
def blob_store():
    return InMemoryBlobStore()


@pytest.fixture
def media_service(adapter, clock, blob_store):
    """Engine with an in-memory blob store wired up."""
    return KeeperService(
        adapter, generate_id=CounterIds(), now=clock, blob_store=blob_store
    )


@pytest.fixture
def memory_service(clock):
    """Single-adapter engine for tests where the backend does not matter."""
    db = SQLAlchemyAdapter.in_memory()
    yield KeeperService(db, generate_id=CounterIds(), now=clock)
    db.close()
