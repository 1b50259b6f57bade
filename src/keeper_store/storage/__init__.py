"""Storage layer for the Keeper note store."""

from typing import Optional

from keeper_store.config import KeeperConfig
from keeper_store.config import config as default_config
from keeper_store.storage.base import StoreAdapter
from keeper_store.storage.media_repository import MediaRepository
from keeper_store.storage.note_repository import NoteRepository
from keeper_store.storage.sqlalchemy_adapter import SQLAlchemyAdapter
from keeper_store.storage.sqlite_adapter import SqliteAdapter
from keeper_store.storage.tag_repository import TagRepository


def open_adapter(config: Optional[KeeperConfig] = None) -> StoreAdapter:
    """Build the adapter named by ``config.backend``.

    sqlalchemy: file-backed SQLAlchemy engine at ``config.database_path``.
    sqlite: stdlib sqlite3 connection on the same file.
    memory: private in-memory database.
    """
    config = config or default_config
    if config.backend == "memory":
        return SQLAlchemyAdapter.in_memory()
    if config.backend == "sqlite":
        return SqliteAdapter(config.get_db_path())
    return SQLAlchemyAdapter.from_url(config.get_db_url())


__all__ = [
    "StoreAdapter",
    "SqliteAdapter",
    "SQLAlchemyAdapter",
    "NoteRepository",
    "TagRepository",
    "MediaRepository",
    "open_adapter",
]
