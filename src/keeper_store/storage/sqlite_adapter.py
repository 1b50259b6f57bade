"""Embedded adapter over a bare stdlib sqlite3 connection."""
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Union

from keeper_store.exceptions import ErrorCode, StorageError
from keeper_store.storage.base import Bindings, Row

logger = logging.getLogger(__name__)

MEMORY = ":memory:"


class SqliteAdapter:
    """StoreAdapter for hosts that embed SQLite in-process without an engine.

    The connection runs in autocommit mode; each statement is its own unit
    of work unless issued inside ``transaction()``.

    Args:
        database: Path to the database file, or ":memory:".
    """

    def __init__(self, database: Union[str, Path] = MEMORY):
        self.database = str(database)
        self._depth = 0
        try:
            self._conn = sqlite3.connect(
                self.database, isolation_level=None, check_same_thread=False
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            if self.database != MEMORY:
                self._conn.execute("PRAGMA journal_mode = WAL")
        except sqlite3.Error as e:
            raise StorageError(
                f"Failed to open database {self.database}",
                operation="connect",
                code=ErrorCode.STORAGE_READ_FAILED,
                original_error=e,
            ) from e
        logger.debug(f"SqliteAdapter opened {self.database}")

    def execute(self, statement: str, bindings: Optional[Bindings] = None) -> None:
        try:
            self._conn.execute(statement, bindings or {})
        except sqlite3.Error as e:
            raise StorageError(
                "Statement failed", operation="execute", original_error=e
            ) from e

    def query(self, statement: str, bindings: Optional[Bindings] = None) -> List[Row]:
        try:
            cursor = self._conn.execute(statement, bindings or {})
            return [dict(row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise StorageError(
                "Query failed",
                operation="query",
                code=ErrorCode.STORAGE_READ_FAILED,
                original_error=e,
            ) from e

    def execute_script(self, script: str) -> None:
        # executescript() commits any open transaction before it runs
        if self._depth:
            raise StorageError(
                "Scripts cannot run inside a transaction",
                operation="execute_script",
                code=ErrorCode.STORAGE_SCHEMA_FAILED,
            )
        try:
            self._conn.executescript(script)
        except sqlite3.Error as e:
            raise StorageError(
                "Script failed",
                operation="execute_script",
                code=ErrorCode.STORAGE_SCHEMA_FAILED,
                original_error=e,
            ) from e

    @contextmanager
    def transaction(self) -> Iterator[None]:
        self._depth += 1
        outermost = self._depth == 1
        try:
            if outermost:
                self.execute("BEGIN IMMEDIATE")
            yield
        except BaseException:
            if outermost and self._conn.in_transaction:
                self._conn.execute("ROLLBACK")
            raise
        else:
            if outermost:
                try:
                    self.execute("COMMIT")
                except StorageError:
                    if self._conn.in_transaction:
                        self._conn.execute("ROLLBACK")
                    raise
        finally:
            self._depth -= 1

    def close(self) -> None:
        self._conn.close()
