"""Adapter over a SQLAlchemy engine, file-backed or in-memory."""
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Union

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from keeper_store.exceptions import ErrorCode, StorageError
from keeper_store.models.db_models import create_sqlite_engine
from keeper_store.storage.base import Bindings, Row

logger = logging.getLogger(__name__)


class SQLAlchemyAdapter:
    """StoreAdapter holding one connection checked out from a SQLAlchemy engine.

    Outside ``transaction()`` every statement runs in its own
    begin/commit block. The engine is created with
    ``create_sqlite_engine`` so foreign keys are enforced.

    Args:
        engine: Pre-configured SQLAlchemy engine.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self._depth = 0
        try:
            self._conn = engine.connect()
        except SQLAlchemyError as e:
            raise StorageError(
                f"Failed to connect to {engine.url}",
                operation="connect",
                code=ErrorCode.STORAGE_READ_FAILED,
                original_error=e,
            ) from e
        logger.debug(f"SQLAlchemyAdapter connected to {engine.url}")

    @classmethod
    def from_url(cls, url: str) -> "SQLAlchemyAdapter":
        """Database at a ``sqlite:///`` URL, such as ``KeeperConfig.get_db_url()``."""
        return cls(create_sqlite_engine(url))

    @classmethod
    def from_path(cls, database_path: Union[str, Path]) -> "SQLAlchemyAdapter":
        """File-backed database at ``database_path``."""
        return cls.from_url(f"sqlite:///{database_path}")

    @classmethod
    def in_memory(cls) -> "SQLAlchemyAdapter":
        """Private in-memory database, discarded on close."""
        return cls(create_sqlite_engine(in_memory=True))

    @contextmanager
    def _unit(self) -> Iterator[None]:
        if self._depth:
            yield
        else:
            with self._conn.begin():
                yield

    def execute(self, statement: str, bindings: Optional[Bindings] = None) -> None:
        try:
            with self._unit():
                self._conn.execute(text(statement), dict(bindings or {}))
        except SQLAlchemyError as e:
            raise StorageError(
                "Statement failed", operation="execute", original_error=e
            ) from e

    def query(self, statement: str, bindings: Optional[Bindings] = None) -> List[Row]:
        try:
            with self._unit():
                result = self._conn.execute(text(statement), dict(bindings or {}))
                return [dict(row) for row in result.mappings()]
        except SQLAlchemyError as e:
            raise StorageError(
                "Query failed",
                operation="query",
                code=ErrorCode.STORAGE_READ_FAILED,
                original_error=e,
            ) from e

    def execute_script(self, script: str) -> None:
        # text() cannot carry several statements; go through the DBAPI connection
        if self._depth:
            raise StorageError(
                "Scripts cannot run inside a transaction",
                operation="execute_script",
                code=ErrorCode.STORAGE_SCHEMA_FAILED,
            )
        try:
            if self._conn.in_transaction():
                self._conn.commit()
            self._conn.connection.dbapi_connection.executescript(script)
        except (sqlite3.Error, SQLAlchemyError) as e:
            # sqlite3 errors surface raw here, SQLAlchemy ones from commit()
            raise StorageError(
                "Script failed",
                operation="execute_script",
                code=ErrorCode.STORAGE_SCHEMA_FAILED,
                original_error=e,
            ) from e

    @contextmanager
    def transaction(self) -> Iterator[None]:
        if self._depth:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            return

        self._depth = 1
        try:
            with self._conn.begin():
                yield
        except SQLAlchemyError as e:
            raise StorageError(
                "Transaction failed", operation="commit", original_error=e
            ) from e
        finally:
            self._depth = 0

    def close(self) -> None:
        self._conn.close()
        self.engine.dispose()
