"""Adapter capability the note store engine is written against."""
from typing import (Any, ContextManager, Dict, List, Mapping, Optional, Protocol,
                    runtime_checkable)

# Named parameters, bound as :name in statements
Bindings = Mapping[str, Any]
Row = Dict[str, Any]


@runtime_checkable
class StoreAdapter(Protocol):
    """Narrow relational store interface.

    The engine only ever talks to the database through these methods, so the
    same engine code runs on an embedded sqlite3 connection, a file-backed
    SQLAlchemy engine, or a private in-memory database in tests.

    Implementations raise ``keeper_store.exceptions.StorageError`` (chained
    from the driver exception) when the store itself fails.
    """

    def execute(self, statement: str, bindings: Optional[Bindings] = None) -> None:
        """Run a mutating statement; no rows are returned."""
        ...

    def query(self, statement: str, bindings: Optional[Bindings] = None) -> List[Row]:
        """Run a statement and return every row as a column-name mapping."""
        ...

    def execute_script(self, script: str) -> None:
        """Run a raw multi-statement script such as the schema."""
        ...

    def transaction(self) -> ContextManager[None]:
        """Group statements so they commit or roll back together.

        Nested use joins the outermost transaction.
        """
        ...

    def close(self) -> None:
        """Release the underlying connection."""
        ...
