"""Fake collaborators for testing the note store.

FakeClock and CounterIds make timestamps and ids predictable.
InMemoryBlobStore keeps media bytes in a dict so media lifecycle tests can
inspect exactly which blobs exist. FailingAdapter wraps a real adapter and
raises StorageError for statements containing a chosen fragment, the way a
real driver failure surfaces at the adapter boundary.

Design principles:
- Never mock SQLite: the engine always talks to a real in-memory database
- Deterministic: reference names are predictable
- Inspectable: tests can look at stored and deleted blobs directly
"""
import datetime
import itertools
import sqlite3
from typing import Dict, List, Optional

from keeper_store.exceptions import StorageError
from keeper_store.models.schema import TIMESTAMP_FORMAT
from keeper_store.services.blob_store import mime_to_extension
from keeper_store.storage.base import StoreAdapter

_EPOCH = datetime.datetime(2024, 1, 1)


class FakeClock:
    """Clock advancing exactly one second per reading."""

    def __init__(self) -> None:
        self._ticks = itertools.count(1)

    def __call__(self) -> str:
        moment = _EPOCH + datetime.timedelta(seconds=next(self._ticks))
        return moment.strftime(TIMESTAMP_FORMAT)


class CounterIds:
    """Id generator producing note-1, note-2, ..."""

    def __init__(self, prefix: str = "note") -> None:
        self._prefix = prefix
        self._counter = itertools.count(1)

    def __call__(self) -> str:
        return f"{self._prefix}-{next(self._counter)}"


class InMemoryBlobStore:
    """Blob store keeping bytes in memory under ``blob-<n>.<ext>`` names."""

    def __init__(self) -> None:
        self.blobs: Dict[str, bytes] = {}
        self.deleted: List[str] = []
        self._counter = 0

    def put(self, data: bytes, mime_type: str) -> str:
        self._counter += 1
        reference = f"blob-{self._counter}.{mime_to_extension(mime_type)}"
        self.blobs[reference] = bytes(data)
        return reference

    def get(self, reference: str) -> Optional[bytes]:
        return self.blobs.get(reference)

    def delete(self, reference: str) -> None:
        self.deleted.append(reference)
        self.blobs.pop(reference, None)


class FailingAdapter:
    """Adapter wrapper that fails statements containing ``fail_on``.

    Failing is off until ``fail_on`` is set, so the wrapped database can be
    initialized and seeded normally first.
    """

    def __init__(self, inner: StoreAdapter) -> None:
        self.inner = inner
        self.fail_on: Optional[str] = None
        # Matching statements to let through before failing
        self.skip = 0
        self.failures = 0

    def _check(self, statement: str, operation: str) -> None:
        if self.fail_on and self.fail_on in statement:
            if self.skip:
                self.skip -= 1
                return
            self.failures += 1
            cause = sqlite3.OperationalError("disk I/O error")
            raise StorageError(
                "Injected failure", operation=operation, original_error=cause
            ) from cause

    def execute(self, statement, bindings=None):
        self._check(statement, "execute")
        return self.inner.execute(statement, bindings)

    def query(self, statement, bindings=None):
        self._check(statement, "query")
        return self.inner.query(statement, bindings)

    def execute_script(self, script):
        return self.inner.execute_script(script)

    def transaction(self):
        return self.inner.transaction()

    def close(self):
        self.inner.close()
