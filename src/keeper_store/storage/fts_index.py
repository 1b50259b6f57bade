"""FTS5 full-text search index for Keeper notes.

Encapsulates user query normalization, ranked MATCH queries and
index maintenance. The index itself is kept in step with ``notes`` by
the triggers declared in ``keeper_store.models.db_models``.
"""
import logging
from typing import List

from keeper_store.exceptions import StorageError
from keeper_store.models.db_models import rebuild_fts_index
from keeper_store.storage.base import Row, StoreAdapter

logger = logging.getLogger(__name__)


def prepare_search_query(raw: str) -> str:
    """Turn loose user input into a literal, type-ahead FTS5 expression.

    Every word is quoted (embedded quotes doubled) so punctuation such as
    ``C++`` or ``AND`` is matched literally instead of parsed as FTS5
    syntax. Only the last word gets a ``*`` so it matches as a prefix while
    the user is still typing it.

    Returns:
        The normalized query, or "" when the input has no words. An empty
        result means "no results", never "match everything".

    Examples:
        >>> prepare_search_query("hello")
        '"hello"*'
        >>> prepare_search_query("  quick   note ")
        '"quick" "note"*'
        >>> prepare_search_query("C++ AND")
        '"C++" "AND"*'
    """
    words = raw.split() if raw else []
    if not words:
        return ""

    quoted = ['"{}"'.format(word.replace('"', '""')) for word in words]
    quoted[-1] += "*"
    return " ".join(quoted)


class FtsIndex:
    """FTS5 full-text search index over note titles and bodies.

    Args:
        db: Adapter the index lives in.
    """

    def __init__(self, db: StoreAdapter) -> None:
        self.db = db

    def search(self, fts_query: str) -> List[Row]:
        """Run an already normalized MATCH expression.

        Rows are full ``notes`` rows plus ``rank`` (bm25, lower is better),
        non-archived matches first, each group best match first.
        """
        if not fts_query:
            return []
        return self.db.query(
            """
            SELECT n.*, bm25(notes_fts) AS rank
            FROM notes_fts
            JOIN notes n ON n.rowid = notes_fts.rowid
            WHERE notes_fts MATCH :query
            ORDER BY n.archived ASC, rank ASC, n.updated_at DESC
            """,
            {"query": fts_query},
        )

    def rebuild(self) -> int:
        """Rebuild the FTS5 index from the notes table."""
        count = rebuild_fts_index(self.db)
        logger.info(f"FTS5 index rebuilt with {count} notes")
        return count

    def check(self) -> bool:
        """Run the FTS5 integrity check against the content table."""
        try:
            self.db.execute(
                "INSERT INTO notes_fts(notes_fts) VALUES('integrity-check')"
            )
        except StorageError as e:
            logger.error(f"FTS5 integrity check failed: {e}")
            return False
        return True
