"""Repository for note storage and retrieval."""

import logging
from typing import Any, Dict, List, Optional

from keeper_store.models.schema import Note, SearchResult
from keeper_store.storage.base import Row, StoreAdapter
from keeper_store.storage.fts_index import FtsIndex, prepare_search_query
from keeper_store.storage.tag_repository import TagRepository

logger = logging.getLogger(__name__)

# Listing order shared by the default view and every smart view.
# rowid breaks ties between notes written with the same timestamp.
_PINNED_FIRST = "ORDER BY n.pinned DESC, n.updated_at DESC, n.rowid DESC"

_FLAGS = ("pinned", "archived")


class NoteRepository:
    """Repository for note rows, the views over them and full-text search.

    Search index consistency is the database's job: the FTS5 triggers run
    inside the same statement as every insert, update and delete here.
    """

    def __init__(self, db: StoreAdapter, tags: Optional[TagRepository] = None):
        """Initialize the repository.

        Args:
            db: Adapter for database operations.
            tags: Tag repository used to attach tags to loaded notes.
                Created on the same adapter if None.
        """
        self.db = db
        self.tags = tags or TagRepository(db)
        self._fts = FtsIndex(db)

    # =========================================================================
    # Rows
    # =========================================================================

    def insert(self, note: Note) -> None:
        """Insert a new note row; tags on the model are not written."""
        self.db.execute(
            """
            INSERT INTO notes
                (id, title, body, has_links, pinned, archived, created_at, updated_at)
            VALUES
                (:id, :title, :body, :has_links, :pinned, :archived,
                 :created_at, :updated_at)
            """,
            {
                "id": note.id,
                "title": note.title,
                "body": note.body,
                "has_links": int(note.has_links),
                "pinned": int(note.pinned),
                "archived": int(note.archived),
                "created_at": note.created_at,
                "updated_at": note.updated_at,
            },
        )

    def get(self, note_id: str) -> Optional[Note]:
        """Get a note with its tags, or None if it does not exist."""
        rows = self.db.query("SELECT * FROM notes WHERE id = :id", {"id": note_id})
        if not rows:
            return None
        return Note.from_row(rows[0], self.tags.get_tags_for_note(note_id))

    def exists(self, note_id: str) -> bool:
        rows = self.db.query(
            "SELECT 1 AS present FROM notes WHERE id = :id", {"id": note_id}
        )
        return bool(rows)

    def update_content(
        self, note_id: str, title: str, body: str, has_links: bool, updated_at: str
    ) -> None:
        self.db.execute(
            """
            UPDATE notes
            SET title = :title, body = :body, has_links = :has_links,
                updated_at = :updated_at
            WHERE id = :id
            """,
            {
                "id": note_id,
                "title": title,
                "body": body,
                "has_links": int(has_links),
                "updated_at": updated_at,
            },
        )

    def set_flag(self, note_id: str, flag: str, value: bool, updated_at: str) -> None:
        """Set ``pinned`` or ``archived`` and bump ``updated_at``."""
        if flag not in _FLAGS:
            raise ValueError(f"Unknown note flag: {flag}")
        self.db.execute(
            f"UPDATE notes SET {flag} = :value, updated_at = :updated_at WHERE id = :id",
            {"id": note_id, "value": int(value), "updated_at": updated_at},
        )

    def delete(self, note_id: str) -> None:
        """Delete a note row; tag associations and media rows cascade."""
        self.db.execute("DELETE FROM notes WHERE id = :id", {"id": note_id})

    # =========================================================================
    # Views
    # =========================================================================

    def list_active(self) -> List[Note]:
        """Non-archived notes, pinned first, then most recently updated."""
        return self._list(f"SELECT n.* FROM notes n WHERE n.archived = 0 {_PINNED_FIRST}")

    def list_untagged(self) -> List[Note]:
        return self._list(
            f"""
            SELECT n.* FROM notes n
            WHERE n.archived = 0
              AND NOT EXISTS (SELECT 1 FROM note_tags nt WHERE nt.note_id = n.id)
            {_PINNED_FIRST}
            """
        )

    def list_linked(self) -> List[Note]:
        return self._list(
            f"SELECT n.* FROM notes n WHERE n.archived = 0 AND n.has_links = 1 "
            f"{_PINNED_FIRST}"
        )

    def list_for_tag(self, tag_id: int) -> List[Note]:
        return self._list(
            f"""
            SELECT n.* FROM notes n
            JOIN note_tags nt ON nt.note_id = n.id
            WHERE n.archived = 0 AND nt.tag_id = :tag_id
            {_PINNED_FIRST}
            """,
            {"tag_id": tag_id},
        )

    def list_archived(self) -> List[Note]:
        """Archived notes only, most recently updated first."""
        return self._list(
            "SELECT n.* FROM notes n WHERE n.archived = 1 "
            "ORDER BY n.updated_at DESC, n.rowid DESC"
        )

    def search(self, query: str) -> List[SearchResult]:
        """Full-text search over title and body.

        Args:
            query: Raw user input; normalized with prepare_search_query().

        Returns:
            Matches with tags and rank, non-archived before archived and
            best match first within each group. Empty for blank input.
        """
        fts_query = prepare_search_query(query)
        if not fts_query:
            return []
        rows = self._fts.search(fts_query)
        tags_by_note = self.tags.get_tags_for_notes(row["id"] for row in rows)
        return [
            SearchResult(
                **Note.from_row(row, tags_by_note.get(row["id"], [])).model_dump(),
                rank=row["rank"],
            )
            for row in rows
        ]

    # =========================================================================
    # Index maintenance
    # =========================================================================

    def rebuild_fts(self) -> int:
        return self._fts.rebuild()

    def check_fts(self) -> bool:
        return self._fts.check()

    def _list(self, sql: str, params: Optional[Dict[str, Any]] = None) -> List[Note]:
        rows: List[Row] = self.db.query(sql, params)
        tags_by_note = self.tags.get_tags_for_notes(row["id"] for row in rows)
        return [Note.from_row(row, tags_by_note.get(row["id"], [])) for row in rows]
