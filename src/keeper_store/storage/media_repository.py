"""Repository for media bookkeeping rows."""
import logging
from typing import List, Optional

from keeper_store.models.schema import Media
from keeper_store.storage.base import StoreAdapter

logger = logging.getLogger(__name__)


class MediaRepository:
    """Rows describing blobs attached to notes.

    Only bookkeeping lives here; the bytes are kept by a blob store and
    located through ``Media.filename``. Rows are removed with their note by
    ON DELETE CASCADE.
    """

    def __init__(self, db: StoreAdapter):
        self.db = db

    def insert(self, media: Media) -> Media:
        self.db.execute(
            """
            INSERT INTO media (id, note_id, mime_type, filename, created_at)
            VALUES (:id, :note_id, :mime_type, :filename, :created_at)
            """,
            media.model_dump(),
        )
        return media

    def get(self, media_id: str) -> Optional[Media]:
        rows = self.db.query("SELECT * FROM media WHERE id = :id", {"id": media_id})
        return Media.from_row(rows[0]) if rows else None

    def list_for_note(self, note_id: str) -> List[Media]:
        """Media of a note, oldest first."""
        rows = self.db.query(
            "SELECT * FROM media WHERE note_id = :note_id ORDER BY created_at, rowid",
            {"note_id": note_id},
        )
        return [Media.from_row(row) for row in rows]

    def delete(self, media_id: str) -> None:
        self.db.execute("DELETE FROM media WHERE id = :id", {"id": media_id})
