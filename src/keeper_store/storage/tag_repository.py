"""Repository for tag storage and retrieval."""
import logging
from typing import Dict, Iterable, List, Optional

from keeper_store.models.schema import Tag
from keeper_store.storage.base import StoreAdapter

logger = logging.getLogger(__name__)

# Stay well below SQLite's bound-parameter limit when expanding IN (...)
_IN_CHUNK = 500


class TagRepository:
    """Repository for managing tags and note/tag associations.

    Tag names are unique. A rename onto an existing name merges the two
    tags instead of violating that constraint.
    """

    def __init__(self, db: StoreAdapter):
        """Initialize the tag repository.

        Args:
            db: Adapter for database operations.
        """
        self.db = db

    def get_or_create(self, tag_name: str) -> Tag:
        """Get an existing tag or create a new one.

        Args:
            tag_name: The name of the tag.

        Returns:
            The Tag object.
        """
        # INSERT OR IGNORE keeps this idempotent against the UNIQUE name
        self.db.execute(
            "INSERT OR IGNORE INTO tags (name) VALUES (:name)", {"name": tag_name}
        )
        return self.get_by_name(tag_name)

    def get(self, tag_id: int) -> Optional[Tag]:
        rows = self.db.query(
            "SELECT id, name, icon FROM tags WHERE id = :id", {"id": tag_id}
        )
        return Tag.from_row(rows[0]) if rows else None

    def get_by_name(self, tag_name: str) -> Optional[Tag]:
        """Get a tag by name.

        Args:
            tag_name: The name of the tag.

        Returns:
            The Tag object if found, None otherwise.
        """
        rows = self.db.query(
            "SELECT id, name, icon FROM tags WHERE name = :name", {"name": tag_name}
        )
        return Tag.from_row(rows[0]) if rows else None

    def get_all(self) -> List[Tag]:
        """Get all tags in the system, sorted by name."""
        rows = self.db.query("SELECT id, name, icon FROM tags ORDER BY name")
        return [Tag.from_row(row) for row in rows]

    def get_tags_for_note(self, note_id: str) -> List[Tag]:
        """Get the tags of one note in the order they were attached."""
        return self.get_tags_for_notes([note_id]).get(note_id, [])

    def get_tags_for_notes(self, note_ids: Iterable[str]) -> Dict[str, List[Tag]]:
        """Get tags for many notes with one query per chunk of ids.

        Returns:
            Mapping of note id to its tags; notes without tags are absent.
        """
        ids = list(dict.fromkeys(note_ids))
        tags_by_note: Dict[str, List[Tag]] = {}
        for start in range(0, len(ids), _IN_CHUNK):
            chunk = ids[start:start + _IN_CHUNK]
            params = {f"id{i}": note_id for i, note_id in enumerate(chunk)}
            placeholders = ", ".join(f":{name}" for name in params)
            rows = self.db.query(
                f"""
                SELECT nt.note_id, t.id, t.name, t.icon
                FROM note_tags nt
                JOIN tags t ON t.id = nt.tag_id
                WHERE nt.note_id IN ({placeholders})
                ORDER BY nt.rowid
                """,
                params,
            )
            for row in rows:
                tags_by_note.setdefault(row["note_id"], []).append(Tag.from_row(row))
        return tags_by_note

    def add_tag_to_note(self, note_id: str, tag_name: str) -> Tag:
        """Attach a tag to a note, creating the tag if needed.

        Both steps run in one transaction, so a failure never leaves a new
        tag behind without its association. Attaching a tag the note already
        has changes nothing.
        """
        with self.db.transaction():
            tag = self.get_or_create(tag_name)
            self.db.execute(
                "INSERT OR IGNORE INTO note_tags (note_id, tag_id) "
                "VALUES (:note_id, :tag_id)",
                {"note_id": note_id, "tag_id": tag.id},
            )
        return tag

    def remove_tag_from_note(self, note_id: str, tag_name: str) -> bool:
        """Detach a tag from a note. The tag row itself is kept.

        Returns:
            True if the tag was removed, False if it wasn't present.
        """
        with self.db.transaction():
            tag = self.get_by_name(tag_name)
            if not tag:
                return False
            present = self.db.query(
                "SELECT 1 AS present FROM note_tags "
                "WHERE note_id = :note_id AND tag_id = :tag_id",
                {"note_id": note_id, "tag_id": tag.id},
            )
            if not present:
                return False
            self.db.execute(
                "DELETE FROM note_tags WHERE note_id = :note_id AND tag_id = :tag_id",
                {"note_id": note_id, "tag_id": tag.id},
            )
        return True

    def rename(self, old_name: str, new_name: str) -> Optional[Tag]:
        """Rename a tag, merging into an existing tag of the new name.

        Without a clash the row is renamed in place and keeps its id, icon
        and associations. On a clash every note tagged ``old_name`` is
        attached to the surviving tag (no duplicates for notes that had
        both) and the old row is deleted, cascading its associations.
        The surviving tag adopts the old icon only if it has none.

        Returns:
            The tag now carrying ``new_name``, or None when nothing changed
            (``old_name`` unknown or equal to ``new_name``).
        """
        if old_name == new_name:
            return None

        with self.db.transaction():
            old = self.get_by_name(old_name)
            if old is None:
                return None

            target = self.get_by_name(new_name)
            if target is None:
                self.db.execute(
                    "UPDATE tags SET name = :new_name WHERE id = :id",
                    {"new_name": new_name, "id": old.id},
                )
                logger.info(f"Renamed tag '{old_name}' to '{new_name}'")
                return old.model_copy(update={"name": new_name})

            self.db.execute(
                """
                INSERT OR IGNORE INTO note_tags (note_id, tag_id)
                SELECT note_id, :target_id FROM note_tags WHERE tag_id = :old_id
                """,
                {"target_id": target.id, "old_id": old.id},
            )
            if target.icon is None and old.icon is not None:
                self.db.execute(
                    "UPDATE tags SET icon = :icon WHERE id = :id",
                    {"icon": old.icon, "id": target.id},
                )
            self.db.execute("DELETE FROM tags WHERE id = :id", {"id": old.id})
            logger.info(f"Merged tag '{old_name}' into existing tag '{new_name}'")
            return self.get(target.id)

    def delete(self, tag_id: int) -> bool:
        """Delete a tag; its associations go with it via ON DELETE CASCADE.

        Returns:
            True if a tag was deleted, False if the id was unknown.
        """
        with self.db.transaction():
            if self.get(tag_id) is None:
                return False
            self.db.execute("DELETE FROM tags WHERE id = :id", {"id": tag_id})
        return True

    def update_icon(self, tag_id: int, icon: Optional[str]) -> bool:
        """Set or clear a tag's icon.

        Returns:
            True if the tag exists, False otherwise (nothing is written).
        """
        with self.db.transaction():
            if self.get(tag_id) is None:
                return False
            self.db.execute(
                "UPDATE tags SET icon = :icon WHERE id = :id",
                {"icon": icon, "id": tag_id},
            )
        return True
