"""Service layer for Keeper note store operations."""

import logging
from typing import Callable, List, Optional, Sequence

from keeper_store.config import config
from keeper_store.exceptions import (
    ErrorCode,
    NoteNotFoundError,
    UnsupportedOperationError,
    ValidationError,
)
from keeper_store.models.db_models import init_schema
from keeper_store.models.schema import (
    Media,
    MonotonicClock,
    Note,
    SearchResult,
    Tag,
)
from keeper_store.models.schema import generate_id as default_generate_id
from keeper_store.observability import timed_operation
from keeper_store.services.blob_store import BlobStore
from keeper_store.storage import open_adapter
from keeper_store.storage.base import StoreAdapter
from keeper_store.storage.media_repository import MediaRepository
from keeper_store.storage.note_repository import NoteRepository
from keeper_store.storage.tag_repository import TagRepository
from keeper_store.utils import contains_url

logger = logging.getLogger(__name__)


def _clean_tag_name(name: str, field: str = "name") -> str:
    """Strip a tag name, rejecting names that are empty afterwards."""
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError(
            "Tag name cannot be empty",
            field=field,
            value=name,
            code=ErrorCode.TAG_INVALID,
        )
    return cleaned


class KeeperService:
    """Note store engine: notes, tags, smart views, search and media.

    Every operation is written against the ``StoreAdapter`` capability, so
    the same engine runs on any of the adapters in ``keeper_store.storage``.
    Ids and timestamps come from injectable callables; the defaults are
    random UUIDs and a monotonic UTC clock.
    """

    def __init__(
        self,
        db: Optional[StoreAdapter] = None,
        *,
        generate_id: Optional[Callable[[], str]] = None,
        now: Optional[Callable[[], str]] = None,
        blob_store: Optional[BlobStore] = None,
    ):
        """Initialize the service and make sure the schema exists.

        Args:
            db: Adapter to run against. Built from the global config if None.
            generate_id: Id generator for notes and media.
            now: Clock returning timestamp strings that sort chronologically.
            blob_store: Collaborator persisting media bytes. Without one the
                media mutations raise UnsupportedOperationError.
        """
        self.db = db if db is not None else open_adapter(config)
        init_schema(self.db)
        self.tag_repository = TagRepository(self.db)
        self.note_repository = NoteRepository(self.db, self.tag_repository)
        self.media_repository = MediaRepository(self.db)
        self.blob_store = blob_store
        self._generate_id = generate_id or default_generate_id
        self._now = now or MonotonicClock()

    # =========================================================================
    # Notes
    # =========================================================================

    def create_note(self, body: str, title: Optional[str] = None) -> Note:
        """Create a new note.

        Args:
            body: Markdown body of the note.
            title: Optional title; stored as "" when omitted.

        Returns:
            The stored note, unpinned, unarchived and without tags.
        """
        with timed_operation("create_note") as op:
            timestamp = self._now()
            note = Note(
                id=self._generate_id(),
                title=title or "",
                body=body,
                has_links=contains_url(body),
                created_at=timestamp,
                updated_at=timestamp,
            )
            self.note_repository.insert(note)
            op["note_id"] = note.id
            logger.info(f"Created note {note.id}")
            return note

    def get_note(self, note_id: str) -> Optional[Note]:
        """Retrieve a note with its tags, or None if it does not exist."""
        with timed_operation("get_note", note_id=note_id) as op:
            note = self.note_repository.get(note_id)
            op["found"] = note is not None
            return note

    def get_all_notes(self) -> List[Note]:
        """Non-archived notes, pinned first, then most recently updated."""
        with timed_operation("get_all_notes") as op:
            notes = self.note_repository.list_active()
            op["result_count"] = len(notes)
            return notes

    def update_note(
        self,
        note_id: str,
        title: Optional[str] = None,
        body: Optional[str] = None,
    ) -> Note:
        """Update a note's title and/or body.

        Omitted fields keep their stored value. ``has_links`` is recomputed
        from the resulting body and ``updated_at`` is refreshed on every
        call, even when nothing else changed.

        Raises:
            NoteNotFoundError: If the note does not exist.
        """
        with timed_operation("update_note", note_id=note_id):
            existing = self.note_repository.get(note_id)
            if existing is None:
                raise NoteNotFoundError(note_id)

            new_title = existing.title if title is None else title
            new_body = existing.body if body is None else body
            self.note_repository.update_content(
                note_id,
                title=new_title,
                body=new_body,
                has_links=contains_url(new_body),
                updated_at=self._now(),
            )
            logger.debug(f"Updated note {note_id}")
            return self._require_note(note_id)

    def delete_note(self, note_id: str) -> None:
        """Delete a note, its tag associations and its media.

        Deleting an unknown id does nothing.
        """
        with timed_operation("delete_note", note_id=note_id):
            references = self._blob_references([note_id])
            self.note_repository.delete(note_id)
            self._delete_blobs(references)
            logger.info(f"Deleted note {note_id}")

    def delete_notes(self, note_ids: Sequence[str]) -> None:
        """Delete several notes in one transaction; unknown ids are skipped."""
        with timed_operation("delete_notes", count=len(note_ids)):
            if not note_ids:
                return
            references = self._blob_references(note_ids)
            with self.db.transaction():
                for note_id in note_ids:
                    self.note_repository.delete(note_id)
            self._delete_blobs(references)
            logger.info(f"Deleted {len(note_ids)} notes")

    def archive_notes(self, note_ids: Sequence[str]) -> int:
        """Archive several notes in one transaction.

        Returns:
            Number of notes that existed and were archived.
        """
        with timed_operation("archive_notes", count=len(note_ids)) as op:
            archived = 0
            if note_ids:
                with self.db.transaction():
                    timestamp = self._now()
                    for note_id in dict.fromkeys(note_ids):
                        if not self.note_repository.exists(note_id):
                            continue
                        self.note_repository.set_flag(
                            note_id, "archived", True, timestamp
                        )
                        archived += 1
            op["archived"] = archived
            if archived:
                logger.info(f"Archived {archived} notes")
            return archived

    def toggle_pin_note(self, note_id: str) -> Note:
        """Flip ``pinned`` and refresh ``updated_at``.

        Raises:
            NoteNotFoundError: If the note does not exist.
        """
        with timed_operation("toggle_pin_note", note_id=note_id):
            return self._toggle(note_id, "pinned")

    def toggle_archive_note(self, note_id: str) -> Note:
        """Flip ``archived`` and refresh ``updated_at``.

        Raises:
            NoteNotFoundError: If the note does not exist.
        """
        with timed_operation("toggle_archive_note", note_id=note_id):
            return self._toggle(note_id, "archived")

    def _toggle(self, note_id: str, flag: str) -> Note:
        note = self._require_note(note_id)
        value = not getattr(note, flag)
        self.note_repository.set_flag(note_id, flag, value, self._now())
        logger.debug(f"Set {flag}={value} on note {note_id}")
        return self._require_note(note_id)

    def _require_note(self, note_id: str) -> Note:
        note = self.note_repository.get(note_id)
        if note is None:
            raise NoteNotFoundError(note_id)
        return note

    # =========================================================================
    # Tags
    # =========================================================================

    def add_tag(self, note_id: str, name: str) -> Note:
        """Attach a tag to a note, creating the tag on first use.

        Attaching a tag the note already has is a no-op.

        Raises:
            NoteNotFoundError: If the note does not exist.
            ValidationError: If the name is empty after stripping.
        """
        with timed_operation("add_tag", note_id=note_id, tag=name):
            tag_name = _clean_tag_name(name)
            with self.db.transaction():
                if not self.note_repository.exists(note_id):
                    raise NoteNotFoundError(note_id)
                self.tag_repository.add_tag_to_note(note_id, tag_name)
            return self._require_note(note_id)

    def remove_tag(self, note_id: str, name: str) -> Note:
        """Detach a tag from a note; the tag itself survives.

        Removing a tag the note does not have is a no-op.

        Raises:
            NoteNotFoundError: If the note does not exist.
        """
        with timed_operation("remove_tag", note_id=note_id, tag=name):
            if not self.note_repository.exists(note_id):
                raise NoteNotFoundError(note_id)
            self.tag_repository.remove_tag_from_note(note_id, (name or "").strip())
            return self._require_note(note_id)

    def rename_tag(self, old_name: str, new_name: str) -> Optional[Tag]:
        """Rename a tag, merging into an existing tag of the new name.

        Returns:
            The tag now carrying ``new_name``, or None when ``old_name`` is
            unknown or equal to ``new_name``.

        Raises:
            ValidationError: If ``new_name`` is empty after stripping.
        """
        with timed_operation("rename_tag", old=old_name, new=new_name):
            target = _clean_tag_name(new_name, field="new_name")
            return self.tag_repository.rename((old_name or "").strip(), target)

    def delete_tag(self, tag_id: int) -> None:
        """Delete a tag and remove it from every note; unknown ids are ignored."""
        with timed_operation("delete_tag", tag_id=tag_id):
            if self.tag_repository.delete(tag_id):
                logger.info(f"Deleted tag {tag_id}")

    def get_all_tags(self) -> List[Tag]:
        with timed_operation("get_all_tags") as op:
            tags = self.tag_repository.get_all()
            op["result_count"] = len(tags)
            return tags

    def get_tag(self, tag_id: int) -> Optional[Tag]:
        with timed_operation("get_tag", tag_id=tag_id):
            return self.tag_repository.get(tag_id)

    def update_tag_icon(self, tag_id: int, icon: Optional[str]) -> None:
        """Set or clear a tag's icon; unknown ids are ignored."""
        with timed_operation("update_tag_icon", tag_id=tag_id):
            self.tag_repository.update_icon(tag_id, icon)

    # =========================================================================
    # Search and smart views
    # =========================================================================

    def search(self, query: str) -> List[SearchResult]:
        """Full-text search over titles and bodies.

        The last word matches as a prefix. Non-archived matches come before
        archived ones, best match first within each group. Blank queries
        return nothing.
        """
        with timed_operation("search", query=(query or "")[:30]) as op:
            results = self.note_repository.search(query)
            op["result_count"] = len(results)
            return results

    def get_untagged_notes(self) -> List[Note]:
        with timed_operation("get_untagged_notes") as op:
            notes = self.note_repository.list_untagged()
            op["result_count"] = len(notes)
            return notes

    def get_linked_notes(self) -> List[Note]:
        with timed_operation("get_linked_notes") as op:
            notes = self.note_repository.list_linked()
            op["result_count"] = len(notes)
            return notes

    def get_notes_for_tag(self, tag_id: int) -> List[Note]:
        with timed_operation("get_notes_for_tag", tag_id=tag_id) as op:
            notes = self.note_repository.list_for_tag(tag_id)
            op["result_count"] = len(notes)
            return notes

    def get_archived_notes(self) -> List[Note]:
        """Archived notes only, most recently updated first."""
        with timed_operation("get_archived_notes") as op:
            notes = self.note_repository.list_archived()
            op["result_count"] = len(notes)
            return notes

    # =========================================================================
    # Media
    # =========================================================================

    def get_media_for_note(self, note_id: str) -> List[Media]:
        """Media rows of a note, oldest first. Needs no blob store."""
        with timed_operation("get_media_for_note", note_id=note_id) as op:
            media = self.media_repository.list_for_note(note_id)
            op["result_count"] = len(media)
            return media

    def store_media(self, note_id: str, mime_type: str, data: bytes) -> Media:
        """Persist bytes through the blob store and record them on a note.

        Raises:
            UnsupportedOperationError: If no blob store is wired up.
            NoteNotFoundError: If the note does not exist.
        """
        with timed_operation("store_media", note_id=note_id, mime_type=mime_type):
            blob_store = self._require_blob_store("store_media")
            if not self.note_repository.exists(note_id):
                raise NoteNotFoundError(note_id)

            reference = blob_store.put(data, mime_type)
            media = Media(
                id=self._generate_id(),
                note_id=note_id,
                mime_type=mime_type,
                filename=reference,
                created_at=self._now(),
            )
            try:
                with self.db.transaction():
                    self.media_repository.insert(media)
            except Exception:
                # No row references the blob
                blob_store.delete(reference)
                raise
            logger.info(f"Stored media {media.id} ({len(data)} bytes) on note {note_id}")
            return media

    def get_media(self, media_id: str) -> Optional[bytes]:
        """Bytes of a media item, or None if the row or the blob is gone.

        Raises:
            UnsupportedOperationError: If no blob store is wired up.
        """
        with timed_operation("get_media", media_id=media_id) as op:
            blob_store = self._require_blob_store("get_media")
            media = self.media_repository.get(media_id)
            data = blob_store.get(media.filename) if media else None
            op["found"] = data is not None
            return data

    def delete_media(self, media_id: str) -> None:
        """Delete a media item's bytes and then its row; unknown ids are ignored.

        Raises:
            UnsupportedOperationError: If no blob store is wired up.
        """
        with timed_operation("delete_media", media_id=media_id):
            blob_store = self._require_blob_store("delete_media")
            media = self.media_repository.get(media_id)
            if media is None:
                return
            blob_store.delete(media.filename)
            self.media_repository.delete(media_id)
            logger.info(f"Deleted media {media_id}")

    def _require_blob_store(self, operation: str) -> BlobStore:
        if self.blob_store is None:
            raise UnsupportedOperationError(operation)
        return self.blob_store

    def _blob_references(self, note_ids: Sequence[str]) -> List[str]:
        if self.blob_store is None:
            return []
        return [
            media.filename
            for note_id in note_ids
            for media in self.media_repository.list_for_note(note_id)
        ]

    def _delete_blobs(self, references: List[str]) -> None:
        # Runs after the owning rows are deleted
        for reference in references:
            self.blob_store.delete(reference)

    # =========================================================================
    # Index maintenance
    # =========================================================================

    def rebuild_search_index(self) -> int:
        """Repopulate the full-text index from the notes table.

        Returns:
            Number of notes indexed.
        """
        with timed_operation("rebuild_search_index") as op:
            count = self.note_repository.rebuild_fts()
            op["indexed"] = count
            return count

    def check_search_index(self) -> bool:
        """Run the full-text index integrity check."""
        with timed_operation("check_search_index") as op:
            ok = self.note_repository.check_fts()
            op["ok"] = ok
            return ok

    def close(self) -> None:
        """Close the underlying adapter."""
        self.db.close()
