"""Data models for the Keeper note store."""

import datetime
import threading
import uuid
from datetime import timezone
from typing import Any, List, Mapping, Optional

from pydantic import BaseModel, Field

# Lexical order of these strings matches chronological order
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


def generate_id() -> str:
    """Default id generator for notes and media: a random UUID4 string."""
    return str(uuid.uuid4())


class MonotonicClock:
    """Callable UTC clock whose readings strictly increase.

    Two calls inside the same microsecond (or after the wall clock stepped
    backwards) get the previous reading plus one microsecond, so
    ``updated_at`` ordering never ties for writes made by one engine.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last: Optional[datetime.datetime] = None

    def __call__(self) -> str:
        with self._lock:
            now = datetime.datetime.now(timezone.utc).replace(tzinfo=None)
            if self._last is not None and now <= self._last:
                now = self._last + datetime.timedelta(microseconds=1)
            self._last = now
            return now.strftime(TIMESTAMP_FORMAT)


class Tag(BaseModel):
    """A tag for categorizing notes."""

    id: int = Field(..., description="Store-assigned tag id")
    name: str = Field(..., description="Globally unique tag name")
    icon: Optional[str] = Field(
        default=None, description="Presentation hint carried through renames"
    )

    model_config = {"extra": "forbid"}

    def __str__(self) -> str:
        """Return string representation of tag."""
        return self.name

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Tag":
        return cls(id=row["id"], name=row["name"], icon=row.get("icon"))


class Note(BaseModel):
    """A note together with the tags attached to it."""

    id: str = Field(..., description="Caller-generated opaque id")
    title: str = Field(default="", description="Title of the note, may be empty")
    body: str = Field(..., description="Markdown source of the note")
    has_links: bool = Field(
        default=False, description="Whether body contained a URL when last written"
    )
    pinned: bool = Field(default=False)
    archived: bool = Field(default=False)
    created_at: str = Field(..., description="Creation timestamp")
    updated_at: str = Field(..., description="Timestamp of the last write")
    tags: List[Tag] = Field(default_factory=list)

    model_config = {"extra": "forbid"}

    @property
    def tag_names(self) -> List[str]:
        return [tag.name for tag in self.tags]

    @classmethod
    def from_row(cls, row: Mapping[str, Any], tags: List[Tag]) -> "Note":
        """Build a note from a ``notes`` row; SQLite integers become booleans."""
        return cls(
            id=row["id"],
            title=row["title"],
            body=row["body"],
            has_links=bool(row["has_links"]),
            pinned=bool(row["pinned"]),
            archived=bool(row["archived"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            tags=tags,
        )


class SearchResult(Note):
    """A note matched by full-text search.

    ``rank`` is the FTS5 bm25 score: lower (more negative) is a better match.
    """

    rank: float = Field(..., description="Relevance score, best match lowest")


class Media(BaseModel):
    """Bookkeeping row for a blob attached to a note."""

    id: str = Field(..., description="Opaque media id")
    note_id: str = Field(..., description="Owning note")
    mime_type: str
    filename: str = Field(
        ..., description="Reference the blob store uses to locate the bytes"
    )
    created_at: str

    model_config = {"extra": "forbid", "frozen": True}

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Media":
        return cls(
            id=row["id"],
            note_id=row["note_id"],
            mime_type=row["mime_type"],
            filename=row["filename"],
            created_at=row["created_at"],
        )
