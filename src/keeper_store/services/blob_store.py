"""Blob stores that keep media bytes outside the database."""
import logging
import re
import uuid
from pathlib import Path
from typing import Optional, Protocol, Union, runtime_checkable

from keeper_store.exceptions import ErrorCode, StorageError, ValidationError

logger = logging.getLogger(__name__)

MIME_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/gif": "gif",
    "image/webp": "webp",
    "audio/mpeg": "mp3",
    "audio/ogg": "ogg",
    "video/mp4": "mp4",
    "application/pdf": "pdf",
}

# References are bare file names: no separators, no "..", one extension
SAFE_REFERENCE_PATTERN = re.compile(r"^[A-Za-z0-9_\-]+\.[a-z0-9]+$")


def mime_to_extension(mime_type: str) -> str:
    """File extension for a MIME type, ``bin`` when unknown."""
    return MIME_EXTENSIONS.get(mime_type.lower(), "bin")


@runtime_checkable
class BlobStore(Protocol):
    """Collaborator that persists media bytes for the note store."""

    def put(self, data: bytes, mime_type: str) -> str:
        """Store bytes and return an opaque reference for them."""
        ...

    def get(self, reference: str) -> Optional[bytes]:
        """Return the bytes for a reference, or None if they are gone."""
        ...

    def delete(self, reference: str) -> None:
        """Remove the bytes for a reference; a missing blob is not an error."""
        ...


class FilesystemBlobStore:
    """Blob store writing one file per blob into a media directory.

    Files are named ``<uuid>.<ext>`` with the extension taken from the
    MIME type, and written through a temp file so readers never see a
    partial blob.

    Args:
        media_dir: Directory holding the blobs; created if missing.
    """

    def __init__(self, media_dir: Union[str, Path]):
        self.media_dir = Path(media_dir)
        self.media_dir.mkdir(parents=True, exist_ok=True)

    def put(self, data: bytes, mime_type: str) -> str:
        reference = f"{uuid.uuid4()}.{mime_to_extension(mime_type)}"
        path = self.media_dir / reference
        temp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            temp_path.write_bytes(data)
            temp_path.rename(path)
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            raise StorageError(
                f"Failed to write blob {reference}",
                operation="blob_put",
                original_error=e,
            ) from e
        logger.debug(f"Stored {len(data)} bytes as {reference}")
        return reference

    def get(self, reference: str) -> Optional[bytes]:
        path = self._path_for(reference)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(
                f"Failed to read blob {reference}",
                operation="blob_get",
                code=ErrorCode.STORAGE_READ_FAILED,
                original_error=e,
            ) from e

    def delete(self, reference: str) -> None:
        path = self._path_for(reference)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(
                f"Failed to delete blob {reference}",
                operation="blob_delete",
                original_error=e,
            ) from e

    def _path_for(self, reference: str) -> Path:
        if not SAFE_REFERENCE_PATTERN.match(reference):
            raise ValidationError(
                "Invalid blob reference", field="reference", value=reference
            )
        return self.media_dir / reference
