"""
Storage backends for the download repository.

One backend is active per deployment (STORAGE_BACKEND); store, open and delete
always go through that backend so the rest of the code never looks at the medium.
"""

import logging
import os
import re
import secrets
import tempfile
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from resonansi.core.errors import NotFoundError, ValidationError
from resonansi.models import UploadedFile

if TYPE_CHECKING:
    from resonansi.core.config import Settings

logger = logging.getLogger(__name__)

ATTACHMENT = "file"
THUMBNAIL = "image"

DOCUMENT_MIME_TYPES = frozenset(
    {
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/octet-stream",
    }
)
IMAGE_MIME_TYPES = frozenset({"image/jpeg", "image/png", "image/jpg"})
ALLOWED_MIME_TYPES = {ATTACHMENT: DOCUMENT_MIME_TYPES, THUMBNAIL: IMAGE_MIME_TYPES}

MAX_ORIGINAL_NAME_LEN = 100
_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass
class IncomingFile:
    """A decoded upload part (or a caller-supplied URL) with its declared metadata."""

    field: str
    original_name: str
    content_type: str
    size: int
    data: bytes | None = None
    url: str | None = None


@dataclass
class StoredContent:
    """What a backend persisted for one IncomingFile."""

    stored_name: str
    ref: str | None = None
    blob: bytes | None = None


@dataclass
class FileContent:
    """Downloadable content: exactly one of path, data or url is set."""

    path: Path | None = None
    data: bytes | None = None
    url: str | None = None


def sanitize_filename(name: str) -> str:
    """Basename with unsafe characters replaced; never empty."""
    base = Path(name.replace("\\", "/")).name
    base = _UNSAFE_NAME_CHARS.sub("_", base).strip("._")
    return base[-MAX_ORIGINAL_NAME_LEN:] or "file"


def make_stored_name(original_name: str) -> str:
    """Collision-resistant name: <epoch ms>-<16 hex chars>-<sanitized original>."""
    return f"{int(time.time() * 1000)}-{secrets.token_hex(8)}-{sanitize_filename(original_name)}"


class StorageBackend(ABC):
    """Interface implemented by every storage medium."""

    name: str = ""
    # True when uploads arrive as already-hosted URLs instead of bytes.
    accepts_urls: bool = False

    @abstractmethod
    def store(self, incoming: IncomingFile) -> StoredContent:
        """Persist content; must not leave partial content behind on failure."""

    @abstractmethod
    def open(self, record: UploadedFile, field: str = ATTACHMENT) -> FileContent:
        """Return downloadable content for the attachment or thumbnail of a record."""

    @abstractmethod
    def delete(self, record: UploadedFile) -> None:
        """Remove content belonging to a record (record itself is deleted by the caller)."""

    def discard(self, stored: StoredContent) -> None:
        """Undo store() when the record could not be persisted."""
        return None


class FilesystemStorage(StorageBackend):
    """Files on disk under root; thumbnails under root/images. The record keeps the relative path."""

    name = "filesystem"
    subdirs = {ATTACHMENT: "", THUMBNAIL: "images"}

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def _dir_for(self, field: str) -> Path:
        directory = self.root / self.subdirs[field]
        directory.mkdir(parents=True, exist_ok=True)
        return directory

    def _resolve(self, ref: str) -> Path:
        root = self.root.resolve()
        path = (root / ref).resolve()
        if not path.is_relative_to(root):
            logger.warning("Stored path escapes upload root", extra={"ref": ref[:200]})
            raise NotFoundError("File not found on server")
        return path

    def store(self, incoming: IncomingFile) -> StoredContent:
        if incoming.data is None:
            raise ValidationError("File content is required")
        directory = self._dir_for(incoming.field)
        stored_name = make_stored_name(incoming.original_name)
        fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=".partial-")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(incoming.data)
            os.replace(tmp_name, directory / stored_name)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        ref = (Path(self.subdirs[incoming.field]) / stored_name).as_posix()
        return StoredContent(stored_name=stored_name, ref=ref)

    def open(self, record: UploadedFile, field: str = ATTACHMENT) -> FileContent:
        ref = record.content_ref if field == ATTACHMENT else record.image_ref
        if not ref:
            raise NotFoundError("File not found")
        path = self._resolve(ref)
        if not path.is_file():
            raise NotFoundError("File not found on server")
        return FileContent(path=path)

    def _unlink(self, ref: str | None) -> None:
        if not ref:
            return
        try:
            self._resolve(ref).unlink(missing_ok=True)
        except (OSError, NotFoundError) as e:
            logger.warning("Could not remove stored file", extra={"ref": ref[:200], "error": str(e)})

    def delete(self, record: UploadedFile) -> None:
        self._unlink(record.content_ref)
        self._unlink(record.image_ref)

    def discard(self, stored: StoredContent) -> None:
        self._unlink(stored.ref)


class EmbeddedStorage(StorageBackend):
    """Bytes stored in the uploaded_files row itself."""

    name = "embedded"

    def store(self, incoming: IncomingFile) -> StoredContent:
        if incoming.data is None:
            raise ValidationError("File content is required")
        return StoredContent(
            stored_name=make_stored_name(incoming.original_name),
            blob=incoming.data,
        )

    def open(self, record: UploadedFile, field: str = ATTACHMENT) -> FileContent:
        data = record.content_blob if field == ATTACHMENT else record.image_blob
        if data is None:
            raise NotFoundError("File not found")
        return FileContent(data=data)

    def delete(self, record: UploadedFile) -> None:
        # Bytes go away with the row.
        return None


class ExternalStorage(StorageBackend):
    """Content hosted elsewhere; only the URL is kept. Uploading to the host is the client's job."""

    name = "external"
    accepts_urls = True

    def store(self, incoming: IncomingFile) -> StoredContent:
        url = (incoming.url or "").strip()
        if not url.lower().startswith(("http://", "https://")):
            raise ValidationError("A valid http(s) URL is required")
        return StoredContent(stored_name=make_stored_name(incoming.original_name), ref=url)

    def open(self, record: UploadedFile, field: str = ATTACHMENT) -> FileContent:
        url = record.content_ref if field == ATTACHMENT else record.image_ref
        if not url:
            raise NotFoundError("File not found")
        return FileContent(url=url)

    def delete(self, record: UploadedFile) -> None:
        logger.info(
            "External content left on its host",
            extra={"file_id": record.id, "url": (record.content_ref or "")[:200]},
        )


def get_storage_backend(settings: "Settings") -> StorageBackend:
    """Build the backend selected by STORAGE_BACKEND."""
    if settings.STORAGE_BACKEND == "filesystem":
        return FilesystemStorage(Path(settings.UPLOAD_ROOT))
    if settings.STORAGE_BACKEND == "embedded":
        return EmbeddedStorage()
    return ExternalStorage()
