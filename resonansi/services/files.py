"""Download repository (unduhan): upload gate, publish, list, open and delete files."""

import logging
from typing import TYPE_CHECKING

from fastapi import UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from resonansi.core.errors import InternalError, NotFoundError, ValidationError
from resonansi.models import UploadedFile
from resonansi.schemas.auth import AuthenticatedContext
from resonansi.services.storage import (
    ALLOWED_MIME_TYPES,
    ATTACHMENT,
    THUMBNAIL,
    FileContent,
    IncomingFile,
    StorageBackend,
    StoredContent,
)

if TYPE_CHECKING:
    from resonansi.core.config import Settings

logger = logging.getLogger(__name__)

READ_CHUNK_BYTES = 1024 * 1024
MAX_TITLE_LEN = 255


def _size_message(settings: "Settings") -> str:
    limit = settings.MAX_UPLOAD_BYTES
    if limit % (1024 * 1024) == 0:
        return f"File size must not exceed {limit // (1024 * 1024)} MB"
    return f"File size must not exceed {limit} bytes"


def check_mimetype(field: str, content_type: str) -> None:
    if content_type not in ALLOWED_MIME_TYPES.get(field, frozenset()):
        logger.info("Upload rejected: mimetype", extra={"field": field, "mimetype": content_type})
        raise ValidationError(f"File type not allowed: {content_type}")


def check_size(size: int, settings: "Settings") -> None:
    if size < 0:
        raise ValidationError("File size must be a non-negative number")
    if size > settings.MAX_UPLOAD_BYTES:
        logger.info("Upload rejected: size", extra={"size": size})
        raise ValidationError(_size_message(settings))


def validate_incoming(incoming: IncomingFile, settings: "Settings") -> None:
    """Upload gate: MIME allow-list per field, then the size ceiling."""
    check_mimetype(incoming.field, incoming.content_type)
    check_size(incoming.size, settings)


async def receive_upload(
    upload: UploadFile,
    field: str,
    settings: "Settings",
) -> IncomingFile:
    """
    Read a multipart part into an IncomingFile, enforcing the gate while reading.

    The MIME type is checked before any byte is read and the size ceiling is
    enforced chunk by chunk, so an oversized body is never fully buffered.
    """
    content_type = (upload.content_type or "application/octet-stream").lower()
    check_mimetype(field, content_type)
    if upload.size is not None:
        check_size(upload.size, settings)

    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await upload.read(READ_CHUNK_BYTES)
        if not chunk:
            break
        total += len(chunk)
        check_size(total, settings)
        chunks.append(chunk)
    return IncomingFile(
        field=field,
        original_name=upload.filename or "file",
        content_type=content_type,
        size=total,
        data=b"".join(chunks),
    )


def publish_file(
    db: Session,
    backend: StorageBackend,
    settings: "Settings",
    title: str | None,
    attachment: IncomingFile | None,
    image: IncomingFile | None = None,
    ctx: AuthenticatedContext | None = None,
) -> UploadedFile:
    """
    Validate, store content, then persist the record.

    The record is written only after the backend succeeded; if the record write
    fails, stored content is discarded so nothing unreferenced stays behind.
    """
    if attachment is None:
        raise ValidationError("File is required")
    title = (title or "").strip()
    if not title:
        raise ValidationError("Title is required")
    if len(title) > MAX_TITLE_LEN:
        raise ValidationError(f"Title must be at most {MAX_TITLE_LEN} characters")
    if attachment.field != ATTACHMENT or (image is not None and image.field != THUMBNAIL):
        raise ValidationError("Unexpected field")
    validate_incoming(attachment, settings)
    if image is not None:
        validate_incoming(image, settings)

    stored: list[StoredContent] = []
    try:
        content = backend.store(attachment)
        stored.append(content)
        thumb = backend.store(image) if image is not None else None
        if thumb is not None:
            stored.append(thumb)

        record = UploadedFile(
            title=title,
            stored_name=content.stored_name,
            original_name=attachment.original_name,
            size=attachment.size,
            mimetype=attachment.content_type,
            storage_backend=backend.name,
            content_ref=content.ref,
            content_blob=content.blob,
            image_mimetype=image.content_type if image is not None else None,
            image_ref=thumb.ref if thumb is not None else None,
            image_blob=thumb.blob if thumb is not None else None,
            uploaded_by=ctx.user_id if ctx is not None else None,
        )
        db.add(record)
        db.commit()
    except Exception as e:
        db.rollback()
        for item in stored:
            backend.discard(item)
        if isinstance(e, (SQLAlchemyError, OSError)):
            logger.exception("File publish failed; stored content discarded")
        if isinstance(e, OSError):
            raise InternalError("File could not be stored") from e
        raise

    db.refresh(record)
    logger.info(
        "File published",
        extra={
            "file_id": record.id,
            "storage_backend": backend.name,
            "size": record.size,
            "uploaded_by": record.uploaded_by,
        },
    )
    return record


def list_files(db: Session) -> list[UploadedFile]:
    """All records, newest first. Blob columns are deferred and never loaded here."""
    return (
        db.query(UploadedFile)
        .order_by(UploadedFile.created_at.desc(), UploadedFile.id.desc())
        .all()
    )


def get_file(db: Session, file_id: int) -> UploadedFile:
    record = db.get(UploadedFile, file_id)
    if record is None:
        raise NotFoundError("File not found")
    return record


def open_file(
    db: Session,
    backend: StorageBackend,
    file_id: int,
    field: str = ATTACHMENT,
) -> tuple[UploadedFile, FileContent]:
    """Return the record and its downloadable content via the active backend."""
    record = get_file(db, file_id)
    if record.storage_backend != backend.name:
        logger.warning(
            "Record stored by another backend",
            extra={
                "file_id": record.id,
                "record_backend": record.storage_backend,
                "active_backend": backend.name,
            },
        )
        raise NotFoundError("File content is not available")
    if field == THUMBNAIL and not record.has_image:
        raise NotFoundError("Image not found")
    return record, backend.open(record, field)


def delete_file(db: Session, backend: StorageBackend, file_id: int) -> None:
    """Delete the record, then its backing content."""
    record = get_file(db, file_id)
    # Detached copy of the refs: the deleted instance is expired by the commit.
    snapshot = UploadedFile(
        id=record.id,
        storage_backend=record.storage_backend,
        content_ref=record.content_ref,
        image_ref=record.image_ref,
    )
    if snapshot.storage_backend != backend.name:
        logger.warning(
            "Deleting record stored by another backend; content left in place",
            extra={"file_id": file_id, "record_backend": snapshot.storage_backend},
        )
    db.delete(record)
    db.commit()
    if snapshot.storage_backend == backend.name:
        backend.delete(snapshot)
    logger.info("File deleted", extra={"file_id": file_id})
