"""Download repository routes: upload, list, download, delete."""

import logging
from typing import Annotated
from urllib.parse import quote, urlparse

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse, RedirectResponse, Response

from resonansi.api.deps import DbDep, SettingsDep, StorageDep
from resonansi.api.v1.auth import (
    AdminUser,
    BearerDep,
    get_current_user,
    get_optional_user,
)
from resonansi.core.errors import ForbiddenError
from resonansi.schemas.auth import AuthenticatedContext
from resonansi.schemas.common import MessageResponse
from resonansi.schemas.upload import FilesListResponse, UploadedFileOut
from resonansi.services import files as file_service
from resonansi.services.storage import ATTACHMENT, THUMBNAIL, FileContent, IncomingFile

logger = logging.getLogger(__name__)
router = APIRouter()


def get_uploader(
    request: Request,
    credentials: BearerDep,
    db: DbDep,
    settings: SettingsDep,
) -> AuthenticatedContext:
    """Upload needs a signed-in user; with UPLOAD_REQUIRES_ADMIN, an admin."""
    ctx = get_current_user(request, credentials, db, settings)
    if settings.UPLOAD_REQUIRES_ADMIN and ctx.role != "admin":
        raise ForbiddenError("Access denied! Admins only.")
    return ctx


def get_file_reader(
    request: Request,
    credentials: BearerDep,
    db: DbDep,
    settings: SettingsDep,
) -> AuthenticatedContext | None:
    """Listing is public or bearer-gated depending on FILE_LIST_REQUIRES_AUTH."""
    if settings.FILE_LIST_REQUIRES_AUTH:
        return get_current_user(request, credentials, db, settings)
    return get_optional_user(request, credentials, db, settings)


Uploader = Annotated[AuthenticatedContext, Depends(get_uploader)]
FileReader = Annotated[AuthenticatedContext | None, Depends(get_file_reader)]


def _content_disposition(kind: str, filename: str) -> str:
    ascii_name = filename.encode("ascii", "ignore").decode("ascii").replace('"', "") or "file"
    return f"{kind}; filename=\"{ascii_name}\"; filename*=utf-8''{quote(filename)}"


def _url_incoming(
    field: str,
    url: str | None,
    name: str | None,
    mimetype: str | None,
    size: int | None,
) -> IncomingFile | None:
    if not url:
        return None
    return IncomingFile(
        field=field,
        original_name=name or urlparse(url).path.rsplit("/", 1)[-1] or "file",
        content_type=(mimetype or "").lower(),
        size=size if size is not None else 0,
        url=url,
    )


def _content_response(
    content: FileContent,
    filename: str,
    media_type: str,
    disposition: str,
) -> Response:
    if content.url is not None:
        return RedirectResponse(content.url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
    if content.path is not None:
        return FileResponse(
            content.path,
            media_type=media_type,
            filename=filename,
            content_disposition_type=disposition,
        )
    return Response(
        content=content.data,
        media_type=media_type,
        headers={"Content-Disposition": _content_disposition(disposition, filename)},
    )


@router.post("/upload", response_model=UploadedFileOut, status_code=status.HTTP_201_CREATED)
async def upload_file(
    uploader: Uploader,
    db: DbDep,
    settings: SettingsDep,
    backend: StorageDep,
    title: Annotated[str | None, Form()] = None,
    file: Annotated[UploadFile | None, File()] = None,
    image: Annotated[UploadFile | None, File()] = None,
    file_url: Annotated[str | None, Form()] = None,
    file_name: Annotated[str | None, Form()] = None,
    file_mimetype: Annotated[str | None, Form()] = None,
    file_size: Annotated[int | None, Form()] = None,
    image_url: Annotated[str | None, Form()] = None,
    image_mimetype: Annotated[str | None, Form()] = None,
    image_size: Annotated[int | None, Form()] = None,
) -> UploadedFileOut:
    """
    Publish a file with an optional thumbnail image.

    - **filesystem / embedded backends**: multipart parts `file` (pdf, doc, docx,
      octet-stream) and optional `image` (jpeg, png), plus `title`.
    - **external backend**: the content is already hosted; send `file_url`,
      `file_name`, `file_mimetype`, `file_size` (and optionally the `image_*`
      equivalents) plus `title`.

    MIME type and size are checked before anything is stored.
    """
    if backend.accepts_urls:
        attachment = _url_incoming(ATTACHMENT, file_url, file_name, file_mimetype, file_size)
        thumbnail = _url_incoming(THUMBNAIL, image_url, None, image_mimetype, image_size)
    else:
        attachment = (
            await file_service.receive_upload(file, ATTACHMENT, settings)
            if file is not None and file.filename
            else None
        )
        thumbnail = (
            await file_service.receive_upload(image, THUMBNAIL, settings)
            if image is not None and image.filename
            else None
        )

    record = await run_in_threadpool(
        file_service.publish_file,
        db,
        backend,
        settings,
        title,
        attachment,
        thumbnail,
        uploader,
    )
    return UploadedFileOut.model_validate(record)


@router.get("", response_model=FilesListResponse)
def list_files(_reader: FileReader, db: DbDep) -> FilesListResponse:
    """File metadata, newest first; content is fetched through /download/{id}."""
    return FilesListResponse(
        files=[UploadedFileOut.model_validate(f) for f in file_service.list_files(db)]
    )


@router.get("/download/{file_id}")
def download_file(
    file_id: int,
    _user: Annotated[AuthenticatedContext, Depends(get_current_user)],
    db: DbDep,
    backend: StorageDep,
) -> Response:
    """Stream the attachment (or redirect to its external URL)."""
    record, content = file_service.open_file(db, backend, file_id, ATTACHMENT)
    return _content_response(content, record.original_name, record.mimetype, "attachment")


@router.get("/image/{file_id}")
def get_file_image(
    file_id: int,
    _reader: FileReader,
    db: DbDep,
    backend: StorageDep,
) -> Response:
    """Thumbnail image of a file, served inline."""
    record, content = file_service.open_file(db, backend, file_id, THUMBNAIL)
    return _content_response(
        content,
        f"{record.id}-thumbnail",
        record.image_mimetype or "application/octet-stream",
        "inline",
    )


@router.delete("/{file_id}", response_model=MessageResponse)
def delete_file(
    file_id: int,
    admin: AdminUser,
    db: DbDep,
    backend: StorageDep,
) -> MessageResponse:
    file_service.delete_file(db, backend, file_id)
    logger.info("File removed by admin", extra={"file_id": file_id, "admin_id": admin.user_id})
    return MessageResponse(message="File has been deleted")
