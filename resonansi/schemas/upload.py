"""Request/response schemas for the download repository (unduhan)."""

from datetime import datetime

from pydantic import BaseModel, Field


class UploadedFileOut(BaseModel):
    """File metadata; content bytes are never part of this projection."""

    id: int
    title: str
    stored_name: str
    original_name: str
    size: int = Field(..., ge=0, description="Attachment size in bytes.")
    mimetype: str
    storage_backend: str
    content_ref: str | None = Field(
        default=None,
        description="Relative path (filesystem) or URL (external); null when embedded.",
    )
    image_ref: str | None = None
    has_image: bool = False
    uploaded_by: int | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class FilesListResponse(BaseModel):
    success: bool = True
    files: list[UploadedFileOut]
