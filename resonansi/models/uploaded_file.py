"""ORM model for files published in the download repository (unduhan)."""

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    LargeBinary,
    String,
    func,
)
from sqlalchemy.orm import deferred

from resonansi.models.base import Base


class UploadedFile(Base):
    """
    Uploaded attachment plus optional thumbnail image.

    Exactly one content representation is used, decided by storage_backend:
    filesystem -> content_ref is a path relative to UPLOAD_ROOT,
    embedded   -> content_blob holds the bytes,
    external   -> content_ref is an http(s) URL.
    The same rule applies to image_ref / image_blob. Blob columns are deferred
    so list queries never load them.
    """

    __tablename__ = "uploaded_files"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    stored_name = Column(String(512), nullable=False, unique=True, index=True)
    original_name = Column(String(512), nullable=False)
    size = Column(BigInteger, nullable=False)
    mimetype = Column(String(255), nullable=False)
    storage_backend = Column(String(32), nullable=False)
    content_ref = Column(String(2048), nullable=True)
    content_blob = deferred(Column(LargeBinary, nullable=True))
    image_mimetype = Column(String(255), nullable=True)
    image_ref = Column(String(2048), nullable=True)
    image_blob = deferred(Column(LargeBinary, nullable=True))
    uploaded_by = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    @property
    def has_image(self) -> bool:
        return self.image_mimetype is not None
