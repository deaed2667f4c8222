"""SQLAlchemy ORM models."""

from resonansi.models.base import Base
from resonansi.models.comment import Comment, CommentLike
from resonansi.models.post import Post
from resonansi.models.uploaded_file import UploadedFile
from resonansi.models.user import User
from resonansi.models.user_session import UserSession

__all__ = [
    "Base",
    "Comment",
    "CommentLike",
    "Post",
    "UploadedFile",
    "User",
    "UserSession",
]
