"""Pydantic request/response schemas."""

from resonansi.schemas.auth import (
    AuthenticatedContext,
    AuthResponse,
    ExternalProfile,
    GoogleSigninRequest,
    SigninRequest,
    SignupRequest,
)
from resonansi.schemas.comment import CommentCreateRequest, CommentEditRequest, CommentOut
from resonansi.schemas.common import ErrorResponse, MessageResponse
from resonansi.schemas.health import HealthResponse
from resonansi.schemas.post import (
    PostCreateRequest,
    PostOut,
    PostQuery,
    PostsListResponse,
    PostUpdateRequest,
)
from resonansi.schemas.upload import FilesListResponse, UploadedFileOut
from resonansi.schemas.user import (
    RoleUpdateRequest,
    UserPublic,
    UserResponse,
    UsersListResponse,
    UserUpdateRequest,
)

__all__ = [
    "AuthResponse",
    "AuthenticatedContext",
    "CommentCreateRequest",
    "CommentEditRequest",
    "CommentOut",
    "ErrorResponse",
    "ExternalProfile",
    "FilesListResponse",
    "GoogleSigninRequest",
    "HealthResponse",
    "MessageResponse",
    "PostCreateRequest",
    "PostOut",
    "PostQuery",
    "PostUpdateRequest",
    "PostsListResponse",
    "RoleUpdateRequest",
    "SigninRequest",
    "SignupRequest",
    "UploadedFileOut",
    "UserPublic",
    "UserResponse",
    "UserUpdateRequest",
    "UsersListResponse",
]
