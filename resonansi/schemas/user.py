"""Request/response schemas for user endpoints."""

from datetime import datetime

from pydantic import BaseModel


class UserPublic(BaseModel):
    """Public projection of a user (no password hash, no provider id)."""

    id: int
    username: str
    email: str
    profile_picture: str
    role: str
    auth_provider: str
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class UserUpdateRequest(BaseModel):
    """Profile changes; omitted fields are left untouched."""

    username: str | None = None
    email: str | None = None
    profile_picture: str | None = None
    password: str | None = None


class RoleUpdateRequest(BaseModel):
    role: str | None = None


class UsersListResponse(BaseModel):
    """Response for GET /users/getusers (admin only)."""

    users: list[UserPublic]
    total_users: int
    last_month_users: int


class UserResponse(BaseModel):
    success: bool = True
    message: str
    user: UserPublic
