"""Request/response schemas for auth endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field

from resonansi.schemas.user import UserPublic


class SignupRequest(BaseModel):
    """
    New local account. Fields are optional here so that a missing field is
    reported with the signup rule message rather than a generic 422.
    """

    username: str | None = None
    email: str | None = None
    password: str | None = None
    role: str | None = Field(
        default=None,
        description="Ignored: signup always creates a 'user' account.",
    )


class SigninRequest(BaseModel):
    """Credentials for signin."""

    email: str | None = None
    password: str | None = None


class GoogleSigninRequest(BaseModel):
    """Google OAuth access token obtained by the client."""

    access_token: str = Field(..., min_length=1, max_length=4096)


class ExternalProfile(BaseModel):
    """Verified profile returned by an external identity provider."""

    provider: str = "google"
    external_id: str
    email: str
    display_name: str = ""
    avatar_url: str | None = None


class AuthResponse(BaseModel):
    """Identity and credential returned after signup/signin."""

    success: bool = True
    message: str
    user: UserPublic
    access_token: str = Field(..., description="JWT access token or session id")
    token_type: str = Field(default="bearer", description="Token type")


class AuthenticatedContext(BaseModel):
    """Identity resolved by the authorization gate and passed to handlers."""

    user_id: int
    role: str
    expires_at: datetime | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def can_act_on(self, owner_id: int | None) -> bool:
        """Owner-or-admin rule used for mutating user-owned resources."""
        return self.is_admin or (owner_id is not None and owner_id == self.user_id)
