"""Auth routes and the authorization gate (get_current_user, require_role)."""

import logging
from collections.abc import Callable
from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.concurrency import run_in_threadpool
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from resonansi.api.deps import DbDep, SettingsDep
from resonansi.core.config import Settings
from resonansi.core.errors import ForbiddenError, UnauthorizedError
from resonansi.schemas.auth import (
    AuthenticatedContext,
    AuthResponse,
    GoogleSigninRequest,
    SigninRequest,
    SignupRequest,
)
from resonansi.schemas.common import MessageResponse
from resonansi.schemas.user import UserPublic
from resonansi.services import accounts
from resonansi.services.google import fetch_google_profile
from resonansi.services.sessions import issue_credential, resolve_credential, revoke_credential

logger = logging.getLogger(__name__)
router = APIRouter()
security = HTTPBearer(auto_error=False)

BearerDep = Annotated[HTTPAuthorizationCredentials | None, Depends(security)]


def extract_credential(
    credentials: HTTPAuthorizationCredentials | None,
    cookie_value: str | None,
) -> str | None:
    """Authorization: Bearer <token> wins over the cookie when both are present."""
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    if cookie_value:
        value = cookie_value.strip()
        if value.startswith("Bearer "):
            value = value[len("Bearer "):].strip()
        return value or None
    return None


def set_credential_cookie(response: Response, credential: str, settings: Settings) -> None:
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=credential,
        max_age=settings.JWT_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.AUTH_COOKIE_SAMESITE,
    )


def clear_credential_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.AUTH_COOKIE_NAME,
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.AUTH_COOKIE_SAMESITE,
    )


def get_current_user(
    request: Request,
    credentials: BearerDep,
    db: DbDep,
    settings: SettingsDep,
) -> AuthenticatedContext:
    """Dependency: require a credential and return the resolved identity. 401 if none, 403 if rejected."""
    token = extract_credential(credentials, request.cookies.get(settings.AUTH_COOKIE_NAME))
    if token is None:
        raise UnauthorizedError("Unauthorized! No token provided.")
    return resolve_credential(db, token, settings)


def get_optional_user(
    request: Request,
    credentials: BearerDep,
    db: DbDep,
    settings: SettingsDep,
) -> AuthenticatedContext | None:
    """Like get_current_user, but anonymous requests yield None. A bad credential is still 403."""
    token = extract_credential(credentials, request.cookies.get(settings.AUTH_COOKIE_NAME))
    if token is None:
        return None
    return resolve_credential(db, token, settings)


CurrentUser = Annotated[AuthenticatedContext, Depends(get_current_user)]


def require_role(role: str) -> Callable[[AuthenticatedContext], AuthenticatedContext]:
    """Build a dependency that runs after get_current_user and demands an exact role."""

    def dependency(current_user: CurrentUser) -> AuthenticatedContext:
        if current_user.role != role:
            logger.warning(
                "Role check failed",
                extra={"user_id": current_user.user_id, "required_role": role},
            )
            raise ForbiddenError("Access denied! Admins only." if role == "admin" else "Access denied!")
        return current_user

    dependency.__name__ = f"require_role_{role}"
    return dependency


require_admin = require_role("admin")
AdminUser = Annotated[AuthenticatedContext, Depends(require_admin)]


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def signup(
    body: SignupRequest,
    response: Response,
    db: DbDep,
    settings: SettingsDep,
) -> AuthResponse:
    """Create a local account (role 'user') and sign it in."""
    user = accounts.signup(
        db,
        settings,
        username=body.username,
        email=body.email,
        password=body.password,
        requested_role=body.role,
    )
    token = issue_credential(db, user, settings)
    set_credential_cookie(response, token, settings)
    return AuthResponse(
        message="Signup successful",
        user=UserPublic.model_validate(user),
        access_token=token,
    )


@router.post("/signin", response_model=AuthResponse)
def signin(
    body: SigninRequest,
    response: Response,
    db: DbDep,
    settings: SettingsDep,
) -> AuthResponse:
    """
    Authenticate with email and password. The credential is returned in the body
    and set as an httpOnly cookie; send it back as `Authorization: Bearer <access_token>`
    or let the browser send the cookie.
    """
    user = accounts.authenticate(db, body.email, body.password)
    token = issue_credential(db, user, settings)
    set_credential_cookie(response, token, settings)
    logger.info("User signed in", extra={"user_id": user.id})
    return AuthResponse(
        message="Signin successful",
        user=UserPublic.model_validate(user),
        access_token=token,
    )


@router.post("/google", response_model=AuthResponse)
async def google_signin(
    body: GoogleSigninRequest,
    response: Response,
    db: DbDep,
    settings: SettingsDep,
) -> AuthResponse:
    """Sign in (or sign up on first use) with a Google OAuth access token."""
    profile = await fetch_google_profile(body.access_token, settings)
    user = await run_in_threadpool(accounts.sign_in_with_external_identity, db, settings, profile)
    token = await run_in_threadpool(issue_credential, db, user, settings)
    set_credential_cookie(response, token, settings)
    return AuthResponse(
        message="Signin successful",
        user=UserPublic.model_validate(user),
        access_token=token,
    )


@router.post("/signout", response_model=MessageResponse)
def signout(
    request: Request,
    response: Response,
    credentials: BearerDep,
    db: DbDep,
    settings: SettingsDep,
) -> MessageResponse:
    """Clear the credential cookie and any server-side session. Safe to call when signed out."""
    token = extract_credential(credentials, request.cookies.get(settings.AUTH_COOKIE_NAME))
    revoke_credential(db, token, settings)
    clear_credential_cookie(response, settings)
    return MessageResponse(message="User has been signed out")


@router.get("/me", response_model=AuthenticatedContext)
def me(current_user: CurrentUser) -> AuthenticatedContext:
    """Identity attached by the gate."""
    return current_user
