"""User profile routes: read, list (admin), update/delete (self or admin), role change (admin)."""

from typing import Annotated, Literal

from fastapi import APIRouter, Query, Request, Response

from resonansi.api.deps import DbDep, SettingsDep
from resonansi.api.v1.auth import (
    AdminUser,
    BearerDep,
    CurrentUser,
    clear_credential_cookie,
    extract_credential,
)
from resonansi.schemas.common import MessageResponse
from resonansi.schemas.user import (
    RoleUpdateRequest,
    UserPublic,
    UserResponse,
    UsersListResponse,
    UserUpdateRequest,
)
from resonansi.services import accounts
from resonansi.services.sessions import revoke_credential

router = APIRouter()


@router.get("/getusers", response_model=UsersListResponse)
def list_users(
    _admin: AdminUser,
    db: DbDep,
    start_index: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int, Query(ge=1, le=100)] = 9,
    sort: Literal["asc", "desc"] = "desc",
) -> UsersListResponse:
    """List users (admin only), public projection only."""
    users, total, last_month = accounts.list_users(db, start_index, limit, sort)
    return UsersListResponse(
        users=[UserPublic.model_validate(u) for u in users],
        total_users=total,
        last_month_users=last_month,
    )


@router.get("/{user_id}", response_model=UserPublic)
def get_user(user_id: int, _user: CurrentUser, db: DbDep) -> UserPublic:
    return UserPublic.model_validate(accounts.get_user(db, user_id))


@router.put("/update/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    body: UserUpdateRequest,
    current_user: CurrentUser,
    db: DbDep,
    settings: SettingsDep,
) -> UserResponse:
    user = accounts.update_user(db, settings, current_user, user_id, body)
    return UserResponse(message="User updated", user=UserPublic.model_validate(user))


@router.delete("/delete/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: int,
    request: Request,
    response: Response,
    credentials: BearerDep,
    current_user: CurrentUser,
    db: DbDep,
    settings: SettingsDep,
) -> MessageResponse:
    accounts.delete_user(db, current_user, user_id)
    if current_user.user_id == user_id:
        # Session rows went with the account; only the cookie is left to clear.
        token = extract_credential(credentials, request.cookies.get(settings.AUTH_COOKIE_NAME))
        revoke_credential(db, token, settings)
        clear_credential_cookie(response, settings)
    return MessageResponse(message="User has been deleted")


@router.put("/update-role/{user_id}", response_model=UserResponse)
def update_user_role(
    user_id: int,
    body: RoleUpdateRequest,
    admin: AdminUser,
    db: DbDep,
) -> UserResponse:
    user = accounts.update_role(db, admin, user_id, body.role)
    return UserResponse(message="User role updated", user=UserPublic.model_validate(user))
