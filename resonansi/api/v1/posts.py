"""Blog post routes. Reads are public; create is admin-only; update/delete are author-or-admin."""

from typing import Annotated

from fastapi import APIRouter, Query, status

from resonansi.api.deps import DbDep
from resonansi.api.v1.auth import AdminUser, CurrentUser
from resonansi.schemas.common import MessageResponse
from resonansi.schemas.post import (
    PostCreateRequest,
    PostOut,
    PostQuery,
    PostsListResponse,
    PostUpdateRequest,
)
from resonansi.services import posts as post_service

router = APIRouter()


@router.post("/create", response_model=PostOut, status_code=status.HTTP_201_CREATED)
def create_post(body: PostCreateRequest, admin: AdminUser, db: DbDep) -> PostOut:
    return PostOut.model_validate(post_service.create_post(db, admin, body))


@router.get("/getposts", response_model=PostsListResponse)
def get_posts(query: Annotated[PostQuery, Query()], db: DbDep) -> PostsListResponse:
    """
    List posts, newest update first by default.

    Filters: user_id, category, slug, post_id, search_term (title or content).
    Paging: start_index, limit (max 100).
    """
    posts, total, last_month = post_service.list_posts(db, query)
    return PostsListResponse(
        posts=[PostOut.model_validate(p) for p in posts],
        total_posts=total,
        last_month_posts=last_month,
    )


@router.get("/getpost/{post_id}", response_model=PostOut)
def get_post(post_id: int, db: DbDep) -> PostOut:
    return PostOut.model_validate(post_service.get_post(db, post_id))


@router.get("/post/{slug}", response_model=PostOut)
def get_post_by_slug(slug: str, db: DbDep) -> PostOut:
    return PostOut.model_validate(post_service.get_post_by_slug(db, slug))


@router.put("/update/{post_id}", response_model=PostOut)
def update_post(
    post_id: int,
    body: PostUpdateRequest,
    current_user: CurrentUser,
    db: DbDep,
) -> PostOut:
    return PostOut.model_validate(post_service.update_post(db, current_user, post_id, body))


@router.delete("/delete/{post_id}", response_model=MessageResponse)
def delete_post(post_id: int, current_user: CurrentUser, db: DbDep) -> MessageResponse:
    post_service.delete_post(db, current_user, post_id)
    return MessageResponse(message="Post has been deleted")
