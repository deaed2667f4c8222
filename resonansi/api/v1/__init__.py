"""API v1 routes."""

from fastapi import APIRouter

from resonansi.api.v1 import auth, comments, health, posts, unduhan, users
from resonansi.schemas.common import ErrorResponse

ERROR_RESPONSES = {
    code: {"model": ErrorResponse} for code in (400, 401, 403, 404, 422, 500)
}

router = APIRouter(responses=ERROR_RESPONSES)
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(users.router, prefix="/users", tags=["users"])
router.include_router(posts.router, prefix="/posts", tags=["posts"])
router.include_router(comments.router, prefix="/comments", tags=["comments"])
router.include_router(unduhan.router, prefix="/unduhan", tags=["unduhan"])
