"""Request/response schemas for blog posts."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class PostCreateRequest(BaseModel):
    title: str | None = None
    content: str | None = None
    category: str | None = None
    image: str | None = None


class PostUpdateRequest(BaseModel):
    title: str | None = None
    content: str | None = None
    category: str | None = None
    image: str | None = None


class PostOut(BaseModel):
    id: int
    title: str
    slug: str
    content: str
    category: str
    image: str
    author_id: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class PostQuery(BaseModel):
    """Filters for GET /posts/getposts."""

    user_id: int | None = None
    category: str | None = None
    slug: str | None = None
    post_id: int | None = None
    search_term: str | None = Field(default=None, max_length=200)
    start_index: int = Field(default=0, ge=0)
    limit: int = Field(default=9, ge=1, le=100)
    order: Literal["asc", "desc"] = "desc"


class PostsListResponse(BaseModel):
    posts: list[PostOut]
    total_posts: int
    last_month_posts: int
