"""Request/response schemas for comments."""

from datetime import datetime

from pydantic import BaseModel


class CommentCreateRequest(BaseModel):
    content: str | None = None
    post_id: int | None = None


class CommentEditRequest(BaseModel):
    content: str | None = None


class CommentAuthor(BaseModel):
    id: int
    username: str
    profile_picture: str


class CommentOut(BaseModel):
    id: int
    content: str
    post_id: int
    user_id: int
    number_of_likes: int
    likes: list[int] = []
    author: CommentAuthor | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True
