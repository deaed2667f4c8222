"""Comment routes; all require an authenticated caller."""

from fastapi import APIRouter, status

from resonansi.api.deps import DbDep
from resonansi.api.v1.auth import CurrentUser
from resonansi.schemas.comment import CommentCreateRequest, CommentEditRequest, CommentOut
from resonansi.schemas.common import MessageResponse
from resonansi.services import comments as comment_service

router = APIRouter()


@router.post("/create", response_model=CommentOut, status_code=status.HTTP_201_CREATED)
def create_comment(
    body: CommentCreateRequest,
    current_user: CurrentUser,
    db: DbDep,
) -> CommentOut:
    comment = comment_service.create_comment(db, current_user, body.content, body.post_id)
    return comment_service.to_comment_out(db, comment)


@router.get("/getPostComments/{slug}", response_model=list[CommentOut])
def get_post_comments(slug: str, _user: CurrentUser, db: DbDep) -> list[CommentOut]:
    return [
        comment_service.to_comment_out(db, comment, author)
        for comment, author in comment_service.list_post_comments(db, slug)
    ]


@router.patch("/likeComment/{comment_id}", response_model=CommentOut)
def like_comment(comment_id: int, current_user: CurrentUser, db: DbDep) -> CommentOut:
    comment = comment_service.toggle_like(db, current_user, comment_id)
    return comment_service.to_comment_out(db, comment)


@router.put("/editComment/{comment_id}", response_model=CommentOut)
def edit_comment(
    comment_id: int,
    body: CommentEditRequest,
    current_user: CurrentUser,
    db: DbDep,
) -> CommentOut:
    comment = comment_service.edit_comment(db, current_user, comment_id, body.content)
    return comment_service.to_comment_out(db, comment)


@router.delete("/deleteComment/{comment_id}", response_model=MessageResponse)
def delete_comment(comment_id: int, current_user: CurrentUser, db: DbDep) -> MessageResponse:
    comment_service.delete_comment(db, current_user, comment_id)
    return MessageResponse(message="Comment has been deleted")
