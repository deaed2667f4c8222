"""Comments on posts: create, list by post slug, like toggle, author-or-admin edit/delete."""

import logging

from sqlalchemy import case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from resonansi.core.errors import ForbiddenError, NotFoundError, ValidationError
from resonansi.models import Comment, CommentLike, User
from resonansi.schemas.auth import AuthenticatedContext
from resonansi.schemas.comment import CommentAuthor, CommentOut
from resonansi.services.posts import get_post, get_post_by_slug

logger = logging.getLogger(__name__)

CONTENT_MAX_LEN = 5000


def _validate_content(content: str | None) -> str:
    if content is None or not content.strip():
        raise ValidationError("Comment content must not be empty")
    if len(content) > CONTENT_MAX_LEN:
        raise ValidationError(f"Comment content must be at most {CONTENT_MAX_LEN} characters")
    return content


def _like_ids(db: Session, comment_id: int) -> list[int]:
    rows = (
        db.query(CommentLike.user_id)
        .filter(CommentLike.comment_id == comment_id)
        .order_by(CommentLike.user_id)
        .all()
    )
    return [uid for (uid,) in rows]


def to_comment_out(db: Session, comment: Comment, author: User | None = None) -> CommentOut:
    """Response projection: comment fields, liking user ids and a short author profile."""
    out = CommentOut.model_validate(comment)
    out.likes = _like_ids(db, comment.id)
    if author is not None:
        out.author = CommentAuthor(
            id=author.id,
            username=author.username,
            profile_picture=author.profile_picture,
        )
    return out


def get_comment(db: Session, comment_id: int) -> Comment:
    comment = db.get(Comment, comment_id)
    if comment is None:
        raise NotFoundError("Comment not found")
    return comment


def create_comment(
    db: Session,
    ctx: AuthenticatedContext,
    content: str | None,
    post_id: int | None,
) -> Comment:
    """The author is always the authenticated caller."""
    content = _validate_content(content)
    if post_id is None:
        raise ValidationError("post_id is required")
    post = get_post(db, post_id)
    comment = Comment(content=content, post_id=post.id, user_id=ctx.user_id, number_of_likes=0)
    db.add(comment)
    db.commit()
    db.refresh(comment)
    return comment


def list_post_comments(db: Session, slug: str) -> list[tuple[Comment, User | None]]:
    """Comments of the post with this slug, newest first, each with its author."""
    post = get_post_by_slug(db, slug)
    return (
        db.query(Comment, User)
        .outerjoin(User, User.id == Comment.user_id)
        .filter(Comment.post_id == post.id)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
        .all()
    )


def _find_like(db: Session, comment_id: int, user_id: int) -> CommentLike | None:
    return db.get(CommentLike, (comment_id, user_id))


def toggle_like(db: Session, ctx: AuthenticatedContext, comment_id: int) -> Comment:
    """
    Like the comment, or remove the caller's like if already present.

    The counter is updated in SQL so concurrent toggles do not overwrite each
    other. If a concurrent request inserted the same like first, the primary key
    rejects ours and the comment is returned as already liked.
    """
    comment = get_comment(db, comment_id)
    existing = _find_like(db, comment_id, ctx.user_id)
    if existing is None:
        db.add(CommentLike(comment_id=comment_id, user_id=ctx.user_id))
        comment.number_of_likes = Comment.number_of_likes + 1
    else:
        db.delete(existing)
        comment.number_of_likes = case(
            (Comment.number_of_likes > 0, Comment.number_of_likes - 1),
            else_=0,
        )
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info(
            "Like already recorded",
            extra={"comment_id": comment_id, "user_id": ctx.user_id},
        )
    db.refresh(comment)
    return comment


def edit_comment(
    db: Session,
    ctx: AuthenticatedContext,
    comment_id: int,
    content: str | None,
) -> Comment:
    content = _validate_content(content)
    comment = get_comment(db, comment_id)
    if not ctx.can_act_on(comment.user_id):
        raise ForbiddenError("You are not allowed to edit this comment")
    comment.content = content
    db.commit()
    db.refresh(comment)
    return comment


def delete_comment(db: Session, ctx: AuthenticatedContext, comment_id: int) -> None:
    comment = get_comment(db, comment_id)
    if not ctx.can_act_on(comment.user_id):
        raise ForbiddenError("You are not allowed to delete this comment")
    db.query(CommentLike).filter(CommentLike.comment_id == comment_id).delete(
        synchronize_session=False
    )
    db.delete(comment)
    db.commit()
    logger.info("Comment deleted", extra={"comment_id": comment_id, "deleted_by": ctx.user_id})
