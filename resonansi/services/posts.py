"""Blog posts: slug derivation, validation, listing and author-or-admin mutation."""

import logging
import re
from datetime import UTC, datetime, timedelta

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from resonansi.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from resonansi.models import Comment, CommentLike, Post
from resonansi.models.post import CATEGORIES
from resonansi.schemas.auth import AuthenticatedContext
from resonansi.schemas.post import PostCreateRequest, PostQuery, PostUpdateRequest

logger = logging.getLogger(__name__)

TITLE_MIN_LEN = 5
TITLE_MAX_LEN = 100
CONTENT_MIN_LEN = 20
MSG_SLUG_TAKEN = "A post with this title already exists"


def slugify(title: str) -> str:
    """Lowercase, drop everything but letters/digits/whitespace, whitespace runs -> '-'."""
    cleaned = re.sub(r"[^a-z0-9\s]", "", title.lower())
    return re.sub(r"\s+", "-", cleaned.strip())


def _contains_pattern(term: str) -> str:
    """LIKE pattern matching term literally; '\\' is the escape character."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _validate_title(title: str) -> str:
    title = title.strip()
    if not (TITLE_MIN_LEN <= len(title) <= TITLE_MAX_LEN):
        raise ValidationError(
            f"Title must be between {TITLE_MIN_LEN} and {TITLE_MAX_LEN} characters"
        )
    if not slugify(title):
        raise ValidationError("Title must contain letters or numbers")
    return title


def _validate_content(content: str) -> str:
    if len(content.strip()) < CONTENT_MIN_LEN:
        raise ValidationError(f"Content must be at least {CONTENT_MIN_LEN} characters")
    return content


def _validate_category(category: str) -> str:
    if category not in CATEGORIES:
        raise ValidationError(f"Category must be one of: {', '.join(CATEGORIES)}")
    return category


def _validate_image(image: str) -> str:
    image = image.strip()
    if not image:
        raise ValidationError("Image is required")
    return image


def _commit_post(db: Session, post: Post) -> Post:
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise ConflictError(MSG_SLUG_TAKEN) from e
    db.refresh(post)
    return post


def _ensure_slug_free(db: Session, slug: str, post_id: int | None = None) -> None:
    query = db.query(Post.id).filter(Post.slug == slug)
    if post_id is not None:
        query = query.filter(Post.id != post_id)
    if query.first():
        raise ConflictError(MSG_SLUG_TAKEN)


def create_post(db: Session, ctx: AuthenticatedContext, body: PostCreateRequest) -> Post:
    if not body.title or not body.content or not body.category or not body.image:
        raise ValidationError("Please provide all required fields")
    title = _validate_title(body.title)
    slug = slugify(title)
    _ensure_slug_free(db, slug)
    post = Post(
        title=title,
        slug=slug,
        content=_validate_content(body.content),
        category=_validate_category(body.category),
        image=_validate_image(body.image),
        author_id=ctx.user_id,
    )
    db.add(post)
    _commit_post(db, post)
    logger.info("Post created", extra={"post_id": post.id, "author_id": ctx.user_id})
    return post


def list_posts(db: Session, query: PostQuery) -> tuple[list[Post], int, int]:
    """Return (page of posts, total matching posts overall, posts created in the last 30 days)."""
    q = db.query(Post)
    if query.user_id is not None:
        q = q.filter(Post.author_id == query.user_id)
    if query.category:
        q = q.filter(Post.category == query.category)
    if query.slug:
        q = q.filter(Post.slug == query.slug)
    if query.post_id is not None:
        q = q.filter(Post.id == query.post_id)
    if query.search_term:
        pattern = _contains_pattern(query.search_term)
        q = q.filter(
            or_(
                Post.title.ilike(pattern, escape="\\"),
                Post.content.ilike(pattern, escape="\\"),
            )
        )

    order = Post.updated_at.asc() if query.order == "asc" else Post.updated_at.desc()
    posts = q.order_by(order, Post.id).offset(query.start_index).limit(query.limit).all()

    total = db.query(func.count(Post.id)).scalar() or 0
    month_ago = datetime.now(UTC) - timedelta(days=30)
    last_month = (
        db.query(func.count(Post.id)).filter(Post.created_at >= month_ago).scalar() or 0
    )
    return posts, total, last_month


def get_post(db: Session, post_id: int) -> Post:
    post = db.get(Post, post_id)
    if post is None:
        raise NotFoundError("Post not found")
    return post


def get_post_by_slug(db: Session, slug: str) -> Post:
    post = db.query(Post).filter(Post.slug == slug).first()
    if post is None:
        raise NotFoundError("Post not found")
    return post


def update_post(
    db: Session,
    ctx: AuthenticatedContext,
    post_id: int,
    body: PostUpdateRequest,
) -> Post:
    post = get_post(db, post_id)
    if not ctx.can_act_on(post.author_id):
        raise ForbiddenError("You are not allowed to update this post")
    if body.title is not None:
        post.title = _validate_title(body.title)
        slug = slugify(post.title)
        _ensure_slug_free(db, slug, post.id)
        post.slug = slug
    if body.content is not None:
        post.content = _validate_content(body.content)
    if body.category is not None:
        post.category = _validate_category(body.category)
    if body.image is not None:
        post.image = _validate_image(body.image)
    return _commit_post(db, post)


def delete_post(db: Session, ctx: AuthenticatedContext, post_id: int) -> None:
    post = get_post(db, post_id)
    if not ctx.can_act_on(post.author_id):
        raise ForbiddenError("You are not allowed to delete this post")
    comment_ids = [cid for (cid,) in db.query(Comment.id).filter(Comment.post_id == post_id).all()]
    if comment_ids:
        db.query(CommentLike).filter(CommentLike.comment_id.in_(comment_ids)).delete(
            synchronize_session=False
        )
        db.query(Comment).filter(Comment.id.in_(comment_ids)).delete(
            synchronize_session=False
        )
    db.delete(post)
    db.commit()
    logger.info("Post deleted", extra={"post_id": post_id, "deleted_by": ctx.user_id})
