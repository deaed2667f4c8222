"""User accounts: signup/signin rules, external identity linking, profile and role changes."""

import logging
import re
import secrets
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from email_validator import EmailNotValidError
from email_validator import validate_email as check_email_address
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from resonansi.core.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from resonansi.core.security import hash_password, verify_password
from resonansi.models import Comment, CommentLike, Post, UploadedFile, User, UserSession
from resonansi.models.user import ROLES
from resonansi.schemas.auth import AuthenticatedContext, ExternalProfile
from resonansi.schemas.user import UserUpdateRequest

if TYPE_CHECKING:
    from resonansi.core.config import Settings

logger = logging.getLogger(__name__)

USERNAME_MIN_LEN = 3
USERNAME_MAX_LEN = 20
PASSWORD_MIN_LEN = 6
PASSWORD_MAX_LEN = 128
EMAIL_MAX_LEN = 255

USERNAME_RE = re.compile(r"^[a-z0-9]+$")

MSG_FIELDS_REQUIRED = "All fields are required"
MSG_USERNAME_LENGTH = (
    f"Username must be between {USERNAME_MIN_LEN} and {USERNAME_MAX_LEN} characters"
)
MSG_USERNAME_CHARSET = "Username must contain lowercase letters and numbers only"
MSG_EMAIL_FORMAT = "Invalid email format"
MSG_PASSWORD_LENGTH = (
    f"Password must be between {PASSWORD_MIN_LEN} and {PASSWORD_MAX_LEN} characters"
)
MSG_EMAIL_TAKEN = "Email already in use"
MSG_USERNAME_TAKEN = "Username already in use"
MSG_INVALID_CREDENTIALS = "Invalid credentials"


def validate_username(username: str) -> str:
    if not (USERNAME_MIN_LEN <= len(username) <= USERNAME_MAX_LEN):
        raise ValidationError(MSG_USERNAME_LENGTH)
    if not USERNAME_RE.match(username):
        raise ValidationError(MSG_USERNAME_CHARSET)
    return username


def validate_email(email: str) -> str:
    """Syntax check only (no DNS lookup); returns the normalized lowercase address."""
    email = email.strip().lower()
    if len(email) > EMAIL_MAX_LEN:
        raise ValidationError(MSG_EMAIL_FORMAT)
    try:
        return check_email_address(email, check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise ValidationError(MSG_EMAIL_FORMAT) from e


def validate_password(password: str) -> str:
    if not (PASSWORD_MIN_LEN <= len(password) <= PASSWORD_MAX_LEN):
        raise ValidationError(MSG_PASSWORD_LENGTH)
    return password


def _email_taken(db: Session, email: str) -> bool:
    return db.query(User.id).filter(User.email == email).first() is not None


def _username_taken(db: Session, username: str) -> bool:
    return db.query(User.id).filter(User.username == username).first() is not None


def _commit_user(db: Session, user: User) -> User:
    """
    Commit a new or changed user. The unique indexes on username/email are the
    authority; a violation that slipped past the existence check becomes a Conflict.
    """
    # Captured before commit: a rollback expires the instance's attributes.
    email, user_id = user.email, user.id
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        query = db.query(User.id).filter(User.email == email)
        if user_id is not None:
            query = query.filter(User.id != user_id)
        taken_email = query.first()
        logger.info("Unique constraint violation on user write: %s", e.orig)
        raise ConflictError(MSG_EMAIL_TAKEN if taken_email else MSG_USERNAME_TAKEN) from e
    db.refresh(user)
    return user


def signup(
    db: Session,
    settings: "Settings",
    username: str | None,
    email: str | None,
    password: str | None,
    requested_role: str | None = None,
) -> User:
    """
    Create a local account with role 'user'.

    A requested role is never honored here; elevation goes through update_role.
    The existence check below is a fast path only, see _commit_user.
    """
    if not username or not email or not password:
        raise ValidationError(MSG_FIELDS_REQUIRED)
    username = validate_username(username.strip())
    email = validate_email(email)
    validate_password(password)

    if requested_role and requested_role != "user":
        logger.warning(
            "Ignoring self-requested role at signup",
            extra={"requested_role": requested_role[:32], "username": username},
        )

    if _email_taken(db, email):
        raise ConflictError(MSG_EMAIL_TAKEN)
    if _username_taken(db, username):
        raise ConflictError(MSG_USERNAME_TAKEN)

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password, settings.BCRYPT_ROUNDS),
        profile_picture=settings.DEFAULT_AVATAR_URL,
        role="user",
        auth_provider="local",
        is_active=True,
    )
    db.add(user)
    _commit_user(db, user)
    logger.info("User signed up", extra={"user_id": user.id})
    return user


def authenticate(db: Session, email: str | None, password: str | None) -> User:
    """Verify email + password; returns the user or raises NotFound/Unauthorized/Forbidden."""
    if not email or not password:
        raise ValidationError(MSG_FIELDS_REQUIRED)
    user = db.query(User).filter(User.email == email.strip().lower()).first()
    if user is None:
        raise NotFoundError("User not found")
    if not verify_password(password, user.password_hash):
        raise UnauthorizedError(MSG_INVALID_CREDENTIALS)
    if not user.is_active:
        raise ForbiddenError("Account is inactive")
    return user


def _handle_from_profile(db: Session, profile: ExternalProfile) -> str:
    """Derive a free lowercase-alphanumeric handle from the display name or email."""
    base = re.sub(r"[^a-z0-9]", "", (profile.display_name or "").lower())
    if len(base) < USERNAME_MIN_LEN:
        base = re.sub(r"[^a-z0-9]", "", profile.email.split("@", 1)[0].lower())
    if len(base) < USERNAME_MIN_LEN:
        base = "user"
    base = base[: USERNAME_MAX_LEN - 4]
    candidate = base
    while _username_taken(db, candidate):
        candidate = f"{base}{secrets.randbelow(10_000):04d}"
    return candidate


def sign_in_with_external_identity(
    db: Session,
    settings: "Settings",
    profile: ExternalProfile,
) -> User:
    """
    Find the user by (provider, external id), then by email; create one if absent.

    A first-time external sign-in creates the account directly, with no password
    and role 'user'. An existing local account with the same email is linked.
    """
    email = validate_email(profile.email)
    user = (
        db.query(User)
        .filter(
            User.auth_provider == profile.provider,
            User.google_id == profile.external_id,
        )
        .first()
    )
    if user is None:
        user = db.query(User).filter(User.email == email).first()
        if user is not None and not user.google_id:
            user.google_id = profile.external_id
            _commit_user(db, user)
            logger.info("Linked external identity to existing account", extra={"user_id": user.id})

    if user is None:
        user = User(
            username=_handle_from_profile(db, profile),
            email=email,
            password_hash=None,
            profile_picture=profile.avatar_url or settings.DEFAULT_AVATAR_URL,
            role="user",
            google_id=profile.external_id,
            auth_provider=profile.provider,
            is_active=True,
        )
        db.add(user)
        _commit_user(db, user)
        logger.info(
            "User created from external identity",
            extra={"user_id": user.id, "provider": profile.provider},
        )

    if not user.is_active:
        raise ForbiddenError("Account is inactive")
    return user


def get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def list_users(
    db: Session,
    start_index: int = 0,
    limit: int = 9,
    sort: str = "desc",
) -> tuple[list[User], int, int]:
    """Return (page of users, total users, users created in the last 30 days)."""
    order = User.created_at.asc() if sort == "asc" else User.created_at.desc()
    users = db.query(User).order_by(order, User.id).offset(start_index).limit(limit).all()
    total = db.query(func.count(User.id)).scalar() or 0
    month_ago = datetime.now(UTC) - timedelta(days=30)
    last_month = (
        db.query(func.count(User.id)).filter(User.created_at >= month_ago).scalar() or 0
    )
    return users, total, last_month


def update_user(
    db: Session,
    settings: "Settings",
    ctx: AuthenticatedContext,
    user_id: int,
    changes: UserUpdateRequest,
) -> User:
    """Apply profile changes; only the account owner or an admin may do this."""
    if not ctx.can_act_on(user_id):
        raise ForbiddenError("You are not allowed to update this user")
    user = get_user(db, user_id)

    if changes.username is not None:
        user.username = validate_username(changes.username.strip())
    if changes.email is not None:
        user.email = validate_email(changes.email)
    if changes.profile_picture is not None:
        user.profile_picture = changes.profile_picture.strip() or settings.DEFAULT_AVATAR_URL
    if changes.password is not None:
        validate_password(changes.password)
        user.password_hash = hash_password(changes.password, settings.BCRYPT_ROUNDS)
        user.auth_provider = "local"
    return _commit_user(db, user)


def delete_user(db: Session, ctx: AuthenticatedContext, user_id: int) -> None:
    """Delete the account and everything it owns, except published files."""
    if not ctx.can_act_on(user_id):
        raise ForbiddenError("You are not allowed to delete this user")
    user = get_user(db, user_id)

    post_ids = [pid for (pid,) in db.query(Post.id).filter(Post.author_id == user_id).all()]
    comment_filter = Comment.user_id == user_id
    if post_ids:
        comment_filter = or_(comment_filter, Comment.post_id.in_(post_ids))
    comment_ids = [cid for (cid,) in db.query(Comment.id).filter(comment_filter).all()]

    db.query(CommentLike).filter(CommentLike.user_id == user_id).delete(
        synchronize_session=False
    )
    if comment_ids:
        db.query(CommentLike).filter(CommentLike.comment_id.in_(comment_ids)).delete(
            synchronize_session=False
        )
        db.query(Comment).filter(Comment.id.in_(comment_ids)).delete(
            synchronize_session=False
        )
    db.query(Post).filter(Post.author_id == user_id).delete(synchronize_session=False)
    db.query(UserSession).filter(UserSession.user_id == user_id).delete(
        synchronize_session=False
    )
    db.query(UploadedFile).filter(UploadedFile.uploaded_by == user_id).update(
        {UploadedFile.uploaded_by: None}, synchronize_session=False
    )
    db.delete(user)
    db.commit()
    logger.info(
        "User deleted",
        extra={"user_id": user_id, "deleted_by": ctx.user_id, "posts_deleted": len(post_ids)},
    )


def update_role(
    db: Session,
    ctx: AuthenticatedContext,
    user_id: int,
    role: str | None,
) -> User:
    """Change a user's role. Callers are gated on admin; re-checked here."""
    if not ctx.is_admin:
        raise ForbiddenError("Only admins can change user roles")
    if role not in ROLES:
        raise ValidationError("Role must be 'user' or 'admin'")
    user = get_user(db, user_id)
    user.role = role
    db.commit()
    db.refresh(user)
    logger.info(
        "User role updated",
        extra={"user_id": user_id, "role": role, "updated_by": ctx.user_id},
    )
    return user
