"""
Credential carrier: issue, resolve and revoke the credential a client presents.

SESSION_STRATEGY=token   -> signed JWT; resolving it is pure (token + secret).
SESSION_STRATEGY=session -> opaque id of a user_sessions row; revocable at signout.
"""

import logging
import secrets
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from resonansi.core.errors import TokenExpiredError, TokenInvalidError
from resonansi.core.security import (
    TOKEN_REJECTED_MESSAGE,
    create_access_token,
    decode_access_token,
)
from resonansi.models import User, UserSession
from resonansi.schemas.auth import AuthenticatedContext

if TYPE_CHECKING:
    from resonansi.core.config import Settings

logger = logging.getLogger(__name__)

SESSION_ID_BYTES = 32


def _as_utc(value: datetime) -> datetime:
    # SQLite returns naive datetimes; everything is stored in UTC.
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def issue_credential(db: Session, user: User, settings: "Settings") -> str:
    """Create the credential for a freshly authenticated user."""
    if settings.SESSION_STRATEGY == "token":
        return create_access_token(sub=user.id, role=user.role, settings=settings)

    record = UserSession(
        id=secrets.token_urlsafe(SESSION_ID_BYTES),
        user_id=user.id,
        expires_at=datetime.now(UTC) + timedelta(minutes=settings.JWT_EXPIRE_MINUTES),
        data={"auth_provider": user.auth_provider},
    )
    db.add(record)
    db.commit()
    return record.id


def resolve_credential(
    db: Session,
    credential: str,
    settings: "Settings",
) -> AuthenticatedContext:
    """
    Turn a presented credential into an AuthenticatedContext.

    Raises TokenExpiredError / TokenInvalidError (both 403 with the same client
    message); the reason is only logged.
    """
    try:
        if settings.SESSION_STRATEGY == "token":
            return _resolve_token(credential, settings)
        return _resolve_session(db, credential)
    except TokenExpiredError:
        logger.warning("Credential rejected", extra={"reason": "expired"})
        raise
    except TokenInvalidError:
        logger.warning("Credential rejected", extra={"reason": "invalid"})
        raise


def _resolve_token(token: str, settings: "Settings") -> AuthenticatedContext:
    claims = decode_access_token(token, settings)
    try:
        user_id = int(claims.sub)
    except (TypeError, ValueError) as e:
        raise TokenInvalidError(TOKEN_REJECTED_MESSAGE) from e
    return AuthenticatedContext(
        user_id=user_id,
        role=claims.role,
        expires_at=claims.expires_at,
    )


def _resolve_session(db: Session, session_id: str) -> AuthenticatedContext:
    record = db.get(UserSession, session_id)
    if record is None:
        raise TokenInvalidError(TOKEN_REJECTED_MESSAGE)
    expires_at = _as_utc(record.expires_at)
    if expires_at <= datetime.now(UTC):
        raise TokenExpiredError(TOKEN_REJECTED_MESSAGE)
    user = db.get(User, record.user_id)
    if user is None or not user.is_active:
        raise TokenInvalidError(TOKEN_REJECTED_MESSAGE)
    return AuthenticatedContext(user_id=user.id, role=user.role, expires_at=expires_at)


def revoke_credential(db: Session, credential: str | None, settings: "Settings") -> bool:
    """
    Drop the server-side record behind a credential. Idempotent.

    Stateless tokens cannot be revoked; the caller only clears the cookie.
    Returns True when a session record was deleted.
    """
    if not credential or settings.SESSION_STRATEGY == "token":
        return False
    deleted = (
        db.query(UserSession)
        .filter(UserSession.id == credential)
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted > 0


def purge_expired_sessions(session: Session, settings: "Settings") -> int:
    """
    Delete session records whose expiry has passed. Idempotent: safe to run repeatedly.

    Returns the number of deleted rows.
    """
    now = datetime.now(UTC)
    deleted_count = (
        session.query(UserSession)
        .filter(UserSession.expires_at <= now)
        .delete(synchronize_session=False)
    )
    session.commit()

    if deleted_count > 0:
        logger.info(
            "Session cleanup: cutoff=%s, sessions_deleted=%s, strategy=%s",
            now.isoformat(),
            deleted_count,
            settings.SESSION_STRATEGY,
        )
    return deleted_count
