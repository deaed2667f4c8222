"""Password hashing and JWT creation/verification for authentication."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
import jwt

from resonansi.core.config import Settings
from resonansi.core.errors import TokenExpiredError, TokenInvalidError

# Client-facing text is the same for both failure modes; callers log the distinction.
TOKEN_REJECTED_MESSAGE = "Forbidden! Invalid or expired token."


@dataclass(frozen=True)
class TokenClaims:
    """Verified claim set of an access token."""

    sub: str
    role: str
    issued_at: datetime
    expires_at: datetime


def hash_password(plain_password: str, rounds: int = 10) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    # bcrypt has a 72-byte limit; truncate to avoid errors.
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed: str | None) -> bool:
    """Verify a plain password against a stored hash. False when no hash is stored."""
    if not hashed:
        return False
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def create_access_token(
    sub: str | int,
    role: str,
    settings: Settings,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT access token with sub (user id), role, iat and exp."""
    now = datetime.now(UTC)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
    payload: dict[str, Any] = {
        "sub": str(sub),
        "role": role,
        "iat": now,
        "exp": now + expires_delta,
    }
    return jwt.encode(
        payload,
        settings.JWT_SECRET.get_secret_value(),
        algorithm=settings.JWT_ALGORITHM,
    )


def decode_access_token(token: str, settings: Settings) -> TokenClaims:
    """
    Decode and validate a JWT issued by create_access_token.

    Raises TokenExpiredError when exp has passed (checked before anything else
    about the payload), TokenInvalidError for a bad signature, malformed token
    or missing claims.
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET.get_secret_value(),
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": ["exp", "iat", "sub"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise TokenExpiredError(TOKEN_REJECTED_MESSAGE) from e
    except jwt.PyJWTError as e:
        raise TokenInvalidError(TOKEN_REJECTED_MESSAGE) from e

    sub = payload.get("sub")
    role = payload.get("role")
    if not sub or not isinstance(role, str) or not role:
        raise TokenInvalidError(TOKEN_REJECTED_MESSAGE)
    return TokenClaims(
        sub=str(sub),
        role=role,
        issued_at=datetime.fromtimestamp(payload["iat"], UTC),
        expires_at=datetime.fromtimestamp(payload["exp"], UTC),
    )
