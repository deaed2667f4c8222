"""ORM model for user accounts (local and Google sign-in, role-based access)."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, func

from resonansi.models.base import Base

ROLES = ("user", "admin")
AUTH_PROVIDERS = ("local", "google")


class User(Base):
    """
    User account for authentication and role-based access control.

    role: 'admin' or 'user'. password_hash is set iff auth_provider == 'local'.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(20), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=True)
    profile_picture = Column(String(2048), nullable=False, default="")
    role = Column(String(32), nullable=False, default="user")
    google_id = Column(String(255), nullable=True, index=True)
    auth_provider = Column(String(32), nullable=False, default="local")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
