"""ORM model for server-side session records (SESSION_STRATEGY=session)."""

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, func

from resonansi.models.base import Base


class UserSession(Base):
    """One signed-in browser/device; id is the opaque value carried by the client."""

    __tablename__ = "user_sessions"

    id = Column(String(64), primary_key=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
