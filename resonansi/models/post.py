"""ORM model for blog posts."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, func

from resonansi.models.base import Base

CATEGORIES = ("pendidikan", "sosial", "ekonomi", "politik")


class Post(Base):
    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(100), nullable=False)
    slug = Column(String(255), nullable=False, unique=True, index=True)
    content = Column(Text, nullable=False)
    category = Column(String(32), nullable=False, index=True)
    image = Column(String(2048), nullable=False)
    author_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        index=True,
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
