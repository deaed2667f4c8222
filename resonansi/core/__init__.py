"""Core app configuration, database and errors."""

from resonansi.core.config import Settings, get_settings
from resonansi.core.database import build_session_factory, get_db

__all__ = ["Settings", "build_session_factory", "get_db", "get_settings"]
