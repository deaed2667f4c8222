"""Request-scoped dependencies shared by the v1 routers."""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from resonansi.core.config import Settings
from resonansi.core.database import get_db
from resonansi.services.storage import StorageBackend


def get_request_settings(request: Request) -> Settings:
    """Settings the app was created with (set once by create_app)."""
    return request.app.state.settings


def get_storage(request: Request) -> StorageBackend:
    """The storage backend selected for this deployment."""
    return request.app.state.storage


SettingsDep = Annotated[Settings, Depends(get_request_settings)]
DbDep = Annotated[Session, Depends(get_db)]
StorageDep = Annotated[StorageBackend, Depends(get_storage)]
