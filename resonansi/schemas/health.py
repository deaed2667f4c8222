"""Health check response."""

from typing import Literal

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Liveness plus the two dependencies every request relies on: database and file storage."""

    status: Literal["ok", "degraded"] = Field(
        default="ok",
        description="'degraded' when the database cannot be reached",
    )
    environment: Literal["dev", "prod"]
    version: str = Field(description="API version reported by the app")
    database: Literal["connected", "disconnected"]
    storage_backend: Literal["filesystem", "embedded", "external"]
