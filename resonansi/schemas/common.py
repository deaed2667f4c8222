"""Shared response envelopes."""

from typing import Any

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Body of every error response."""

    success: bool = False
    statusCode: int
    message: str
    details: Any | None = None
    stack: str | None = Field(default=None, description="Only outside production")


class MessageResponse(BaseModel):
    success: bool = True
    message: str
