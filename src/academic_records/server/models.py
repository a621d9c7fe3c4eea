"""Pydantic request/response models for the academic-records HTTP server."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""

    id: str = Field(min_length=1)
    password: str = Field(min_length=1)


class LoginResponse(BaseModel):
    """Response body for POST /auth/login."""

    access_token: str = Field(serialization_alias="accessToken")
    need_to_change: bool = Field(serialization_alias="needToChange")


class RefreshResponse(BaseModel):
    """Response body for POST /auth/refresh."""

    access_token: str = Field(serialization_alias="accessToken")


class MessageResponse(BaseModel):
    """Generic message body used for client errors."""

    message: str
    error: Optional[str] = None


class ErrorResponse(BaseModel):
    """Stable error envelope for failed queries."""

    error: str = ""
    message: str


class HealthResponse(BaseModel):
    """Response body for GET /health."""

    status: str = "ok"
    service: str = "academic-records"
    identity_count: int = 0
    activity_count: int = 0
    audit_pending: int = 0
