"""Pydantic request/response schemas."""

from pickpool.schemas.auth import (
    CurrentUser,
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    PublicUser,
    RefreshResponse,
    RegisterRequest,
    RegisterResponse,
)
from pickpool.schemas.health import HealthResponse

__all__ = [
    "CurrentUser",
    "ErrorResponse",
    "HealthResponse",
    "LoginRequest",
    "LoginResponse",
    "MessageResponse",
    "PublicUser",
    "RefreshResponse",
    "RegisterRequest",
    "RegisterResponse",
]
