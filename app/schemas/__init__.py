"""Pydantic request/response schemas."""

from app.schemas.auth import (
    ApiResponse,
    CurrentUser,
    LoginRequest,
    LoginResponse,
    LoginUser,
    ProfileRequest,
    RefreshRequest,
    RefreshResponse,
    RegisterRequest,
)
from app.schemas.health import HealthResponse
from app.schemas.user import AccountResponse, UserUpdateRequest

__all__ = [
    "AccountResponse",
    "ApiResponse",
    "CurrentUser",
    "HealthResponse",
    "LoginRequest",
    "LoginResponse",
    "LoginUser",
    "ProfileRequest",
    "RefreshRequest",
    "RefreshResponse",
    "RegisterRequest",
    "UserUpdateRequest",
]
