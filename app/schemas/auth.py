"""Request/response schemas for auth endpoints."""

from typing import Any

from pydantic import BaseModel, EmailStr, Field

from app.core.security import (
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    USERNAME_MAX_LEN,
    USERNAME_MIN_LEN,
)


class ProfileRequest(BaseModel):
    """Optional profile details supplied at registration."""

    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    school_name: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=32)


class RegisterRequest(BaseModel):
    """New account details. Role is matched case-insensitively (student, teacher, admin)."""

    username: str = Field(
        ...,
        min_length=USERNAME_MIN_LEN,
        max_length=USERNAME_MAX_LEN,
        description="Username",
    )
    email: EmailStr = Field(..., description="Email address")
    password: str = Field(
        ...,
        min_length=PASSWORD_MIN_LEN,
        max_length=PASSWORD_MAX_LEN,
        description="Password",
    )
    role: str = Field(..., min_length=1, max_length=32, description="Account role")
    profile: ProfileRequest | None = None


class LoginRequest(BaseModel):
    """Credentials for login."""

    username: str = Field(..., min_length=1, max_length=255, description="Username")
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN, description="Password")


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1, description="Refresh token from login")


class LoginUser(BaseModel):
    """User summary embedded in the login response; role is lower-case."""

    id: int
    username: str
    role: str


class LoginResponse(BaseModel):
    """Tokens returned after successful login."""

    success: bool = True
    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Access token lifetime in seconds")
    user: LoginUser


class RefreshResponse(BaseModel):
    success: bool = True
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class ApiResponse(BaseModel):
    """Generic envelope: success flag, human-readable message, optional payload."""

    success: bool
    message: str
    data: Any | None = None


class CurrentUser(BaseModel):
    """Authenticated user (id, username, role) for dependency injection."""

    id: int
    username: str
    role: str

    class Config:
        from_attributes = True
