"""Schemas for account read and update endpoints. Password hashes never appear here."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from app.core.security import USERNAME_MAX_LEN, USERNAME_MIN_LEN


class AccountResponse(BaseModel):
    """Public view of an account."""

    id: int
    username: str
    email: str
    role: str
    is_active: bool
    first_name: str | None = None
    last_name: str | None = None
    school_name: str | None = None
    phone: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class UserUpdateRequest(BaseModel):
    """
    Partial update. Only fields present in the request body are applied.

    Role, password and activity status are not accepted here.
    """

    username: str | None = Field(
        default=None, min_length=USERNAME_MIN_LEN, max_length=USERNAME_MAX_LEN
    )
    email: EmailStr | None = None
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    school_name: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=32)
