"""ORM model for user accounts (credentials, role, activity status, profile)."""

import enum

from sqlalchemy import Boolean, Column, DateTime, Integer, String, func

from app.models.base import Base


class UserRole(str, enum.Enum):
    """Closed set of account roles; stored by canonical upper-case name."""

    STUDENT = "STUDENT"
    TEACHER = "TEACHER"
    ADMIN = "ADMIN"

    @classmethod
    def parse(cls, value: "str | UserRole") -> "UserRole":
        """Case-insensitive lookup. Raises ValueError for anything outside the set."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"Invalid role: {value!r}")
        try:
            return cls[value.strip().upper()]
        except KeyError:
            raise ValueError(f"Invalid role: {value}") from None


class User(Base):
    """
    User account for registration, JWT login and role-based access.

    role: one of UserRole (STUDENT, TEACHER, ADMIN). Username and email are
    unique at the database level; the service layer pre-checks them only to
    produce a clean error.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(50), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False, default=UserRole.STUDENT.value)
    is_active = Column(Boolean, nullable=False, default=True)

    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    school_name = Column(String(255), nullable=True)
    phone = Column(String(32), nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r} role={self.role}>"
