"""Core app configuration, database sessions and password hashing."""

from app.core.config import Settings, get_settings, settings
from app.core.database import SessionLocal, get_db
from app.core.security import PasswordHasher

__all__ = ["PasswordHasher", "SessionLocal", "Settings", "get_db", "get_settings", "settings"]
