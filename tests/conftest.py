"""Test environment: settings are read at import time, so set them before app modules load."""

import os

os.environ.setdefault("APP_ENV", "dev")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret-key-that-is-at-least-32-bytes-long")
os.environ.setdefault("JWT_EXPIRATION_MS", "3600000")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
