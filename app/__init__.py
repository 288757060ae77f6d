"""Cognify accounts service: registration, JWT login and user management."""

__version__ = "0.1.0"
