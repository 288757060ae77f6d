"""SQLAlchemy declarative Base shared by all models and Alembic autogenerate."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass
