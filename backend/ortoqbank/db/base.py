"""Declarative base for all models.

Models live in ``ortoqbank.models``; importing that package registers every
table on ``Base.metadata`` (Alembic's env.py and the test fixtures do so).
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass
