"""Declarative Base shared by every table; alembic/env.py autogenerates from its metadata."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass
