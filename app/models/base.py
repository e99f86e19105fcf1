"""Declarative base shared by the identity and RBAC models."""

from datetime import UTC, datetime

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Metadata root; alembic/env.py autogenerates against Base.metadata."""


def utcnow() -> datetime:
    """Python-side default for timestamp columns (microsecond precision on every backend)."""
    return datetime.now(UTC)
