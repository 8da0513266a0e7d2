"""SQLAlchemy Base and Mixins for the call router database.

Provides:
- DeclarativeBase for all ORM models
- UUIDMixin for string UUID primary keys
- TimestampMixin for created_at/updated_at
"""
from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import DateTime, String, func
from sqlalchemy.types import JSON
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid4())


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""

    # JSON columns for stored routing configuration
    type_annotation_map = {
        dict[str, Any]: JSON,
        list[Any]: JSON,
    }


class UUIDMixin:
    """Mixin providing a UUID primary key.

    Ids are kept as canonical strings; callers (carrier webhooks, the
    dashboard) treat agent and record ids as opaque strings.
    """

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
        nullable=False,
    )


class TimestampMixin:
    """Mixin providing created_at and updated_at timestamps.

    Automatically sets created_at on insert and updated_at on update.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
