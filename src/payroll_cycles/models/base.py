"""Declarative base and timestamp mixins shared by all tables."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, Uuid, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models.

    UUIDs map to the generic Uuid type so the schema builds on both
    PostgreSQL and SQLite.
    """

    type_annotation_map = {
        UUID: Uuid(as_uuid=True),
        datetime: DateTime(timezone=True),
    }


class CreatedAtMixin:
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)


class UpdatedAtMixin:
    """Set by the database on insert and by the ORM on update.

    Core UPDATEs and upserts bypass onupdate and pass updated_at explicitly.
    """

    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
