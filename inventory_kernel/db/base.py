"""
Declarative base shared by every inventory model.

Each table gets a uuid4 surrogate ``id`` stored as a 36-character string.
For inventory units the id is incidental; their identity is the
(sku, bin_location) pair, enforced by a unique constraint on the model.
Stock counts are BigInteger and timestamps are timezone-aware.
"""

from datetime import datetime
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """Python ``UUID`` in, String(36) in the database."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {
        UUID: UUIDString(),
        datetime: DateTime(timezone=True),
        int: BigInteger,
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)
