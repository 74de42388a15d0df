"""
Declarative base for every ORM model of the clinic store.

Conventions shared by all tables:
    - ``id``: uuid4 primary key, stored as a 36-character string so the
      same models run on PostgreSQL and on the SQLite test store.
    - Money: Python ``Decimal`` annotations map to ``Numeric(15, 2)``; the
      portal reports whole rupiah, the two places leave room for discounts.
      Amounts are never floats.
    - Timestamps: ``TrackedBase`` adds ``created_at`` / ``updated_at``
      filled by the database.

This module is the bottom of the kernel's import graph; models import it,
it imports nothing from the project.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, Date, DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """``uuid.UUID`` in Python, ``VARCHAR(36)`` in the database."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(str(value))


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(15, 2),
        datetime: DateTime(timezone=True),
        date: Date(),
        UUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """Abstract base adding database-filled row timestamps."""

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False,
    )
    # ORM updates only; ON CONFLICT updates stamp it explicitly (db.upsert).
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False,
    )
