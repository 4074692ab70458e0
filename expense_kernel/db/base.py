"""
Module: expense_kernel.db.base
Responsibility: Declarative base for all SQLAlchemy ORM models.  Provides
    the UUID primary key convention and the type annotation map that keeps
    column types consistent across the schema.
Architecture position: Kernel > DB.  Lowest-level import target within the
    kernel; MUST NOT import from models/, services/, selectors/ or domain/.

Invariants enforced:
    - UUID primary keys: every model inherits a uuid4-generated primary key.
    - Money is never a float column: ``int`` maps to BigInteger so minor
      unit amounts are stored as exact integers.
    - Timestamps are timezone-aware UTC (see db/types.py UTCDateTime).
"""

from datetime import datetime
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from expense_kernel.db.types import UTCDateTime


class UUIDString(TypeDecorator):
    """
    UUID type stored as String(36) for cross-database portability.

    Converts Python UUID objects to their 36-character string form on the
    way in and back to UUID on the way out.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return PyUUID(value)
        return None


class Base(DeclarativeBase):
    """
    Declarative base for all expense kernel models.

    Guarantees:
        - id is always a uuid4-generated UUID stored as String(36).
        - int maps to BigInteger (minor units never overflow 32 bits).
        - datetime maps to UTCDateTime (always timezone-aware on load).
    """

    type_annotation_map: ClassVar[dict] = {
        datetime: UTCDateTime(),
        PyUUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )
