"""
Module: expense_kernel.db.types
Responsibility: Column length limits and type decorators shared by every
    model.
Architecture position: Kernel > DB.  MUST NOT import from models/,
    services/, selectors/ or domain/.

CRITICAL: No floats for money anywhere in the kernel.  Monetary columns are
integer minor units (BIGINT); conversion to and from decimals happens
only in expense_kernel.domain.money.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator

IDEMPOTENCY_KEY_MAX_LENGTH = 255
DESCRIPTION_MAX_LENGTH = 500


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime normalized to UTC.

    PostgreSQL keeps the offset; SQLite drops it and hands back naive
    values.  Binding converts every value to UTC first so stored values
    compare correctly as strings, and loading re-attaches UTC to naive
    results.

    Naive datetimes passed in are treated as UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value: datetime | None, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
