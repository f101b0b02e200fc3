"""
Module: labour_kernel.db.base
Responsibility: Declarative base and column types shared by every ledger
    table: UUID keys stored as text, UTC timestamps, Decimal money, and the
    audit columns carried by attendance, payment, penalty and worker rows.
Architecture position: Kernel > DB.  Imported by every ``labour_modules``
    orm.py; imports nothing from services, selectors or modules.

Invariants enforced:
    - Ledger-created rows get a uuid4 key.  Workers override ``id`` with the
      external integer id.
    - Money annotated as Decimal maps to Numeric(38, 9).  Floats never
      reach a money column.
    - Timestamps are stored in UTC and always read back timezone-aware,
      including on SQLite which keeps no offset.
    - ``created_by_id`` is NOT NULL: every row names the actor who wrote it.
"""

from datetime import UTC, date, datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import Date, DateTime, Integer, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUID held as its 36-character text form on every backend."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else PyUUID(value)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime normalised to UTC.

    Aware values are converted to UTC before binding; naive values read back
    (SQLite, server defaults) are taken to be UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            return value.astimezone(UTC)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


class Base(DeclarativeBase):
    """Declarative base; ``id`` defaults to a uuid4 key."""

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: UTCDateTime(),
        date: Date,
        PyUUID: UUIDString(),
        # Plain Integer keeps SQLite rowid aliasing for worker ids.
        int: Integer,
    }

    id: Mapped[PyUUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """
    Abstract base adding who-and-when columns.

    These are audit metadata rather than ledger data: the immutability
    listeners let them change on an otherwise frozen row (see AUDIT_FIELDS).
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), server_default=func.now(), nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), server_default=func.now(), onupdate=func.now(), nullable=False,
    )
    created_by_id: Mapped[PyUUID] = mapped_column(UUIDString(), nullable=False)
    updated_by_id: Mapped[PyUUID | None] = mapped_column(UUIDString(), nullable=True)


AUDIT_FIELDS = frozenset({"updated_at", "updated_by_id"})

UUID = PyUUID
