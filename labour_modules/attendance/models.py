"""
Attendance Domain Models (``labour_modules.attendance.models``).

Responsibility
--------------
Frozen value objects for one worker's presence on one project on one day,
and the read-side projections built from it.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* Hours are ``Decimal`` -- NEVER ``float``.
* State moves DRAFT -> CONFIRMED only; a record with ``linked_payment_id``
  is paid and frozen.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class AttendanceKind(Enum):
    """How much of the day was worked."""
    FULL = "full"
    HALF = "half"
    HOURLY = "hourly"
    ABSENT = "absent"


class AttendanceState(Enum):
    """Attendance lifecycle states."""
    DRAFT = "draft"
    CONFIRMED = "confirmed"


@dataclass(frozen=True)
class AttendanceRecord:
    """One attendance fact per worker, project and day."""
    id: UUID
    worker_id: int
    project_id: int
    attendance_date: date
    kind: AttendanceKind
    hours_worked: Decimal
    overtime_hours: Decimal
    state: AttendanceState
    marked_by_id: UUID
    substitute_worker_id: int | None = None
    linked_payment_id: UUID | None = None
    confirmed_by_id: UUID | None = None
    confirmed_at: datetime | None = None
    notes: str | None = None

    @property
    def is_paid(self) -> bool:
        return self.linked_payment_id is not None


@dataclass(frozen=True)
class AttendanceListing:
    """Attendance row with the worker name and the paying payment's date."""
    record: AttendanceRecord
    worker_name: str | None = None
    payment_date: date | None = None


@dataclass(frozen=True)
class BulkConfirmResult:
    """Outcome of confirming a batch of attendance ids."""
    confirmed: tuple[UUID, ...] = ()
    already_confirmed: tuple[UUID, ...] = ()
    skipped_paid: tuple[UUID, ...] = ()
    not_found: tuple[UUID, ...] = ()


@dataclass(frozen=True)
class UnpaidWageEstimate:
    """Advisory value of confirmed attendance not yet covered by a payment."""
    worker_id: int
    project_id: int
    up_to: date
    days: int
    day_equivalents: Decimal
    daily_rate: Decimal
    base_amount: Decimal
    overtime_amount: Decimal

    @property
    def gross_amount(self) -> Decimal:
        return self.base_amount + self.overtime_amount
