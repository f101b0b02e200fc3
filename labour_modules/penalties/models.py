"""
Penalty Domain Models (``labour_modules.penalties.models``).

A penalty is a disciplinary deduction recorded against a worker on a
project and withheld from the next wage payment.  ``is_deducted`` flips
false -> true exactly once, tied to one payment.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID


@dataclass(frozen=True)
class PenaltyRecord:
    """A disciplinary deduction pending (or applied) against payroll."""
    id: UUID
    worker_id: int
    project_id: int
    penalty_date: date
    kind: str
    amount: Decimal
    reason: str | None = None
    is_deducted: bool = False
    deducted_by_payment_id: UUID | None = None
    deducted_at: datetime | None = None
