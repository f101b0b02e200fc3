"""
Payment Domain Models (``labour_modules.payments.models``).

Responsibility
--------------
Frozen value objects for payroll cash events and the outcome of recording
one.

Invariants enforced
-------------------
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* ``net_amount >= 0`` on every payment.
* For ADVANCE payments ``0 <= settled_amount <= net_amount``.
* Gross (base + overtime + bonus) is the accrued wage value; net is the
  cash handed over.  Reports must never mix the two.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from labour_engines.settlement import SettlementLine


class PaymentKind(Enum):
    """Kinds of payroll cash event."""
    ADVANCE = "advance"
    WAGES = "wages"
    FINAL_SETTLEMENT = "final_settlement"

    @property
    def covers_attendance(self) -> bool:
        return self is not PaymentKind.ADVANCE


@dataclass(frozen=True)
class PaymentRecord:
    """An append-only payroll cash event."""
    id: UUID
    worker_id: int
    project_id: int
    payment_date: date
    kind: PaymentKind
    base_amount: Decimal
    overtime_amount: Decimal
    bonus_amount: Decimal
    deduction_amount: Decimal
    net_amount: Decimal
    payment_method: str
    penalty_deduction: Decimal = Decimal("0")
    advance_deduction: Decimal = Decimal("0")
    settled_amount: Decimal = Decimal("0")
    notes: str | None = None

    @property
    def gross_amount(self) -> Decimal:
        return self.base_amount + self.overtime_amount + self.bonus_amount

    @property
    def outstanding_amount(self) -> Decimal:
        """Unrecovered part of an advance; zero for wage payments."""
        if self.kind is not PaymentKind.ADVANCE:
            return Decimal("0")
        return self.net_amount - self.settled_amount


@dataclass(frozen=True)
class PaymentOutcome:
    """Result of ``PayrollSettlementService.record_payment``."""
    payment_id: UUID
    kind: PaymentKind
    gross_amount: Decimal
    deduction_amount: Decimal
    net_amount: Decimal
    penalty_deduction: Decimal
    advance_deduction: Decimal
    attendance_linked: int = 0
    penalties_marked: int = 0
    settlement_lines: tuple[SettlementLine, ...] = ()

    @property
    def advances_deducted(self) -> Decimal:
        return self.advance_deduction

    @property
    def penalties_deducted(self) -> Decimal:
        return self.penalty_deduction
