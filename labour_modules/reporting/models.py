"""
Reporting Models (``labour_modules.reporting.models``).

Read-only projections for financial reports.  Cost figures are accrual
based (gross wage value earned); cash figures are what left the till.
The two are kept in separate fields and never netted against each other.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal


@dataclass(frozen=True)
class ProjectLabourCost:
    """Accrual labour cost of a project."""
    project_id: int
    gross_cost: Decimal
    applied_penalties: Decimal
    wage_payment_count: int = 0

    @property
    def net_labour_cost(self) -> Decimal:
        return self.gross_cost - self.applied_penalties


@dataclass(frozen=True)
class WorkerPosition:
    """What a worker owes and is owed on one project right now."""
    worker_id: int
    project_id: int
    outstanding_advances: Decimal
    outstanding_penalties: Decimal
    unpaid_attendance_days: int


@dataclass(frozen=True)
class DailyLabourSummary:
    """Attendance and cash activity for one day."""
    day: date
    project_id: int | None
    attendance_by_kind: dict[str, int] = field(default_factory=dict)
    gross_wages: Decimal = Decimal("0")
    advances_paid: Decimal = Decimal("0")
    penalties_applied: Decimal = Decimal("0")
    net_cash_disbursed: Decimal = Decimal("0")

    @property
    def attendance_count(self) -> int:
        return sum(self.attendance_by_kind.values())
