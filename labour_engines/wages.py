"""
Attendance wage estimator.

Responsibility:
    Estimate the base and overtime value of attendance days from a worker's
    daily rate.  Advisory only: payroll amounts are entered by the payer,
    this engine lets a supervisor see what confirmed, unpaid attendance is
    worth before recording the payment.

Day fractions:
    full    -> 1
    half    -> half_day_factor
    hourly  -> hours_worked / standard_hours
    absent  -> 0

Overtime:
    overtime_hours * daily_rate / standard_hours * overtime_multiplier
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from labour_engines.tracer import traced_engine
from labour_kernel.domain.amounts import ZERO, quantize


@dataclass(frozen=True)
class WorkDay:
    kind: str
    hours_worked: Decimal = ZERO
    overtime_hours: Decimal = ZERO


@dataclass(frozen=True)
class WageEstimate:
    days: int
    day_equivalents: Decimal
    base_amount: Decimal
    overtime_amount: Decimal

    @property
    def gross_amount(self) -> Decimal:
        return self.base_amount + self.overtime_amount


def day_fraction(
    kind: str,
    hours_worked: Decimal,
    standard_hours: Decimal,
    half_day_factor: Decimal,
) -> Decimal:
    if kind == "full":
        return Decimal("1")
    if kind == "half":
        return half_day_factor
    if kind == "hourly":
        return hours_worked / standard_hours
    if kind == "absent":
        return ZERO
    raise ValueError(f"Unknown attendance kind: {kind}")


@traced_engine(
    "wage_estimate",
    "1.0",
    fingerprint_fields=("days", "daily_rate"),
)
def estimate_wages(
    *,
    days: Sequence[WorkDay],
    daily_rate: Decimal,
    standard_hours: Decimal,
    overtime_multiplier: Decimal,
    half_day_factor: Decimal,
    places: int = 2,
) -> WageEstimate:
    """Sum the estimated base and overtime value of ``days``."""
    equivalents = ZERO
    overtime_hours = ZERO
    for day in days:
        equivalents += day_fraction(day.kind, day.hours_worked, standard_hours, half_day_factor)
        if day.kind != "absent":
            overtime_hours += day.overtime_hours

    hourly_rate = daily_rate / standard_hours
    return WageEstimate(
        days=len(days),
        day_equivalents=equivalents,
        base_amount=quantize(equivalents * daily_rate, places),
        overtime_amount=quantize(overtime_hours * hourly_rate * overtime_multiplier, places),
    )
