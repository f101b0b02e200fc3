"""
Deduction priority engine.

Responsibility:
    Turn a payroll event's gross wage and the worker's outstanding
    penalties and advances into the amounts actually withheld.

Architecture position:
    Engines -- pure calculation, zero I/O, no session, no clock.

Rules:
    1. Penalties have first claim: penalty_deduction = min(penalty_total, gross).
    2. Advances have second claim, capped by what the penalties left:
       advance_deduction = min(advance_total, gross - penalty_deduction).
    3. net = gross - penalty_deduction - advance_deduction.

    Any advance balance beyond the cap stays outstanding for the next run.
    Penalty-first keeps disciplinary deductions from being starved by
    advance recovery.

Failure modes:
    - InvalidAmountError if an input is negative.
    - NegativeNetAmountError from ensure_non_negative_net() when a
      breakdown would pay out less than zero.  The caps make this
      unreachable for breakdowns built here; it is asserted, never clamped.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from labour_engines.tracer import traced_engine
from labour_kernel.domain.amounts import ZERO
from labour_kernel.exceptions import InvalidAmountError, NegativeNetAmountError
from labour_kernel.logging_config import get_logger

logger = get_logger("engines.deductions")


@dataclass(frozen=True)
class DeductionBreakdown:
    """Outcome of applying the deduction priority to one payroll event."""

    gross_amount: Decimal
    penalty_total: Decimal
    advance_total: Decimal
    penalty_deduction: Decimal
    advance_deduction: Decimal

    @property
    def remaining_gross(self) -> Decimal:
        return self.gross_amount - self.penalty_deduction

    @property
    def deduction_amount(self) -> Decimal:
        return self.penalty_deduction + self.advance_deduction

    @property
    def net_amount(self) -> Decimal:
        return self.gross_amount - self.deduction_amount

    @property
    def penalty_shortfall(self) -> Decimal:
        """Outstanding penalty value the gross could not cover."""
        return self.penalty_total - self.penalty_deduction

    @property
    def advance_carried_forward(self) -> Decimal:
        """Advance balance left outstanding for the next payroll run."""
        return self.advance_total - self.advance_deduction


def gross_amount(base_amount: Decimal, overtime_amount: Decimal, bonus_amount: Decimal) -> Decimal:
    """Gross wage: base + overtime + bonus."""
    return base_amount + overtime_amount + bonus_amount


def _require_non_negative(name: str, value: Decimal) -> None:
    if value < ZERO:
        raise InvalidAmountError(name, value)


@traced_engine(
    "deduction_priority",
    "1.0",
    fingerprint_fields=("gross", "penalty_total", "advance_total"),
)
def compute_deductions(
    *,
    gross: Decimal,
    penalty_total: Decimal,
    advance_total: Decimal,
) -> DeductionBreakdown:
    """
    Apply penalty-then-capped-advance priority.

    Preconditions:
        All inputs are non-negative Decimals.

    Postconditions:
        penalty_deduction <= penalty_total, advance_deduction <= advance_total,
        penalty_deduction + advance_deduction <= gross.
    """
    _require_non_negative("gross", gross)
    _require_non_negative("penalty_total", penalty_total)
    _require_non_negative("advance_total", advance_total)

    penalty_deduction = min(penalty_total, gross)
    remaining = gross - penalty_deduction
    advance_deduction = min(advance_total, remaining)

    return DeductionBreakdown(
        gross_amount=gross,
        penalty_total=penalty_total,
        advance_total=advance_total,
        penalty_deduction=penalty_deduction,
        advance_deduction=advance_deduction,
    )


def ensure_non_negative_net(breakdown: DeductionBreakdown) -> None:
    """
    Assert the net payment is not negative.

    Raises:
        NegativeNetAmountError: carrying every figure of the breakdown.
    """
    if breakdown.net_amount >= ZERO:
        return

    logger.error(
        "negative_net_amount_detected",
        extra={
            "gross_amount": str(breakdown.gross_amount),
            "penalty_deduction": str(breakdown.penalty_deduction),
            "advance_deduction": str(breakdown.advance_deduction),
            "net_amount": str(breakdown.net_amount),
        },
    )
    raise NegativeNetAmountError(
        gross_amount=breakdown.gross_amount,
        penalty_total=breakdown.penalty_total,
        advance_total=breakdown.advance_total,
        penalty_deduction=breakdown.penalty_deduction,
        advance_deduction=breakdown.advance_deduction,
        net_amount=breakdown.net_amount,
    )
