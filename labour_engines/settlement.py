"""
FIFO advance settlement planner.

Responsibility:
    Given the outstanding advances of one worker on one project and an
    amount to recover, decide how much each advance absorbs.  The plan is
    pure; AdvanceSettlementEngine applies it to the stored rows.

Architecture position:
    Engines -- pure calculation, zero I/O.

Ordering:
    Oldest debt first: payment_date ascending, then created_at, then the
    advance id as a final tie-break so two advances paid on the same day
    always settle in the same order.

Invariants enforced:
    - Conservation: sum(line.applied) + unallocated == requested.
    - No advance is driven past its net amount: applied <= outstanding.
    - Advances with nothing outstanding are ignored.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import Decimal
from uuid import UUID

from labour_engines.tracer import traced_engine
from labour_kernel.domain.amounts import ZERO
from labour_kernel.exceptions import InvalidAmountError
from labour_kernel.logging_config import get_logger

logger = get_logger("engines.settlement")


@dataclass(frozen=True)
class AdvanceBalance:
    """One advance payment and how much of it has been recovered."""

    payment_id: UUID
    payment_date: date
    net_amount: Decimal
    settled_amount: Decimal
    created_at: datetime | None = None

    @property
    def outstanding(self) -> Decimal:
        return self.net_amount - self.settled_amount


@dataclass(frozen=True)
class SettlementLine:
    """Recovery applied to one advance."""

    payment_id: UUID
    payment_date: date
    applied: Decimal
    settled_before: Decimal
    net_amount: Decimal

    @property
    def settled_after(self) -> Decimal:
        return self.settled_before + self.applied

    @property
    def outstanding_after(self) -> Decimal:
        return self.net_amount - self.settled_after


@dataclass(frozen=True)
class SettlementPlan:
    requested: Decimal
    lines: tuple[SettlementLine, ...]
    unallocated: Decimal

    @property
    def total_applied(self) -> Decimal:
        return sum((line.applied for line in self.lines), ZERO)

    @property
    def is_complete(self) -> bool:
        return self.unallocated == ZERO


def _instant(value: datetime | None) -> datetime:
    # SQLite hands back naive datetimes; compare everything as naive UTC.
    if value is None:
        return datetime.min
    if value.tzinfo is not None:
        return value.astimezone(UTC).replace(tzinfo=None)
    return value


def fifo_order_key(advance: AdvanceBalance) -> tuple[date, datetime, str]:
    return (advance.payment_date, _instant(advance.created_at), str(advance.payment_id))


@traced_engine(
    "advance_fifo_settlement",
    "1.0",
    fingerprint_fields=("amount", "advances"),
)
def plan_fifo_settlement(
    *,
    amount: Decimal,
    advances: Sequence[AdvanceBalance],
) -> SettlementPlan:
    """
    Allocate ``amount`` across ``advances`` oldest first.

    Each advance receives min(outstanding, remaining) until the amount is
    exhausted.  Whatever cannot be placed is reported as ``unallocated``;
    the caller decides whether that is an error.

    Raises:
        InvalidAmountError: if amount is negative.
    """
    if amount < ZERO:
        raise InvalidAmountError("amount", amount)

    remaining = amount
    lines: list[SettlementLine] = []

    for advance in sorted(advances, key=fifo_order_key):
        if remaining <= ZERO:
            break
        outstanding = advance.outstanding
        if outstanding <= ZERO:
            continue

        applied = min(outstanding, remaining)
        remaining -= applied
        lines.append(
            SettlementLine(
                payment_id=advance.payment_id,
                payment_date=advance.payment_date,
                applied=applied,
                settled_before=advance.settled_amount,
                net_amount=advance.net_amount,
            )
        )

    logger.debug(
        "fifo_settlement_planned",
        extra={
            "requested": str(amount),
            "advances_touched": len(lines),
            "unallocated": str(remaining),
        },
    )

    return SettlementPlan(requested=amount, lines=tuple(lines), unallocated=remaining)
