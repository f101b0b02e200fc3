"""
Tests for the FIFO advance settlement planner.

Covers:
- Oldest advance absorbs recovery first
- Partial recovery of the last advance touched
- Same-day tie-breaks on created_at then id
- Unallocated remainder when the amount exceeds what is outstanding
- Fully recovered advances are skipped
"""

from datetime import UTC, date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

import pytest

from labour_engines.settlement import (
    AdvanceBalance,
    fifo_order_key,
    plan_fifo_settlement,
)
from labour_kernel.exceptions import InvalidAmountError


def _advance(net, settled="0", on=date(2025, 1, 1), created_at=None, payment_id=None):
    return AdvanceBalance(
        payment_id=payment_id or uuid4(),
        payment_date=on,
        net_amount=Decimal(net),
        settled_amount=Decimal(settled),
        created_at=created_at,
    )


class TestFifoSettlement:
    """Oldest debt first."""

    def test_two_advances_partial_second(self):
        """Advances 500 (Jan 1) and 300 (Jan 5), settle 600 -> 500 + 100."""
        first = _advance("500", on=date(2025, 1, 1))
        second = _advance("300", on=date(2025, 1, 5))

        # Passed newest first on purpose; the planner sorts.
        plan = plan_fifo_settlement(amount=Decimal("600"), advances=[second, first])

        assert plan.is_complete
        assert plan.total_applied == Decimal("600")
        assert [line.payment_id for line in plan.lines] == [first.payment_id, second.payment_id]
        assert plan.lines[0].applied == Decimal("500")
        assert plan.lines[0].outstanding_after == Decimal("0")
        assert plan.lines[1].applied == Decimal("100")
        assert plan.lines[1].settled_after == Decimal("100")
        assert plan.lines[1].outstanding_after == Decimal("200")

    def test_partially_settled_advance_uses_remainder(self):
        advance = _advance("500", settled="350")

        plan = plan_fifo_settlement(amount=Decimal("100"), advances=[advance])

        assert plan.lines[0].applied == Decimal("100")
        assert plan.lines[0].settled_before == Decimal("350")
        assert plan.lines[0].settled_after == Decimal("450")

    def test_fully_settled_advances_skipped(self):
        done = _advance("200", settled="200", on=date(2024, 12, 1))
        open_ = _advance("300", on=date(2025, 1, 1))

        plan = plan_fifo_settlement(amount=Decimal("50"), advances=[done, open_])

        assert len(plan.lines) == 1
        assert plan.lines[0].payment_id == open_.payment_id

    def test_amount_stops_before_later_advances(self):
        advances = [_advance("100", on=date(2025, 1, d)) for d in (1, 2, 3)]

        plan = plan_fifo_settlement(amount=Decimal("100"), advances=advances)

        assert len(plan.lines) == 1
        assert plan.lines[0].payment_date == date(2025, 1, 1)

    def test_overflow_reported_as_unallocated(self):
        plan = plan_fifo_settlement(
            amount=Decimal("900"),
            advances=[_advance("500"), _advance("300", on=date(2025, 1, 2))],
        )

        assert not plan.is_complete
        assert plan.total_applied == Decimal("800")
        assert plan.unallocated == Decimal("100")

    def test_zero_amount_touches_nothing(self):
        plan = plan_fifo_settlement(amount=Decimal("0"), advances=[_advance("500")])

        assert plan.lines == ()
        assert plan.is_complete

    def test_no_advances(self):
        plan = plan_fifo_settlement(amount=Decimal("10"), advances=[])

        assert plan.lines == ()
        assert plan.unallocated == Decimal("10")

    def test_negative_amount_rejected(self):
        with pytest.raises(InvalidAmountError):
            plan_fifo_settlement(amount=Decimal("-1"), advances=[_advance("500")])


class TestFifoOrdering:
    def test_same_day_ordered_by_created_at(self):
        later = _advance("100", created_at=datetime(2025, 1, 1, 15, tzinfo=UTC))
        earlier = _advance("100", created_at=datetime(2025, 1, 1, 9, tzinfo=UTC))

        assert sorted([later, earlier], key=fifo_order_key) == [earlier, later]

    def test_same_instant_ordered_by_id(self):
        stamp = datetime(2025, 1, 1, 9, tzinfo=UTC)
        a = _advance("100", created_at=stamp, payment_id=UUID(int=1))
        b = _advance("100", created_at=stamp, payment_id=UUID(int=2))

        assert sorted([b, a], key=fifo_order_key) == [a, b]

    def test_naive_and_aware_timestamps_compare(self):
        """Stored rows come back naive on SQLite; fresh ones are aware."""
        naive = _advance("100", created_at=datetime(2025, 1, 1, 9))
        aware = _advance("100", created_at=datetime(2025, 1, 1, 10, tzinfo=UTC))

        assert sorted([aware, naive], key=fifo_order_key) == [naive, aware]
