"""
Tests for the deduction priority engine.

Covers:
- Penalties take first claim on gross
- Advances capped by what the penalties left
- Carry-forward of uncovered advance balance
- Net amount assertion
- Input validation
"""

from decimal import Decimal

import pytest

from labour_engines.deductions import (
    DeductionBreakdown,
    compute_deductions,
    ensure_non_negative_net,
    gross_amount,
)
from labour_kernel.exceptions import InvalidAmountError, NegativeNetAmountError


class TestGrossAmount:
    def test_sums_components(self):
        assert gross_amount(Decimal("300.00"), Decimal("45.00"), Decimal("5.00")) == Decimal("350.00")

    def test_zero_components(self):
        assert gross_amount(Decimal("300.00"), Decimal("0"), Decimal("0")) == Decimal("300.00")


class TestDeductionPriority:
    """Penalty first, then advances capped by the remaining gross."""

    def test_penalty_then_capped_advance(self):
        """gross 300, penalties 100, advances 400 -> 100 + 200, net 0."""
        breakdown = compute_deductions(
            gross=Decimal("300"),
            penalty_total=Decimal("100"),
            advance_total=Decimal("400"),
        )

        assert breakdown.penalty_deduction == Decimal("100")
        assert breakdown.advance_deduction == Decimal("200")
        assert breakdown.deduction_amount == Decimal("300")
        assert breakdown.net_amount == Decimal("0")
        assert breakdown.advance_carried_forward == Decimal("200")
        assert breakdown.penalty_shortfall == Decimal("0")

    def test_gross_covers_everything(self):
        breakdown = compute_deductions(
            gross=Decimal("1000.00"),
            penalty_total=Decimal("50.00"),
            advance_total=Decimal("200.00"),
        )

        assert breakdown.penalty_deduction == Decimal("50.00")
        assert breakdown.advance_deduction == Decimal("200.00")
        assert breakdown.net_amount == Decimal("750.00")
        assert breakdown.advance_carried_forward == Decimal("0")

    def test_penalties_exceed_gross(self):
        """Penalties larger than gross starve the advances entirely."""
        breakdown = compute_deductions(
            gross=Decimal("300.00"),
            penalty_total=Decimal("450.00"),
            advance_total=Decimal("100.00"),
        )

        assert breakdown.penalty_deduction == Decimal("300.00")
        assert breakdown.advance_deduction == Decimal("0")
        assert breakdown.net_amount == Decimal("0")
        assert breakdown.penalty_shortfall == Decimal("150.00")
        assert breakdown.advance_carried_forward == Decimal("100.00")

    def test_nothing_outstanding(self):
        breakdown = compute_deductions(
            gross=Decimal("600.00"),
            penalty_total=Decimal("0"),
            advance_total=Decimal("0"),
        )

        assert breakdown.deduction_amount == Decimal("0")
        assert breakdown.net_amount == Decimal("600.00")

    def test_zero_gross(self):
        breakdown = compute_deductions(
            gross=Decimal("0"),
            penalty_total=Decimal("10"),
            advance_total=Decimal("10"),
        )

        assert breakdown.penalty_deduction == Decimal("0")
        assert breakdown.advance_deduction == Decimal("0")
        assert breakdown.net_amount == Decimal("0")

    def test_remaining_gross_after_penalties(self):
        breakdown = compute_deductions(
            gross=Decimal("500"),
            penalty_total=Decimal("120"),
            advance_total=Decimal("0"),
        )
        assert breakdown.remaining_gross == Decimal("380")

    @pytest.mark.parametrize("field", ["gross", "penalty_total", "advance_total"])
    def test_negative_input_rejected(self, field):
        kwargs = {
            "gross": Decimal("100"),
            "penalty_total": Decimal("0"),
            "advance_total": Decimal("0"),
        }
        kwargs[field] = Decimal("-1")

        with pytest.raises(InvalidAmountError) as exc_info:
            compute_deductions(**kwargs)

        assert exc_info.value.field == field


class TestNonNegativeNet:
    def test_valid_breakdown_passes(self):
        breakdown = compute_deductions(
            gross=Decimal("300"),
            penalty_total=Decimal("100"),
            advance_total=Decimal("400"),
        )
        ensure_non_negative_net(breakdown)

    def test_negative_net_raises_with_breakdown(self, captured_logs):
        """A hand-built breakdown that overdraws is rejected, never clamped."""
        breakdown = DeductionBreakdown(
            gross_amount=Decimal("100"),
            penalty_total=Decimal("80"),
            advance_total=Decimal("50"),
            penalty_deduction=Decimal("80"),
            advance_deduction=Decimal("50"),
        )

        with pytest.raises(NegativeNetAmountError) as exc_info:
            ensure_non_negative_net(breakdown)

        err = exc_info.value
        assert err.net_amount == Decimal("-30")
        assert err.deduction_amount == Decimal("130")
        assert err.breakdown["gross_amount"] == "100"
        assert err.code == "NEGATIVE_NET_AMOUNT"

        logs = captured_logs()
        assert any(r["message"] == "negative_net_amount_detected" for r in logs)
