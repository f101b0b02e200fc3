"""
Module: labour_engines
Responsibility:
    Pure calculation engines for payroll settlement.  Canonical import
    surface for labour_modules.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  May import
    labour_kernel.domain and labour_kernel.exceptions only.

Invariants enforced:
    - Purity: engines never read the clock or the database.
    - Decimal-only arithmetic; floats are refused at the ledger boundary.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from labour_engines.deductions import compute_deductions
    from labour_engines.settlement import plan_fifo_settlement
    from labour_engines.wages import estimate_wages
"""

from labour_engines.deductions import (
    DeductionBreakdown,
    compute_deductions,
    ensure_non_negative_net,
    gross_amount,
)
from labour_engines.settlement import (
    AdvanceBalance,
    SettlementLine,
    SettlementPlan,
    fifo_order_key,
    plan_fifo_settlement,
)
from labour_engines.tracer import compute_input_fingerprint, traced_engine
from labour_engines.wages import WageEstimate, WorkDay, day_fraction, estimate_wages

__all__ = [
    "AdvanceBalance",
    "DeductionBreakdown",
    "SettlementLine",
    "SettlementPlan",
    "WageEstimate",
    "WorkDay",
    "compute_deductions",
    "compute_input_fingerprint",
    "day_fraction",
    "ensure_non_negative_net",
    "estimate_wages",
    "fifo_order_key",
    "gross_amount",
    "plan_fifo_settlement",
    "traced_engine",
]
