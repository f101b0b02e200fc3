"""Payments: advances, wage payments and the payroll settlement orchestrator."""

from labour_modules.payments.advances import AdvanceSettlementEngine
from labour_modules.payments.models import PaymentKind, PaymentOutcome, PaymentRecord
from labour_modules.payments.selectors import PaymentSelector
from labour_modules.payments.service import PayrollSettlementService

__all__ = [
    "AdvanceSettlementEngine",
    "PaymentKind",
    "PaymentOutcome",
    "PaymentRecord",
    "PaymentSelector",
    "PayrollSettlementService",
]
