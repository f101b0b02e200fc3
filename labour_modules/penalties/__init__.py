"""Penalties: disciplinary deductions applied once by the next payroll run."""

from labour_modules.penalties.models import PenaltyRecord
from labour_modules.penalties.selectors import PenaltySelector
from labour_modules.penalties.service import PenaltyLedger

__all__ = ["PenaltyLedger", "PenaltyRecord", "PenaltySelector"]
