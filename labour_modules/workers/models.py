"""
Worker Domain Models (``labour_modules.workers.models``).

Workers are owned by the wider ERP; the ledger only needs the daily rate,
the active flag and enough identity to attribute attendance and pay.
"""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class Worker:
    """A labourer that attendance and payments are recorded against."""
    id: int
    name: str
    daily_rate: Decimal
    is_active: bool = True
    skill: str | None = None
