"""
Labour Kernel

Infrastructure for the construction labour workforce ledger:
- Append-only payment records with guarded advance settlement
- Attendance frozen once linked to a payment
- Explicit unit-of-work transactions with per-worker locking
- Typed errors and structured JSON logging
"""

__version__ = "0.1.0"
