"""
LabourConfig schema.

Frozen dataclasses for the effective configuration.  The loader parses
merged YAML into these types; nothing else constructs them outside tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class DatabaseConfig:
    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    busy_timeout_seconds: int = 30


@dataclass(frozen=True)
class PayrollConfig:
    """Money precision, accepted methods and attendance wage factors."""

    amount_places: int = 2
    payment_methods: frozenset[str] = frozenset({"cash", "bank", "upi", "cheque"})
    penalty_kinds: frozenset[str] = frozenset(
        {"late_arrival", "absence", "misconduct", "damage", "safety_violation", "other"}
    )
    standard_hours_per_day: Decimal = Decimal("8")
    overtime_multiplier: Decimal = Decimal("1.5")
    half_day_factor: Decimal = Decimal("0.5")
    max_hours_per_day: Decimal = Decimal("24")


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class LabourConfig:
    database: DatabaseConfig
    payroll: PayrollConfig = field(default_factory=PayrollConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    checksum: str = ""
