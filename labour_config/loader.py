"""
Configuration Loader (``labour_config.loader``).

Responsibility
--------------
Reads YAML files, deep-merges overrides onto the packaged defaults and
parses the result into the frozen ``labour_config.schema`` dataclasses.
Runtime callers use ``labour_config.get_active_config()`` instead.

Invariants enforced
-------------------
* Every parse error raises ``ValueError`` naming the offending key.
* Decimal settings are parsed from strings, never via float.
* ``compute_checksum`` is a deterministic SHA-256 of the merged document.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
import logging
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from labour_config.schema import DatabaseConfig, LabourConfig, LoggingConfig, PayrollConfig

_LOG_LEVELS = frozenset(logging.getLevelNamesMapping())


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return ``base`` with ``override`` merged in; nested mappings merge, others replace."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _decimal(section: dict[str, Any], key: str, default: Decimal, positive: bool = True) -> Decimal:
    raw = section.get(key, default)
    if isinstance(raw, float):
        raw = repr(raw)
    try:
        value = Decimal(str(raw))
    except InvalidOperation:
        raise ValueError(f"payroll.{key}: {raw!r} is not a decimal") from None
    if positive and value <= 0:
        raise ValueError(f"payroll.{key}: must be positive, got {value}")
    return value


def _int(section: dict[str, Any], prefix: str, key: str, default: int, minimum: int = 0) -> int:
    raw = section.get(key, default)
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise ValueError(f"{prefix}.{key}: expected an integer, got {raw!r}")
    if raw < minimum:
        raise ValueError(f"{prefix}.{key}: must be >= {minimum}, got {raw}")
    return raw


def _names(section: dict[str, Any], key: str, default: frozenset[str]) -> frozenset[str]:
    raw = section.get(key)
    if raw is None:
        return default
    if not isinstance(raw, list) or not raw or not all(isinstance(v, str) and v for v in raw):
        raise ValueError(f"payroll.{key}: expected a non-empty list of names")
    return frozenset(v.strip().lower() for v in raw)


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    url = data.get("url")
    if not isinstance(url, str) or not url:
        raise ValueError("database.url: required")
    return DatabaseConfig(
        url=url,
        echo=bool(data.get("echo", False)),
        pool_size=_int(data, "database", "pool_size", 20, minimum=1),
        max_overflow=_int(data, "database", "max_overflow", 10),
        busy_timeout_seconds=_int(data, "database", "busy_timeout_seconds", 30),
    )


def parse_payroll(data: dict[str, Any]) -> PayrollConfig:
    defaults = PayrollConfig()
    config = PayrollConfig(
        amount_places=_int(data, "payroll", "amount_places", defaults.amount_places),
        payment_methods=_names(data, "payment_methods", defaults.payment_methods),
        penalty_kinds=_names(data, "penalty_kinds", defaults.penalty_kinds),
        standard_hours_per_day=_decimal(data, "standard_hours_per_day", defaults.standard_hours_per_day),
        overtime_multiplier=_decimal(data, "overtime_multiplier", defaults.overtime_multiplier),
        half_day_factor=_decimal(data, "half_day_factor", defaults.half_day_factor),
        max_hours_per_day=_decimal(data, "max_hours_per_day", defaults.max_hours_per_day),
    )
    if config.half_day_factor > 1:
        raise ValueError("payroll.half_day_factor: must not exceed 1")
    if config.max_hours_per_day > 24:
        raise ValueError("payroll.max_hours_per_day: must not exceed 24")
    return config


def parse_logging(data: dict[str, Any]) -> LoggingConfig:
    level = str(data.get("level", "INFO")).upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"logging.level: unknown level {level!r}")
    return LoggingConfig(level=level)


def parse_config(data: dict[str, Any]) -> LabourConfig:
    """Parse a merged configuration document into a ``LabourConfig``."""
    return LabourConfig(
        database=parse_database(data.get("database") or {}),
        payroll=parse_payroll(data.get("payroll") or {}),
        logging=parse_logging(data.get("logging") or {}),
        checksum=compute_checksum(data),
    )
