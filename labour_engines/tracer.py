"""
labour_engines.tracer -- ``@traced_engine`` and LABOUR_ENGINE_TRACE records.

Every call to a decorated engine logs one LABOUR_ENGINE_TRACE line with the
engine name and version, a fingerprint of the inputs that determine the
result, the wall time, and whether the engine returned or raised.  When a
worker disputes a payroll figure, the fingerprint ties the payment's log
trail to the exact amounts the deduction and settlement engines were given.

Fingerprints:
    SHA-256 over ``name=value`` pairs of the chosen arguments, truncated to
    16 hex characters.  Arguments are matched by name whether passed
    positionally or by keyword.  Mappings are key-sorted, dataclasses are
    expanded, and Decimals keep their exponent (``300`` and ``300.00``
    fingerprint differently, as they were different inputs).
"""

from __future__ import annotations

import functools
import hashlib
import inspect
import time
from collections.abc import Callable, Mapping
from dataclasses import asdict, is_dataclass
from typing import Any

from labour_kernel.logging_config import get_logger

_logger = get_logger("engines.tracer")


def _canonical(value: Any) -> str:
    if value is None:
        return "null"
    if is_dataclass(value) and not isinstance(value, type):
        value = asdict(value)
    if isinstance(value, Mapping):
        return "{" + ",".join(f"{k}:{_canonical(value[k])}" for k in sorted(value)) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonical(v) for v in value) + "]"
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: Mapping[str, Any],
) -> str:
    """16-character fingerprint of ``arguments`` restricted to ``fingerprint_fields``."""
    canonical = "|".join(f"{name}={_canonical(arguments.get(name))}" for name in fingerprint_fields)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """Wrap a pure engine function so each call emits LABOUR_ENGINE_TRACE."""

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        def _fingerprint(args: tuple, kwargs: dict) -> str:
            if not fingerprint_fields:
                return ""
            try:
                bound = signature.bind_partial(*args, **kwargs).arguments
            except TypeError:
                bound = kwargs
            return compute_input_fingerprint(fingerprint_fields, bound)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fingerprint = _fingerprint(args, kwargs)
            outcome = "ok"
            started = time.monotonic()
            try:
                return func(*args, **kwargs)
            except Exception as exc:
                outcome = getattr(exc, "code", type(exc).__name__)
                raise
            finally:
                _logger.info(
                    "LABOUR_ENGINE_TRACE",
                    extra={
                        "trace_type": "LABOUR_ENGINE_TRACE",
                        "engine_name": engine_name,
                        "engine_version": engine_version,
                        "input_fingerprint": fingerprint,
                        "duration_ms": round((time.monotonic() - started) * 1000, 3),
                        "outcome": outcome,
                        "function": func.__qualname__,
                    },
                )

        return wrapper

    return decorator
