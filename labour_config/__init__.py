"""
labour_config -- single public entrypoint for ledger configuration.

Responsibility:
    ``get_active_config()`` is the only way to obtain configuration at
    runtime.  No other component reads configuration files or environment
    variables directly.

Resolution order (later wins):
    1. ``labour_config/defaults.yaml`` shipped with the package.
    2. The override YAML file passed as ``path``.
    3. ``LABOUR_DATABASE_URL`` for ``database.url``.

Failure modes:
    - ``FileNotFoundError`` -- override file does not exist.
    - ``ValueError`` -- a setting is missing or out of range.

Audit relevance:
    Every successful call emits a ``LABOUR_CONFIG_TRACE`` log entry with the
    checksum of the effective configuration, tying each payroll run to the
    exact settings that governed it.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from labour_config.loader import deep_merge, load_yaml_file, parse_config
from labour_config.schema import DatabaseConfig, LabourConfig, LoggingConfig, PayrollConfig

_logger = logging.getLogger("labour_kernel.config")

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"
DATABASE_URL_ENV = "LABOUR_DATABASE_URL"


def get_active_config(
    path: Path | str | None = None,
    environ: dict[str, str] | None = None,
) -> LabourConfig:
    """The ONLY public configuration entrypoint.

    Args:
        path: Optional override YAML merged onto the defaults.
        environ: Environment mapping; defaults to ``os.environ``.

    Returns:
        Frozen ``LabourConfig``.
    """
    env = os.environ if environ is None else environ

    data = load_yaml_file(DEFAULTS_PATH)
    if path is not None:
        data = deep_merge(data, load_yaml_file(Path(path)))

    env_url = env.get(DATABASE_URL_ENV)
    if env_url:
        data = deep_merge(data, {"database": {"url": env_url}})

    config = parse_config(data)

    _logger.info(
        "LABOUR_CONFIG_TRACE",
        extra={
            "trace_type": "LABOUR_CONFIG_TRACE",
            "checksum": config.checksum,
            "override_path": str(path) if path is not None else None,
            "database_dialect": config.database.url.split(":", 1)[0],
            "amount_places": config.payroll.amount_places,
        },
    )
    return config


__all__ = [
    "DatabaseConfig",
    "LabourConfig",
    "LoggingConfig",
    "PayrollConfig",
    "get_active_config",
]
