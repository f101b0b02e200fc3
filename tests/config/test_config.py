"""Tests for configuration loading.

Verifies defaults, YAML overrides, the LABOUR_DATABASE_URL environment
override, validation errors and the LABOUR_CONFIG_TRACE log entry.
"""
from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
import yaml

from labour_config import get_active_config
from labour_config.loader import compute_checksum, deep_merge, parse_config, parse_payroll
from labour_kernel.db.engine import build_engine
from labour_modules.attendance.selectors import AttendanceSelector
from labour_modules.attendance.service import AttendanceLedger
from labour_modules.penalties.service import PenaltyLedger


def _write(tmp_path, data, name="override.yaml"):
    path = tmp_path / name
    path.write_text(yaml.safe_dump(data))
    return path


class TestDefaults:
    def test_packaged_defaults(self):
        config = get_active_config(environ={})

        assert config.database.url == "sqlite:///labour_ledger.db"
        assert config.database.pool_size == 20
        assert config.payroll.amount_places == 2
        assert config.payroll.payment_methods == frozenset({"cash", "bank", "upi", "cheque"})
        assert "safety_violation" in config.payroll.penalty_kinds
        assert config.payroll.standard_hours_per_day == Decimal("8")
        assert config.payroll.overtime_multiplier == Decimal("1.5")
        assert config.logging.level == "INFO"
        assert len(config.checksum) == 64

    def test_checksum_stable(self):
        assert get_active_config(environ={}).checksum == get_active_config(environ={}).checksum


class TestOverrides:
    def test_yaml_override_merges(self, tmp_path):
        path = _write(
            tmp_path,
            {
                "database": {"url": "postgresql://ledger@db/labour"},
                "payroll": {"penalty_kinds": ["Late_Arrival", "theft"], "half_day_factor": "0.6"},
            },
        )

        config = get_active_config(path=path, environ={})

        assert config.database.url == "postgresql://ledger@db/labour"
        assert config.database.busy_timeout_seconds == 30
        assert config.payroll.penalty_kinds == frozenset({"late_arrival", "theft"})
        assert config.payroll.half_day_factor == Decimal("0.6")
        assert config.payroll.payment_methods == frozenset({"cash", "bank", "upi", "cheque"})
        assert config.checksum != get_active_config(environ={}).checksum

    def test_environment_url_wins(self, tmp_path):
        path = _write(tmp_path, {"database": {"url": "sqlite:///from-file.db"}})

        config = get_active_config(
            path=path,
            environ={"LABOUR_DATABASE_URL": "sqlite:///from-env.db"},
        )

        assert config.database.url == "sqlite:///from-env.db"

    def test_missing_override_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(path=tmp_path / "absent.yaml", environ={})

    def test_config_trace_logged(self, tmp_path, captured_logs):
        path = _write(tmp_path, {"payroll": {"amount_places": 3}})

        config = get_active_config(path=path, environ={})

        trace = next(r for r in captured_logs() if r["message"] == "LABOUR_CONFIG_TRACE")
        assert trace["checksum"] == config.checksum
        assert trace["amount_places"] == 3
        assert trace["database_dialect"] == "sqlite"
        assert trace["override_path"] == str(path)


class TestValidation:
    @pytest.mark.parametrize(
        "payroll",
        [
            {"half_day_factor": "1.5"},
            {"max_hours_per_day": "30"},
            {"standard_hours_per_day": "0"},
            {"overtime_multiplier": "abc"},
            {"payment_methods": []},
            {"amount_places": -1},
            {"amount_places": "two"},
        ],
    )
    def test_bad_payroll_settings(self, payroll):
        with pytest.raises(ValueError):
            parse_payroll(payroll)

    def test_bad_log_level(self):
        with pytest.raises(ValueError):
            parse_config({"database": {"url": "sqlite://"}, "logging": {"level": "CHATTY"}})

    def test_missing_database_url(self):
        with pytest.raises(ValueError):
            parse_config({"database": {}})

    def test_pool_size_minimum(self):
        with pytest.raises(ValueError):
            parse_config({"database": {"url": "sqlite://", "pool_size": 0}})

    def test_non_mapping_document(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ValueError):
            get_active_config(path=path, environ={})


class TestLoaderHelpers:
    def test_deep_merge_nested(self):
        merged = deep_merge({"a": {"b": 1, "c": 2}, "d": 1}, {"a": {"c": 3}, "e": 4})
        assert merged == {"a": {"b": 1, "c": 3}, "d": 1, "e": 4}

    def test_checksum_ignores_key_order(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})


class TestConfigWiring:
    def test_configured_penalty_kinds_drive_ledger(
        self, tmp_path, uow, deterministic_clock, make_worker, test_actor_id,
    ):
        """A kind added in YAML is accepted by a ledger built from that config."""

        path = _write(tmp_path, {"payroll": {"penalty_kinds": ["theft"]}})
        config = get_active_config(path=path, environ={})
        worker_id = make_worker()

        ledger = PenaltyLedger(uow, clock=deterministic_clock, payroll=config.payroll)
        penalty_id = ledger.record(
            worker_id=worker_id,
            project_id=1,
            penalty_date=date(2025, 1, 10),
            kind="theft",
            amount="25",
            actor_id=test_actor_id,
        )
        assert penalty_id is not None

    def test_engine_from_config(self, tmp_path):
        path = _write(tmp_path, {"database": {"url": f"sqlite:///{tmp_path / 'cfg.db'}"}})
        config = get_active_config(path=path, environ={})

        engine = build_engine(
            config.database.url,
            pool_size=config.database.pool_size,
            busy_timeout_seconds=config.database.busy_timeout_seconds,
        )
        try:
            assert engine.dialect.name == "sqlite"
        finally:
            engine.dispose()

    def test_standard_hours_drive_half_day(self, uow, deterministic_clock, make_worker, test_actor_id):
        config = parse_config(
            {"database": {"url": "sqlite://"}, "payroll": {"standard_hours_per_day": "10"}}
        )
        worker_id = make_worker()
        ledger = AttendanceLedger(uow, clock=deterministic_clock, payroll=config.payroll)

        attendance_id = ledger.mark_attendance(
            worker_id=worker_id,
            project_id=1,
            attendance_date=date(2025, 1, 15),
            kind="half",
            marked_by=test_actor_id,
        )

        assert AttendanceSelector(uow.session).get(attendance_id).hours_worked == Decimal("5.00")
