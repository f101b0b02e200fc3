"""
Tests for the ledger composition root.

open_ledger_database() turns a parsed config into a session factory on a
file SQLite database; LabourLedger wires every service onto one session.
"""

from datetime import date
from decimal import Decimal

import pytest

from labour_config.loader import parse_config
from labour_kernel.exceptions import DuplicatePaymentError
from labour_kernel.services.audit_sink import InMemoryAuditSink
from labour_modules.ledger import LabourLedger, open_ledger_database

WORKER = 7
PROJECT = 3


@pytest.fixture
def config(tmp_path):
    return parse_config(
        {
            "database": {"url": f"sqlite:///{tmp_path / 'ledger.db'}"},
            "payroll": {"penalty_kinds": ["late_arrival"]},
        }
    )


@pytest.fixture
def sessions(config):
    factory = open_ledger_database(config)
    yield factory
    factory.kw["bind"].dispose()


class TestLabourLedger:
    def test_services_share_one_unit_of_work(self, session, payroll_config):
        ledger = LabourLedger(session, payroll=payroll_config)

        assert ledger.attendance.uow is ledger.uow
        assert ledger.penalties.uow is ledger.uow
        assert ledger.advances.uow is ledger.uow
        assert ledger.payroll.attendance is ledger.attendance
        assert ledger.payroll.penalties is ledger.penalties
        assert ledger.payroll.advances is ledger.advances

    def test_payroll_run_end_to_end(
        self, sessions, config, deterministic_clock, test_actor_id,
    ):
        sink = InMemoryAuditSink()
        with sessions() as session:
            ledger = LabourLedger(
                session, payroll=config.payroll, clock=deterministic_clock, audit_sink=sink,
            )
            ledger.workers.register(
                name="Sunil", daily_rate="500", actor_id=test_actor_id, worker_id=WORKER,
            )
            attendance_id = ledger.attendance.mark_attendance(
                worker_id=WORKER,
                project_id=PROJECT,
                attendance_date=date(2025, 1, 15),
                kind="full",
                marked_by=test_actor_id,
            )
            ledger.attendance.confirm_attendance(attendance_id, test_actor_id)
            ledger.penalties.record(
                worker_id=WORKER,
                project_id=PROJECT,
                penalty_date=date(2025, 1, 14),
                kind="late_arrival",
                amount="50",
                actor_id=test_actor_id,
            )
            ledger.payroll.record_payment(
                worker_id=WORKER,
                project_id=PROJECT,
                payment_date=date(2025, 1, 10),
                kind="advance",
                base_amount="300",
                actor_id=test_actor_id,
            )
            outcome = ledger.payroll.record_payment(
                worker_id=WORKER,
                project_id=PROJECT,
                payment_date=date(2025, 1, 15),
                kind="wages",
                base_amount="500",
                actor_id=test_actor_id,
            )

        assert outcome.penalty_deduction == Decimal("50.00")
        assert outcome.advance_deduction == Decimal("300.00")
        assert outcome.net_amount == Decimal("150.00")
        assert outcome.attendance_linked == 1

        # A fresh session sees the committed run.
        with sessions() as session:
            ledger = LabourLedger(session, payroll=config.payroll, clock=deterministic_clock)

            cost = ledger.cost.project_labour_cost(PROJECT)
            assert cost.gross_cost == Decimal("500.00")
            assert cost.applied_penalties == Decimal("50.00")
            assert cost.net_labour_cost == Decimal("450.00")

            position = ledger.cost.worker_position(WORKER, PROJECT)
            assert position.outstanding_advances == Decimal("0.00")
            assert position.outstanding_penalties == Decimal("0.00")
            assert position.unpaid_attendance_days == 0

            with pytest.raises(DuplicatePaymentError):
                ledger.payroll.record_payment(
                    worker_id=WORKER,
                    project_id=PROJECT,
                    payment_date=date(2025, 1, 15),
                    kind="wages",
                    base_amount="500",
                    actor_id=test_actor_id,
                )

        assert [r.action for r in sink.records].count("payment_recorded") == 2


class TestOpenLedgerDatabase:
    def test_creates_schema_and_logs(self, config, captured_logs):
        factory = open_ledger_database(config)
        try:
            opened = next(r for r in captured_logs() if r["message"] == "ledger_database_opened")
            assert opened["dialect"] == "sqlite"
            assert opened["schema_created"] is True
            assert opened["config_checksum"] == config.checksum
        finally:
            factory.kw["bind"].dispose()

    def test_reopen_without_schema_creation(self, config):
        open_ledger_database(config).kw["bind"].dispose()

        factory = open_ledger_database(config, create_schema=False)
        try:
            with factory() as session:
                assert LabourLedger(session).payments_view.list_payments() == []
        finally:
            factory.kw["bind"].dispose()
