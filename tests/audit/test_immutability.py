"""
ORM-level immutability tests.

Verifies the listeners in labour_kernel.db.immutability:
- Paid attendance cannot be edited or deleted
- Confirmed attendance cannot return to draft
- Payment records are append-only; only an advance's settled_amount moves,
  upward and within its net amount
- Deducted penalties are frozen
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from labour_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from labour_kernel.exceptions import ImmutabilityViolationError, SettlementOverflowError
from labour_modules.attendance.orm import AttendanceRecordModel
from labour_modules.payments.orm import PaymentRecordModel
from labour_modules.penalties.orm import PenaltyRecordModel

PROJECT = 3


@pytest.fixture
def worker_id(make_worker):
    return make_worker(worker_id=7)


@pytest.fixture
def paid_attendance(attendance_ledger, payroll_service, worker_id, test_actor_id):
    attendance_id = attendance_ledger.mark_attendance(
        worker_id=worker_id,
        project_id=PROJECT,
        attendance_date=date(2025, 1, 14),
        kind="full",
        marked_by=test_actor_id,
    )
    attendance_ledger.confirm_attendance(attendance_id, test_actor_id)
    payroll_service.record_payment(
        worker_id=worker_id,
        project_id=PROJECT,
        payment_date=date(2025, 1, 15),
        kind="wages",
        base_amount="600",
        actor_id=test_actor_id,
    )
    return attendance_id


@pytest.fixture
def advance_id(payroll_service, worker_id, test_actor_id):
    return payroll_service.record_payment(
        worker_id=worker_id,
        project_id=PROJECT,
        payment_date=date(2025, 1, 2),
        kind="advance",
        base_amount="500",
        actor_id=test_actor_id,
    ).payment_id


class TestAttendanceImmutability:
    def test_paid_attendance_hours_frozen(self, session, paid_attendance):
        model = session.get(AttendanceRecordModel, paid_attendance)
        model.hours_worked = Decimal("4.00")

        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()

        assert "hours_worked" in str(exc_info.value)
        session.rollback()

    def test_paid_attendance_cannot_be_unlinked(self, session, paid_attendance):
        model = session.get(AttendanceRecordModel, paid_attendance)
        model.linked_payment_id = None

        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_paid_attendance_cannot_be_deleted(self, session, paid_attendance):
        model = session.get(AttendanceRecordModel, paid_attendance)
        session.delete(model)

        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_paid_attendance_audit_fields_may_change(self, session, paid_attendance):
        model = session.get(AttendanceRecordModel, paid_attendance)
        model.updated_by_id = uuid4()
        session.flush()
        session.rollback()

    def test_confirmed_cannot_return_to_draft(
        self, session, attendance_ledger, worker_id, test_actor_id,
    ):
        attendance_id = attendance_ledger.mark_attendance(
            worker_id=worker_id,
            project_id=PROJECT,
            attendance_date=date(2025, 1, 14),
            kind="full",
            marked_by=test_actor_id,
        )
        attendance_ledger.confirm_attendance(attendance_id, test_actor_id)
        model = session.get(AttendanceRecordModel, attendance_id)
        model.state = "draft"

        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_draft_attendance_editable(self, session, attendance_ledger, worker_id, test_actor_id):
        attendance_id = attendance_ledger.mark_attendance(
            worker_id=worker_id,
            project_id=PROJECT,
            attendance_date=date(2025, 1, 14),
            kind="full",
            marked_by=test_actor_id,
        )
        model = session.get(AttendanceRecordModel, attendance_id)
        model.notes = "left early"
        session.flush()
        session.commit()


class TestPaymentImmutability:
    def test_amounts_frozen(self, session, advance_id, captured_logs):
        model = session.get(PaymentRecordModel, advance_id)
        model.base_amount = Decimal("50.00")

        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

        assert any(r["message"] == "immutability_violation_blocked" for r in captured_logs())

    def test_payment_cannot_be_deleted(self, session, advance_id):
        session.delete(session.get(PaymentRecordModel, advance_id))

        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_settled_amount_cannot_exceed_net(self, session, advance_id):
        model = session.get(PaymentRecordModel, advance_id)
        model.settled_amount = Decimal("600.00")

        with pytest.raises(SettlementOverflowError):
            session.flush()
        session.rollback()

    def test_settled_amount_cannot_decrease(self, session, advance_engine, advance_id, worker_id):
        advance_engine.settle(worker_id, PROJECT, "200")
        model = session.get(PaymentRecordModel, advance_id)
        model.settled_amount = Decimal("100.00")

        with pytest.raises(SettlementOverflowError):
            session.flush()
        session.rollback()

    def test_settled_amount_only_on_advances(self, session, payroll_service, worker_id, test_actor_id):
        wages = payroll_service.record_payment(
            worker_id=worker_id,
            project_id=PROJECT,
            payment_date=date(2025, 1, 15),
            kind="wages",
            base_amount="300",
            actor_id=test_actor_id,
        )
        model = session.get(PaymentRecordModel, wages.payment_id)
        model.settled_amount = Decimal("10.00")

        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()


class TestPenaltyImmutability:
    def test_deducted_penalty_frozen(
        self, session, penalty_ledger, payroll_service, worker_id, test_actor_id,
    ):
        penalty_id = penalty_ledger.record(
            worker_id=worker_id,
            project_id=PROJECT,
            penalty_date=date(2025, 1, 10),
            kind="late_arrival",
            amount="50",
            actor_id=test_actor_id,
        )
        payroll_service.record_payment(
            worker_id=worker_id,
            project_id=PROJECT,
            payment_date=date(2025, 1, 15),
            kind="wages",
            base_amount="300",
            actor_id=test_actor_id,
        )

        model = session.get(PenaltyRecordModel, penalty_id)
        assert model.is_deducted
        model.amount = Decimal("5.00")
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

        model = session.get(PenaltyRecordModel, penalty_id)
        session.delete(model)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_outstanding_penalty_editable(self, session, penalty_ledger, worker_id, test_actor_id):
        penalty_id = penalty_ledger.record(
            worker_id=worker_id,
            project_id=PROJECT,
            penalty_date=date(2025, 1, 10),
            kind="late_arrival",
            amount="50",
            actor_id=test_actor_id,
        )
        model = session.get(PenaltyRecordModel, penalty_id)
        model.reason = "gate log"
        session.flush()
        session.commit()


class TestListenerRegistration:
    def test_unregister_then_register(self, session, paid_attendance):
        unregister_immutability_listeners()
        try:
            model = session.get(AttendanceRecordModel, paid_attendance)
            model.notes = "maintenance edit"
            session.flush()
            session.rollback()
        finally:
            register_immutability_listeners()
            register_immutability_listeners()

        model = session.get(AttendanceRecordModel, paid_attendance)
        model.notes = "blocked again"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()
