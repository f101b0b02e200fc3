"""
Payroll Settlement Service (``labour_modules.payments.service``).

Responsibility
--------------
Records payroll cash events.  For wage payments it computes the gross,
withholds outstanding penalties and then outstanding advances (capped by
what the penalties left), persists the payment, links the covered
attendance, settles the recovered advances and flags the penalties.

Architecture position
---------------------
**Modules layer** -- orchestrator.  Pure arithmetic lives in
``labour_engines.deductions`` and ``labour_engines.settlement``; the
attendance, penalty and advance services do their own writes and join this
service's transaction.

Invariants enforced
-------------------
* The whole sequence (duplicate check, deduction computation, persist,
  linkage, settlement, penalty flagging) runs in one ``uow.transaction()``
  that starts by locking the worker row.  A concurrent payment for the same
  worker waits, then sees the committed payment and is rejected.
* At most one WAGES / FINAL_SETTLEMENT payment per (worker, project, date,
  kind); the partial unique index backs the check.
* Advances never self-deduct: deduction 0, net = gross.
* net_amount >= 0 is asserted, never clamped.

Failure modes
-------------
* ``DuplicatePaymentError`` -- same (worker, project, date, kind) exists.
* ``NegativeNetAmountError`` -- breakdown would pay less than zero.
* ``WorkerNotFoundError`` -- worker row missing (raised by the lock).
* ``ValidationError`` subclasses for bad amounts, kind or method.
* ``TransactionFailedError`` -- storage failure; nothing was written.

Usage::

    service = PayrollSettlementService(uow, clock=clock)
    outcome = service.record_payment(
        worker_id=7, project_id=3, payment_date=date(2025, 1, 15),
        kind="wages", base_amount=Decimal("300"), actor_id=actor_id,
    )
    outcome.net_amount, outcome.advance_deduction
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from labour_config.schema import PayrollConfig
from labour_engines.deductions import (
    DeductionBreakdown,
    compute_deductions,
    ensure_non_negative_net,
    gross_amount,
)
from labour_kernel.db.unit_of_work import UnitOfWork
from labour_kernel.domain.amounts import ZERO, to_amount
from labour_kernel.domain.clock import Clock
from labour_kernel.exceptions import (
    DuplicatePaymentError,
    InvalidPaymentKindError,
    MissingFieldError,
    UnsupportedPaymentMethodError,
)
from labour_kernel.logging_config import LogContext, get_logger
from labour_kernel.services.audit_sink import AuditRecord, AuditSink, LoggingAuditSink
from labour_kernel.services.base import BaseService
from labour_modules.attendance.service import AttendanceLedger
from labour_modules.payments.advances import AdvanceSettlementEngine
from labour_modules.payments.models import PaymentKind, PaymentOutcome
from labour_modules.payments.orm import PaymentRecordModel
from labour_modules.penalties.service import PenaltyLedger

logger = get_logger("modules.payments.service")


class PayrollSettlementService(BaseService[PaymentRecordModel]):
    """
    Orchestrator for payroll payments.

    Contract:
        ``record_payment`` is the only way a PaymentRecord is created.  The
        collaborating ledgers default to instances sharing this service's
        UnitOfWork, clock and payroll settings.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        clock: Clock | None = None,
        payroll: PayrollConfig | None = None,
        audit_sink: AuditSink | None = None,
        attendance: AttendanceLedger | None = None,
        penalties: PenaltyLedger | None = None,
        advances: AdvanceSettlementEngine | None = None,
    ):
        super().__init__(uow, clock)
        self.payroll = payroll or PayrollConfig()
        self.audit_sink = audit_sink or LoggingAuditSink()
        self.attendance = attendance or AttendanceLedger(
            uow, clock=self.clock, payroll=self.payroll, audit_sink=self.audit_sink,
        )
        self.penalties = penalties or PenaltyLedger(
            uow, clock=self.clock, payroll=self.payroll, audit_sink=self.audit_sink,
        )
        self.advances = advances or AdvanceSettlementEngine(
            uow, clock=self.clock, amount_places=self.payroll.amount_places,
        )

    # ------------------------------------------------------------------
    # Input normalisation
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_kind(kind: PaymentKind | str | None) -> PaymentKind:
        if kind is None:
            raise MissingFieldError("kind")
        if isinstance(kind, PaymentKind):
            return kind
        try:
            return PaymentKind(str(kind).strip().lower())
        except ValueError:
            raise InvalidPaymentKindError(kind) from None

    def _parse_method(self, method: str | None) -> str:
        if not method:
            raise MissingFieldError("method")
        normalised = method.strip().lower()
        if normalised not in self.payroll.payment_methods:
            raise UnsupportedPaymentMethodError(method, self.payroll.payment_methods)
        return normalised

    def _breakdown(
        self,
        kind: PaymentKind,
        worker_id: int,
        project_id: int,
        gross: Decimal,
    ) -> DeductionBreakdown:
        if kind is PaymentKind.ADVANCE:
            return DeductionBreakdown(
                gross_amount=gross,
                penalty_total=ZERO,
                advance_total=ZERO,
                penalty_deduction=ZERO,
                advance_deduction=ZERO,
            )
        return compute_deductions(
            gross=gross,
            penalty_total=self.penalties.outstanding_total(worker_id, project_id),
            advance_total=self.advances.outstanding_advance_total(worker_id, project_id),
        )

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_payment(
        self,
        worker_id: int,
        project_id: int,
        payment_date: date,
        kind: PaymentKind | str,
        base_amount: Decimal | int | str,
        actor_id: UUID,
        overtime_amount: Decimal | int | str | None = None,
        bonus_amount: Decimal | int | str | None = None,
        method: str = "cash",
        notes: str | None = None,
    ) -> PaymentOutcome:
        """
        Record one payroll cash event and apply its deductions.

        Returns:
            PaymentOutcome with gross, deduction, net, the amounts actually
            withheld for penalties and advances, the number of attendance
            rows linked and the per-advance settlement lines.
        """
        for field_name, value in (
            ("worker_id", worker_id),
            ("project_id", project_id),
            ("payment_date", payment_date),
            ("base_amount", base_amount),
            ("actor_id", actor_id),
        ):
            if value is None:
                raise MissingFieldError(field_name)

        payment_kind = self._parse_kind(kind)
        payment_method = self._parse_method(method)
        places = self.payroll.amount_places
        base = to_amount(base_amount, "base_amount", places)
        overtime = to_amount(overtime_amount, "overtime_amount", places)
        bonus = to_amount(bonus_amount, "bonus_amount", places)
        gross = gross_amount(base, overtime, bonus)

        with LogContext.bind(worker_id=worker_id, project_id=project_id, actor_id=actor_id):
            logger.info(
                "payment_recording_started",
                extra={
                    "payment_kind": payment_kind.value,
                    "payment_date": payment_date.isoformat(),
                    "gross_amount": str(gross),
                },
            )

            with self.uow.transaction("record_payment"):
                self.uow.lock_worker(worker_id)

                if payment_kind is not PaymentKind.ADVANCE:
                    self._reject_duplicate(worker_id, project_id, payment_date, payment_kind)

                breakdown = self._breakdown(payment_kind, worker_id, project_id, gross)
                ensure_non_negative_net(breakdown)

                now = self.clock.now()
                model = PaymentRecordModel(
                    worker_id=worker_id,
                    project_id=project_id,
                    payment_date=payment_date,
                    payment_kind=payment_kind.value,
                    base_amount=base,
                    overtime_amount=overtime,
                    bonus_amount=bonus,
                    penalty_deduction=breakdown.penalty_deduction,
                    advance_deduction=breakdown.advance_deduction,
                    deduction_amount=breakdown.deduction_amount,
                    net_amount=breakdown.net_amount,
                    settled_amount=ZERO,
                    payment_method=payment_method,
                    notes=notes,
                    created_at=now,
                    updated_at=now,
                    created_by_id=actor_id,
                )
                self.session.add(model)
                try:
                    self.session.flush()
                except IntegrityError:
                    logger.warning(
                        "payment_duplicate_rejected",
                        extra={"payment_kind": payment_kind.value, "source": "unique_index"},
                    )
                    raise DuplicatePaymentError(
                        worker_id, project_id, payment_date, payment_kind.value,
                    ) from None
                payment_id = model.id

                linked = 0
                if payment_kind.covers_attendance:
                    linked = self.attendance.link_to_payment(
                        worker_id, project_id, payment_date, payment_id, actor_id=actor_id,
                    )

                lines = ()
                if breakdown.advance_deduction > ZERO:
                    lines = self.advances.settle(
                        worker_id, project_id, breakdown.advance_deduction, actor_id=actor_id,
                    ).lines

                penalties_marked = 0
                if breakdown.penalty_deduction > ZERO:
                    penalties_marked = self.penalties.mark_deducted(
                        worker_id, project_id, payment_id, actor_id=actor_id,
                    )
                    if breakdown.penalty_shortfall > ZERO:
                        logger.warning(
                            "penalty_partially_recovered",
                            extra={
                                "payment_id": str(payment_id),
                                "penalty_total": str(breakdown.penalty_total),
                                "penalty_deduction": str(breakdown.penalty_deduction),
                                "shortfall": str(breakdown.penalty_shortfall),
                            },
                        )

            outcome = PaymentOutcome(
                payment_id=payment_id,
                kind=payment_kind,
                gross_amount=breakdown.gross_amount,
                deduction_amount=breakdown.deduction_amount,
                net_amount=breakdown.net_amount,
                penalty_deduction=breakdown.penalty_deduction,
                advance_deduction=breakdown.advance_deduction,
                attendance_linked=linked,
                penalties_marked=penalties_marked,
                settlement_lines=tuple(lines),
            )

            logger.info(
                "payment_recorded",
                extra={
                    "payment_id": str(payment_id),
                    "payment_kind": payment_kind.value,
                    "gross_amount": str(outcome.gross_amount),
                    "penalty_deduction": str(outcome.penalty_deduction),
                    "advance_deduction": str(outcome.advance_deduction),
                    "net_amount": str(outcome.net_amount),
                    "attendance_linked": linked,
                    "advance_carried_forward": str(breakdown.advance_carried_forward),
                },
            )
            self._audit(outcome, worker_id, project_id, payment_date, payment_method, actor_id)
        return outcome

    def _reject_duplicate(
        self,
        worker_id: int,
        project_id: int,
        payment_date: date,
        kind: PaymentKind,
    ) -> None:
        existing_id = self.session.scalar(
            select(PaymentRecordModel.id).where(
                PaymentRecordModel.worker_id == worker_id,
                PaymentRecordModel.project_id == project_id,
                PaymentRecordModel.payment_date == payment_date,
                PaymentRecordModel.payment_kind == kind.value,
            )
        )
        if existing_id is None:
            return
        logger.warning(
            "payment_duplicate_rejected",
            extra={
                "payment_kind": kind.value,
                "payment_date": payment_date.isoformat(),
                "existing_payment_id": str(existing_id),
                "error_code": DuplicatePaymentError.code,
            },
        )
        raise DuplicatePaymentError(worker_id, project_id, payment_date, kind.value, existing_id)

    def _audit(
        self,
        outcome: PaymentOutcome,
        worker_id: int,
        project_id: int,
        payment_date: date,
        method: str,
        actor_id: UUID,
    ) -> None:
        try:
            self.audit_sink.record(
                AuditRecord(
                    action="payment_recorded",
                    entity_type="PaymentRecord",
                    entity_id=str(outcome.payment_id),
                    actor_id=actor_id,
                    occurred_at=self.clock.now(),
                    details={
                        "worker_id": worker_id,
                        "project_id": project_id,
                        "payment_date": payment_date.isoformat(),
                        "payment_kind": outcome.kind.value,
                        "payment_method": method,
                        "gross_amount": str(outcome.gross_amount),
                        "deduction_amount": str(outcome.deduction_amount),
                        "net_amount": str(outcome.net_amount),
                    },
                )
            )
        except Exception:
            logger.exception("audit_sink_failed", extra={"action": "payment_recorded"})
