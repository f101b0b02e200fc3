"""
Penalty Ledger Service (``labour_modules.penalties.service``).

Responsibility
--------------
Records disciplinary deductions and flips them to deducted when a payroll
payment withholds them.

Invariants enforced
-------------------
* ``is_deducted`` goes false -> true once, stamped with the payment id.
* ``mark_deducted`` only touches penalties outstanding at the time of the
  call; penalties recorded afterwards wait for the next payroll run.

Failure modes
-------------
* ``WorkerNotFoundError`` for an unknown worker.
* ``InvalidAmountError`` for a non-positive amount.
* ``UnknownPenaltyKindError`` for kinds outside the configured set.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from labour_config.schema import PayrollConfig
from labour_kernel.db.unit_of_work import UnitOfWork
from labour_kernel.domain.amounts import ZERO, quantize, to_amount
from labour_kernel.domain.clock import Clock
from labour_kernel.exceptions import (
    InvalidAmountError,
    MissingFieldError,
    UnknownPenaltyKindError,
    WorkerNotFoundError,
)
from labour_kernel.logging_config import LogContext, get_logger
from labour_kernel.services.audit_sink import AuditRecord, AuditSink, LoggingAuditSink
from labour_kernel.services.base import BaseService
from labour_modules.penalties.orm import PenaltyRecordModel
from labour_modules.workers.service import SqlWorkerDirectory, WorkerDirectory

logger = get_logger("modules.penalties.service")


class PenaltyLedger(BaseService[PenaltyRecordModel]):
    """Write side of the penalty ledger."""

    def __init__(
        self,
        uow: UnitOfWork,
        clock: Clock | None = None,
        workers: WorkerDirectory | None = None,
        payroll: PayrollConfig | None = None,
        audit_sink: AuditSink | None = None,
    ):
        super().__init__(uow, clock)
        self.workers = workers or SqlWorkerDirectory(self.session)
        self.payroll = payroll or PayrollConfig()
        self.audit_sink = audit_sink or LoggingAuditSink()

    def record(
        self,
        worker_id: int,
        project_id: int,
        penalty_date: date,
        kind: str,
        amount: Decimal | int | str,
        actor_id: UUID,
        reason: str | None = None,
    ) -> UUID:
        """Record an outstanding penalty and return its id."""
        for field_name, value in (
            ("worker_id", worker_id),
            ("project_id", project_id),
            ("penalty_date", penalty_date),
            ("kind", kind),
            ("actor_id", actor_id),
        ):
            if value is None:
                raise MissingFieldError(field_name)

        penalty_kind = kind.strip().lower()
        if penalty_kind not in self.payroll.penalty_kinds:
            raise UnknownPenaltyKindError(kind, self.payroll.penalty_kinds)
        value = to_amount(amount, "amount", self.payroll.amount_places)
        if value <= ZERO:
            raise InvalidAmountError("amount", amount, "must be positive")

        with LogContext.bind(worker_id=worker_id, project_id=project_id, actor_id=actor_id):
            with self.uow.transaction("record_penalty"):
                if not self.workers.exists(worker_id):
                    raise WorkerNotFoundError(worker_id)
                self.uow.lock_worker(worker_id)

                now = self.clock.now()
                model = PenaltyRecordModel(
                    worker_id=worker_id,
                    project_id=project_id,
                    penalty_date=penalty_date,
                    penalty_kind=penalty_kind,
                    amount=value,
                    reason=reason,
                    is_deducted=False,
                    created_at=now,
                    updated_at=now,
                    created_by_id=actor_id,
                )
                self.session.add(model)
                self.session.flush()
                penalty_id = model.id

            logger.info(
                "penalty_recorded",
                extra={
                    "penalty_id": str(penalty_id),
                    "penalty_kind": penalty_kind,
                    "amount": str(value),
                },
            )

        try:
            self.audit_sink.record(
                AuditRecord(
                    action="penalty_recorded",
                    entity_type="PenaltyRecord",
                    entity_id=str(penalty_id),
                    actor_id=actor_id,
                    occurred_at=self.clock.now(),
                    details={"worker_id": worker_id, "project_id": project_id, "amount": str(value)},
                )
            )
        except Exception:
            logger.exception("audit_sink_failed", extra={"action": "penalty_recorded"})
        return penalty_id

    def outstanding_total(self, worker_id: int, project_id: int) -> Decimal:
        """Sum of penalties not yet deducted for the worker on the project."""
        total = self.session.scalar(
            select(func.coalesce(func.sum(PenaltyRecordModel.amount), 0)).where(
                PenaltyRecordModel.worker_id == worker_id,
                PenaltyRecordModel.project_id == project_id,
                PenaltyRecordModel.is_deducted.is_(False),
            )
        )
        return quantize(Decimal(total), self.payroll.amount_places)

    def mark_deducted(
        self,
        worker_id: int,
        project_id: int,
        payment_id: UUID,
        actor_id: UUID | None = None,
    ) -> int:
        """
        Flip every outstanding penalty for worker/project to deducted,
        stamping ``payment_id``.  Returns the number of penalties flipped.
        """
        with self.uow.transaction("mark_penalties_deducted"):
            self.uow.lock_worker(worker_id)
            rows = self.session.scalars(
                select(PenaltyRecordModel).where(
                    PenaltyRecordModel.worker_id == worker_id,
                    PenaltyRecordModel.project_id == project_id,
                    PenaltyRecordModel.is_deducted.is_(False),
                )
            ).all()
            now = self.clock.now()
            for model in rows:
                model.is_deducted = True
                model.deducted_by_payment_id = payment_id
                model.deducted_at = now
                if actor_id is not None:
                    model.updated_by_id = actor_id
            self.session.flush()

        logger.info(
            "penalties_marked_deducted",
            extra={
                "worker_id": worker_id,
                "project_id": project_id,
                "payment_id": str(payment_id),
                "penalty_count": len(rows),
            },
        )
        return len(rows)
