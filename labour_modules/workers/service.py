"""
Worker Register Service (``labour_modules.workers.service``).

Responsibility
--------------
Maintains the worker register the ledger depends on: registration, daily
rate changes, soft deactivation and guarded hard deletion.  Also provides
``SqlWorkerDirectory``, the worker-existence/active check consumed by the
attendance and penalty ledgers.

Invariants enforced
-------------------
* A worker with attendance, payment or penalty history is never hard
  deleted; deactivate instead.
* Inactive workers cannot be marked present (enforced by the attendance
  ledger through ``WorkerDirectory.require_active``).

Failure modes
-------------
* ``MissingFieldError`` / ``InvalidAmountError`` on bad registration input.
* ``WorkerNotFoundError`` for unknown ids.
* ``WorkerReferencedError`` when deleting a worker with history.
"""

from decimal import Decimal
from typing import Protocol
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from labour_kernel.db.unit_of_work import UnitOfWork
from labour_kernel.domain.amounts import to_amount
from labour_kernel.domain.clock import Clock
from labour_kernel.exceptions import (
    MissingFieldError,
    WorkerInactiveError,
    WorkerNotFoundError,
    WorkerReferencedError,
)
from labour_kernel.logging_config import get_logger
from labour_kernel.services.base import BaseService
from labour_modules.workers.models import Worker
from labour_modules.workers.orm import WorkerModel

logger = get_logger("modules.workers.service")


class WorkerDirectory(Protocol):
    """Worker-existence/active collaborator used by the ledgers."""

    def exists(self, worker_id: int) -> bool: ...

    def require_active(self, worker_id: int) -> Worker: ...


class SqlWorkerDirectory:
    """WorkerDirectory backed by the ``labour_workers`` table."""

    def __init__(self, session: Session):
        self.session = session

    def exists(self, worker_id: int) -> bool:
        return self.session.get(WorkerModel, worker_id) is not None

    def require_active(self, worker_id: int) -> Worker:
        """
        Return the worker if it exists and is active.

        Raises:
            WorkerInactiveError: worker missing or deactivated.
        """
        model = self.session.get(WorkerModel, worker_id)
        if model is None:
            raise WorkerInactiveError(worker_id, exists=False)
        if not model.is_active:
            raise WorkerInactiveError(worker_id)
        return model.to_dto()


class WorkerRegistry(BaseService[WorkerModel]):
    """Write side of the worker register."""

    def __init__(self, uow: UnitOfWork, clock: Clock | None = None, amount_places: int = 2):
        super().__init__(uow, clock)
        self.amount_places = amount_places

    def _get_model(self, worker_id: int) -> WorkerModel:
        model = self.session.get(WorkerModel, worker_id)
        if model is None:
            raise WorkerNotFoundError(worker_id)
        return model

    def get(self, worker_id: int) -> Worker:
        return self._get_model(worker_id).to_dto()

    def register(
        self,
        name: str,
        daily_rate: Decimal | int | str,
        actor_id: UUID,
        skill: str | None = None,
        worker_id: int | None = None,
    ) -> int:
        """Add a worker to the register and return its id."""
        if not name or not name.strip():
            raise MissingFieldError("name")
        rate = to_amount(daily_rate, "daily_rate", self.amount_places)
        now = self.clock.now()

        with self.uow.transaction("register_worker"):
            model = WorkerModel(
                id=worker_id,
                name=name.strip(),
                skill=skill,
                daily_rate=rate,
                is_active=True,
                lock_version=0,
                created_at=now,
                updated_at=now,
                created_by_id=actor_id,
            )
            self.session.add(model)
            self.session.flush()
            new_id = model.id

        logger.info(
            "worker_registered",
            extra={"worker_id": new_id, "daily_rate": str(rate), "skill": skill},
        )
        return new_id

    def update_daily_rate(
        self,
        worker_id: int,
        daily_rate: Decimal | int | str,
        actor_id: UUID,
    ) -> Worker:
        rate = to_amount(daily_rate, "daily_rate", self.amount_places)
        with self.uow.transaction("update_daily_rate"):
            model = self._get_model(worker_id)
            previous = model.daily_rate
            model.daily_rate = rate
            model.updated_by_id = actor_id
            self.session.flush()
            worker = model.to_dto()

        logger.info(
            "worker_daily_rate_updated",
            extra={
                "worker_id": worker_id,
                "previous_rate": str(previous),
                "daily_rate": str(rate),
            },
        )
        return worker

    def _set_active(self, worker_id: int, active: bool, actor_id: UUID) -> Worker:
        operation = "reactivate_worker" if active else "deactivate_worker"
        with self.uow.transaction(operation):
            model = self._get_model(worker_id)
            if model.is_active != active:
                model.is_active = active
                model.updated_by_id = actor_id
                self.session.flush()
            worker = model.to_dto()

        logger.info(
            "worker_reactivated" if active else "worker_deactivated",
            extra={"worker_id": worker_id},
        )
        return worker

    def deactivate(self, worker_id: int, actor_id: UUID) -> Worker:
        """Soft-delete: history stays, new attendance is refused."""
        return self._set_active(worker_id, False, actor_id)

    def reactivate(self, worker_id: int, actor_id: UUID) -> Worker:
        return self._set_active(worker_id, True, actor_id)

    def has_history(self, worker_id: int) -> bool:
        from labour_modules.attendance.orm import AttendanceRecordModel
        from labour_modules.payments.orm import PaymentRecordModel
        from labour_modules.penalties.orm import PenaltyRecordModel

        checks = (
            select(func.count()).select_from(AttendanceRecordModel).where(
                or_(
                    AttendanceRecordModel.worker_id == worker_id,
                    AttendanceRecordModel.substitute_worker_id == worker_id,
                )
            ),
            select(func.count()).select_from(PaymentRecordModel).where(
                PaymentRecordModel.worker_id == worker_id
            ),
            select(func.count()).select_from(PenaltyRecordModel).where(
                PenaltyRecordModel.worker_id == worker_id
            ),
        )
        return any(self.session.scalar(stmt) for stmt in checks)

    def delete(self, worker_id: int) -> None:
        """
        Hard-delete a worker with no ledger history.

        Raises:
            WorkerNotFoundError: unknown worker.
            WorkerReferencedError: attendance, payment or penalty rows exist.
        """
        with self.uow.transaction("delete_worker"):
            model = self._get_model(worker_id)
            if self.has_history(worker_id):
                logger.warning(
                    "worker_delete_rejected",
                    extra={"worker_id": worker_id, "error_code": WorkerReferencedError.code},
                )
                raise WorkerReferencedError(worker_id)
            self.session.delete(model)
            self.session.flush()

        logger.info("worker_deleted", extra={"worker_id": worker_id})
