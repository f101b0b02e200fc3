"""
Attendance Ledger Service (``labour_modules.attendance.service``).

Responsibility
--------------
Records one attendance fact per worker, project and day, moves it from
DRAFT to CONFIRMED, and links confirmed attendance to the payroll payment
that covers it.

Architecture position
---------------------
**Modules layer**.  Writes go through the ``UnitOfWork``; every public
operation runs in ``uow.transaction()`` and locks the worker first, so a
confirmation never interleaves with a payroll run for the same worker.

Invariants enforced
-------------------
* Exactly one record per (worker, project, date).
* Attendance date is never after today (``clock.today()``).
* DRAFT -> CONFIRMED only; re-confirming is a no-op.
* Once ``linked_payment_id`` is set the record is frozen.
* ``link_to_payment`` is the sole gate against paying attendance twice: it
  only touches CONFIRMED, unlinked rows dated on or before the payment.

Failure modes
-------------
* ``DuplicateAttendanceError``, ``FutureDateError``, ``WorkerInactiveError``,
  ``InvalidAttendanceError`` on marking.
* ``AttendanceNotFoundError`` / ``AlreadyPaidError`` on confirmation.
"""

from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from labour_config.schema import PayrollConfig
from labour_kernel.db.unit_of_work import UnitOfWork
from labour_kernel.domain.amounts import ZERO, quantize, to_amount
from labour_kernel.domain.clock import Clock
from labour_kernel.exceptions import (
    AlreadyPaidError,
    AttendanceNotFoundError,
    DuplicateAttendanceError,
    FutureDateError,
    InvalidAttendanceError,
    InvalidTransitionError,
    MissingFieldError,
    WorkerNotFoundError,
)
from labour_kernel.logging_config import LogContext, get_logger
from labour_kernel.services.audit_sink import AuditRecord, AuditSink, LoggingAuditSink
from labour_kernel.services.base import BaseService
from labour_modules.attendance.models import (
    AttendanceKind,
    AttendanceRecord,
    AttendanceState,
    BulkConfirmResult,
)
from labour_modules.attendance.orm import AttendanceRecordModel
from labour_modules.workers.service import SqlWorkerDirectory, WorkerDirectory

logger = get_logger("modules.attendance.service")


class AttendanceLedger(BaseService[AttendanceRecordModel]):
    """
    Write side of the attendance ledger.

    Usage::

        ledger = AttendanceLedger(uow, clock=clock)
        attendance_id = ledger.mark_attendance(
            worker_id=7, project_id=3, attendance_date=date(2025, 1, 15),
            kind="full", marked_by=actor_id,
        )
        ledger.confirm_attendance(attendance_id, supervisor_id)
    """

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

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _parse_kind(self, kind: AttendanceKind | str | None) -> AttendanceKind:
        if kind is None:
            raise MissingFieldError("kind")
        if isinstance(kind, AttendanceKind):
            return kind
        try:
            return AttendanceKind(str(kind).strip().lower())
        except ValueError:
            raise InvalidAttendanceError(f"unknown attendance kind {kind!r}") from None

    def _resolve_hours(
        self,
        kind: AttendanceKind,
        hours_worked: Decimal | int | str | None,
        overtime_hours: Decimal | int | str | None,
    ) -> tuple[Decimal, Decimal]:
        standard = self.payroll.standard_hours_per_day
        if hours_worked is None:
            defaults = {
                AttendanceKind.FULL: standard,
                AttendanceKind.HALF: standard * self.payroll.half_day_factor,
                AttendanceKind.ABSENT: ZERO,
            }
            if kind not in defaults:
                raise InvalidAttendanceError("hourly attendance requires hours_worked > 0")
            hours = quantize(defaults[kind])
        else:
            hours = to_amount(hours_worked, "hours_worked")
        overtime = to_amount(overtime_hours, "overtime_hours")

        if kind is AttendanceKind.HOURLY and hours <= ZERO:
            raise InvalidAttendanceError("hourly attendance requires hours_worked > 0")
        if kind is AttendanceKind.ABSENT and overtime > ZERO:
            raise InvalidAttendanceError("absent attendance cannot carry overtime")
        if hours + overtime > self.payroll.max_hours_per_day:
            raise InvalidAttendanceError(
                f"hours_worked + overtime_hours = {hours + overtime} exceeds "
                f"{self.payroll.max_hours_per_day} hours per day"
            )
        return hours, overtime

    # ------------------------------------------------------------------
    # Marking
    # ------------------------------------------------------------------

    def mark_attendance(
        self,
        worker_id: int,
        project_id: int,
        attendance_date: date,
        kind: AttendanceKind | str,
        marked_by: UUID,
        hours_worked: Decimal | int | str | None = None,
        overtime_hours: Decimal | int | str | None = None,
        substitute_worker_id: int | None = None,
        notes: str | None = None,
    ) -> UUID:
        """
        Record attendance in DRAFT and return its id.

        Raises:
            MissingFieldError: a required argument is None.
            FutureDateError: attendance_date is after today.
            WorkerInactiveError: worker missing or deactivated.
            InvalidAttendanceError: hours inconsistent with the kind, or
                the substitute is the worker itself.
            WorkerNotFoundError: substitute worker does not exist.
            DuplicateAttendanceError: record exists for worker/project/date.
        """
        for field_name, value in (
            ("worker_id", worker_id),
            ("project_id", project_id),
            ("attendance_date", attendance_date),
            ("marked_by", marked_by),
        ):
            if value is None:
                raise MissingFieldError(field_name)

        attendance_kind = self._parse_kind(kind)
        hours, overtime = self._resolve_hours(attendance_kind, hours_worked, overtime_hours)

        today = self.clock.today()
        if attendance_date > today:
            logger.warning(
                "attendance_future_date_rejected",
                extra={"worker_id": worker_id, "attendance_date": attendance_date.isoformat()},
            )
            raise FutureDateError(attendance_date, today)

        if substitute_worker_id is not None and substitute_worker_id == worker_id:
            raise InvalidAttendanceError("a worker cannot substitute for themselves")

        with LogContext.bind(worker_id=worker_id, project_id=project_id, actor_id=marked_by):
            with self.uow.transaction("mark_attendance"):
                self.workers.require_active(worker_id)
                if substitute_worker_id is not None and not self.workers.exists(substitute_worker_id):
                    raise WorkerNotFoundError(substitute_worker_id)
                self.uow.lock_worker(worker_id)

                existing_id = self.session.scalar(
                    select(AttendanceRecordModel.id).where(
                        AttendanceRecordModel.worker_id == worker_id,
                        AttendanceRecordModel.project_id == project_id,
                        AttendanceRecordModel.attendance_date == attendance_date,
                    )
                )
                if existing_id is not None:
                    logger.warning(
                        "attendance_duplicate_rejected",
                        extra={
                            "attendance_date": attendance_date.isoformat(),
                            "existing_id": str(existing_id),
                        },
                    )
                    raise DuplicateAttendanceError(
                        worker_id, project_id, attendance_date, existing_id,
                    )

                now = self.clock.now()
                model = AttendanceRecordModel(
                    worker_id=worker_id,
                    project_id=project_id,
                    attendance_date=attendance_date,
                    attendance_kind=attendance_kind.value,
                    hours_worked=hours,
                    overtime_hours=overtime,
                    substitute_worker_id=substitute_worker_id,
                    state=AttendanceState.DRAFT.value,
                    marked_by_id=marked_by,
                    notes=notes,
                    created_at=now,
                    updated_at=now,
                    created_by_id=marked_by,
                )
                self.session.add(model)
                try:
                    self.session.flush()
                except IntegrityError:
                    raise DuplicateAttendanceError(
                        worker_id, project_id, attendance_date,
                    ) from None
                attendance_id = model.id

            logger.info(
                "attendance_marked",
                extra={
                    "attendance_id": str(attendance_id),
                    "attendance_date": attendance_date.isoformat(),
                    "kind": attendance_kind.value,
                    "hours_worked": str(hours),
                    "overtime_hours": str(overtime),
                },
            )
        return attendance_id

    # ------------------------------------------------------------------
    # Confirmation
    # ------------------------------------------------------------------

    def _confirm_locked(self, model: AttendanceRecordModel, user_id: UUID) -> bool:
        """Confirm a row whose worker is already locked.  True if it changed."""
        if model.state == AttendanceState.CONFIRMED.value:
            return False
        if model.state != AttendanceState.DRAFT.value:
            raise InvalidTransitionError(
                "AttendanceRecord", model.id, model.state, AttendanceState.CONFIRMED.value,
            )
        model.state = AttendanceState.CONFIRMED.value
        model.confirmed_by_id = user_id
        model.confirmed_at = self.clock.now()
        model.updated_by_id = user_id
        return True

    def confirm_attendance(self, attendance_id: UUID, user_id: UUID) -> AttendanceRecord:
        """
        Move a DRAFT record to CONFIRMED.

        Confirming an already-confirmed, unpaid record is a no-op.

        Raises:
            AttendanceNotFoundError: unknown id.
            AlreadyPaidError: record is linked to a payment.
        """
        with self.uow.transaction("confirm_attendance"):
            model = self.session.get(AttendanceRecordModel, attendance_id)
            if model is None:
                raise AttendanceNotFoundError(attendance_id)
            self.uow.lock_worker(model.worker_id)
            self.session.refresh(model)

            if model.linked_payment_id is not None:
                logger.warning(
                    "attendance_confirm_rejected_paid",
                    extra={
                        "attendance_id": str(attendance_id),
                        "payment_id": str(model.linked_payment_id),
                        "error_code": AlreadyPaidError.code,
                    },
                )
                raise AlreadyPaidError(attendance_id, model.linked_payment_id)

            changed = self._confirm_locked(model, user_id)
            if changed:
                self.session.flush()
            record = model.to_dto()

        if changed:
            logger.info(
                "attendance_confirmed",
                extra={"attendance_id": str(attendance_id), "worker_id": record.worker_id},
            )
            self._audit("attendance_confirmed", record, user_id)
        else:
            logger.debug("attendance_confirm_noop", extra={"attendance_id": str(attendance_id)})
        return record

    def confirm_bulk(self, ids: Iterable[UUID], user_id: UUID) -> BulkConfirmResult:
        """
        Confirm every listed record that is not yet paid.

        Paid ids are skipped, not failed.  Workers are locked in ascending id
        order so two overlapping batches cannot deadlock.
        """
        unique_ids = list(dict.fromkeys(ids))
        confirmed: list[UUID] = []
        already: list[UUID] = []
        skipped: list[UUID] = []
        missing: list[UUID] = []

        with self.uow.transaction("confirm_attendance_bulk"):
            models: dict[UUID, AttendanceRecordModel] = {}
            if unique_ids:
                stmt = select(AttendanceRecordModel).where(AttendanceRecordModel.id.in_(unique_ids))
                models = {m.id: m for m in self.session.scalars(stmt)}

            for worker_id in sorted({m.worker_id for m in models.values()}):
                self.uow.lock_worker(worker_id)
            for model in models.values():
                self.session.refresh(model)

            for attendance_id in unique_ids:
                model = models.get(attendance_id)
                if model is None:
                    missing.append(attendance_id)
                elif model.linked_payment_id is not None:
                    skipped.append(attendance_id)
                elif self._confirm_locked(model, user_id):
                    confirmed.append(attendance_id)
                else:
                    already.append(attendance_id)
            self.session.flush()
            records = [models[i].to_dto() for i in confirmed]

        result = BulkConfirmResult(
            confirmed=tuple(confirmed),
            already_confirmed=tuple(already),
            skipped_paid=tuple(skipped),
            not_found=tuple(missing),
        )
        logger.info(
            "attendance_bulk_confirmed",
            extra={
                "requested": len(unique_ids),
                "confirmed": len(confirmed),
                "already_confirmed": len(already),
                "skipped_paid": len(skipped),
                "not_found": len(missing),
            },
        )
        for record in records:
            self._audit("attendance_confirmed", record, user_id)
        return result

    # ------------------------------------------------------------------
    # Payroll linkage
    # ------------------------------------------------------------------

    def link_to_payment(
        self,
        worker_id: int,
        project_id: int,
        payment_date: date,
        payment_id: UUID,
        actor_id: UUID | None = None,
    ) -> int:
        """
        Link CONFIRMED, unlinked attendance dated on or before
        ``payment_date`` to ``payment_id``.  Returns the number of rows
        linked.  DRAFT rows are never touched.

        Called by the payroll settlement service for WAGES and
        FINAL_SETTLEMENT payments only, inside its transaction.
        """
        with self.uow.transaction("link_attendance_to_payment"):
            self.uow.lock_worker(worker_id)
            rows = self.session.scalars(
                select(AttendanceRecordModel).where(
                    AttendanceRecordModel.worker_id == worker_id,
                    AttendanceRecordModel.project_id == project_id,
                    AttendanceRecordModel.state == AttendanceState.CONFIRMED.value,
                    AttendanceRecordModel.linked_payment_id.is_(None),
                    AttendanceRecordModel.attendance_date <= payment_date,
                )
            ).all()
            for model in rows:
                model.linked_payment_id = payment_id
                if actor_id is not None:
                    model.updated_by_id = actor_id
            self.session.flush()

        logger.info(
            "attendance_linked_to_payment",
            extra={
                "worker_id": worker_id,
                "project_id": project_id,
                "payment_id": str(payment_id),
                "linked_count": len(rows),
            },
        )
        return len(rows)

    def _audit(self, action: str, record: AttendanceRecord, actor_id: UUID) -> None:
        try:
            self.audit_sink.record(
                AuditRecord(
                    action=action,
                    entity_type="AttendanceRecord",
                    entity_id=str(record.id),
                    actor_id=actor_id,
                    occurred_at=self.clock.now(),
                    details={
                        "worker_id": record.worker_id,
                        "project_id": record.project_id,
                        "attendance_date": record.attendance_date.isoformat(),
                    },
                )
            )
        except Exception:
            logger.exception("audit_sink_failed", extra={"action": action})
