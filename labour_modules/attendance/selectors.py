"""
Attendance Selectors (``labour_modules.attendance.selectors``).

Read-only queries over the attendance ledger: listings for supervisors and
the advisory value of confirmed attendance that no payment covers yet.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import select

from labour_config.schema import PayrollConfig
from labour_engines.wages import WorkDay, estimate_wages
from labour_kernel.exceptions import AttendanceNotFoundError, WorkerNotFoundError
from labour_kernel.selectors.base import BaseSelector
from labour_modules.attendance.models import (
    AttendanceListing,
    AttendanceRecord,
    AttendanceState,
    UnpaidWageEstimate,
)
from labour_modules.attendance.orm import AttendanceRecordModel
from labour_modules.payments.orm import PaymentRecordModel
from labour_modules.workers.orm import WorkerModel


class AttendanceSelector(BaseSelector[AttendanceRecordModel]):
    """Read side of the attendance ledger."""

    def get(self, attendance_id: UUID) -> AttendanceRecord:
        model = self.session.get(AttendanceRecordModel, attendance_id)
        if model is None:
            raise AttendanceNotFoundError(attendance_id)
        return model.to_dto()

    def list_attendance(
        self,
        project_id: int | None = None,
        on_date: date | None = None,
        worker_id: int | None = None,
    ) -> list[AttendanceListing]:
        """Attendance newest first, with worker name and paying payment date."""
        stmt = (
            select(AttendanceRecordModel, WorkerModel.name, PaymentRecordModel.payment_date)
            .join(WorkerModel, WorkerModel.id == AttendanceRecordModel.worker_id)
            .outerjoin(
                PaymentRecordModel,
                PaymentRecordModel.id == AttendanceRecordModel.linked_payment_id,
            )
        )
        if project_id is not None:
            stmt = stmt.where(AttendanceRecordModel.project_id == project_id)
        if on_date is not None:
            stmt = stmt.where(AttendanceRecordModel.attendance_date == on_date)
        if worker_id is not None:
            stmt = stmt.where(AttendanceRecordModel.worker_id == worker_id)
        stmt = stmt.order_by(
            AttendanceRecordModel.attendance_date.desc(),
            AttendanceRecordModel.created_at.desc(),
        )

        return [
            AttendanceListing(record=model.to_dto(), worker_name=name, payment_date=paid_on)
            for model, name, paid_on in self.session.execute(stmt)
        ]

    def unpaid_confirmed(
        self,
        worker_id: int,
        project_id: int,
        up_to: date | None = None,
    ) -> list[AttendanceRecord]:
        """CONFIRMED, unlinked attendance oldest first."""
        stmt = select(AttendanceRecordModel).where(
            AttendanceRecordModel.worker_id == worker_id,
            AttendanceRecordModel.project_id == project_id,
            AttendanceRecordModel.state == AttendanceState.CONFIRMED.value,
            AttendanceRecordModel.linked_payment_id.is_(None),
        )
        if up_to is not None:
            stmt = stmt.where(AttendanceRecordModel.attendance_date <= up_to)
        stmt = stmt.order_by(AttendanceRecordModel.attendance_date)
        return [m.to_dto() for m in self.session.scalars(stmt)]

    def unpaid_wage_estimate(
        self,
        worker_id: int,
        project_id: int,
        up_to: date,
        payroll: PayrollConfig | None = None,
    ) -> UnpaidWageEstimate:
        """
        Estimate base and overtime for confirmed attendance not yet paid.

        Advisory only: the figure is never fed into payment recording.
        """
        payroll = payroll or PayrollConfig()
        worker = self.session.get(WorkerModel, worker_id)
        if worker is None:
            raise WorkerNotFoundError(worker_id)

        records = self.unpaid_confirmed(worker_id, project_id, up_to)
        estimate = estimate_wages(
            days=[
                WorkDay(
                    kind=r.kind.value,
                    hours_worked=r.hours_worked,
                    overtime_hours=r.overtime_hours,
                )
                for r in records
            ],
            daily_rate=worker.daily_rate,
            standard_hours=payroll.standard_hours_per_day,
            overtime_multiplier=payroll.overtime_multiplier,
            half_day_factor=payroll.half_day_factor,
            places=payroll.amount_places,
        )
        return UnpaidWageEstimate(
            worker_id=worker_id,
            project_id=project_id,
            up_to=up_to,
            days=estimate.days,
            day_equivalents=estimate.day_equivalents,
            daily_rate=worker.daily_rate,
            base_amount=estimate.base_amount,
            overtime_amount=estimate.overtime_amount,
        )
