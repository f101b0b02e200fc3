"""
Cost Aggregator (``labour_modules.reporting.cost``).

Responsibility
--------------
Accrual-based project labour cost for financial reports:

    gross_cost        = sum(base + overtime + bonus) over non-ADVANCE payments
    applied_penalties = sum(amount) over deducted penalties on the project
    net_labour_cost   = gross_cost - applied_penalties

``net_amount`` (cash handed over) is deliberately ignored.  An advance is
a receivable on the worker, not a project expense, and recovering it
through a later wage payment shrinks the cash paid without shrinking the
wage earned.
"""

from decimal import Decimal

from sqlalchemy import func, select

from labour_kernel.domain.amounts import quantize
from labour_kernel.selectors.base import BaseSelector
from labour_modules.attendance.models import AttendanceState
from labour_modules.attendance.orm import AttendanceRecordModel
from labour_modules.payments.models import PaymentKind
from labour_modules.payments.orm import PaymentRecordModel
from labour_modules.penalties.orm import PenaltyRecordModel
from labour_modules.reporting.models import ProjectLabourCost, WorkerPosition


class CostAggregator(BaseSelector[PaymentRecordModel]):
    """Read-only labour cost figures."""

    def __init__(self, session, amount_places: int = 2):
        super().__init__(session)
        self.amount_places = amount_places

    def _amount(self, value) -> Decimal:
        return quantize(Decimal(value), self.amount_places)

    def project_labour_cost(self, project_id: int) -> ProjectLabourCost:
        gross, count = self.session.execute(
            select(
                func.coalesce(
                    func.sum(
                        PaymentRecordModel.base_amount
                        + PaymentRecordModel.overtime_amount
                        + PaymentRecordModel.bonus_amount
                    ),
                    0,
                ),
                func.count(PaymentRecordModel.id),
            ).where(
                PaymentRecordModel.project_id == project_id,
                PaymentRecordModel.payment_kind != PaymentKind.ADVANCE.value,
            )
        ).one()

        applied = self.session.scalar(
            select(func.coalesce(func.sum(PenaltyRecordModel.amount), 0)).where(
                PenaltyRecordModel.project_id == project_id,
                PenaltyRecordModel.is_deducted.is_(True),
            )
        )

        return ProjectLabourCost(
            project_id=project_id,
            gross_cost=self._amount(gross),
            applied_penalties=self._amount(applied),
            wage_payment_count=count,
        )

    def worker_position(self, worker_id: int, project_id: int) -> WorkerPosition:
        advances = self.session.scalar(
            select(
                func.coalesce(
                    func.sum(PaymentRecordModel.net_amount - PaymentRecordModel.settled_amount),
                    0,
                )
            ).where(
                PaymentRecordModel.worker_id == worker_id,
                PaymentRecordModel.project_id == project_id,
                PaymentRecordModel.payment_kind == PaymentKind.ADVANCE.value,
            )
        )
        penalties = self.session.scalar(
            select(func.coalesce(func.sum(PenaltyRecordModel.amount), 0)).where(
                PenaltyRecordModel.worker_id == worker_id,
                PenaltyRecordModel.project_id == project_id,
                PenaltyRecordModel.is_deducted.is_(False),
            )
        )
        unpaid_days = self.session.scalar(
            select(func.count(AttendanceRecordModel.id)).where(
                AttendanceRecordModel.worker_id == worker_id,
                AttendanceRecordModel.project_id == project_id,
                AttendanceRecordModel.state == AttendanceState.CONFIRMED.value,
                AttendanceRecordModel.linked_payment_id.is_(None),
            )
        )
        return WorkerPosition(
            worker_id=worker_id,
            project_id=project_id,
            outstanding_advances=self._amount(advances),
            outstanding_penalties=self._amount(penalties),
            unpaid_attendance_days=unpaid_days,
        )
