"""
Daily Labour Summary (``labour_modules.reporting.summary``).

Per-day dashboard figures: who was on site and what cash moved.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import case, func, select

from labour_kernel.domain.amounts import quantize
from labour_kernel.selectors.base import BaseSelector
from labour_modules.attendance.orm import AttendanceRecordModel
from labour_modules.payments.models import PaymentKind
from labour_modules.payments.orm import PaymentRecordModel
from labour_modules.reporting.models import DailyLabourSummary

_ADVANCE = PaymentKind.ADVANCE.value


class LabourSummarySelector(BaseSelector[AttendanceRecordModel]):
    """Daily attendance and payment activity."""

    def __init__(self, session, amount_places: int = 2):
        super().__init__(session)
        self.amount_places = amount_places

    def daily_summary(self, day: date, project_id: int | None = None) -> DailyLabourSummary:
        attendance_stmt = (
            select(AttendanceRecordModel.attendance_kind, func.count(AttendanceRecordModel.id))
            .where(AttendanceRecordModel.attendance_date == day)
            .group_by(AttendanceRecordModel.attendance_kind)
        )
        is_advance = PaymentRecordModel.payment_kind == _ADVANCE
        gross = (
            PaymentRecordModel.base_amount
            + PaymentRecordModel.overtime_amount
            + PaymentRecordModel.bonus_amount
        )
        payment_stmt = select(
            func.coalesce(func.sum(case((~is_advance, gross), else_=0)), 0),
            func.coalesce(func.sum(case((is_advance, PaymentRecordModel.net_amount), else_=0)), 0),
            func.coalesce(func.sum(PaymentRecordModel.penalty_deduction), 0),
            func.coalesce(func.sum(PaymentRecordModel.net_amount), 0),
        ).where(PaymentRecordModel.payment_date == day)

        if project_id is not None:
            attendance_stmt = attendance_stmt.where(AttendanceRecordModel.project_id == project_id)
            payment_stmt = payment_stmt.where(PaymentRecordModel.project_id == project_id)

        by_kind = {kind: count for kind, count in self.session.execute(attendance_stmt)}
        wages, advances, penalties, net_cash = self.session.execute(payment_stmt).one()

        places = self.amount_places
        return DailyLabourSummary(
            day=day,
            project_id=project_id,
            attendance_by_kind=by_kind,
            gross_wages=quantize(Decimal(wages), places),
            advances_paid=quantize(Decimal(advances), places),
            penalties_applied=quantize(Decimal(penalties), places),
            net_cash_disbursed=quantize(Decimal(net_cash), places),
        )
