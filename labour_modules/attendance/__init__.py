"""Attendance: one fact per worker, project and day; frozen once paid."""

from labour_modules.attendance.models import (
    AttendanceKind,
    AttendanceListing,
    AttendanceRecord,
    AttendanceState,
    BulkConfirmResult,
    UnpaidWageEstimate,
)
from labour_modules.attendance.selectors import AttendanceSelector
from labour_modules.attendance.service import AttendanceLedger

__all__ = [
    "AttendanceKind",
    "AttendanceLedger",
    "AttendanceListing",
    "AttendanceRecord",
    "AttendanceSelector",
    "AttendanceState",
    "BulkConfirmResult",
    "UnpaidWageEstimate",
]
