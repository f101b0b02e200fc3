"""
Attendance ORM Persistence Model (``labour_modules.attendance.orm``).

Responsibility:
    Persists ``AttendanceRecord``.  Enum fields are stored as their
    ``.value`` strings.

Invariants enforced:
    - One row per (worker_id, project_id, attendance_date)
      (uq_labour_attendance_worker_project_date).  The service checks
      first; the constraint catches the race.
    - Once ``linked_payment_id`` is set the row is frozen
      (labour_kernel.db.immutability).
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from labour_kernel.db.base import TrackedBase


class AttendanceRecordModel(TrackedBase):
    """
    ORM model for ``AttendanceRecord``.

    Guarantees:
        - ``state`` is ``draft`` or ``confirmed``.
        - ``hours_worked`` and ``overtime_hours`` are Decimal.
    """

    __tablename__ = "labour_attendance"

    worker_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("labour_workers.id"), nullable=False,
    )
    project_id: Mapped[int] = mapped_column(Integer, nullable=False)
    attendance_date: Mapped[date] = mapped_column(Date, nullable=False)
    attendance_kind: Mapped[str] = mapped_column(String(20), nullable=False)
    hours_worked: Mapped[Decimal] = mapped_column(nullable=False)
    overtime_hours: Mapped[Decimal] = mapped_column(nullable=False)
    substitute_worker_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("labour_workers.id"), nullable=True,
    )
    state: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    linked_payment_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("labour_payments.id"), nullable=True,
    )
    marked_by_id: Mapped[UUID] = mapped_column(nullable=False)
    confirmed_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    confirmed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "worker_id", "project_id", "attendance_date",
            name="uq_labour_attendance_worker_project_date",
        ),
        Index("idx_labour_attendance_project_date", "project_id", "attendance_date"),
        Index(
            "idx_labour_attendance_unpaid",
            "worker_id", "project_id", "state", "linked_payment_id",
        ),
    )

    def to_dto(self):
        from labour_modules.attendance.models import (
            AttendanceKind,
            AttendanceRecord,
            AttendanceState,
        )
        return AttendanceRecord(
            id=self.id,
            worker_id=self.worker_id,
            project_id=self.project_id,
            attendance_date=self.attendance_date,
            kind=AttendanceKind(self.attendance_kind),
            hours_worked=self.hours_worked,
            overtime_hours=self.overtime_hours,
            state=AttendanceState(self.state),
            marked_by_id=self.marked_by_id,
            substitute_worker_id=self.substitute_worker_id,
            linked_payment_id=self.linked_payment_id,
            confirmed_by_id=self.confirmed_by_id,
            confirmed_at=self.confirmed_at,
            notes=self.notes,
        )

    def __repr__(self) -> str:
        return (
            f"<AttendanceRecordModel worker={self.worker_id} project={self.project_id} "
            f"{self.attendance_date} {self.attendance_kind} ({self.state})>"
        )
