"""
Penalty ORM Persistence Model (``labour_modules.penalties.orm``).

Invariants enforced:
    - ``amount`` is Decimal (Numeric(38,9)) -- NEVER float.
    - A deducted penalty is frozen (labour_kernel.db.immutability).
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from labour_kernel.db.base import TrackedBase


class PenaltyRecordModel(TrackedBase):
    """ORM model for ``PenaltyRecord``."""

    __tablename__ = "labour_penalties"

    worker_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("labour_workers.id"), nullable=False,
    )
    project_id: Mapped[int] = mapped_column(Integer, nullable=False)
    penalty_date: Mapped[date] = mapped_column(Date, nullable=False)
    penalty_kind: Mapped[str] = mapped_column(String(50), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_deducted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    deducted_by_payment_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("labour_payments.id"), nullable=True,
    )
    deducted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    __table_args__ = (
        Index("idx_labour_penalty_outstanding", "worker_id", "project_id", "is_deducted"),
        Index("idx_labour_penalty_payment", "deducted_by_payment_id"),
    )

    def to_dto(self):
        from labour_modules.penalties.models import PenaltyRecord
        return PenaltyRecord(
            id=self.id,
            worker_id=self.worker_id,
            project_id=self.project_id,
            penalty_date=self.penalty_date,
            kind=self.penalty_kind,
            amount=self.amount,
            reason=self.reason,
            is_deducted=self.is_deducted,
            deducted_by_payment_id=self.deducted_by_payment_id,
            deducted_at=self.deducted_at,
        )

    def __repr__(self) -> str:
        state = "deducted" if self.is_deducted else "outstanding"
        return f"<PenaltyRecordModel worker={self.worker_id} {self.amount} ({state})>"
