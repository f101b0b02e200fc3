"""
Payment ORM Persistence Model (``labour_modules.payments.orm``).

Responsibility:
    Persists ``PaymentRecord``.  The table is append-only: the only column
    that ever changes after insert is ``settled_amount`` on advances
    (labour_kernel.db.immutability).

Invariants enforced:
    - uq_labour_payment_non_advance: one payment per (worker, project,
      date, kind) for every kind except ``advance``.  Backstop for the
      duplicate check in PayrollSettlementService.
    - ck_labour_payment_net_non_negative: net_amount >= 0.
    - ck_labour_payment_settled_bounds: 0 <= settled_amount <= net_amount.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from labour_kernel.db.base import TrackedBase

_NON_ADVANCE = text("payment_kind != 'advance'")


class PaymentRecordModel(TrackedBase):
    """
    ORM model for ``PaymentRecord``.

    Guarantees:
        - ``payment_kind`` stores the PaymentKind ``.value``.
        - ``penalty_deduction + advance_deduction == deduction_amount``.
    """

    __tablename__ = "labour_payments"

    worker_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("labour_workers.id"), nullable=False,
    )
    project_id: Mapped[int] = mapped_column(Integer, nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    payment_kind: Mapped[str] = mapped_column(String(30), nullable=False)
    base_amount: Mapped[Decimal] = mapped_column(nullable=False)
    overtime_amount: Mapped[Decimal] = mapped_column(nullable=False)
    bonus_amount: Mapped[Decimal] = mapped_column(nullable=False)
    penalty_deduction: Mapped[Decimal] = mapped_column(nullable=False)
    advance_deduction: Mapped[Decimal] = mapped_column(nullable=False)
    deduction_amount: Mapped[Decimal] = mapped_column(nullable=False)
    net_amount: Mapped[Decimal] = mapped_column(nullable=False)
    settled_amount: Mapped[Decimal] = mapped_column(nullable=False)
    payment_method: Mapped[str] = mapped_column(String(30), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index(
            "uq_labour_payment_non_advance",
            "worker_id", "project_id", "payment_date", "payment_kind",
            unique=True,
            sqlite_where=_NON_ADVANCE,
            postgresql_where=_NON_ADVANCE,
        ),
        Index("idx_labour_payment_worker_project", "worker_id", "project_id", "payment_kind"),
        Index("idx_labour_payment_project_date", "project_id", "payment_date"),
        CheckConstraint("net_amount >= 0", name="ck_labour_payment_net_non_negative"),
        CheckConstraint(
            "settled_amount >= 0 AND settled_amount <= net_amount",
            name="ck_labour_payment_settled_bounds",
        ),
    )

    def to_dto(self):
        from labour_modules.payments.models import PaymentKind, PaymentRecord
        return PaymentRecord(
            id=self.id,
            worker_id=self.worker_id,
            project_id=self.project_id,
            payment_date=self.payment_date,
            kind=PaymentKind(self.payment_kind),
            base_amount=self.base_amount,
            overtime_amount=self.overtime_amount,
            bonus_amount=self.bonus_amount,
            deduction_amount=self.deduction_amount,
            net_amount=self.net_amount,
            payment_method=self.payment_method,
            penalty_deduction=self.penalty_deduction,
            advance_deduction=self.advance_deduction,
            settled_amount=self.settled_amount,
            notes=self.notes,
        )

    def to_advance_balance(self):
        from labour_engines.settlement import AdvanceBalance
        return AdvanceBalance(
            payment_id=self.id,
            payment_date=self.payment_date,
            net_amount=self.net_amount,
            settled_amount=self.settled_amount,
            created_at=self.created_at,
        )

    def __repr__(self) -> str:
        return (
            f"<PaymentRecordModel {self.payment_kind} worker={self.worker_id} "
            f"project={self.project_id} {self.payment_date} net={self.net_amount}>"
        )
