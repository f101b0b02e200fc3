"""Payment Selectors (``labour_modules.payments.selectors``)."""

from uuid import UUID

from sqlalchemy import select

from labour_engines.settlement import AdvanceBalance, fifo_order_key
from labour_kernel.selectors.base import BaseSelector
from labour_modules.payments.models import PaymentKind, PaymentRecord
from labour_modules.payments.orm import PaymentRecordModel


class PaymentSelector(BaseSelector[PaymentRecordModel]):
    """Read side of the payment ledger."""

    def get(self, payment_id: UUID) -> PaymentRecord | None:
        model = self.session.get(PaymentRecordModel, payment_id)
        return model.to_dto() if model is not None else None

    def list_payments(
        self,
        worker_id: int | None = None,
        project_id: int | None = None,
    ) -> list[PaymentRecord]:
        """Payments newest first."""
        stmt = select(PaymentRecordModel)
        if worker_id is not None:
            stmt = stmt.where(PaymentRecordModel.worker_id == worker_id)
        if project_id is not None:
            stmt = stmt.where(PaymentRecordModel.project_id == project_id)
        stmt = stmt.order_by(
            PaymentRecordModel.payment_date.desc(),
            PaymentRecordModel.created_at.desc(),
        )
        return [m.to_dto() for m in self.session.scalars(stmt)]

    def outstanding_advances(self, worker_id: int, project_id: int) -> list[AdvanceBalance]:
        """Advances with a positive remainder in the order they will be recovered."""
        stmt = select(PaymentRecordModel).where(
            PaymentRecordModel.worker_id == worker_id,
            PaymentRecordModel.project_id == project_id,
            PaymentRecordModel.payment_kind == PaymentKind.ADVANCE.value,
            PaymentRecordModel.net_amount > PaymentRecordModel.settled_amount,
        )
        return sorted(
            (m.to_advance_balance() for m in self.session.scalars(stmt)),
            key=fifo_order_key,
        )
