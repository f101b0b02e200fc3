"""
Advance Settlement Engine (``labour_modules.payments.advances``).

Responsibility
--------------
Tracks how much of each cash advance has been recovered and applies a
recovery amount across a worker's advances oldest first.  The allocation
itself is the pure ``labour_engines.settlement.plan_fifo_settlement``;
this service loads the balances and writes the plan back.

Invariants enforced
-------------------
* Conservation: the per-advance increments sum to the requested amount.
* No advance's ``settled_amount`` exceeds its ``net_amount``.
* ``settled_amount`` only ever grows.

Failure modes
-------------
* ``InvalidAmountError`` for a negative amount.
* ``SettlementOverflowError`` when the amount exceeds what is outstanding;
  nothing is written in that case.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from labour_engines.settlement import (
    AdvanceBalance,
    SettlementPlan,
    fifo_order_key,
    plan_fifo_settlement,
)
from labour_kernel.db.unit_of_work import UnitOfWork
from labour_kernel.domain.amounts import ZERO, quantize, to_amount
from labour_kernel.domain.clock import Clock
from labour_kernel.exceptions import SettlementOverflowError
from labour_kernel.logging_config import get_logger
from labour_kernel.services.base import BaseService
from labour_modules.payments.models import PaymentKind
from labour_modules.payments.orm import PaymentRecordModel

logger = get_logger("modules.payments.advances")


class AdvanceSettlementEngine(BaseService[PaymentRecordModel]):
    """Outstanding advance balances and FIFO recovery."""

    def __init__(self, uow: UnitOfWork, clock: Clock | None = None, amount_places: int = 2):
        super().__init__(uow, clock)
        self.amount_places = amount_places

    def _outstanding_query(self, worker_id: int, project_id: int):
        return select(PaymentRecordModel).where(
            PaymentRecordModel.worker_id == worker_id,
            PaymentRecordModel.project_id == project_id,
            PaymentRecordModel.payment_kind == PaymentKind.ADVANCE.value,
            PaymentRecordModel.net_amount > PaymentRecordModel.settled_amount,
        )

    def outstanding_advances(self, worker_id: int, project_id: int) -> list[AdvanceBalance]:
        """Advances with a positive remainder, oldest debt first."""
        rows = self.session.scalars(self._outstanding_query(worker_id, project_id))
        return sorted((m.to_advance_balance() for m in rows), key=fifo_order_key)

    def outstanding_advance_total(self, worker_id: int, project_id: int) -> Decimal:
        """Sum of (net_amount - settled_amount) over outstanding advances."""
        total = self.session.scalar(
            select(
                func.coalesce(
                    func.sum(PaymentRecordModel.net_amount - PaymentRecordModel.settled_amount),
                    0,
                )
            ).where(
                PaymentRecordModel.worker_id == worker_id,
                PaymentRecordModel.project_id == project_id,
                PaymentRecordModel.payment_kind == PaymentKind.ADVANCE.value,
                PaymentRecordModel.net_amount > PaymentRecordModel.settled_amount,
            )
        )
        return quantize(Decimal(total), self.amount_places)

    def settle(
        self,
        worker_id: int,
        project_id: int,
        deduction_amount: Decimal | int | str,
        actor_id: UUID | None = None,
    ) -> SettlementPlan:
        """
        Recover ``deduction_amount`` from outstanding advances, oldest first.

        A zero amount is a no-op.

        Raises:
            InvalidAmountError: negative amount.
            SettlementOverflowError: amount exceeds the outstanding total.
        """
        amount = to_amount(deduction_amount, "deduction_amount", self.amount_places)
        if amount == ZERO:
            return SettlementPlan(requested=amount, lines=(), unallocated=ZERO)

        with self.uow.transaction("settle_advances"):
            self.uow.lock_worker(worker_id)
            models = {
                m.id: m for m in self.session.scalars(self._outstanding_query(worker_id, project_id))
            }
            plan = plan_fifo_settlement(
                amount=amount,
                advances=[m.to_advance_balance() for m in models.values()],
            )
            if not plan.is_complete:
                outstanding = plan.total_applied
                logger.error(
                    "advance_settlement_overflow",
                    extra={
                        "worker_id": worker_id,
                        "project_id": project_id,
                        "requested": str(amount),
                        "outstanding": str(outstanding),
                    },
                )
                raise SettlementOverflowError(requested=amount, outstanding=outstanding)

            for line in plan.lines:
                model = models[line.payment_id]
                model.settled_amount = line.settled_after
                if actor_id is not None:
                    model.updated_by_id = actor_id
            self.session.flush()

        logger.info(
            "advances_settled",
            extra={
                "worker_id": worker_id,
                "project_id": project_id,
                "amount": str(amount),
                "advances_touched": len(plan.lines),
                "fully_recovered": sum(1 for line in plan.lines if line.outstanding_after == ZERO),
            },
        )
        return plan
