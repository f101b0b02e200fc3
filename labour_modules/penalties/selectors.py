"""Penalty Selectors (``labour_modules.penalties.selectors``)."""

from sqlalchemy import select

from labour_kernel.selectors.base import BaseSelector
from labour_modules.penalties.models import PenaltyRecord
from labour_modules.penalties.orm import PenaltyRecordModel


class PenaltySelector(BaseSelector[PenaltyRecordModel]):
    """Read side of the penalty ledger."""

    def list_penalties(
        self,
        worker_id: int | None = None,
        project_id: int | None = None,
    ) -> list[PenaltyRecord]:
        """Penalties newest first."""
        stmt = select(PenaltyRecordModel)
        if worker_id is not None:
            stmt = stmt.where(PenaltyRecordModel.worker_id == worker_id)
        if project_id is not None:
            stmt = stmt.where(PenaltyRecordModel.project_id == project_id)
        stmt = stmt.order_by(
            PenaltyRecordModel.penalty_date.desc(),
            PenaltyRecordModel.created_at.desc(),
        )
        return [m.to_dto() for m in self.session.scalars(stmt)]

    def outstanding(self, worker_id: int, project_id: int) -> list[PenaltyRecord]:
        stmt = (
            select(PenaltyRecordModel)
            .where(
                PenaltyRecordModel.worker_id == worker_id,
                PenaltyRecordModel.project_id == project_id,
                PenaltyRecordModel.is_deducted.is_(False),
            )
            .order_by(PenaltyRecordModel.penalty_date, PenaltyRecordModel.created_at)
        )
        return [m.to_dto() for m in self.session.scalars(stmt)]
