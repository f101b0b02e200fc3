"""
Worker ORM Persistence Model (``labour_modules.workers.orm``).

Responsibility:
    Persists ``Worker``.  Unlike ledger records, workers keep the integer
    identifier the rest of the ERP uses.

Invariants enforced:
    - ``daily_rate`` is Decimal (Numeric(38,9)) -- NEVER float.
    - ``lock_version`` is bumped by ``UnitOfWork.lock_worker()`` as the
      first write of every settlement transaction; it carries no business
      meaning beyond serialising writers for one worker.
"""

from decimal import Decimal

from sqlalchemy import Boolean, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from labour_kernel.db.base import TrackedBase


class WorkerModel(TrackedBase):
    """
    ORM model for ``Worker``.

    Guarantees:
        - ``id`` is an autoincrementing integer unless supplied explicitly.
        - Inactive workers stay in the table so their history keeps
          resolving.
    """

    __tablename__ = "labour_workers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    skill: Mapped[str | None] = mapped_column(String(100), nullable=True)
    daily_rate: Mapped[Decimal] = mapped_column(nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    lock_version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    __table_args__ = (
        Index("idx_labour_worker_active", "is_active"),
    )

    def to_dto(self):
        from labour_modules.workers.models import Worker
        return Worker(
            id=self.id,
            name=self.name,
            daily_rate=self.daily_rate,
            is_active=self.is_active,
            skill=self.skill,
        )

    def __repr__(self) -> str:
        state = "active" if self.is_active else "inactive"
        return f"<WorkerModel {self.id}: {self.name} ({state})>"
