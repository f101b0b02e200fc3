"""
Module: labour_kernel.db.unit_of_work
Responsibility: Explicit unit-of-work object that owns the transaction
    boundary for every ledger write and provides the per-worker lock that
    serialises settlement for one worker.
Architecture position: Kernel > DB.  Consumed by every service in
    labour_modules; services receive a UnitOfWork instead of a bare session.

Invariants enforced:
    - Atomicity: duplicate check, deduction computation, persist, linkage,
      settlement and penalty flagging all run inside one transaction() block.
      Nested blocks join the outermost one; only the outermost commits.
    - Per-worker serialisation: lock_worker() issues an UPDATE on the worker
      row as the first write of the transaction.  PostgreSQL holds a row lock
      until commit; SQLite holds its database write lock.  A concurrent
      transaction for the same worker waits and then sees the committed rows.

Failure modes:
    - LabourKernelError raised inside the block: rolled back, re-raised as is.
    - SQLAlchemyError raised inside the block or on commit: rolled back and
      re-raised as TransactionFailedError.  Business logic never retries.
    - WorkerNotFoundError from lock_worker() if the worker row is missing.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from labour_kernel.exceptions import (
    LabourKernelError,
    TransactionFailedError,
    WorkerNotFoundError,
)
from labour_kernel.logging_config import get_logger

logger = get_logger("db.unit_of_work")


class UnitOfWork:
    """
    Transaction owner for one request.

    Contract:
        Wraps a single SQLAlchemy ``Session``.  Services open
        ``with uow.transaction("operation"):`` around each public operation;
        internal steps open the same block and therefore join the caller's
        transaction when there is one.

    Guarantees:
        - Exactly one commit per outermost block, or one rollback.
        - A worker is locked at most once per transaction.

    Non-goals:
        - Does NOT retry.  A failed transaction must be resubmitted by the
          caller with freshly derived inputs.
    """

    def __init__(self, session: Session):
        self.session = session
        self._depth = 0
        self._locked_workers: set[int] = set()

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    @contextmanager
    def transaction(self, operation: str) -> Generator[Session, None, None]:
        """Open (or join) the transaction for ``operation``."""
        if self._depth:
            self._depth += 1
            try:
                yield self.session
            finally:
                self._depth -= 1
            return

        self._depth = 1
        logger.debug("transaction_started", extra={"operation": operation})
        try:
            yield self.session
            self.session.commit()
            logger.debug("transaction_committed", extra={"operation": operation})
        except LabourKernelError as exc:
            self.session.rollback()
            logger.warning(
                "transaction_rolled_back",
                extra={"operation": operation, "error_code": exc.code},
            )
            raise
        except SQLAlchemyError as exc:
            self.session.rollback()
            reason = str(getattr(exc, "orig", None) or exc)
            logger.error(
                "transaction_failed",
                extra={"operation": operation, "reason": reason},
            )
            raise TransactionFailedError(operation, reason) from exc
        except BaseException:
            self.session.rollback()
            raise
        finally:
            self._depth = 0
            self._locked_workers.clear()

    def lock_worker(self, worker_id: int) -> None:
        """
        Serialise writes for ``worker_id`` until the transaction ends.

        Preconditions: called inside transaction().
        Raises:
            WorkerNotFoundError: if the worker row does not exist.
        """
        from labour_modules.workers.orm import WorkerModel

        if not self._depth:
            raise RuntimeError("lock_worker() must be called inside transaction()")
        if worker_id in self._locked_workers:
            return

        result = self.session.execute(
            update(WorkerModel)
            .where(WorkerModel.id == worker_id)
            .values(lock_version=WorkerModel.lock_version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise WorkerNotFoundError(worker_id)

        self._locked_workers.add(worker_id)
        logger.debug("worker_locked", extra={"worker_id": worker_id})
