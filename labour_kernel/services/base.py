"""
BaseService -- abstract base for all ledger write services.

Responsibility:
    Provides the common constructor for every service that mutates the
    labour ledger.  Services receive a ``UnitOfWork`` and write through its
    session, wrapping each public operation in ``uow.transaction()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - Transaction boundaries belong to the UnitOfWork.  Services flush but
      never call ``session.commit()`` or ``session.rollback()`` directly, so
      nested operations (linking, settlement, penalty flagging) join the
      caller's transaction.
"""

from abc import ABC
from typing import Generic, TypeVar

from labour_kernel.db.base import Base
from labour_kernel.db.unit_of_work import UnitOfWork
from labour_kernel.domain.clock import Clock, SystemClock

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all ledger services.

    Contract:
        Accepts a ``UnitOfWork`` from the caller.  ``self.session`` is the
        unit of work's session, exposed for query convenience.

    Non-goals:
        - Does NOT provide read-only listings; those belong in selectors.
    """

    def __init__(self, uow: UnitOfWork, clock: Clock | None = None):
        self.uow = uow
        self.session = uow.session
        self.clock = clock or SystemClock()
