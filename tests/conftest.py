"""
Pytest fixtures for the labour ledger test suite.

Provides:
- An in-memory SQLite engine and session per test, with every ledger
  table created and the immutability listeners registered
- A deterministic clock pinned to 2025-01-20 12:00 UTC
- Service and selector fixtures sharing one UnitOfWork
- Worker factory and structured log capture

The threaded race tests build their own file-backed SQLite engine
(see tests/concurrency).
"""

import json
import logging
from datetime import UTC, datetime
from decimal import Decimal
from io import StringIO
from typing import Generator
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session, sessionmaker

from labour_config.schema import PayrollConfig
from labour_kernel.db.engine import build_engine
from labour_kernel.db.unit_of_work import UnitOfWork
from labour_kernel.domain.clock import DeterministicClock
from labour_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from labour_kernel.services.audit_sink import InMemoryAuditSink
from labour_modules._orm_registry import create_all_tables
from labour_modules.attendance.selectors import AttendanceSelector
from labour_modules.attendance.service import AttendanceLedger
from labour_modules.payments.advances import AdvanceSettlementEngine
from labour_modules.payments.selectors import PaymentSelector
from labour_modules.payments.service import PayrollSettlementService
from labour_modules.penalties.selectors import PenaltySelector
from labour_modules.penalties.service import PenaltyLedger
from labour_modules.reporting.cost import CostAggregator
from labour_modules.reporting.summary import LabourSummarySelector
from labour_modules.workers.service import WorkerRegistry

# Test actor ID for all test operations
TEST_ACTOR_ID = uuid4()

TEST_NOW = datetime(2025, 1, 20, 12, 0, 0, tzinfo=UTC)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow_locks: mark test as potentially waiting for DB locks"
    )


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture labour_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, payroll_service):
            payroll_service.record_payment(...)
            logs = captured_logs()
            assert any(r["message"] == "payment_recorded" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("labour_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def engine():
    """Fresh in-memory SQLite engine with all ledger tables."""
    eng = build_engine("sqlite://")
    create_all_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine) -> Generator[Session, None, None]:
    factory = sessionmaker(bind=engine, expire_on_commit=False)
    sess = factory()
    yield sess
    sess.rollback()
    sess.close()


@pytest.fixture
def uow(session) -> UnitOfWork:
    return UnitOfWork(session)


@pytest.fixture
def test_actor_id() -> UUID:
    """Provide a consistent test actor ID."""
    return TEST_ACTOR_ID


# Clock fixtures


@pytest.fixture
def deterministic_clock():
    """Clock pinned to 2025-01-20 12:00 UTC."""
    return DeterministicClock(TEST_NOW)


# =============================================================================
# Service fixtures
# =============================================================================


@pytest.fixture
def payroll_config() -> PayrollConfig:
    return PayrollConfig()


@pytest.fixture
def audit_sink() -> InMemoryAuditSink:
    return InMemoryAuditSink()


@pytest.fixture
def worker_registry(uow, deterministic_clock) -> WorkerRegistry:
    return WorkerRegistry(uow, clock=deterministic_clock)


@pytest.fixture
def attendance_ledger(uow, deterministic_clock, payroll_config, audit_sink) -> AttendanceLedger:
    return AttendanceLedger(
        uow, clock=deterministic_clock, payroll=payroll_config, audit_sink=audit_sink,
    )


@pytest.fixture
def penalty_ledger(uow, deterministic_clock, payroll_config, audit_sink) -> PenaltyLedger:
    return PenaltyLedger(
        uow, clock=deterministic_clock, payroll=payroll_config, audit_sink=audit_sink,
    )


@pytest.fixture
def advance_engine(uow, deterministic_clock) -> AdvanceSettlementEngine:
    return AdvanceSettlementEngine(uow, clock=deterministic_clock)


@pytest.fixture
def payroll_service(
    uow,
    deterministic_clock,
    payroll_config,
    audit_sink,
    attendance_ledger,
    penalty_ledger,
    advance_engine,
) -> PayrollSettlementService:
    return PayrollSettlementService(
        uow,
        clock=deterministic_clock,
        payroll=payroll_config,
        audit_sink=audit_sink,
        attendance=attendance_ledger,
        penalties=penalty_ledger,
        advances=advance_engine,
    )


@pytest.fixture
def attendance_selector(session) -> AttendanceSelector:
    return AttendanceSelector(session)


@pytest.fixture
def payment_selector(session) -> PaymentSelector:
    return PaymentSelector(session)


@pytest.fixture
def penalty_selector(session) -> PenaltySelector:
    return PenaltySelector(session)


@pytest.fixture
def cost_aggregator(session) -> CostAggregator:
    return CostAggregator(session)


@pytest.fixture
def summary_selector(session) -> LabourSummarySelector:
    return LabourSummarySelector(session)


# =============================================================================
# Data factories
# =============================================================================


@pytest.fixture
def make_worker(worker_registry, test_actor_id):
    """
    Register a worker and return its id.

    Usage::

        worker_id = make_worker(worker_id=7, daily_rate="600")
    """

    def _make(
        worker_id: int | None = None,
        name: str = "Ramesh Kumar",
        daily_rate: Decimal | str = "600.00",
        skill: str | None = "mason",
    ) -> int:
        return worker_registry.register(
            name=name,
            daily_rate=daily_rate,
            actor_id=test_actor_id,
            skill=skill,
            worker_id=worker_id,
        )

    return _make
