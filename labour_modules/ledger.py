"""
labour_modules.ledger -- composition root for the labour ledger.

Responsibility:
    Builds every service and selector for one session exactly once and
    wires them together, so that all writes in a request share a single
    UnitOfWork, clock, payroll configuration and audit sink.  No service
    constructs its collaborators when built through here.

    ``open_ledger_database`` turns the active configuration into a ready
    session factory: it configures logging at the configured level, builds
    the engine, creates the schema if asked and installs the immutability
    listeners.

Usage:
    from labour_config import get_active_config
    from labour_modules.ledger import LabourLedger, open_ledger_database

    config = get_active_config()
    sessions = open_ledger_database(config)

    with sessions() as session:
        ledger = LabourLedger(session, payroll=config.payroll)
        ledger.payroll.record_payment(...)
        ledger.cost.project_labour_cost(project_id=3)
"""

from __future__ import annotations

from sqlalchemy.orm import Session, sessionmaker

from labour_config.schema import LabourConfig, PayrollConfig
from labour_kernel.db.engine import engine_from_config
from labour_kernel.db.unit_of_work import UnitOfWork
from labour_kernel.domain.clock import Clock, SystemClock
from labour_kernel.logging_config import configure_logging, get_logger
from labour_kernel.services.audit_sink import AuditSink, LoggingAuditSink
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
from labour_modules.workers.service import SqlWorkerDirectory, WorkerRegistry

logger = get_logger("modules.ledger")


def open_ledger_database(config: LabourConfig, create_schema: bool = True) -> sessionmaker[Session]:
    """
    Prepare the database described by ``config`` and return a session factory.

    Sessions do not expire loaded rows on commit, so DTOs built after a
    transaction closes still read their columns without a new query.
    """
    configure_logging(level=config.logging.level)
    engine = engine_from_config(config.database)
    if create_schema:
        create_all_tables(engine)
    else:
        from labour_kernel.db.immutability import register_immutability_listeners

        register_immutability_listeners()

    logger.info(
        "ledger_database_opened",
        extra={
            "dialect": engine.dialect.name,
            "schema_created": create_schema,
            "config_checksum": config.checksum,
        },
    )
    return sessionmaker(bind=engine, expire_on_commit=False)


class LabourLedger:
    """
    All ledger services and selectors for one session.

    Writers:  workers, attendance, penalties, advances, payroll
    Readers:  attendance_view, payments_view, penalties_view, cost, summary
    """

    def __init__(
        self,
        session: Session,
        payroll: PayrollConfig | None = None,
        clock: Clock | None = None,
        audit_sink: AuditSink | None = None,
    ):
        self.session = session
        self.uow = UnitOfWork(session)
        self.payroll_config = payroll or PayrollConfig()
        self.clock = clock or SystemClock()
        self.audit_sink = audit_sink or LoggingAuditSink()

        places = self.payroll_config.amount_places
        directory = SqlWorkerDirectory(session)

        self.workers = WorkerRegistry(self.uow, clock=self.clock, amount_places=places)
        self.attendance = AttendanceLedger(
            self.uow,
            clock=self.clock,
            workers=directory,
            payroll=self.payroll_config,
            audit_sink=self.audit_sink,
        )
        self.penalties = PenaltyLedger(
            self.uow,
            clock=self.clock,
            workers=directory,
            payroll=self.payroll_config,
            audit_sink=self.audit_sink,
        )
        self.advances = AdvanceSettlementEngine(self.uow, clock=self.clock, amount_places=places)
        self.payroll = PayrollSettlementService(
            self.uow,
            clock=self.clock,
            payroll=self.payroll_config,
            audit_sink=self.audit_sink,
            attendance=self.attendance,
            penalties=self.penalties,
            advances=self.advances,
        )

        self.attendance_view = AttendanceSelector(session)
        self.payments_view = PaymentSelector(session)
        self.penalties_view = PenaltySelector(session)
        self.cost = CostAggregator(session, amount_places=places)
        self.summary = LabourSummarySelector(session, amount_places=places)
