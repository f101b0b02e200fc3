"""
Audit sink -- append-only trail of ledger writes.

Responsibility:
    Receives one AuditRecord for each completed payment (and other
    significant writes) after the ledger transaction commits.  The default
    sink writes a structured ``audit_record`` log line; deployments can plug
    in a table- or queue-backed sink implementing the same protocol.

Failure modes:
    - A sink failure never undoes a committed payment.  Callers log the
      failure as ``audit_sink_failed`` and continue.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from labour_kernel.logging_config import get_logger

logger = get_logger("services.audit")


@dataclass(frozen=True)
class AuditRecord:
    """One immutable audit entry."""

    action: str
    entity_type: str
    entity_id: str
    actor_id: UUID
    occurred_at: datetime
    details: dict[str, Any] = field(default_factory=dict)


class AuditSink(Protocol):
    def record(self, entry: AuditRecord) -> None: ...


class LoggingAuditSink:
    """Audit sink that emits each record as a structured log line."""

    def record(self, entry: AuditRecord) -> None:
        logger.info(
            "audit_record",
            extra={
                "action": entry.action,
                "entity_type": entry.entity_type,
                "entity_id": entry.entity_id,
                "actor_id": str(entry.actor_id),
                "occurred_at": entry.occurred_at.isoformat(),
                "details": entry.details,
            },
        )


class InMemoryAuditSink:
    """Audit sink that keeps records in a list.  Used by tests and tooling."""

    def __init__(self) -> None:
        self.records: list[AuditRecord] = []

    def record(self, entry: AuditRecord) -> None:
        self.records.append(entry)
