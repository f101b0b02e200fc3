"""Kernel service infrastructure shared by every labour module."""

from labour_kernel.services.audit_sink import (
    AuditRecord,
    AuditSink,
    InMemoryAuditSink,
    LoggingAuditSink,
)
from labour_kernel.services.base import BaseService

__all__ = ["AuditRecord", "AuditSink", "BaseService", "InMemoryAuditSink", "LoggingAuditSink"]
