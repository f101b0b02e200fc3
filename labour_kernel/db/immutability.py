"""
ORM-Level Immutability Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

The services in labour_modules refuse to touch paid attendance, to edit
payments, or to re-apply penalties.  This module is the second line behind
them: SQLAlchemy fires events before UPDATE/DELETE reach the database, and
the listeners below block any mutation the services would never make, no
matter which code path issued it.

    session.flush()
         |
         v
    [before_update event] --> _check_*_immutability() --> ImmutabilityViolationError
         |
         v
    [before_delete event] --> _check_*_delete() ---------> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

Bulk ``update()`` / ``delete()`` statements bypass mapper events; the
services never issue them against these tables.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity            | When Immutable                    | Allowed changes
------------------|-----------------------------------|---------------------------------
AttendanceRecord  | After linked_payment_id is set    | none (audit columns only)
                  | Always                            | confirmed -> draft is blocked
PaymentRecord     | Always (append-only)              | settled_amount on ADVANCE rows,
                  |                                   | non-decreasing, <= net_amount
PenaltyRecord     | After is_deducted is true         | none (audit columns only)

===============================================================================
DESIGN DECISIONS
===============================================================================

1. updated_at / updated_by_id may always change: they are audit metadata.

2. "WAS linked" is checked, not "IS linked": the payroll run itself must be
   able to set linked_payment_id (and is_deducted) once.  Attribute history
   tells us whether the value was already set before this flush.

3. Inline imports avoid the models -> db -> models import cycle.

===============================================================================
USAGE
===============================================================================

    from labour_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup

    # TESTS ONLY
    unregister_immutability_listeners()
"""

from decimal import Decimal

from sqlalchemy import event, inspect
from sqlalchemy.orm.attributes import get_history

from labour_kernel.db.base import AUDIT_FIELDS
from labour_kernel.exceptions import (
    ImmutabilityViolationError,
    SettlementOverflowError,
)
from labour_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

PAYMENT_MUTABLE_FIELDS = AUDIT_FIELDS | {"settled_amount"}


def _blocked(entity_type: str, target, operation: str, reason: str, field: str | None = None):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
            "field": field,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _was_set_before(target, key: str) -> bool:
    """True if ``key`` already held a non-null value before this flush."""
    history = get_history(target, key)
    if history.deleted:
        return history.deleted[0] is not None
    if not history.added:
        return getattr(target, key) is not None
    return False


def _changed_fields(target, allowed: frozenset[str]) -> list[str]:
    insp = inspect(target)
    return [
        attr.key
        for attr in insp.attrs
        if attr.key not in allowed and attr.history.has_changes()
    ]


# =============================================================================
# AttendanceRecord
# =============================================================================


def _check_attendance_immutability(mapper, connection, target):
    """
    Block changes to attendance once it is linked to a payment, and block
    confirmed -> draft at any time.
    """
    from labour_modules.attendance.orm import AttendanceRecordModel

    if not isinstance(target, AttendanceRecordModel):
        return

    if _was_set_before(target, "linked_payment_id"):
        changed = _changed_fields(target, AUDIT_FIELDS)
        if changed:
            _blocked(
                "AttendanceRecord",
                target,
                "UPDATE",
                f"Cannot modify field '{changed[0]}' on paid attendance",
                field=changed[0],
            )

    state_history = get_history(target, "state")
    if state_history.deleted and state_history.added:
        if state_history.deleted[0] == "confirmed" and state_history.added[0] != "confirmed":
            _blocked(
                "AttendanceRecord",
                target,
                "UPDATE",
                "Confirmed attendance cannot return to draft",
                field="state",
            )


def _check_attendance_delete(mapper, connection, target):
    from labour_modules.attendance.orm import AttendanceRecordModel

    if not isinstance(target, AttendanceRecordModel):
        return

    if target.linked_payment_id is not None:
        _blocked("AttendanceRecord", target, "DELETE", "Paid attendance cannot be deleted")


# =============================================================================
# PaymentRecord
# =============================================================================


def _check_payment_immutability(mapper, connection, target):
    """
    Payments are append-only.  Only ``settled_amount`` on ADVANCE rows may
    move, and only upward within ``[0, net_amount]``.
    """
    from labour_modules.payments.orm import PaymentRecordModel

    if not isinstance(target, PaymentRecordModel):
        return

    changed = _changed_fields(target, PAYMENT_MUTABLE_FIELDS)
    if changed:
        _blocked(
            "PaymentRecord",
            target,
            "UPDATE",
            f"Cannot modify field '{changed[0]}' on a payment record; "
            "record an offsetting payment instead",
            field=changed[0],
        )

    settled = get_history(target, "settled_amount")
    if not settled.has_changes():
        return

    if target.payment_kind != "advance":
        _blocked(
            "PaymentRecord",
            target,
            "UPDATE",
            "settled_amount is only meaningful for advances",
            field="settled_amount",
        )

    previous = settled.deleted[0] if settled.deleted else Decimal("0")
    new_value = target.settled_amount
    if new_value < previous or new_value > target.net_amount:
        logger.error(
            "advance_settlement_bounds_violated",
            extra={
                "payment_id": str(target.id),
                "previous_settled": str(previous),
                "new_settled": str(new_value),
                "net_amount": str(target.net_amount),
            },
        )
        raise SettlementOverflowError(
            requested=new_value - previous,
            outstanding=target.net_amount - previous,
            payment_id=str(target.id),
        )


def _check_payment_delete(mapper, connection, target):
    from labour_modules.payments.orm import PaymentRecordModel

    if not isinstance(target, PaymentRecordModel):
        return

    _blocked("PaymentRecord", target, "DELETE", "Payment records are append-only")


# =============================================================================
# PenaltyRecord
# =============================================================================


def _check_penalty_immutability(mapper, connection, target):
    """Block changes to a penalty once it has been deducted."""
    from labour_modules.penalties.orm import PenaltyRecordModel

    if not isinstance(target, PenaltyRecordModel):
        return

    history = get_history(target, "is_deducted")
    if history.deleted:
        was_deducted = bool(history.deleted[0])
    elif not history.added:
        was_deducted = bool(target.is_deducted)
    else:
        was_deducted = False

    if was_deducted:
        changed = _changed_fields(target, AUDIT_FIELDS)
        if changed:
            _blocked(
                "PenaltyRecord",
                target,
                "UPDATE",
                f"Cannot modify field '{changed[0]}' on a deducted penalty",
                field=changed[0],
            )


def _check_penalty_delete(mapper, connection, target):
    from labour_modules.penalties.orm import PenaltyRecordModel

    if not isinstance(target, PenaltyRecordModel):
        return

    if target.is_deducted:
        _blocked("PenaltyRecord", target, "DELETE", "Deducted penalties cannot be deleted")


# =============================================================================
# Registration
# =============================================================================


def _listeners():
    from labour_modules.attendance.orm import AttendanceRecordModel
    from labour_modules.payments.orm import PaymentRecordModel
    from labour_modules.penalties.orm import PenaltyRecordModel

    return (
        (AttendanceRecordModel, "before_update", _check_attendance_immutability),
        (AttendanceRecordModel, "before_delete", _check_attendance_delete),
        (PaymentRecordModel, "before_update", _check_payment_immutability),
        (PaymentRecordModel, "before_delete", _check_payment_delete),
        (PenaltyRecordModel, "before_update", _check_penalty_immutability),
        (PenaltyRecordModel, "before_delete", _check_penalty_delete),
    )


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Call after all models are imported but before any database operations
    begin.  Idempotent.
    """
    for target, event_name, listener_fn in _listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests that need to violate the rules on purpose.
    """
    for target, event_name, listener_fn in _listeners():
        if event.contains(target, event_name, listener_fn):
            event.remove(target, event_name, listener_fn)
