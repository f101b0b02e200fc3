"""
Typed Exception Hierarchy for the Labour Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Payroll settlement moves real cash. Callers (the HTTP layer, batch scripts,
tests) must be able to tell a client-correctable mistake from a race or an
accounting discrepancy without parsing message strings:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)
  4. Every category carries an ``http_status`` hint for the outer layer

Example - RIGHT way:
    try:
        service.record_payment(...)
    except DuplicatePaymentError as e:
        api_response(409, code=e.code, existing=e.existing_payment_id)
    except NegativeNetAmountError as e:
        api_response(422, code=e.code, breakdown=e.breakdown)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LabourKernelError (base)
    |
    +-- ValidationError                  client-correctable input problems
    |   +-- MissingFieldError
    |   +-- InvalidAmountError
    |   +-- InvalidAttendanceError
    |   +-- FutureDateError
    |   +-- WorkerInactiveError
    |   +-- UnsupportedPaymentMethodError
    |   +-- InvalidPaymentKindError
    |   +-- UnknownPenaltyKindError
    |
    +-- NotFoundError
    |   +-- WorkerNotFoundError
    |   +-- AttendanceNotFoundError
    |
    +-- StateConflictError               logic or race violation, never retried
    |   +-- DuplicateAttendanceError
    |   +-- DuplicatePaymentError
    |   +-- AlreadyPaidError
    |   +-- InvalidTransitionError
    |   +-- ImmutabilityViolationError
    |   +-- WorkerReferencedError
    |
    +-- InvariantViolationError          accounting discrepancy, human review
    |   +-- NegativeNetAmountError
    |   +-- SettlementOverflowError
    |
    +-- DatabaseError                    storage failure, resubmit whole request
        +-- TransactionFailedError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                       | When Raised
-------------|----------------------------|--------------------------------------
Validation   | MISSING_FIELD              | Required argument absent
             | INVALID_AMOUNT             | Negative / non-decimal money value
             | INVALID_ATTENDANCE         | Hours inconsistent with kind
             | FUTURE_DATE                | Attendance dated after today
             | WORKER_INACTIVE            | Worker deactivated
             | UNSUPPORTED_PAYMENT_METHOD | Method not in configured set
             | INVALID_PAYMENT_KIND       | Not advance, wages or final_settlement
             | UNKNOWN_PENALTY_KIND       | Penalty kind not in configured set
-------------|----------------------------|--------------------------------------
Not found    | WORKER_NOT_FOUND           | No worker row for id
             | ATTENDANCE_NOT_FOUND       | No attendance row for id
-------------|----------------------------|--------------------------------------
Conflict     | DUPLICATE_ATTENDANCE       | Worker+project+date already marked
             | DUPLICATE_PAYMENT          | Worker+project+date+kind already paid
             | ALREADY_PAID               | Attendance linked to a payment
             | INVALID_TRANSITION         | Anything but DRAFT -> CONFIRMED
             | IMMUTABILITY_VIOLATION     | ORM listener blocked a mutation
             | WORKER_REFERENCED          | Hard delete of worker with history
-------------|----------------------------|--------------------------------------
Invariant    | NEGATIVE_NET_AMOUNT        | Computed net < 0 (never clamped)
             | SETTLEMENT_OVERFLOW        | Recovery exceeds outstanding advances
-------------|----------------------------|--------------------------------------
Database     | TRANSACTION_FAILED         | Storage error; transaction rolled back

===============================================================================
"""

from decimal import Decimal


class LabourKernelError(Exception):
    """
    Base exception for all labour kernel errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "LABOUR_KERNEL_ERROR"
    http_status: int = 500


# =============================================================================
# Validation
# =============================================================================


class ValidationError(LabourKernelError):
    """Base exception for client-correctable input errors."""

    code: str = "VALIDATION_ERROR"
    http_status: int = 422


class MissingFieldError(ValidationError):
    """A required field was not supplied."""

    code: str = "MISSING_FIELD"

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Missing required field: {field}")


class InvalidAmountError(ValidationError):
    """A monetary or hour value is negative or not a decimal."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, field: str, value: object, reason: str = "must be a non-negative decimal"):
        self.field = field
        self.value = str(value)
        self.reason = reason
        super().__init__(f"Invalid {field} {value!r}: {reason}")


class InvalidAttendanceError(ValidationError):
    """Attendance hours are inconsistent with the attendance kind."""

    code: str = "INVALID_ATTENDANCE"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid attendance: {reason}")


class FutureDateError(ValidationError):
    """Attendance cannot be marked for a date after today."""

    code: str = "FUTURE_DATE"

    def __init__(self, attendance_date, today):
        self.attendance_date = str(attendance_date)
        self.today = str(today)
        super().__init__(
            f"Cannot mark attendance for future date {attendance_date} (today is {today})"
        )


class WorkerInactiveError(ValidationError):
    """Worker does not exist or has been deactivated; cannot be marked present."""

    code: str = "WORKER_INACTIVE"

    def __init__(self, worker_id: int, exists: bool = True):
        self.worker_id = worker_id
        self.exists = exists
        if exists:
            super().__init__(f"Worker {worker_id} is inactive")
        else:
            super().__init__(f"Worker {worker_id} does not exist or is inactive")


class UnsupportedPaymentMethodError(ValidationError):
    """Payment method is not one of the configured methods."""

    code: str = "UNSUPPORTED_PAYMENT_METHOD"

    def __init__(self, method: str, allowed: frozenset[str] | tuple[str, ...]):
        self.method = method
        self.allowed = sorted(allowed)
        super().__init__(
            f"Unsupported payment method '{method}'; expected one of {self.allowed}"
        )


class InvalidPaymentKindError(ValidationError):
    """Payment kind is not advance, wages or final_settlement."""

    code: str = "INVALID_PAYMENT_KIND"

    def __init__(self, kind: object):
        self.kind = str(kind)
        super().__init__(
            f"Invalid payment kind {kind!r}; expected advance, wages or final_settlement"
        )


class UnknownPenaltyKindError(ValidationError):
    """Penalty kind is not one of the configured kinds."""

    code: str = "UNKNOWN_PENALTY_KIND"

    def __init__(self, kind: str, allowed: frozenset[str] | tuple[str, ...]):
        self.kind = kind
        self.allowed = sorted(allowed)
        super().__init__(f"Unknown penalty kind '{kind}'; expected one of {self.allowed}")


# =============================================================================
# Not found
# =============================================================================


class NotFoundError(LabourKernelError):
    """Base exception for missing records."""

    code: str = "NOT_FOUND"
    http_status: int = 404


class WorkerNotFoundError(NotFoundError):
    """No worker row exists for the id."""

    code: str = "WORKER_NOT_FOUND"

    def __init__(self, worker_id: int):
        self.worker_id = worker_id
        super().__init__(f"Worker not found: {worker_id}")


class AttendanceNotFoundError(NotFoundError):
    """No attendance record exists for the id."""

    code: str = "ATTENDANCE_NOT_FOUND"

    def __init__(self, attendance_id):
        self.attendance_id = str(attendance_id)
        super().__init__(f"Attendance record not found: {attendance_id}")


# =============================================================================
# State conflicts
# =============================================================================


class StateConflictError(LabourKernelError):
    """
    Base exception for state conflicts.

    Indicates a logic or race violation.  Never retried or auto-resolved.
    """

    code: str = "STATE_CONFLICT"
    http_status: int = 409


class DuplicateAttendanceError(StateConflictError):
    """Attendance already exists for the worker, project and date."""

    code: str = "DUPLICATE_ATTENDANCE"

    def __init__(self, worker_id: int, project_id: int, attendance_date, existing_id=None):
        self.worker_id = worker_id
        self.project_id = project_id
        self.attendance_date = str(attendance_date)
        self.existing_id = str(existing_id) if existing_id is not None else None
        super().__init__(
            f"Attendance already marked for worker {worker_id} on project "
            f"{project_id} for {attendance_date}"
        )


class DuplicatePaymentError(StateConflictError):
    """A payment of the same kind already exists for worker, project and date."""

    code: str = "DUPLICATE_PAYMENT"

    def __init__(
        self,
        worker_id: int,
        project_id: int,
        payment_date,
        payment_kind: str,
        existing_payment_id=None,
    ):
        self.worker_id = worker_id
        self.project_id = project_id
        self.payment_date = str(payment_date)
        self.payment_kind = payment_kind
        self.existing_payment_id = (
            str(existing_payment_id) if existing_payment_id is not None else None
        )
        super().__init__(
            f"Duplicate payment: {payment_kind} for worker {worker_id}, "
            f"project {project_id}, date {payment_date} already exists"
        )


class AlreadyPaidError(StateConflictError):
    """Attendance is linked to a payment and can no longer change."""

    code: str = "ALREADY_PAID"

    def __init__(self, attendance_id, payment_id):
        self.attendance_id = str(attendance_id)
        self.payment_id = str(payment_id)
        super().__init__(
            f"Attendance {attendance_id} is already paid by payment {payment_id}"
        )


class InvalidTransitionError(StateConflictError):
    """Requested state transition is not allowed."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, entity_type: str, entity_id, from_state: str, to_state: str):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"{entity_type} {entity_id}: cannot transition {from_state} -> {to_state}"
        )


class ImmutabilityViolationError(StateConflictError):
    """An ORM listener blocked a mutation of a frozen record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"Cannot modify {entity_type} {entity_id}: {reason}")


class WorkerReferencedError(StateConflictError):
    """Worker has attendance, payment or penalty history and cannot be deleted."""

    code: str = "WORKER_REFERENCED"

    def __init__(self, worker_id: int):
        self.worker_id = worker_id
        super().__init__(
            f"Worker {worker_id} has attendance, payment or penalty records; "
            "deactivate instead"
        )


# =============================================================================
# Invariant violations
# =============================================================================


class InvariantViolationError(LabourKernelError):
    """
    Base exception for accounting invariant violations.

    Never clamped or silently repaired: the discrepancy needs human review.
    """

    code: str = "INVARIANT_VIOLATION"
    http_status: int = 422


class NegativeNetAmountError(InvariantViolationError):
    """Computed net payment is negative."""

    code: str = "NEGATIVE_NET_AMOUNT"

    def __init__(
        self,
        gross_amount: Decimal,
        penalty_total: Decimal,
        advance_total: Decimal,
        penalty_deduction: Decimal,
        advance_deduction: Decimal,
        net_amount: Decimal,
    ):
        self.gross_amount = gross_amount
        self.penalty_total = penalty_total
        self.advance_total = advance_total
        self.penalty_deduction = penalty_deduction
        self.advance_deduction = advance_deduction
        self.deduction_amount = penalty_deduction + advance_deduction
        self.net_amount = net_amount
        super().__init__(
            f"Net payment cannot be negative. Gross: {gross_amount}, "
            f"Deductions: {self.deduction_amount} (penalties {penalty_deduction} "
            f"of {penalty_total}, advances {advance_deduction} of {advance_total}), "
            f"Net: {net_amount}"
        )

    @property
    def breakdown(self) -> dict[str, str]:
        return {
            "gross_amount": str(self.gross_amount),
            "penalty_total": str(self.penalty_total),
            "advance_total": str(self.advance_total),
            "penalty_deduction": str(self.penalty_deduction),
            "advance_deduction": str(self.advance_deduction),
            "deduction_amount": str(self.deduction_amount),
            "net_amount": str(self.net_amount),
        }


class SettlementOverflowError(InvariantViolationError):
    """Advance recovery would exceed what is outstanding."""

    code: str = "SETTLEMENT_OVERFLOW"

    def __init__(self, requested: Decimal, outstanding: Decimal, payment_id: str | None = None):
        self.requested = requested
        self.outstanding = outstanding
        self.payment_id = payment_id
        target = f"advance {payment_id}" if payment_id else "outstanding advances"
        super().__init__(
            f"Cannot recover {requested} from {target}: only {outstanding} outstanding"
        )


# =============================================================================
# Database
# =============================================================================


class DatabaseError(LabourKernelError):
    """Base exception for storage failures."""

    code: str = "DATABASE_ERROR"
    http_status: int = 500


class TransactionFailedError(DatabaseError):
    """The transaction failed in storage and was rolled back."""

    code: str = "TRANSACTION_FAILED"

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Transaction failed during {operation}: {reason}")
