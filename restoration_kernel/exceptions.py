"""
Typed Exception Hierarchy for the Restoration Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every failure a caller can act on has its own exception class with:
  1. A TYPED class (catch by type, not by message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA attributes (not just a message string)

Example:
    try:
        engine.set_status(project_id, ProjectStatus.COMPLETED, actor)
    except InvalidTransitionError as e:
        respond(409, code=e.code, current=e.from_status, requested=e.to_status)
    except ForbiddenError as e:
        respond(403, code=e.code, role=e.actor_role)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    RestorationKernelError (base)
    |
    +-- NotFoundError
    |   +-- ProjectNotFoundError
    |   +-- EstimateNotFoundError
    |   +-- InvoiceNotFoundError
    |
    +-- WorkflowError
    |   +-- InvalidTransitionError
    |   +-- InvalidStateError
    |
    +-- ForbiddenError
    |
    +-- ConflictError                 (retryable)
    |   +-- ChangeOrderConflictError
    |   +-- StatusConflictError
    |
    +-- ValidationError
    |   +-- InvalidMoneyError
    |   +-- InvalidCurrencyError
    |   +-- CurrencyMismatchError
    |   +-- InvalidLineItemsError
    |   +-- InvalidProjectDataError
    |   +-- InvalidInvoiceTransitionError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError
        +-- PaidInvoiceImmutableError

Categories map to caller behaviour:
    NotFoundError      -> 404
    ForbiddenError     -> 403, nothing was written
    ConflictError      -> retried by the workflow engine, then surfaced
    ValidationError    -> 422
    WorkflowError      -> 409
    ImmutabilityError  -> terminal; log as a security event
"""


class RestorationKernelError(Exception):
    """
    Base exception for all restoration kernel errors.

    All subclasses carry a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "RESTORATION_KERNEL_ERROR"


# Not found


class NotFoundError(RestorationKernelError):
    """Base exception for missing entities."""

    code: str = "NOT_FOUND"


class ProjectNotFoundError(NotFoundError):
    """Project does not exist."""

    code: str = "PROJECT_NOT_FOUND"

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"Project not found: {project_id}")


class EstimateNotFoundError(NotFoundError):
    """Estimate does not exist."""

    code: str = "ESTIMATE_NOT_FOUND"

    def __init__(self, estimate_id: str):
        self.estimate_id = estimate_id
        super().__init__(f"Estimate not found: {estimate_id}")


class InvoiceNotFoundError(NotFoundError):
    """Invoice does not exist."""

    code: str = "INVOICE_NOT_FOUND"

    def __init__(self, invoice_id: str):
        self.invoice_id = invoice_id
        super().__init__(f"Invoice not found: {invoice_id}")


# Workflow


class WorkflowError(RestorationKernelError):
    """Base exception for lifecycle rule violations."""

    code: str = "WORKFLOW_ERROR"


class InvalidTransitionError(WorkflowError):
    """Requested status change is not an edge of the project lifecycle."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, from_status: str, to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Transition not allowed: {from_status} -> {to_status}"
        )


class InvalidStateError(WorkflowError):
    """Operation requires the project to be in a different status."""

    code: str = "INVALID_STATE"

    def __init__(self, project_id: str, current_status: str, operation: str):
        self.project_id = project_id
        self.current_status = current_status
        self.operation = operation
        super().__init__(
            f"Cannot {operation} for project {project_id} in status {current_status}"
        )


# Authorization


class ForbiddenError(RestorationKernelError):
    """Actor's role (or ownership) does not permit the operation."""

    code: str = "FORBIDDEN"

    def __init__(
        self,
        actor_role: str,
        required_roles: tuple[str, ...],
        operation: str,
        reason: str | None = None,
    ):
        self.actor_role = actor_role
        self.required_roles = required_roles
        self.operation = operation
        self.reason = reason
        detail = reason or (
            f"role {actor_role} not in {', '.join(required_roles) or '(none)'}"
        )
        super().__init__(f"Forbidden: {operation}: {detail}")


# Concurrency


class ConflictError(RestorationKernelError):
    """Base exception for concurrent modification conflicts (retryable)."""

    code: str = "CONFLICT"


class ChangeOrderConflictError(ConflictError):
    """Two writers allocated the same change-order number for a project."""

    code: str = "CHANGE_ORDER_CONFLICT"

    def __init__(self, project_id: str, change_order_number: int):
        self.project_id = project_id
        self.change_order_number = change_order_number
        super().__init__(
            f"Change order number {change_order_number} already taken "
            f"for project {project_id}"
        )


class StatusConflictError(ConflictError):
    """Project row was modified by another transaction (version mismatch)."""

    code: str = "STATUS_CONFLICT"

    def __init__(self, project_id: str, detail: str = ""):
        self.project_id = project_id
        self.detail = detail
        super().__init__(
            f"Project {project_id} was modified concurrently"
            + (f": {detail}" if detail else "")
        )


# Validation


class ValidationError(RestorationKernelError):
    """Base exception for malformed input."""

    code: str = "VALIDATION_ERROR"


class InvalidMoneyError(ValidationError):
    """Money amount is not a valid integer count of minor units."""

    code: str = "INVALID_MONEY"

    def __init__(self, value: object, reason: str):
        self.value = repr(value)
        self.reason = reason
        super().__init__(f"Invalid money amount {value!r}: {reason}")


class InvalidCurrencyError(ValidationError):
    """Currency code is not a known ISO 4217 code."""

    code: str = "INVALID_CURRENCY"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Invalid ISO 4217 currency code: {currency}")


class CurrencyMismatchError(ValidationError):
    """Amount currency differs from the project (or operand) currency."""

    code: str = "CURRENCY_MISMATCH"

    def __init__(self, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Currency mismatch: expected {expected}, got {actual}")


class InvalidLineItemsError(ValidationError):
    """Estimate line items are not a list of JSON objects."""

    code: str = "INVALID_LINE_ITEMS"

    def __init__(self, reason: str, index: int | None = None):
        self.reason = reason
        self.index = index
        where = f" (item {index})" if index is not None else ""
        super().__init__(f"Invalid line items{where}: {reason}")


class InvalidProjectDataError(ValidationError):
    """Project fields fail intake validation."""

    code: str = "INVALID_PROJECT_DATA"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid project data for {field}: {reason}")


class InvalidInvoiceTransitionError(ValidationError):
    """Invoice status change is not allowed."""

    code: str = "INVALID_INVOICE_TRANSITION"

    def __init__(self, invoice_id: str, from_status: str, to_status: str):
        self.invoice_id = invoice_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invoice {invoice_id}: transition not allowed: "
            f"{from_status} -> {to_status}"
        )


# Immutability


class ImmutabilityError(RestorationKernelError):
    """Base exception for writes against append-only or frozen records."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """ORM-level guard blocked an update or delete of a protected row."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )


class PaidInvoiceImmutableError(ImmutabilityError):
    """A PAID invoice cannot be changed, re-invoiced, or deleted."""

    code: str = "PAID_INVOICE_IMMUTABLE"

    def __init__(self, invoice_id: str, operation: str):
        self.invoice_id = invoice_id
        self.operation = operation
        super().__init__(
            f"Invoice {invoice_id} is PAID and cannot be changed ({operation})"
        )
