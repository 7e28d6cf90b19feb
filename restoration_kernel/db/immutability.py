"""
ORM-Level Immutability Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

The project timeline is the audit trail: auditors and insurance adjusters
rely on it never changing after the fact.  Estimates are proposals a
customer approved against, and a paid invoice is a settled record.  Services
already refuse these writes; this module is the layer below them that also
catches application bugs and ad-hoc scripts going through the ORM.

    session.flush()
         |
         v
    [before_insert / before_update / before_delete]
         |
         +--> _check_*() --> ImmutabilityViolationError (flush aborted)
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity             | Rule
-------------------|------------------------------------------------------
TimelineEvent      | ALWAYS immutable, never deleted
Estimate           | Money / line items / number frozen; never deleted;
                   | only pdf_url may change
Invoice            | Frozen once PAID (no update, no delete)
Project            | Inserted as PENDING; status written only through
                   | ProjectModel.authorize_status (the state machine)

===============================================================================
USAGE
===============================================================================

    from restoration_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup

Tests that need to bypass the guards call unregister_immutability_listeners()
and re-register afterwards.
"""

from sqlalchemy import event
from sqlalchemy.orm.attributes import get_history

from restoration_kernel.domain.workflow import InvoiceStatus, ProjectStatus
from restoration_kernel.exceptions import ImmutabilityViolationError
from restoration_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _block(entity_type: str, target, operation: str, reason: str) -> None:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
            "reason": reason,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


# =============================================================================
# Timeline
# =============================================================================


def _check_timeline_event_update(mapper, connection, target):
    _block("TimelineEvent", target, "UPDATE", "Timeline events are append-only")


def _check_timeline_event_delete(mapper, connection, target):
    _block("TimelineEvent", target, "DELETE", "Timeline events cannot be deleted")


# =============================================================================
# Estimates
# =============================================================================


def _check_estimate_update(mapper, connection, target):
    from restoration_kernel.models.estimate import ESTIMATE_FROZEN_FIELDS

    changed = sorted(
        name for name in ESTIMATE_FROZEN_FIELDS
        if get_history(target, name).has_changes()
    )
    if changed:
        _block(
            "Estimate",
            target,
            "UPDATE",
            f"Estimate fields are frozen once written: {', '.join(changed)}",
        )


def _check_estimate_delete(mapper, connection, target):
    _block("Estimate", target, "DELETE", "Estimates cannot be deleted")


# =============================================================================
# Invoices
# =============================================================================


def _invoice_was_paid(target) -> bool:
    history = get_history(target, "status")
    if history.deleted:
        return InvoiceStatus.PAID.value in history.deleted
    return target.status == InvoiceStatus.PAID.value


def _check_invoice_update(mapper, connection, target):
    if _invoice_was_paid(target):
        _block("Invoice", target, "UPDATE", "Paid invoices cannot be modified")


def _check_invoice_delete(mapper, connection, target):
    if _invoice_was_paid(target):
        _block("Invoice", target, "DELETE", "Paid invoices cannot be deleted")


# =============================================================================
# Projects
# =============================================================================


def _check_project_insert(mapper, connection, target):
    if target.status not in (None, ProjectStatus.PENDING.value):
        _block(
            "Project",
            target,
            "INSERT",
            f"Projects are created PENDING, not {target.status}",
        )


def _check_project_status_write(mapper, connection, target):
    history = get_history(target, "status")
    if not history.added:
        return
    new_status = history.added[0]
    if not target.consume_status_authorization(new_status):
        _block(
            "Project",
            target,
            "UPDATE",
            f"Status may only change through the state machine (attempted {new_status})",
        )


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Call after models are importable and before any database writes.
    Registering twice is harmless (event.contains guard).
    """
    from restoration_kernel.models.estimate import EstimateModel
    from restoration_kernel.models.invoice import InvoiceModel
    from restoration_kernel.models.project import ProjectModel
    from restoration_kernel.models.timeline import TimelineEventModel

    for target, name, fn in _listeners(
        TimelineEventModel, EstimateModel, InvoiceModel, ProjectModel
    ):
        if not event.contains(target, name, fn):
            event.listen(target, name, fn)


def _listeners(timeline_cls, estimate_cls, invoice_cls, project_cls):
    return (
        (timeline_cls, "before_update", _check_timeline_event_update),
        (timeline_cls, "before_delete", _check_timeline_event_delete),
        (estimate_cls, "before_update", _check_estimate_update),
        (estimate_cls, "before_delete", _check_estimate_delete),
        (invoice_cls, "before_update", _check_invoice_update),
        (invoice_cls, "before_delete", _check_invoice_delete),
        (project_cls, "before_insert", _check_project_insert),
        (project_cls, "before_update", _check_project_status_write),
    )


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """Remove immutability enforcement listeners. TESTS ONLY."""
    from restoration_kernel.models.estimate import EstimateModel
    from restoration_kernel.models.invoice import InvoiceModel
    from restoration_kernel.models.project import ProjectModel
    from restoration_kernel.models.timeline import TimelineEventModel

    for target, name, fn in _listeners(
        TimelineEventModel, EstimateModel, InvoiceModel, ProjectModel
    ):
        _safe_remove_listener(target, name, fn)
