"""
Pure domain layer.

Value objects, lifecycle definitions and DTOs with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Wall-clock time (Clock is injected)
- I/O
"""

from restoration_kernel.domain.actors import Actor, ActorRole
from restoration_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from restoration_kernel.domain.currency import CurrencyInfo, CurrencyRegistry
from restoration_kernel.domain.dtos import (
    AssigneeView,
    AttachmentKind,
    AttachmentView,
    ChangeOrderReceipt,
    DashboardStats,
    EstimateView,
    InvoiceView,
    Priority,
    ProjectIntake,
    ProjectUpdate,
    ProjectView,
    TimelineEventType,
    TimelineEventView,
    line_items_total,
    normalize_line_items,
)
from restoration_kernel.domain.values import Currency, Money
from restoration_kernel.domain.workflow import (
    INVOICE_LIFECYCLE,
    PROJECT_LIFECYCLE,
    InvoiceStatus,
    ProjectStatus,
    Transition,
    Workflow,
    validate_transition,
)

__all__ = [
    "Actor",
    "ActorRole",
    "AssigneeView",
    "AttachmentKind",
    "AttachmentView",
    "ChangeOrderReceipt",
    "Clock",
    "Currency",
    "CurrencyInfo",
    "CurrencyRegistry",
    "DashboardStats",
    "DeterministicClock",
    "EstimateView",
    "INVOICE_LIFECYCLE",
    "InvoiceStatus",
    "InvoiceView",
    "Money",
    "PROJECT_LIFECYCLE",
    "Priority",
    "ProjectIntake",
    "ProjectStatus",
    "ProjectUpdate",
    "ProjectView",
    "SystemClock",
    "TimelineEventType",
    "TimelineEventView",
    "Transition",
    "Workflow",
    "line_items_total",
    "normalize_line_items",
    "validate_transition",
]
