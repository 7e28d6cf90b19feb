"""
Read-side DTOs and intake value objects (``restoration_kernel.domain.dtos``).

Responsibility
--------------
Frozen dataclasses returned from services and selectors so callers never
hold live ORM objects, plus validation of estimate line items.

Architecture position
---------------------
**Kernel domain layer** -- pure data definitions with ZERO I/O.

Invariants enforced
-------------------
* All DTOs are ``frozen=True``.
* Money fields are ``Money`` (integer minor units), never float.
* Line items are a list of JSON objects, preserved verbatim.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Mapping, Sequence
from uuid import UUID

from restoration_kernel.domain.values import Money
from restoration_kernel.domain.workflow import InvoiceStatus, ProjectStatus
from restoration_kernel.exceptions import InvalidLineItemsError


class TimelineEventType(str, Enum):
    CREATED = "CREATED"
    ASSIGNED = "ASSIGNED"
    ESTIMATE = "ESTIMATE"
    APPROVED = "APPROVED"
    CHANGE_ORDER = "CHANGE_ORDER"
    STATUS_CHANGE = "STATUS_CHANGE"
    DOCUMENT = "DOCUMENT"
    INVOICE = "INVOICE"
    UPDATED = "UPDATED"


class Priority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class AttachmentKind(str, Enum):
    SKETCH = "SKETCH"
    PHOTO = "PHOTO"
    DOCUMENT = "DOCUMENT"
    NOTE = "NOTE"
    ADDITIONAL_DOCUMENT = "ADDITIONAL_DOCUMENT"


@dataclass(frozen=True)
class ProjectIntake:
    """Fields supplied when a project is opened."""
    title: str
    customer_id: UUID
    customer_name: str
    currency: str = "USD"
    description: str = ""
    project_type: str = "RESTORATION"
    priority: Priority = Priority.MEDIUM
    adjuster_id: UUID | None = None
    budget_min: Money | None = None
    budget_max: Money | None = None


@dataclass(frozen=True)
class ProjectUpdate:
    """
    Partial edit of a project's details.

    ``None`` leaves a field unchanged.  ``clear_budget`` drops both budget
    bounds and cannot be combined with new ones.  ``adjuster_id`` and
    ``actual_cost`` are internal fields that only staff may set.
    """
    title: str | None = None
    description: str | None = None
    project_type: str | None = None
    priority: Priority | None = None
    budget_min: Money | None = None
    budget_max: Money | None = None
    clear_budget: bool = False
    adjuster_id: UUID | None = None
    actual_cost: Money | None = None

    @property
    def touches_internal_fields(self) -> bool:
        return self.adjuster_id is not None or self.actual_cost is not None


@dataclass(frozen=True)
class AssigneeView:
    user_id: UUID
    name: str


@dataclass(frozen=True)
class ProjectView:
    id: UUID
    title: str
    status: ProjectStatus
    customer_id: UUID
    customer_name: str
    currency: str
    priority: Priority
    project_type: str
    description: str
    version: int
    created_at: datetime
    updated_at: datetime
    adjuster_id: UUID | None = None
    budget_min: Money | None = None
    budget_max: Money | None = None
    actual_cost: Money | None = None
    assignees: tuple[AssigneeView, ...] = ()


@dataclass(frozen=True)
class TimelineEventView:
    id: UUID
    project_id: UUID
    seq: int
    date: datetime
    event: str
    type: TimelineEventType
    user: str
    from_status: ProjectStatus | None = None
    to_status: ProjectStatus | None = None


@dataclass(frozen=True)
class EstimateView:
    id: UUID
    project_id: UUID
    change_order_number: int
    total: Money
    line_items: tuple[Mapping[str, Any], ...]
    created_by_id: UUID
    created_by_name: str
    created_at: datetime
    pdf_url: str | None = None

    @property
    def is_change_order(self) -> bool:
        return self.change_order_number > 0


@dataclass(frozen=True)
class ChangeOrderReceipt:
    """Result of submitting a change order: project after the write plus the new estimate."""
    project: ProjectView
    estimate: EstimateView


@dataclass(frozen=True)
class InvoiceView:
    id: UUID
    invoice_number: int
    project_id: UUID | None
    customer: str
    address: str
    project_details: str
    amount: Money
    issued_on: date
    due_date: date
    status: InvoiceStatus
    generated_by_id: UUID


@dataclass(frozen=True)
class AttachmentView:
    id: UUID
    project_id: UUID
    kind: AttachmentKind
    filename: str
    url: str
    uploaded_by_id: UUID
    created_at: datetime


@dataclass(frozen=True)
class DashboardStats:
    total_projects: int
    active_projects: int
    completed_projects: int
    pending_review: int
    by_status: Mapping[ProjectStatus, int]
    revenue: Mapping[str, Money]
    recent_projects: tuple[ProjectView, ...] = ()
    recent_activity: tuple[TimelineEventView, ...] = ()


# ---------------------------------------------------------------------------
# Line items
# ---------------------------------------------------------------------------

LINE_ITEM_AMOUNT_KEY = "amount"


def normalize_line_items(line_items: Any) -> list[dict[str, Any]]:
    """
    Validate estimate line items and return a JSON-safe copy.

    Items are stored verbatim; the only structural requirement is a list of
    JSON objects with string keys.

    Raises:
        InvalidLineItemsError: not a list, an item is not an object, or an
            item holds values that cannot be serialized to JSON.
    """
    if isinstance(line_items, (str, bytes)) or not isinstance(line_items, Sequence):
        raise InvalidLineItemsError("line items must be a list of objects")
    normalized: list[dict[str, Any]] = []
    for index, item in enumerate(line_items):
        if not isinstance(item, Mapping):
            raise InvalidLineItemsError("each line item must be an object", index)
        if not all(isinstance(k, str) for k in item):
            raise InvalidLineItemsError("line item keys must be strings", index)
        try:
            normalized.append(json.loads(json.dumps(dict(item))))
        except (TypeError, ValueError) as e:
            raise InvalidLineItemsError(f"not JSON serializable: {e}", index) from e
    return normalized


def line_items_total(line_items: Sequence[Mapping[str, Any]], currency: str) -> Money:
    """
    Sum the integer ``amount`` (minor units) of every line item.

    Raises:
        InvalidLineItemsError: an item has no integer ``amount``.
    """
    amounts = []
    for index, item in enumerate(line_items):
        value = item.get(LINE_ITEM_AMOUNT_KEY)
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidLineItemsError(
                "amount must be an integer number of minor units", index
            )
        amounts.append(Money.of(value, currency))
    return Money.sum(amounts, currency)
