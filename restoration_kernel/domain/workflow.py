"""
Lifecycle workflows (``restoration_kernel.domain.workflow``).

Responsibility
--------------
Pure definitions of the project status lifecycle and the invoice payment
lifecycle: the status enums, the ``Transition`` / ``Workflow`` value objects,
and the edge-set lookups the state machine service consults.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``models/``, ``services/`` or outer layers.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* Terminal states (COMPLETED, CANCELLED) have no outgoing transitions.
* A target equal to the current state is a no-op, never an edge.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from restoration_kernel.exceptions import InvalidTransitionError


class ProjectStatus(str, Enum):
    """Lifecycle status of a restoration project."""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    ESTIMATE_READY = "ESTIMATE_READY"
    APPROVED = "APPROVED"
    IN_CONSTRUCTION = "IN_CONSTRUCTION"
    CHANGE_ORDER_PENDING = "CHANGE_ORDER_PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class InvoiceStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    OVERDUE = "OVERDUE"


def _key(state) -> str:
    """Plain string form of a state (enum members compare by value)."""
    return state.value if isinstance(state, Enum) else str(state)


@dataclass(frozen=True)
class Guard:
    """A condition that must hold before a transition fires.

    Contract: frozen, descriptive only.
    Non-goals: does not evaluate the condition; ProjectStateMachine looks the
    guard up by name before applying the edge.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow."""
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for an entity lifecycle.

    Contract: frozen; ``transitions`` reference only states in ``states``.
    Guarantees: ``initial_state`` is a member of ``states``; states listed in
    ``terminal_states`` have no outgoing transitions.
    """
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()
    _edges: dict[str, frozenset[str]] = field(
        init=False, repr=False, compare=False, hash=False, default_factory=dict
    )
    _guards: dict[tuple[str, str], Guard] = field(
        init=False, repr=False, compare=False, hash=False, default_factory=dict
    )

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(
                f"{self.name}: initial state {self.initial_state} not in states"
            )
        states = {_key(s) for s in self.states}
        terminal = {_key(s) for s in self.terminal_states}
        edges: dict[str, set[str]] = {s: set() for s in states}
        for t in self.transitions:
            src, dst = _key(t.from_state), _key(t.to_state)
            if src not in states or dst not in states:
                raise ValueError(
                    f"{self.name}: transition {t.from_state} -> {t.to_state} "
                    "references unknown state"
                )
            if src in terminal:
                raise ValueError(
                    f"{self.name}: terminal state {t.from_state} has outgoing edge"
                )
            edges[src].add(dst)
            if t.guard is not None:
                self._guards[(src, dst)] = t.guard
        self._edges.update({s: frozenset(targets) for s, targets in edges.items()})

    def allowed_targets(self, state: str) -> frozenset[str]:
        return self._edges.get(_key(state), frozenset())

    def is_allowed(self, from_state: str, to_state: str) -> bool:
        return _key(to_state) in self.allowed_targets(from_state)

    def guard_for(self, from_state: str, to_state: str) -> Guard | None:
        return self._guards.get((_key(from_state), _key(to_state)))

    def edges(self) -> frozenset[tuple[str, str]]:
        return frozenset(
            (src, dst) for src, targets in self._edges.items() for dst in targets
        )


# ---------------------------------------------------------------------------
# Project lifecycle
# ---------------------------------------------------------------------------

_S = ProjectStatus

ESTIMATE_ON_FILE = Guard(
    "estimate_on_file",
    "An original estimate has been recorded for the project",
)

_PROJECT_EDGES: tuple[Transition, ...] = (
    Transition(_S.PENDING, _S.IN_PROGRESS, action="start_review"),
    Transition(_S.PENDING, _S.ESTIMATE_READY, action="publish_estimate", guard=ESTIMATE_ON_FILE),
    Transition(_S.IN_PROGRESS, _S.ESTIMATE_READY, action="publish_estimate", guard=ESTIMATE_ON_FILE),
    Transition(_S.ESTIMATE_READY, _S.APPROVED, action="approve_estimate"),
    Transition(_S.APPROVED, _S.IN_CONSTRUCTION, action="start_construction"),
    Transition(_S.APPROVED, _S.CHANGE_ORDER_PENDING, action="submit_change_order"),
    Transition(_S.IN_CONSTRUCTION, _S.CHANGE_ORDER_PENDING, action="submit_change_order"),
    Transition(_S.IN_CONSTRUCTION, _S.COMPLETED, action="complete"),
    Transition(_S.CHANGE_ORDER_PENDING, _S.IN_CONSTRUCTION, action="resolve_change_order"),
    Transition(_S.CHANGE_ORDER_PENDING, _S.COMPLETED, action="complete"),
) + tuple(
    Transition(status, _S.CANCELLED, action="cancel")
    for status in (
        _S.PENDING,
        _S.IN_PROGRESS,
        _S.ESTIMATE_READY,
        _S.APPROVED,
        _S.IN_CONSTRUCTION,
        _S.CHANGE_ORDER_PENDING,
    )
)

PROJECT_LIFECYCLE = Workflow(
    name="project_lifecycle",
    description="Restoration project from intake to completion",
    initial_state=_S.PENDING,
    states=tuple(ProjectStatus),
    transitions=_PROJECT_EDGES,
    terminal_states=(_S.COMPLETED, _S.CANCELLED),
)

TERMINAL_STATUSES: frozenset[ProjectStatus] = frozenset(
    {ProjectStatus.COMPLETED, ProjectStatus.CANCELLED}
)

# Statuses in which the original estimate may be recorded.
PRE_ESTIMATE_STATUSES: frozenset[ProjectStatus] = frozenset(
    {ProjectStatus.PENDING, ProjectStatus.IN_PROGRESS}
)

# Statuses from which a change order can be submitted (includes the no-op).
CHANGE_ORDER_STATUSES: frozenset[ProjectStatus] = frozenset(
    {
        ProjectStatus.APPROVED,
        ProjectStatus.IN_CONSTRUCTION,
        ProjectStatus.CHANGE_ORDER_PENDING,
    }
)

ACTIVE_STATUSES: frozenset[ProjectStatus] = CHANGE_ORDER_STATUSES


def validate_transition(
    current: ProjectStatus, target: ProjectStatus
) -> bool:
    """
    Decide whether ``current -> target`` is permitted.

    Returns:
        False when ``target == current`` (no-op, nothing to write),
        True when the edge exists.

    Raises:
        InvalidTransitionError: the edge is not in PROJECT_LIFECYCLE.
    """
    current = ProjectStatus(current)
    target = ProjectStatus(target)
    if current == target:
        return False
    if not PROJECT_LIFECYCLE.is_allowed(current, target):
        raise InvalidTransitionError(current.value, target.value)
    return True


# ---------------------------------------------------------------------------
# Invoice lifecycle
# ---------------------------------------------------------------------------

_I = InvoiceStatus

INVOICE_LIFECYCLE = Workflow(
    name="invoice_payment",
    description="Invoice from issue to payment",
    initial_state=_I.PENDING,
    states=tuple(InvoiceStatus),
    transitions=(
        Transition(_I.PENDING, _I.PAID, action="record_payment"),
        Transition(_I.PENDING, _I.OVERDUE, action="mark_overdue"),
        Transition(_I.OVERDUE, _I.PAID, action="record_payment"),
        Transition(_I.OVERDUE, _I.PENDING, action="extend_due_date"),
    ),
    terminal_states=(_I.PAID,),
)
