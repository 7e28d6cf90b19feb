"""
restoration_services.workflow_engine -- Public entry point for project workflow.

Responsibility:
    Run each workflow operation as one atomic unit: authorize the actor,
    take the project lock, drive the kernel services, commit.  Status
    change, timeline entries and any estimate row land together or not at
    all.

Architecture position:
    Services -- orchestration over restoration_kernel.  Constructs kernel
    services per session (``_KernelServices``) and never contains domain
    rules of its own beyond sequencing them.

Invariants enforced:
    - Authorization happens before the first write of every operation.
    - Operations on one project are serialized (in-process lock, row lock,
      optimistic ``version``).
    - ``ConflictError`` is retried up to ``workflow.conflict_retry_attempts``
      times and then raised; no other error is retried.

Failure modes:
    - ForbiddenError, ProjectNotFoundError, InvalidTransitionError,
      InvalidStateError, ValidationError subclasses, ConflictError.
    - Storage errors propagate after rollback.

Audit relevance:
    Every call runs inside a ``LogContext`` carrying a fresh correlation id,
    the actor id, the project id and the operation name, so every log line
    of the operation (including rollbacks and retries) can be tied back to
    the request.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from restoration_config import get_active_config
from restoration_config.schema import RestorationConfig
from restoration_kernel.domain.actors import Actor
from restoration_kernel.domain.clock import Clock, SystemClock
from restoration_kernel.domain.dtos import (
    AssigneeView,
    ChangeOrderReceipt,
    EstimateView,
    ProjectIntake,
    ProjectUpdate,
    ProjectView,
    TimelineEventType,
    TimelineEventView,
)
from restoration_kernel.domain.values import Money
from restoration_kernel.domain.workflow import ProjectStatus
from restoration_kernel.exceptions import ConflictError, InvalidStateError
from restoration_kernel.logging_config import LogContext, get_logger
from restoration_kernel.selectors.project_selector import ProjectSelector
from restoration_kernel.services.estimate_series import EstimateSeries
from restoration_kernel.services.project_service import ProjectService
from restoration_kernel.services.state_machine import ProjectStateMachine
from restoration_kernel.services.timeline_ledger import TimelineLedger
from restoration_services import role_policy as ops
from restoration_services.project_locks import ProjectLockRegistry
from restoration_services.role_policy import RolePolicy
from restoration_services.unit_of_work import UnitOfWork

logger = get_logger("services.workflow_engine")

T = TypeVar("T")

APPROVAL_EVENT_TEXT = "Estimate approved by customer"


@dataclass(frozen=True)
class _KernelServices:
    """Kernel services bound to one session and sharing one ledger."""

    ledger: TimelineLedger
    state_machine: ProjectStateMachine
    estimates: EstimateSeries
    projects: ProjectService
    selector: ProjectSelector

    @classmethod
    def bind(cls, session: Session, clock: Clock) -> _KernelServices:
        ledger = TimelineLedger(session, clock)
        state_machine = ProjectStateMachine(session, clock, ledger)
        return cls(
            ledger=ledger,
            state_machine=state_machine,
            estimates=EstimateSeries(session, clock, ledger, state_machine),
            projects=ProjectService(session, clock, ledger),
            selector=ProjectSelector(session),
        )


class WorkflowEngine:
    """
    Orchestrates project lifecycle operations.

    Contract:
        Each public write method is atomic and returns DTOs built inside the
        committed transaction.  Reads open a throwaway session.

        ``locks`` is the per-project lock registry.  Share one instance with
        the BillingDesk and DocumentService of the process; a facade built
        without one gets a private registry and is serialized against the
        others only by the database row lock.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        policy: RolePolicy | None = None,
        clock: Clock | None = None,
        config: RestorationConfig | None = None,
        locks: ProjectLockRegistry | None = None,
    ) -> None:
        self._config = config or get_active_config()
        self._policy = policy or RolePolicy.from_config(self._config.role_policy)
        self._clock = clock or SystemClock()
        self._uow = UnitOfWork(session_factory, locks)
        self._max_attempts = self._config.workflow.conflict_retry_attempts

    @property
    def policy(self) -> RolePolicy:
        return self._policy

    @property
    def locks(self) -> ProjectLockRegistry:
        return self._uow.locks

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_project(self, intake: ProjectIntake, actor: Actor) -> ProjectView:
        """Open a project in PENDING.  A customer may only open their own."""
        self._policy.check(actor, ops.PROJECT_CREATE, owner_id=intake.customer_id)
        return self._execute(
            ops.PROJECT_CREATE,
            actor,
            None,
            lambda svc: svc.projects.create_project(intake, actor),
        )

    def update_project(
        self, project_id: UUID, update: ProjectUpdate, actor: Actor
    ) -> ProjectView:
        """
        Edit title, description, type, priority and budget; staff may also
        set the adjuster and the actual cost.  A customer may only edit
        their own project.
        """

        def work(svc: _KernelServices) -> ProjectView:
            if update.touches_internal_fields:
                self._policy.check(actor, ops.PROJECT_UPDATE_INTERNAL)
            return svc.projects.update_details(project_id, update, actor)

        return self._execute(ops.PROJECT_UPDATE, actor, project_id, work)

    def create_original_estimate(
        self,
        project_id: UUID,
        total: Money | None,
        line_items: Sequence[dict[str, Any]],
        actor: Actor,
    ) -> EstimateView:
        """Record estimate #0 and move the project to ESTIMATE_READY."""
        return self._execute(
            ops.ESTIMATE_CREATE,
            actor,
            project_id,
            lambda svc: svc.estimates.create_original(project_id, total, line_items, actor),
        )

    def approve_estimate(self, project_id: UUID, actor: Actor) -> ProjectView:
        """
        Customer (own project) or admin approval of the current estimate.

        Writes the status-change entry and a separate APPROVED entry.  If
        the project is already APPROVED nothing is written.
        """

        def work(svc: _KernelServices) -> ProjectView:
            outcome = svc.state_machine.transition_by_id(
                project_id, ProjectStatus.APPROVED, actor
            )
            if outcome.changed:
                svc.ledger.append(
                    project_id, APPROVAL_EVENT_TEXT, TimelineEventType.APPROVED, actor
                )
            return outcome.project

        return self._execute(ops.ESTIMATE_APPROVE, actor, project_id, work)

    def submit_change_order(
        self,
        project_id: UUID,
        total: Money | None,
        line_items: Sequence[dict[str, Any]],
        actor: Actor,
    ) -> ChangeOrderReceipt:
        """Record the next change order and move to CHANGE_ORDER_PENDING."""

        def work(svc: _KernelServices) -> ChangeOrderReceipt:
            estimate = svc.estimates.create_change_order(project_id, total, line_items, actor)
            return ChangeOrderReceipt(project=svc.selector.get(project_id), estimate=estimate)

        return self._execute(ops.CHANGE_ORDER_SUBMIT, actor, project_id, work)

    def resolve_change_order(self, project_id: UUID, actor: Actor) -> ProjectView:
        """Close out a pending change order and resume construction."""

        def work(svc: _KernelServices) -> ProjectView:
            current = svc.selector.get(project_id).status
            if current != ProjectStatus.CHANGE_ORDER_PENDING:
                raise InvalidStateError(str(project_id), current.value, "resolve change order")
            return svc.state_machine.transition_by_id(
                project_id, ProjectStatus.IN_CONSTRUCTION, actor
            ).project

        return self._execute(ops.CHANGE_ORDER_RESOLVE, actor, project_id, work)

    def set_status(self, project_id: UUID, status: ProjectStatus, actor: Actor) -> ProjectView:
        """Generic staff transition along any permitted edge."""
        return self._execute(
            ops.PROJECT_SET_STATUS,
            actor,
            project_id,
            lambda svc: svc.state_machine.transition_by_id(
                project_id, ProjectStatus(status), actor
            ).project,
        )

    def assign_team_members(
        self, project_id: UUID, members: Iterable[AssigneeView], actor: Actor
    ) -> ProjectView:
        members = tuple(members)
        return self._execute(
            ops.PROJECT_ASSIGN,
            actor,
            project_id,
            lambda svc: svc.projects.assign_team_members(project_id, members, actor),
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_project(self, project_id: UUID) -> ProjectView:
        with self._uow.read() as session:
            return ProjectSelector(session).get(project_id)

    def get_timeline(
        self, project_id: UUID, *, newest_first: bool = False
    ) -> list[TimelineEventView]:
        with self._uow.read() as session:
            return ProjectSelector(session).timeline(project_id, newest_first=newest_first)

    def list_estimates(self, project_id: UUID) -> list[EstimateView]:
        with self._uow.read() as session:
            return ProjectSelector(session).estimates(project_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _execute(
        self,
        operation: str,
        actor: Actor,
        project_id: UUID | None,
        work: Callable[[_KernelServices], T],
    ) -> T:
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=str(actor.id),
            project_id=str(project_id) if project_id else None,
            operation=operation,
        ):
            attempt = 1
            while True:
                try:
                    with self._uow.begin(project_id) as session:
                        svc = _KernelServices.bind(session, self._clock)
                        if project_id is not None:
                            self._authorize(svc, actor, operation, project_id)
                        return work(svc)
                except ConflictError as exc:
                    if attempt >= self._max_attempts:
                        logger.error(
                            "workflow_conflict_exhausted",
                            extra={"attempts": attempt, "error_code": exc.code},
                        )
                        raise
                    logger.warning(
                        "workflow_conflict_retry",
                        extra={"attempt": attempt, "error_code": exc.code},
                    )
                    attempt += 1

    def _authorize(
        self, svc: _KernelServices, actor: Actor, operation: str, project_id: UUID
    ) -> None:
        owner_id = None
        if self._policy.requires_ownership(actor, operation):
            owner_id = svc.selector.get(project_id).customer_id
        self._policy.check(actor, operation, owner_id=owner_id)
