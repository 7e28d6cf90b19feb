"""
ProjectStateMachine -- guarded project status transitions.

Responsibility:
    The only writer of ``ProjectModel.status``.  Validates a requested
    transition against PROJECT_LIFECYCLE, applies it, refreshes
    ``updated_at`` from the injected clock, and appends exactly one timeline
    event in the same flush.

Architecture position:
    Kernel > Services.  Called by the estimate series and by the workflow
    engine in restoration_services.  Never commits.

Invariants enforced:
    - Target equal to current status is a no-op: success, nothing written.
    - Any edge outside PROJECT_LIFECYCLE raises InvalidTransitionError and
      leaves the project untouched.
    - A guarded edge (PENDING/IN_PROGRESS -> ESTIMATE_READY needs the
      original estimate on file) raises InvalidStateError when the guard
      does not hold.
    - A successful transition writes status and one timeline event, both
      flushed in the caller's transaction.

Failure modes:
    - InvalidTransitionError for illegal edges.
    - InvalidStateError when an edge guard does not hold.
    - StaleDataError from SQLAlchemy when the project's ``version`` moved
      under us; the unit of work maps it to StatusConflictError.

Audit relevance:
    Every status change is traceable to a STATUS_CHANGE (or more specific)
    timeline event carrying from/to status and the actor's name.
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from restoration_kernel.domain.actors import Actor
from restoration_kernel.domain.clock import Clock
from restoration_kernel.domain.dtos import ProjectView, TimelineEventType, TimelineEventView
from restoration_kernel.domain.workflow import (
    ESTIMATE_ON_FILE,
    PROJECT_LIFECYCLE,
    Guard,
    ProjectStatus,
    validate_transition,
)
from restoration_kernel.exceptions import InvalidStateError
from restoration_kernel.logging_config import get_logger
from restoration_kernel.models.estimate import ORIGINAL_ESTIMATE_NUMBER, EstimateModel
from restoration_kernel.models.project import ProjectModel
from restoration_kernel.services.base import BaseService
from restoration_kernel.services.timeline_ledger import TimelineLedger

logger = get_logger("services.state_machine")


def status_change_text(status: ProjectStatus) -> str:
    """Default ledger summary, e.g. ``Status changed to change-order-pending``."""
    return f"Status changed to {ProjectStatus(status).value.lower().replace('_', '-')}"


@dataclass(frozen=True)
class TransitionOutcome:
    """What a transition did: ``changed`` is False for a no-op."""
    from_status: ProjectStatus
    to_status: ProjectStatus
    changed: bool
    event: TimelineEventView | None = None
    project: ProjectView | None = None


class ProjectStateMachine(BaseService):
    """
    Applies project status transitions.

    Contract:
        ``transition`` takes an already loaded (and, for writes, row-locked)
        ProjectModel.

    Guarantees:
        - Exactly one timeline event per effective transition, zero for a
          no-op.
        - Status is written through ``ProjectModel.authorize_status`` so the
          ORM guard accepts it.

    Non-goals:
        - Role checks (RolePolicy in restoration_services does those).
        - Commit/rollback.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        ledger: TimelineLedger | None = None,
    ):
        super().__init__(session, clock)
        self._ledger = ledger or TimelineLedger(session, self.clock)

    def transition(
        self,
        project: ProjectModel,
        target: ProjectStatus,
        actor: Actor,
        *,
        event_text: str | None = None,
        event_type: TimelineEventType = TimelineEventType.STATUS_CHANGE,
    ) -> TransitionOutcome:
        """
        Move ``project`` to ``target``.

        ``event_text`` / ``event_type`` replace the default STATUS_CHANGE
        summary for the single entry this transition writes.

        Raises:
            InvalidTransitionError: edge not allowed.
            InvalidStateError: the edge guard does not hold.
        """
        current = ProjectStatus(project.status)
        target = ProjectStatus(target)

        if not validate_transition(current, target):
            logger.debug(
                "status_transition_noop",
                extra={"project_id": str(project.id), "status": current.value},
            )
            return TransitionOutcome(current, target, changed=False, project=project.to_dto())

        self._check_guard(project, current, target)

        project.authorize_status(target)
        project.updated_at = self.clock.now()
        project.updated_by_id = actor.id
        self.session.flush()

        event = self._ledger.append(
            project.id,
            event_text or status_change_text(target),
            event_type,
            actor,
            from_status=current,
            to_status=target,
        )

        logger.info(
            "status_transitioned",
            extra={
                "project_id": str(project.id),
                "from_status": current.value,
                "to_status": target.value,
                "actor_role": actor.role.value,
                "version": project.version,
            },
        )
        return TransitionOutcome(
            current, target, changed=True, event=event, project=project.to_dto()
        )

    def transition_by_id(
        self,
        project_id: UUID,
        target: ProjectStatus,
        actor: Actor,
        *,
        event_text: str | None = None,
        event_type: TimelineEventType = TimelineEventType.STATUS_CHANGE,
    ) -> TransitionOutcome:
        """Lock the project row, then ``transition``.

        Raises:
            ProjectNotFoundError: no such project.
            InvalidTransitionError: edge not allowed.
            InvalidStateError: the edge guard does not hold.
        """
        project = self._get_project_for_update(project_id)
        return self.transition(
            project, target, actor, event_text=event_text, event_type=event_type
        )

    def _check_guard(
        self, project: ProjectModel, current: ProjectStatus, target: ProjectStatus
    ) -> None:
        guard = PROJECT_LIFECYCLE.guard_for(current, target)
        if guard is None or self._guard_holds(project, guard):
            return
        logger.warning(
            "status_transition_guard_failed",
            extra={
                "project_id": str(project.id),
                "from_status": current.value,
                "to_status": target.value,
                "guard": guard.name,
            },
        )
        raise InvalidStateError(
            str(project.id), current.value, f"move to {target.value} ({guard.name})"
        )

    def _guard_holds(self, project: ProjectModel, guard: Guard) -> bool:
        if guard == ESTIMATE_ON_FILE:
            return self.session.execute(
                select(EstimateModel.id).where(
                    EstimateModel.project_id == project.id,
                    EstimateModel.change_order_number == ORIGINAL_ESTIMATE_NUMBER,
                )
            ).first() is not None
        raise ValueError(f"No evaluator for transition guard {guard.name}")
