"""
EstimateSeries -- original estimate and numbered change orders.

Responsibility:
    Records the original estimate (number 0) and change orders (1..n) for a
    project and drives the status transition each one implies.

Architecture position:
    Kernel > Services.  Uses ProjectStateMachine and TimelineLedger within
    the caller's transaction.  Never commits.

Invariants enforced:
    - The original estimate can only be recorded while the project is
      PENDING or IN_PROGRESS, and only once.
    - A new change order's number is 1 + the highest number on file for the
      project, computed while the project row is locked.  The
      (project_id, change_order_number) unique constraint is the backstop;
      a collision surfaces as ChangeOrderConflictError so the caller retries.
    - Totals are integer minor units in the project currency and never
      negative.  When no total is supplied, line item ``amount`` values are
      summed before anything is written.

Failure modes:
    - ProjectNotFoundError, InvalidStateError, InvalidTransitionError.
    - InvalidMoneyError, CurrencyMismatchError, InvalidLineItemsError.
    - ChangeOrderConflictError (retryable).
"""

from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from restoration_kernel.domain.actors import Actor
from restoration_kernel.domain.clock import Clock
from restoration_kernel.domain.dtos import (
    EstimateView,
    TimelineEventType,
    line_items_total,
    normalize_line_items,
)
from restoration_kernel.domain.values import Money
from restoration_kernel.domain.workflow import (
    PRE_ESTIMATE_STATUSES,
    ProjectStatus,
    validate_transition,
)
from restoration_kernel.exceptions import (
    ChangeOrderConflictError,
    CurrencyMismatchError,
    EstimateNotFoundError,
    InvalidMoneyError,
    InvalidStateError,
)
from restoration_kernel.logging_config import get_logger
from restoration_kernel.models.estimate import ORIGINAL_ESTIMATE_NUMBER, EstimateModel
from restoration_kernel.models.project import ProjectModel
from restoration_kernel.services.base import BaseService
from restoration_kernel.services.state_machine import ProjectStateMachine
from restoration_kernel.services.timeline_ledger import TimelineLedger

logger = get_logger("services.estimates")


class EstimateSeries(BaseService):
    """
    Creates and reads a project's estimate series.

    Contract:
        Both ``create_*`` methods lock the project row, write the estimate,
        apply the implied transition and append timeline entries, flushing
        only.

    Guarantees:
        - Change-order numbers per project are 1, 2, 3... in commit order.
        - Stored estimates are never modified except ``pdf_url``.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        ledger: TimelineLedger | None = None,
        state_machine: ProjectStateMachine | None = None,
    ):
        super().__init__(session, clock)
        self._ledger = ledger or TimelineLedger(session, self.clock)
        self._state_machine = state_machine or ProjectStateMachine(
            session, self.clock, self._ledger
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_original(
        self,
        project_id: UUID,
        total: Money | None,
        line_items: Sequence[dict[str, Any]],
        actor: Actor,
    ) -> EstimateView:
        """
        Record the original estimate and move the project to ESTIMATE_READY.

        The transition's single timeline entry is an ESTIMATE summary.
        """
        project = self._get_project_for_update(project_id)
        current = ProjectStatus(project.status)
        if current not in PRE_ESTIMATE_STATUSES:
            raise InvalidStateError(str(project_id), current.value, "create original estimate")
        if self._max_number(project_id) is not None:
            raise InvalidStateError(
                str(project_id), current.value, "create a second original estimate"
            )

        items = normalize_line_items(line_items)
        amount = self._resolve_total(project, total, items)
        estimate = self._insert(project, ORIGINAL_ESTIMATE_NUMBER, amount, items, actor)

        self._state_machine.transition(
            project,
            ProjectStatus.ESTIMATE_READY,
            actor,
            event_text=f"Estimate created: {amount}",
            event_type=TimelineEventType.ESTIMATE,
        )
        logger.info(
            "estimate_created",
            extra={
                "project_id": str(project_id),
                "estimate_id": str(estimate.id),
                "total_minor": amount.minor_units,
                "currency": amount.currency.code,
            },
        )
        return estimate.to_dto()

    def create_change_order(
        self,
        project_id: UUID,
        total: Money | None,
        line_items: Sequence[dict[str, Any]],
        actor: Actor,
    ) -> EstimateView:
        """
        Record the next change order and move the project to CHANGE_ORDER_PENDING.

        Writes a STATUS_CHANGE entry when the status actually changes and a
        CHANGE_ORDER entry summarizing the amount.
        """
        project = self._get_project_for_update(project_id)
        # Fail before writing anything if the project can't take a change order.
        validate_transition(ProjectStatus(project.status), ProjectStatus.CHANGE_ORDER_PENDING)

        items = normalize_line_items(line_items)
        amount = self._resolve_total(project, total, items)
        number = (self._max_number(project_id) or 0) + 1
        estimate = self._insert(project, number, amount, items, actor)

        self._state_machine.transition(project, ProjectStatus.CHANGE_ORDER_PENDING, actor)
        self._ledger.append(
            project.id,
            f"Change order #{number} submitted: {amount}",
            TimelineEventType.CHANGE_ORDER,
            actor,
        )
        logger.info(
            "change_order_created",
            extra={
                "project_id": str(project_id),
                "estimate_id": str(estimate.id),
                "change_order_number": number,
                "total_minor": amount.minor_units,
                "currency": amount.currency.code,
            },
        )
        return estimate.to_dto()

    def attach_pdf(self, estimate_id: UUID, pdf_url: str) -> EstimateView:
        """Set the rendered PDF reference; the only mutable estimate field."""
        estimate = self._get_model(estimate_id)
        estimate.pdf_url = pdf_url
        self.session.flush()
        return estimate.to_dto()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, estimate_id: UUID) -> EstimateView:
        return self._get_model(estimate_id).to_dto()

    def list_for_project(self, project_id: UUID) -> list[EstimateView]:
        rows = self.session.execute(
            select(EstimateModel)
            .where(EstimateModel.project_id == project_id)
            .order_by(EstimateModel.change_order_number)
        ).scalars()
        return [row.to_dto() for row in rows]

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _get_model(self, estimate_id: UUID) -> EstimateModel:
        estimate = self.session.get(EstimateModel, estimate_id)
        if estimate is None:
            raise EstimateNotFoundError(str(estimate_id))
        return estimate

    def _max_number(self, project_id: UUID) -> int | None:
        return self.session.execute(
            select(func.max(EstimateModel.change_order_number)).where(
                EstimateModel.project_id == project_id
            )
        ).scalar_one_or_none()

    def _resolve_total(
        self, project: ProjectModel, total: Money | None, items: list[dict[str, Any]]
    ) -> Money:
        if total is None:
            amount = line_items_total(items, project.currency)
        elif not isinstance(total, Money):
            raise InvalidMoneyError(total, "total must be Money")
        else:
            amount = total
        if amount.currency.code != project.currency:
            raise CurrencyMismatchError(expected=project.currency, actual=amount.currency.code)
        if amount.is_negative:
            raise InvalidMoneyError(amount.minor_units, "estimate total cannot be negative")
        return amount

    def _insert(
        self,
        project: ProjectModel,
        number: int,
        amount: Money,
        items: list[dict[str, Any]],
        actor: Actor,
    ) -> EstimateModel:
        estimate = EstimateModel(
            project_id=project.id,
            change_order_number=number,
            total_minor=amount.minor_units,
            currency=amount.currency.code,
            line_items=items,
            created_by_id=actor.id,
            created_by_name=actor.name,
            created_at=self.clock.now(),
        )
        self.session.add(estimate)
        try:
            self.session.flush()
        except IntegrityError as e:
            logger.warning(
                "change_order_number_collision",
                extra={"project_id": str(project.id), "change_order_number": number},
            )
            raise ChangeOrderConflictError(str(project.id), number) from e
        return estimate
