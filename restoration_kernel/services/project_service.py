"""
ProjectService -- project intake, detail edits and team assignment.

Responsibility:
    Opens new projects (always PENDING, with a CREATED timeline entry),
    applies partial edits of project details (with an UPDATED entry) and
    maintains the set of assigned team members (with an ASSIGNED entry).

Architecture position:
    Kernel > Services.  Called by the workflow engine.  Never commits.

Invariants enforced:
    - New projects start PENDING with version 1.
    - Title is non-empty; budgets are non-negative Money in the project
      currency with budget_min <= budget_max.
    - Assignment changes touch ``updated_at`` so the project version moves.
    - Details are frozen while ESTIMATE_READY (the customer is deciding on
      the estimate) and once the project is COMPLETED or CANCELLED.

Failure modes:
    - InvalidProjectDataError, InvalidCurrencyError, CurrencyMismatchError.
    - ProjectNotFoundError on edits and assignment.
    - InvalidStateError when details are edited in a frozen status.
"""

from typing import Any, Iterable
from uuid import UUID

from sqlalchemy.orm import Session

from restoration_kernel.domain.actors import Actor
from restoration_kernel.domain.clock import Clock
from restoration_kernel.domain.dtos import (
    AssigneeView,
    Priority,
    ProjectIntake,
    ProjectUpdate,
    ProjectView,
    TimelineEventType,
)
from restoration_kernel.domain.values import Currency, Money
from restoration_kernel.domain.workflow import TERMINAL_STATUSES, ProjectStatus
from restoration_kernel.exceptions import (
    CurrencyMismatchError,
    InvalidProjectDataError,
    InvalidStateError,
)
from restoration_kernel.logging_config import get_logger
from restoration_kernel.models.project import ProjectAssigneeModel, ProjectModel
from restoration_kernel.services.base import BaseService
from restoration_kernel.services.timeline_ledger import TimelineLedger

logger = get_logger("services.projects")

# Statuses in which title, budget and the other details cannot be edited.
DETAILS_FROZEN_STATUSES: frozenset[ProjectStatus] = TERMINAL_STATUSES | {
    ProjectStatus.ESTIMATE_READY
}

_FIELD_LABELS = {
    "title": "title",
    "description": "description",
    "project_type": "project type",
    "priority": "priority",
    "budget_min_minor": "minimum budget",
    "budget_max_minor": "maximum budget",
    "adjuster_id": "adjuster",
    "actual_cost_minor": "actual cost",
}


class ProjectService(BaseService):
    """Write-side project operations outside the status lifecycle."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        ledger: TimelineLedger | None = None,
    ):
        super().__init__(session, clock)
        self._ledger = ledger or TimelineLedger(session, self.clock)

    def create_project(self, intake: ProjectIntake, actor: Actor) -> ProjectView:
        """Open a project in PENDING and record a CREATED timeline entry."""
        title = (intake.title or "").strip()
        if not title:
            raise InvalidProjectDataError("title", "must not be empty")
        if not (intake.customer_name or "").strip():
            raise InvalidProjectDataError("customer_name", "must not be empty")
        currency = Currency(intake.currency)
        budget_min = self._budget("budget_min", intake.budget_min, currency)
        budget_max = self._budget("budget_max", intake.budget_max, currency)
        if budget_min is not None and budget_max is not None and budget_min > budget_max:
            raise InvalidProjectDataError(
                "budget_min", "minimum budget cannot exceed maximum budget"
            )

        now = self.clock.now()
        project = ProjectModel(
            title=title,
            description=intake.description or "",
            project_type=intake.project_type,
            priority=Priority(intake.priority).value,
            status=ProjectStatus.PENDING.value,
            customer_id=intake.customer_id,
            customer_name=intake.customer_name.strip(),
            adjuster_id=intake.adjuster_id,
            currency=currency.code,
            budget_min_minor=budget_min.minor_units if budget_min is not None else None,
            budget_max_minor=budget_max.minor_units if budget_max is not None else None,
            created_at=now,
            updated_at=now,
            created_by_id=actor.id,
        )
        self.session.add(project)
        self.session.flush()

        self._ledger.append(project.id, "Project created", TimelineEventType.CREATED, actor)
        logger.info(
            "project_created",
            extra={
                "project_id": str(project.id),
                "customer_id": str(project.customer_id),
                "currency": project.currency,
            },
        )
        return project.to_dto()

    def update_details(
        self, project_id: UUID, update: ProjectUpdate, actor: Actor
    ) -> ProjectView:
        """
        Apply a partial edit and record one UPDATED entry naming the changed fields.

        Budgets and actual cost follow the intake rules: non-negative Money
        in the project currency, minimum not above maximum (checked against
        the resulting values).  An edit that changes nothing writes nothing.

        Raises:
            ProjectNotFoundError: no such project.
            InvalidStateError: details are frozen in the current status.
            InvalidProjectDataError, CurrencyMismatchError: bad values.
        """
        project = self._get_project_for_update(project_id)
        status = ProjectStatus(project.status)
        if status in DETAILS_FROZEN_STATUSES:
            raise InvalidStateError(str(project_id), status.value, "edit project details")

        currency = Currency(project.currency)
        values: dict[str, Any] = {}
        if update.title is not None:
            title = update.title.strip()
            if not title:
                raise InvalidProjectDataError("title", "must not be empty")
            values["title"] = title
        if update.description is not None:
            values["description"] = update.description
        if update.project_type is not None:
            if not update.project_type.strip():
                raise InvalidProjectDataError("project_type", "must not be empty")
            values["project_type"] = update.project_type.strip()
        if update.priority is not None:
            values["priority"] = Priority(update.priority).value
        if update.adjuster_id is not None:
            values["adjuster_id"] = update.adjuster_id
        if update.actual_cost is not None:
            cost = self._budget("actual_cost", update.actual_cost, currency)
            values["actual_cost_minor"] = cost.minor_units

        if update.clear_budget:
            if update.budget_min is not None or update.budget_max is not None:
                raise InvalidProjectDataError(
                    "budget", "cannot clear and set the budget in one update"
                )
            values["budget_min_minor"] = None
            values["budget_max_minor"] = None
        else:
            for field in ("budget_min", "budget_max"):
                amount = self._budget(field, getattr(update, field), currency)
                if amount is not None:
                    values[f"{field}_minor"] = amount.minor_units

        budget_min = values.get("budget_min_minor", project.budget_min_minor)
        budget_max = values.get("budget_max_minor", project.budget_max_minor)
        if budget_min is not None and budget_max is not None and budget_min > budget_max:
            raise InvalidProjectDataError(
                "budget_min", "minimum budget cannot exceed maximum budget"
            )

        changed = sorted(name for name, value in values.items() if getattr(project, name) != value)
        if not changed:
            logger.debug("project_update_noop", extra={"project_id": str(project.id)})
            return project.to_dto()

        for name in changed:
            setattr(project, name, values[name])
        project.updated_at = self.clock.now()
        project.updated_by_id = actor.id
        self.session.flush()

        labels = ", ".join(_FIELD_LABELS[name] for name in changed)
        self._ledger.append(
            project.id,
            f"Project details updated: {labels}",
            TimelineEventType.UPDATED,
            actor,
        )
        logger.info(
            "project_updated",
            extra={"project_id": str(project.id), "fields": changed},
        )
        return project.to_dto()

    def assign_team_members(
        self,
        project_id: UUID,
        members: Iterable[AssigneeView],
        actor: Actor,
    ) -> ProjectView:
        """
        Replace the project's assignee set.

        Retained members keep their rows; removed ones are deleted, new ones
        inserted.  One ASSIGNED entry lists the resulting names.
        """
        project = self._get_project_for_update(project_id)
        wanted: dict[UUID, str] = {}
        for member in members:
            if not (member.name or "").strip():
                raise InvalidProjectDataError("assignees", "member name must not be empty")
            wanted[member.user_id] = member.name.strip()

        now = self.clock.now()
        for row in list(project.assignees):
            if row.user_id not in wanted:
                project.assignees.remove(row)
        existing = {row.user_id for row in project.assignees}
        for user_id, name in wanted.items():
            if user_id not in existing:
                project.assignees.append(
                    ProjectAssigneeModel(user_id=user_id, name=name, assigned_at=now)
                )
        project.updated_at = now
        project.updated_by_id = actor.id
        self.session.flush()

        names = ", ".join(sorted(wanted.values())) or "none"
        self._ledger.append(
            project.id,
            f"Assigned team members: {names}",
            TimelineEventType.ASSIGNED,
            actor,
        )
        logger.info(
            "team_members_assigned",
            extra={"project_id": str(project.id), "member_count": len(wanted)},
        )
        return project.to_dto()

    @staticmethod
    def _budget(field: str, value: Money | None, currency: Currency) -> Money | None:
        if value is None:
            return None
        if not isinstance(value, Money):
            raise InvalidProjectDataError(field, "must be Money in minor units")
        if value.currency != currency:
            raise CurrencyMismatchError(expected=currency.code, actual=value.currency.code)
        if value.is_negative:
            raise InvalidProjectDataError(field, "cannot be negative")
        return value
