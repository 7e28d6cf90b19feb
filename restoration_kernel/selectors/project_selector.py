"""
ProjectSelector -- read access to projects, timelines and estimates.

Includes the status-based progress figure shown on project cards.
"""

from uuid import UUID

from sqlalchemy import select

from restoration_kernel.domain.dtos import (
    AttachmentView,
    EstimateView,
    ProjectView,
    TimelineEventView,
)
from restoration_kernel.domain.workflow import ProjectStatus
from restoration_kernel.exceptions import ProjectNotFoundError
from restoration_kernel.models.attachment import AttachmentModel
from restoration_kernel.models.estimate import EstimateModel
from restoration_kernel.models.project import ProjectModel
from restoration_kernel.models.timeline import TimelineEventModel
from restoration_kernel.selectors.base import BaseSelector

# Percent complete implied by each status
PROGRESS_BY_STATUS: dict[ProjectStatus, int] = {
    ProjectStatus.PENDING: 10,
    ProjectStatus.IN_PROGRESS: 10,
    ProjectStatus.ESTIMATE_READY: 25,
    ProjectStatus.APPROVED: 40,
    ProjectStatus.CHANGE_ORDER_PENDING: 60,
    ProjectStatus.IN_CONSTRUCTION: 70,
    ProjectStatus.COMPLETED: 100,
    ProjectStatus.CANCELLED: 0,
}


def progress_for_status(status: ProjectStatus) -> int:
    return PROGRESS_BY_STATUS[ProjectStatus(status)]


class ProjectSelector(BaseSelector):
    """Project read queries."""

    def get(self, project_id: UUID) -> ProjectView:
        """
        Raises:
            ProjectNotFoundError: no such project.
        """
        project = self.session.get(ProjectModel, project_id)
        if project is None:
            raise ProjectNotFoundError(str(project_id))
        return project.to_dto()

    def find(self, project_id: UUID) -> ProjectView | None:
        project = self.session.get(ProjectModel, project_id)
        return project.to_dto() if project is not None else None

    def list_by_status(self, status: ProjectStatus) -> list[ProjectView]:
        rows = self.session.execute(
            select(ProjectModel)
            .where(ProjectModel.status == ProjectStatus(status).value)
            .order_by(ProjectModel.created_at.desc(), ProjectModel.id)
        ).scalars()
        return [row.to_dto() for row in rows]

    def list_for_customer(self, customer_id: UUID) -> list[ProjectView]:
        rows = self.session.execute(
            select(ProjectModel)
            .where(ProjectModel.customer_id == customer_id)
            .order_by(ProjectModel.created_at.desc(), ProjectModel.id)
        ).scalars()
        return [row.to_dto() for row in rows]

    def progress(self, project_id: UUID) -> int:
        return progress_for_status(self.get(project_id).status)

    def timeline(
        self, project_id: UUID, *, newest_first: bool = False
    ) -> list[TimelineEventView]:
        """Same ordering as TimelineLedger.query, for read-only callers."""
        self.get(project_id)
        order = (
            (TimelineEventModel.date.desc(), TimelineEventModel.seq.desc())
            if newest_first
            else (TimelineEventModel.date.asc(), TimelineEventModel.seq.asc())
        )
        rows = self.session.execute(
            select(TimelineEventModel)
            .where(TimelineEventModel.project_id == project_id)
            .order_by(*order)
        ).scalars()
        return [row.to_dto() for row in rows]

    def estimates(self, project_id: UUID) -> list[EstimateView]:
        self.get(project_id)
        rows = self.session.execute(
            select(EstimateModel)
            .where(EstimateModel.project_id == project_id)
            .order_by(EstimateModel.change_order_number)
        ).scalars()
        return [row.to_dto() for row in rows]

    def attachments(self, project_id: UUID) -> list[AttachmentView]:
        rows = self.session.execute(
            select(AttachmentModel)
            .where(AttachmentModel.project_id == project_id)
            .order_by(AttachmentModel.created_at, AttachmentModel.id)
        ).scalars()
        return [row.to_dto() for row in rows]
