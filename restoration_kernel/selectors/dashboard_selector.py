"""
DashboardSelector -- simple aggregates for the staff dashboard.

Counts by status, paid revenue per currency, and the most recent projects
and timeline activity.  Everything is derived from stored rows; nothing is
cached or denormalized.
"""

from sqlalchemy import func, select

from restoration_kernel.domain.dtos import DashboardStats, ProjectView, TimelineEventView
from restoration_kernel.domain.values import Money
from restoration_kernel.domain.workflow import (
    ACTIVE_STATUSES,
    InvoiceStatus,
    ProjectStatus,
)
from restoration_kernel.models.invoice import InvoiceModel
from restoration_kernel.models.project import ProjectModel
from restoration_kernel.models.timeline import TimelineEventModel
from restoration_kernel.selectors.base import BaseSelector

RECENT_PROJECTS_LIMIT = 5
RECENT_ACTIVITY_LIMIT = 10


class DashboardSelector(BaseSelector):
    """Dashboard read model."""

    def counts_by_status(self) -> dict[ProjectStatus, int]:
        counts = {status: 0 for status in ProjectStatus}
        rows = self.session.execute(
            select(ProjectModel.status, func.count(ProjectModel.id)).group_by(
                ProjectModel.status
            )
        )
        for status, count in rows:
            counts[ProjectStatus(status)] = count
        return counts

    def paid_revenue(self) -> dict[str, Money]:
        """Sum of PAID invoice amounts, one entry per currency."""
        rows = self.session.execute(
            select(InvoiceModel.currency, func.sum(InvoiceModel.amount_minor))
            .where(InvoiceModel.status == InvoiceStatus.PAID.value)
            .group_by(InvoiceModel.currency)
        )
        return {currency: Money.of(int(total or 0), currency) for currency, total in rows}

    def recent_projects(self, limit: int = RECENT_PROJECTS_LIMIT) -> list[ProjectView]:
        rows = self.session.execute(
            select(ProjectModel)
            .order_by(ProjectModel.created_at.desc(), ProjectModel.id)
            .limit(limit)
        ).scalars()
        return [row.to_dto() for row in rows]

    def recent_activity(self, limit: int = RECENT_ACTIVITY_LIMIT) -> list[TimelineEventView]:
        rows = self.session.execute(
            select(TimelineEventModel)
            .order_by(
                TimelineEventModel.date.desc(),
                TimelineEventModel.seq.desc(),
                TimelineEventModel.id,
            )
            .limit(limit)
        ).scalars()
        return [row.to_dto() for row in rows]

    def stats(self) -> DashboardStats:
        counts = self.counts_by_status()
        return DashboardStats(
            total_projects=sum(counts.values()),
            active_projects=sum(counts[s] for s in ACTIVE_STATUSES),
            completed_projects=counts[ProjectStatus.COMPLETED],
            pending_review=counts[ProjectStatus.ESTIMATE_READY],
            by_status=counts,
            revenue=self.paid_revenue(),
            recent_projects=tuple(self.recent_projects()),
            recent_activity=tuple(self.recent_activity()),
        )
