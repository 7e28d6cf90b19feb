"""
SQLAlchemy ORM models for projects and their team assignments.

Responsibility
--------------
Persist the project aggregate root: identity, ownership, budget, currency,
lifecycle status, and the optimistic-lock ``version`` counter.  Team
assignments live in ``ProjectAssigneeModel`` rows owned by the project.

Invariants enforced
-------------------
* Money fields are BigInteger minor units in the project currency.
* ``status`` starts at PENDING and is written only through
  ``ProjectModel.authorize_status`` (checked by db/immutability.py).
* ``version`` is the mapper ``version_id_col``: every UPDATE checks and bumps
  it, so a lost update raises StaleDataError at flush.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from restoration_kernel.db.base import Base, TrackedBase, UUIDString
from restoration_kernel.domain.dtos import AssigneeView, Priority, ProjectView
from restoration_kernel.domain.values import Money
from restoration_kernel.domain.workflow import ProjectStatus

if TYPE_CHECKING:
    from restoration_kernel.models.attachment import AttachmentModel


class ProjectModel(TrackedBase):
    """
    A restoration project.

    Guarantees:
        - Exactly one owning customer (``customer_id``).
        - ``budget_min <= budget_max`` when both are set.
        - ``status`` follows the project lifecycle in domain/workflow.py.
    """

    __tablename__ = "projects"

    __table_args__ = (
        Index("idx_project_status", "status"),
        Index("idx_project_customer", "customer_id"),
        Index("idx_project_created", "created_at"),
        CheckConstraint(
            "budget_min_minor IS NULL OR budget_max_minor IS NULL "
            "OR budget_min_minor <= budget_max_minor",
            name="ck_project_budget_range",
        ),
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    project_type: Mapped[str] = mapped_column(String(50), nullable=False)
    priority: Mapped[str] = mapped_column(
        String(16), nullable=False, default=Priority.MEDIUM.value
    )
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=ProjectStatus.PENDING.value
    )
    customer_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    adjuster_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    budget_min_minor: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    budget_max_minor: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    actual_cost_minor: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    assignees: Mapped[list[ProjectAssigneeModel]] = relationship(
        "ProjectAssigneeModel",
        back_populates="project",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ProjectAssigneeModel.name",
    )

    attachments: Mapped[list[AttachmentModel]] = relationship(
        "AttachmentModel",
        back_populates="project",
        lazy="select",
        order_by="AttachmentModel.created_at",
    )

    # Not mapped: the one status value the state machine has cleared for the
    # next flush.
    _authorized_status = None

    def authorize_status(self, status: ProjectStatus) -> None:
        """Mark ``status`` as the sanctioned next value and assign it."""
        self._authorized_status = ProjectStatus(status).value
        self.status = ProjectStatus(status).value

    def consume_status_authorization(self, status: str) -> bool:
        """True (once) if ``status`` matches the value cleared by authorize_status."""
        ok = self._authorized_status is not None and self._authorized_status == status
        self._authorized_status = None
        return ok

    def _money(self, minor: int | None) -> Money | None:
        return None if minor is None else Money.of(minor, self.currency)

    def to_dto(self) -> ProjectView:
        return ProjectView(
            id=self.id,
            title=self.title,
            status=ProjectStatus(self.status),
            customer_id=self.customer_id,
            customer_name=self.customer_name,
            currency=self.currency,
            priority=Priority(self.priority),
            project_type=self.project_type,
            description=self.description,
            version=self.version,
            created_at=self.created_at,
            updated_at=self.updated_at,
            adjuster_id=self.adjuster_id,
            budget_min=self._money(self.budget_min_minor),
            budget_max=self._money(self.budget_max_minor),
            actual_cost=self._money(self.actual_cost_minor),
            assignees=tuple(
                sorted((a.to_dto() for a in self.assignees), key=lambda a: a.name)
            ),
        )


class ProjectAssigneeModel(Base):
    """A team member assigned to a project (name snapshotted at assignment)."""

    __tablename__ = "project_assignees"

    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_project_assignee"),
    )

    project_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("projects.id"), nullable=False
    )
    user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    assigned_at: Mapped[datetime] = mapped_column(nullable=False)

    project: Mapped[ProjectModel] = relationship(
        "ProjectModel", back_populates="assignees"
    )

    def to_dto(self) -> AssigneeView:
        return AssigneeView(user_id=self.user_id, name=self.name)
