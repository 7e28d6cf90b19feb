"""
EstimateModel -- versioned cost proposals for a project.

``change_order_number`` 0 is the original estimate; 1..n are change orders in
submission order.  The (project_id, change_order_number) unique constraint
is the storage backstop for the numbering rule; the series service computes
the number under the project lock.  Once written, only ``pdf_url`` may change.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, BigInteger, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from restoration_kernel.db.base import Base, UUIDString
from restoration_kernel.domain.dtos import EstimateView
from restoration_kernel.domain.values import Money

ORIGINAL_ESTIMATE_NUMBER = 0

# Fields frozen after insert (checked by db/immutability.py)
ESTIMATE_FROZEN_FIELDS = frozenset(
    {
        "project_id",
        "change_order_number",
        "total_minor",
        "currency",
        "line_items",
        "created_by_id",
        "created_by_name",
        "created_at",
    }
)


class EstimateModel(Base):
    """An original estimate or a change order."""

    __tablename__ = "estimates"

    __table_args__ = (
        UniqueConstraint(
            "project_id", "change_order_number", name="uq_estimate_change_order"
        ),
        Index("idx_estimate_project", "project_id"),
    )

    project_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("projects.id"), nullable=False
    )
    change_order_number: Mapped[int] = mapped_column(Integer, nullable=False)
    total_minor: Mapped[int] = mapped_column(BigInteger, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    line_items: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    pdf_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    created_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    created_by_name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    @property
    def total(self) -> Money:
        return Money.of(self.total_minor, self.currency)

    def to_dto(self) -> EstimateView:
        return EstimateView(
            id=self.id,
            project_id=self.project_id,
            change_order_number=self.change_order_number,
            total=self.total,
            line_items=tuple(self.line_items),
            created_by_id=self.created_by_id,
            created_by_name=self.created_by_name,
            created_at=self.created_at,
            pdf_url=self.pdf_url,
        )
