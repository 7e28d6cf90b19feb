"""
TimelineEventModel -- append-only project history.

Every lifecycle-relevant action appends exactly one row here.  Rows are never
updated or deleted (enforced by db/immutability.py).  ``seq`` is allocated
from the per-project sequence counter and is unique within the project, so
(date, seq) is a total order even when two events share a timestamp.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import BigInteger, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from restoration_kernel.db.base import Base, UUIDString
from restoration_kernel.domain.dtos import TimelineEventType, TimelineEventView
from restoration_kernel.domain.workflow import ProjectStatus


class TimelineEventModel(Base):
    """One immutable entry in a project's timeline."""

    __tablename__ = "timeline_events"

    __table_args__ = (
        UniqueConstraint("project_id", "seq", name="uq_timeline_project_seq"),
        Index("idx_timeline_project_order", "project_id", "date", "seq"),
        Index("idx_timeline_date", "date"),
    )

    project_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("projects.id"), nullable=False
    )
    seq: Mapped[int] = mapped_column(BigInteger, nullable=False)
    date: Mapped[datetime] = mapped_column(nullable=False)
    event: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    # Display name snapshot, not a foreign key
    user: Mapped[str] = mapped_column(String(255), nullable=False)
    actor_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    from_status: Mapped[str | None] = mapped_column(String(32), nullable=True)
    to_status: Mapped[str | None] = mapped_column(String(32), nullable=True)

    def to_dto(self) -> TimelineEventView:
        return TimelineEventView(
            id=self.id,
            project_id=self.project_id,
            seq=self.seq,
            date=self.date,
            event=self.event,
            type=TimelineEventType(self.type),
            user=self.user,
            from_status=ProjectStatus(self.from_status) if self.from_status else None,
            to_status=ProjectStatus(self.to_status) if self.to_status else None,
        )
