"""
TimelineLedger -- append-only project history.

Responsibility:
    Appends timeline events inside the caller's transaction and reads a
    project's history in a deterministic order.

Architecture position:
    Kernel > Services.  Called by the state machine, the estimate series and
    the project, invoice and document services.  Never commits.

Invariants enforced:
    - Append-only: no update or delete API exists here; db/immutability.py
      blocks them at the ORM level as well.
    - Each event gets the next per-project ``seq`` from SequenceService, so
      insertion order within a project is total even when ``date`` ties.
    - The actor's display name is snapshotted into ``user``.

Failure modes:
    - Storage errors propagate; the caller's unit of work rolls back the
      whole operation, including any status change the entry describes.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from restoration_kernel.domain.actors import Actor
from restoration_kernel.domain.clock import Clock
from restoration_kernel.domain.dtos import TimelineEventType, TimelineEventView
from restoration_kernel.domain.workflow import ProjectStatus
from restoration_kernel.logging_config import get_logger
from restoration_kernel.models.timeline import TimelineEventModel
from restoration_kernel.services.base import BaseService
from restoration_kernel.services.sequence_service import SequenceService

logger = get_logger("services.timeline")


class TimelineLedger(BaseService):
    """
    Append/query access to the project timeline.

    Contract:
        ``append`` writes exactly one row and flushes; ``query`` returns DTOs
        ordered by (date, seq).

    Non-goals:
        - Does not decide which events to write; callers do.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)
        self._sequences = SequenceService(session)

    def append(
        self,
        project_id: UUID,
        text: str,
        event_type: TimelineEventType,
        actor: Actor,
        *,
        from_status: ProjectStatus | None = None,
        to_status: ProjectStatus | None = None,
    ) -> TimelineEventView:
        """Append one event to a project's timeline and return it."""
        seq = self._sequences.next_value(SequenceService.timeline_sequence(project_id))
        row = TimelineEventModel(
            project_id=project_id,
            seq=seq,
            date=self.clock.now(),
            event=text,
            type=TimelineEventType(event_type).value,
            user=actor.name,
            actor_id=actor.id,
            from_status=ProjectStatus(from_status).value if from_status else None,
            to_status=ProjectStatus(to_status).value if to_status else None,
        )
        self.session.add(row)
        self.session.flush()

        logger.info(
            "timeline_event_appended",
            extra={
                "project_id": str(project_id),
                "seq": seq,
                "event_type": row.type,
                "from_status": row.from_status,
                "to_status": row.to_status,
            },
        )
        return row.to_dto()

    def query(
        self, project_id: UUID, *, newest_first: bool = False
    ) -> list[TimelineEventView]:
        """A project's events ordered by (date, seq), ascending or both descending."""
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

