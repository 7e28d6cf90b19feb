"""
AttachmentService -- records uploaded project documents.

The bytes live in a blob store owned by the caller; this service stores the
reference and appends a DOCUMENT timeline entry in the same flush.
"""

from uuid import UUID

from sqlalchemy.orm import Session

from restoration_kernel.domain.actors import Actor
from restoration_kernel.domain.clock import Clock
from restoration_kernel.domain.dtos import AttachmentKind, AttachmentView, TimelineEventType
from restoration_kernel.exceptions import InvalidProjectDataError
from restoration_kernel.logging_config import get_logger
from restoration_kernel.models.attachment import AttachmentModel
from restoration_kernel.services.base import BaseService
from restoration_kernel.services.timeline_ledger import TimelineLedger

logger = get_logger("services.attachments")

_KIND_LABELS = {
    AttachmentKind.SKETCH: "Sketch",
    AttachmentKind.PHOTO: "Photo",
    AttachmentKind.DOCUMENT: "Document",
    AttachmentKind.NOTE: "Note",
    AttachmentKind.ADDITIONAL_DOCUMENT: "Additional document",
}


class AttachmentService(BaseService):
    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        ledger: TimelineLedger | None = None,
    ):
        super().__init__(session, clock)
        self._ledger = ledger or TimelineLedger(session, self.clock)

    def record(
        self,
        project_id: UUID,
        kind: AttachmentKind,
        filename: str,
        content_type: str,
        storage_path: str,
        url: str,
        actor: Actor,
    ) -> AttachmentView:
        """Persist an attachment row for an already stored blob."""
        if not (filename or "").strip():
            raise InvalidProjectDataError("filename", "must not be empty")
        kind = AttachmentKind(kind)
        project = self._get_project_for_update(project_id)

        attachment = AttachmentModel(
            project_id=project.id,
            kind=kind.value,
            filename=filename.strip(),
            content_type=content_type,
            storage_path=storage_path,
            url=url,
            uploaded_by_id=actor.id,
            created_at=self.clock.now(),
        )
        self.session.add(attachment)
        self.session.flush()

        self._ledger.append(
            project.id,
            f"{_KIND_LABELS[kind]} uploaded: {attachment.filename}",
            TimelineEventType.DOCUMENT,
            actor,
        )
        logger.info(
            "attachment_recorded",
            extra={
                "project_id": str(project.id),
                "attachment_id": str(attachment.id),
                "kind": kind.value,
            },
        )
        return attachment.to_dto()
