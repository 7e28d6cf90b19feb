"""
restoration_services.document_service -- Project documents and estimate PDFs.

Responsibility:
    Push bytes to the injected BlobStore, then record the returned URL in the
    database inside one unit of work (an Attachment row plus a DOCUMENT
    timeline entry, or ``Estimate.pdf_url``).

Failure modes:
    - If the database write fails after the blob was stored, the blob stays
      behind unreferenced; nothing points at it.
"""

from __future__ import annotations

import posixpath
from collections.abc import Callable
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from restoration_kernel.domain.actors import Actor
from restoration_kernel.domain.clock import Clock, SystemClock
from restoration_kernel.domain.dtos import AttachmentKind, AttachmentView, EstimateView
from restoration_kernel.logging_config import LogContext, get_logger
from restoration_kernel.selectors.project_selector import ProjectSelector
from restoration_kernel.services.attachment_service import AttachmentService
from restoration_kernel.services.estimate_series import EstimateSeries
from restoration_services import role_policy as ops
from restoration_services.blob_store import BlobStore
from restoration_services.project_locks import ProjectLockRegistry
from restoration_services.role_policy import RolePolicy
from restoration_services.unit_of_work import UnitOfWork

logger = get_logger("services.documents")

PDF_CONTENT_TYPE = "application/pdf"


def attachment_path(project_id: UUID, filename: str) -> str:
    """``projects/{project_id}/attachments/{uuid}{ext}``; the original name is kept on the row."""
    ext = posixpath.splitext(filename)[1].lower()
    return f"projects/{project_id}/attachments/{uuid4()}{ext}"


def estimate_pdf_path(project_id: UUID) -> str:
    return f"projects/{project_id}/estimates/estimate_{uuid4()}.pdf"


class DocumentService:
    """
    Stores uploads in the blob store and records them against the project.

    Pass the same ``locks`` registry as the WorkflowEngine and BillingDesk;
    a service built without one serializes only against itself in-process.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        blob_store: BlobStore,
        policy: RolePolicy | None = None,
        clock: Clock | None = None,
        locks: ProjectLockRegistry | None = None,
    ) -> None:
        self._blobs = blob_store
        self._policy = policy or RolePolicy.default()
        self._clock = clock or SystemClock()
        self._uow = UnitOfWork(session_factory, locks)

    @property
    def locks(self) -> ProjectLockRegistry:
        return self._uow.locks

    def attach_document(
        self,
        project_id: UUID,
        kind: AttachmentKind,
        filename: str,
        payload: bytes,
        content_type: str,
        actor: Actor,
    ) -> AttachmentView:
        """Store a document for a project and log it on the timeline."""
        with LogContext.bind(
            actor_id=str(actor.id), project_id=str(project_id), operation=ops.DOCUMENT_ATTACH
        ):
            with self._uow.begin(project_id) as session:
                owner_id = None
                if self._policy.requires_ownership(actor, ops.DOCUMENT_ATTACH):
                    owner_id = ProjectSelector(session).get(project_id).customer_id
                self._policy.check(actor, ops.DOCUMENT_ATTACH, owner_id=owner_id)

                path = attachment_path(project_id, filename)
                url = self._blobs.put(path, payload, content_type)
                view = AttachmentService(session, self._clock).record(
                    project_id, kind, filename, content_type, path, url, actor
                )
            logger.info(
                "document_attached",
                extra={"attachment_id": str(view.id), "size_bytes": len(payload)},
            )
            return view

    def attach_estimate_pdf(
        self, estimate_id: UUID, payload: bytes, actor: Actor
    ) -> EstimateView:
        """Store a rendered estimate PDF and set ``Estimate.pdf_url``."""
        self._policy.check(actor, ops.ESTIMATE_CREATE)
        with LogContext.bind(actor_id=str(actor.id), operation="estimate.attach_pdf"):
            with self._uow.read() as session:
                project_id = EstimateSeries(session, self._clock).get(estimate_id).project_id

            with self._uow.begin(project_id) as session:
                path = estimate_pdf_path(project_id)
                url = self._blobs.put(path, payload, PDF_CONTENT_TYPE)
                view = EstimateSeries(session, self._clock).attach_pdf(estimate_id, url)
            logger.info(
                "estimate_pdf_attached",
                extra={"estimate_id": str(estimate_id), "project_id": str(project_id)},
            )
            return view
