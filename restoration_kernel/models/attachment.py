"""AttachmentModel -- blob-store references for project documents."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from restoration_kernel.db.base import Base, UUIDString
from restoration_kernel.domain.dtos import AttachmentKind, AttachmentView

if TYPE_CHECKING:
    from restoration_kernel.models.project import ProjectModel


class AttachmentModel(Base):
    """A sketch, photo, note or document uploaded for a project."""

    __tablename__ = "attachments"

    __table_args__ = (Index("idx_attachment_project", "project_id"),)

    project_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("projects.id"), nullable=False
    )
    kind: Mapped[str] = mapped_column(String(32), nullable=False)
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    content_type: Mapped[str] = mapped_column(String(100), nullable=False)
    storage_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    url: Mapped[str] = mapped_column(String(1024), nullable=False)
    uploaded_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    project: Mapped[ProjectModel] = relationship(
        "ProjectModel", back_populates="attachments"
    )

    def to_dto(self) -> AttachmentView:
        return AttachmentView(
            id=self.id,
            project_id=self.project_id,
            kind=AttachmentKind(self.kind),
            filename=self.filename,
            url=self.url,
            uploaded_by_id=self.uploaded_by_id,
            created_at=self.created_at,
        )
