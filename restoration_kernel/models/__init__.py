"""ORM models. Importing this package registers every table on Base.metadata."""

from restoration_kernel.models.attachment import AttachmentModel
from restoration_kernel.models.estimate import (
    ESTIMATE_FROZEN_FIELDS,
    ORIGINAL_ESTIMATE_NUMBER,
    EstimateModel,
)
from restoration_kernel.models.invoice import InvoiceModel
from restoration_kernel.models.project import ProjectAssigneeModel, ProjectModel
from restoration_kernel.models.sequence import SequenceCounter
from restoration_kernel.models.timeline import TimelineEventModel

__all__ = [
    "AttachmentModel",
    "ESTIMATE_FROZEN_FIELDS",
    "EstimateModel",
    "InvoiceModel",
    "ORIGINAL_ESTIMATE_NUMBER",
    "ProjectAssigneeModel",
    "ProjectModel",
    "SequenceCounter",
    "TimelineEventModel",
]
