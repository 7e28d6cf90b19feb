"""Services for the restoration kernel (write side)."""

from restoration_kernel.services.attachment_service import AttachmentService
from restoration_kernel.services.estimate_series import EstimateSeries
from restoration_kernel.services.invoice_service import InvoiceService
from restoration_kernel.services.project_service import ProjectService
from restoration_kernel.services.sequence_service import SequenceService
from restoration_kernel.services.state_machine import (
    ProjectStateMachine,
    TransitionOutcome,
    status_change_text,
)
from restoration_kernel.services.timeline_ledger import TimelineLedger

__all__ = [
    "AttachmentService",
    "EstimateSeries",
    "InvoiceService",
    "ProjectService",
    "ProjectStateMachine",
    "SequenceService",
    "TimelineLedger",
    "TransitionOutcome",
    "status_change_text",
]
