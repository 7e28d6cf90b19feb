"""
restoration_services -- orchestration over restoration_kernel.

Owns transaction boundaries, authorization and per-project serialization.
Kernel services below only flush; everything here commits through
``UnitOfWork``.
"""

from restoration_services.billing_desk import BillingDesk
from restoration_services.blob_store import BlobStore, InMemoryBlobStore
from restoration_services.document_service import DocumentService
from restoration_services.project_locks import ProjectLockRegistry
from restoration_services.role_policy import RolePolicy
from restoration_services.unit_of_work import UnitOfWork
from restoration_services.workflow_engine import WorkflowEngine

__all__ = [
    "BillingDesk",
    "BlobStore",
    "DocumentService",
    "InMemoryBlobStore",
    "ProjectLockRegistry",
    "RolePolicy",
    "UnitOfWork",
    "WorkflowEngine",
]
