"""
restoration_services.billing_desk -- Invoice operations with authorization.

Responsibility:
    Role check, per-project lock and commit around InvoiceService.  Invoices
    linked to a project take that project's lock because they append to its
    timeline.

Invariants:
    - A PAID invoice is never changed or deleted; attempts raise
      PaidInvoiceImmutableError and roll back.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date
from typing import TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from restoration_kernel.domain.actors import Actor
from restoration_kernel.domain.clock import Clock, SystemClock
from restoration_kernel.domain.dtos import InvoiceView
from restoration_kernel.domain.values import Money
from restoration_kernel.domain.workflow import InvoiceStatus
from restoration_kernel.logging_config import LogContext
from restoration_kernel.services.invoice_service import InvoiceService
from restoration_services import role_policy as ops
from restoration_services.project_locks import ProjectLockRegistry
from restoration_services.role_policy import RolePolicy
from restoration_services.unit_of_work import UnitOfWork

T = TypeVar("T")


class BillingDesk:
    """
    Invoice operations, each one role-checked unit of work.

    ``locks`` must be the registry the WorkflowEngine and DocumentService of
    the same process use.  Without one the desk builds a private registry,
    and operations on a project are then serialized against the other
    facades only by the database row lock.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        policy: RolePolicy | None = None,
        clock: Clock | None = None,
        locks: ProjectLockRegistry | None = None,
    ) -> None:
        self._policy = policy or RolePolicy.default()
        self._clock = clock or SystemClock()
        self._uow = UnitOfWork(session_factory, locks)

    @property
    def locks(self) -> ProjectLockRegistry:
        return self._uow.locks

    def issue_invoice(
        self,
        *,
        customer: str,
        address: str,
        amount: Money,
        due_date: date,
        actor: Actor,
        project_id: UUID | None = None,
        project_details: str = "",
        issued_on: date | None = None,
    ) -> InvoiceView:
        return self._run(
            ops.INVOICE_ISSUE,
            actor,
            lambda svc: svc.issue_invoice(
                customer=customer,
                address=address,
                amount=amount,
                due_date=due_date,
                actor=actor,
                project_id=project_id,
                project_details=project_details,
                issued_on=issued_on,
            ),
            project_id=project_id,
        )

    def update_invoice(
        self,
        invoice_id: UUID,
        actor: Actor,
        *,
        amount: Money | None = None,
        due_date: date | None = None,
        customer: str | None = None,
        address: str | None = None,
        project_details: str | None = None,
        status: InvoiceStatus | None = None,
    ) -> InvoiceView:
        return self._run(
            ops.INVOICE_UPDATE,
            actor,
            lambda svc: svc.update_invoice(
                invoice_id,
                actor,
                amount=amount,
                due_date=due_date,
                customer=customer,
                address=address,
                project_details=project_details,
                status=status,
            ),
            invoice_id=invoice_id,
        )

    def record_payment(self, invoice_id: UUID, actor: Actor) -> InvoiceView:
        return self._run(
            ops.INVOICE_RECORD_PAYMENT,
            actor,
            lambda svc: svc.record_payment(invoice_id, actor),
            invoice_id=invoice_id,
        )

    def mark_overdue(self, invoice_id: UUID, actor: Actor) -> InvoiceView:
        return self._run(
            ops.INVOICE_MARK_OVERDUE,
            actor,
            lambda svc: svc.mark_overdue(invoice_id, actor),
            invoice_id=invoice_id,
        )

    def delete_invoice(self, invoice_id: UUID, actor: Actor) -> None:
        self._run(
            ops.INVOICE_DELETE,
            actor,
            lambda svc: svc.delete_invoice(invoice_id, actor),
            invoice_id=invoice_id,
        )

    def get_invoice(self, invoice_id: UUID) -> InvoiceView:
        with self._uow.read() as session:
            return InvoiceService(session, self._clock).get(invoice_id)

    def _run(
        self,
        operation: str,
        actor: Actor,
        work: Callable[[InvoiceService], T],
        *,
        project_id: UUID | None = None,
        invoice_id: UUID | None = None,
    ) -> T:
        self._policy.check(actor, operation)
        if invoice_id is not None:
            project_id = self.get_invoice(invoice_id).project_id
        with LogContext.bind(
            actor_id=str(actor.id),
            project_id=str(project_id) if project_id else None,
            operation=operation,
        ):
            with self._uow.begin(project_id) as session:
                return work(InvoiceService(session, self._clock))
