"""
InvoiceService -- invoice issue, payment and maintenance.

Responsibility:
    Issues invoices (PENDING, numbered from the ``invoice`` sequence),
    records payment, marks them overdue, edits and deletes them.  Project
    linked invoices also get INVOICE timeline entries.

Architecture position:
    Kernel > Services.  Called by the billing desk in restoration_services.
    Never commits.

Invariants enforced:
    - Invoices are created PENDING with a positive amount.
    - Status changes follow INVOICE_LIFECYCLE.
    - A PAID invoice is terminal: any change or deletion raises
      PaidInvoiceImmutableError before anything is touched.

Failure modes:
    - InvoiceNotFoundError, ProjectNotFoundError.
    - PaidInvoiceImmutableError, InvalidInvoiceTransitionError.
    - InvalidMoneyError, CurrencyMismatchError, ValidationError.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from restoration_kernel.domain.actors import Actor
from restoration_kernel.domain.clock import Clock
from restoration_kernel.domain.dtos import InvoiceView, TimelineEventType
from restoration_kernel.domain.values import Money
from restoration_kernel.domain.workflow import INVOICE_LIFECYCLE, InvoiceStatus
from restoration_kernel.exceptions import (
    CurrencyMismatchError,
    InvalidInvoiceTransitionError,
    InvalidMoneyError,
    InvoiceNotFoundError,
    PaidInvoiceImmutableError,
    ProjectNotFoundError,
    ValidationError,
)
from restoration_kernel.logging_config import get_logger
from restoration_kernel.models.invoice import InvoiceModel
from restoration_kernel.models.project import ProjectModel
from restoration_kernel.services.base import BaseService
from restoration_kernel.services.sequence_service import SequenceService
from restoration_kernel.services.timeline_ledger import TimelineLedger

logger = get_logger("services.invoices")


class InvoiceService(BaseService):
    """
    Write-side invoice operations.

    Guarantees:
        - Invoice numbers are strictly increasing.
        - PAID invoices are never modified or removed.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        ledger: TimelineLedger | None = None,
    ):
        super().__init__(session, clock)
        self._ledger = ledger or TimelineLedger(session, self.clock)
        self._sequences = SequenceService(session)

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
        """Issue a PENDING invoice, optionally linked to a project."""
        issued_on = issued_on or self.clock.now().date()
        self._validate_amount(amount)
        if due_date < issued_on:
            raise ValidationError(
                f"due date {due_date.isoformat()} precedes issue date {issued_on.isoformat()}"
            )

        project = None
        if project_id is not None:
            project = self.session.get(ProjectModel, project_id)
            if project is None:
                raise ProjectNotFoundError(str(project_id))
            if amount.currency.code != project.currency:
                raise CurrencyMismatchError(
                    expected=project.currency, actual=amount.currency.code
                )

        now = self.clock.now()
        invoice = InvoiceModel(
            invoice_number=self._sequences.next_value(SequenceService.INVOICE),
            project_id=project_id,
            customer=customer,
            address=address,
            project_details=project_details,
            amount_minor=amount.minor_units,
            currency=amount.currency.code,
            issued_on=issued_on,
            due_date=due_date,
            status=InvoiceStatus.PENDING.value,
            created_at=now,
            updated_at=now,
            created_by_id=actor.id,
        )
        self.session.add(invoice)
        self.session.flush()

        if project is not None:
            self._ledger.append(
                project.id,
                f"Invoice #{invoice.invoice_number} issued: {amount}",
                TimelineEventType.INVOICE,
                actor,
            )
        logger.info(
            "invoice_issued",
            extra={
                "invoice_id": str(invoice.id),
                "invoice_number": invoice.invoice_number,
                "project_id": str(project_id) if project_id else None,
                "amount_minor": amount.minor_units,
                "currency": amount.currency.code,
            },
        )
        return invoice.to_dto()

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
        """
        Edit an unpaid invoice.

        Raises:
            PaidInvoiceImmutableError: invoice is PAID (nothing changes).
            InvalidInvoiceTransitionError: ``status`` not reachable.
        """
        invoice = self._get_for_update(invoice_id)
        self._require_unpaid(invoice, "update")

        if amount is not None:
            self._validate_amount(amount)
            if amount.currency.code != invoice.currency:
                raise CurrencyMismatchError(
                    expected=invoice.currency, actual=amount.currency.code
                )
            invoice.amount_minor = amount.minor_units
        if due_date is not None:
            if due_date < invoice.issued_on:
                raise ValidationError(
                    f"due date {due_date.isoformat()} precedes issue date "
                    f"{invoice.issued_on.isoformat()}"
                )
            invoice.due_date = due_date
        if customer is not None:
            invoice.customer = customer
        if address is not None:
            invoice.address = address
        if project_details is not None:
            invoice.project_details = project_details
        if status is not None:
            self._apply_status(invoice, InvoiceStatus(status))

        invoice.updated_at = self.clock.now()
        invoice.updated_by_id = actor.id
        self.session.flush()
        logger.info(
            "invoice_updated",
            extra={"invoice_id": str(invoice.id), "status": invoice.status},
        )
        return invoice.to_dto()

    def record_payment(self, invoice_id: UUID, actor: Actor) -> InvoiceView:
        """Mark an invoice PAID; the invoice is frozen afterwards."""
        invoice = self._get_for_update(invoice_id)
        self._require_unpaid(invoice, "record payment")
        self._apply_status(invoice, InvoiceStatus.PAID)
        invoice.updated_at = self.clock.now()
        invoice.updated_by_id = actor.id
        self.session.flush()

        if invoice.project_id is not None:
            self._ledger.append(
                invoice.project_id,
                f"Invoice #{invoice.invoice_number} paid: {invoice.amount}",
                TimelineEventType.INVOICE,
                actor,
            )
        logger.info(
            "invoice_paid",
            extra={
                "invoice_id": str(invoice.id),
                "amount_minor": invoice.amount_minor,
                "currency": invoice.currency,
            },
        )
        return invoice.to_dto()

    def mark_overdue(self, invoice_id: UUID, actor: Actor) -> InvoiceView:
        return self.update_invoice(invoice_id, actor, status=InvoiceStatus.OVERDUE)

    def delete_invoice(self, invoice_id: UUID, actor: Actor) -> None:
        """Delete an unpaid invoice."""
        invoice = self._get_for_update(invoice_id)
        self._require_unpaid(invoice, "delete")
        self.session.delete(invoice)
        self.session.flush()
        logger.info(
            "invoice_deleted",
            extra={"invoice_id": str(invoice_id), "actor_id": str(actor.id)},
        )

    def get(self, invoice_id: UUID) -> InvoiceView:
        invoice = self.session.get(InvoiceModel, invoice_id)
        if invoice is None:
            raise InvoiceNotFoundError(str(invoice_id))
        return invoice.to_dto()

    # ------------------------------------------------------------------

    def _get_for_update(self, invoice_id: UUID) -> InvoiceModel:
        invoice = self.session.execute(
            select(InvoiceModel)
            .where(InvoiceModel.id == invoice_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if invoice is None:
            raise InvoiceNotFoundError(str(invoice_id))
        return invoice

    @staticmethod
    def _require_unpaid(invoice: InvoiceModel, operation: str) -> None:
        if invoice.status == InvoiceStatus.PAID.value:
            logger.warning(
                "paid_invoice_change_rejected",
                extra={"invoice_id": str(invoice.id), "attempted": operation},
            )
            raise PaidInvoiceImmutableError(str(invoice.id), operation)

    @staticmethod
    def _apply_status(invoice: InvoiceModel, target: InvoiceStatus) -> None:
        if invoice.status == target.value:
            return
        if not INVOICE_LIFECYCLE.is_allowed(invoice.status, target.value):
            raise InvalidInvoiceTransitionError(str(invoice.id), invoice.status, target.value)
        invoice.status = target.value

    @staticmethod
    def _validate_amount(amount: Money) -> None:
        if not isinstance(amount, Money):
            raise InvalidMoneyError(amount, "amount must be Money")
        if not amount.is_positive:
            raise InvalidMoneyError(amount.minor_units, "invoice amount must be positive")
