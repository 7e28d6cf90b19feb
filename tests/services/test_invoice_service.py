"""
InvoiceService.

Verifies:
- Invoices are issued PENDING with sequential numbers
- Project-linked invoices write INVOICE timeline entries
- PAID is terminal: update and delete raise PaidInvoiceImmutableError
- Status changes follow the invoice lifecycle
"""

from datetime import date, timedelta
from uuid import uuid4

import pytest

from restoration_kernel.domain.dtos import TimelineEventType
from restoration_kernel.domain.values import Money
from restoration_kernel.domain.workflow import InvoiceStatus
from restoration_kernel.exceptions import (
    CurrencyMismatchError,
    InvalidMoneyError,
    InvoiceNotFoundError,
    PaidInvoiceImmutableError,
    ProjectNotFoundError,
    ValidationError,
)

ISSUED = date(2024, 1, 1)


def usd(minor_units: int) -> Money:
    return Money.of(minor_units, "USD")


@pytest.fixture
def issue(invoice_service, estimator):
    def _issue(amount=None, **kwargs):
        fields = {
            "customer": "Casey Customer",
            "address": "12 Elm Street",
            "amount": amount if amount is not None else usd(250000),
            "due_date": ISSUED + timedelta(days=30),
            "actor": estimator,
        }
        fields.update(kwargs)
        return invoice_service.issue_invoice(**fields)

    return _issue


class TestIssue:
    def test_issued_pending_on_clock_date(self, issue, estimator):
        invoice = issue()
        assert invoice.status == InvoiceStatus.PENDING
        assert invoice.issued_on == ISSUED
        assert invoice.amount == usd(250000)
        assert invoice.project_id is None
        assert invoice.generated_by_id == estimator.id

    def test_numbers_are_sequential(self, issue):
        numbers = [issue().invoice_number for _ in range(3)]
        assert numbers == [numbers[0], numbers[0] + 1, numbers[0] + 2]

    def test_project_invoice_writes_timeline_entry(self, issue, ledger, pending_project):
        invoice = issue(project_id=pending_project.id)
        entry = ledger.query(pending_project.id)[-1]
        assert entry.type == TimelineEventType.INVOICE
        assert entry.event == f"Invoice #{invoice.invoice_number} issued: 2500.00 USD"

    @pytest.mark.parametrize("minor_units", [0, -100])
    def test_amount_must_be_positive(self, issue, minor_units):
        with pytest.raises(InvalidMoneyError):
            issue(amount=usd(minor_units))

    def test_due_date_before_issue_date(self, issue):
        with pytest.raises(ValidationError):
            issue(due_date=ISSUED - timedelta(days=1))

    def test_currency_must_match_project(self, issue, pending_project):
        with pytest.raises(CurrencyMismatchError):
            issue(amount=Money.of(100, "EUR"), project_id=pending_project.id)

    def test_unknown_project(self, issue):
        with pytest.raises(ProjectNotFoundError):
            issue(project_id=uuid4())


class TestPayment:
    def test_record_payment(self, issue, invoice_service, ledger, pending_project, admin):
        invoice = issue(project_id=pending_project.id)
        paid = invoice_service.record_payment(invoice.id, admin)
        assert paid.status == InvoiceStatus.PAID
        entry = ledger.query(pending_project.id)[-1]
        assert entry.event == f"Invoice #{invoice.invoice_number} paid: 2500.00 USD"
        assert entry.user == "Alex Admin"

    def test_overdue_can_be_paid(self, issue, invoice_service, admin):
        invoice = issue()
        invoice_service.mark_overdue(invoice.id, admin)
        assert invoice_service.record_payment(invoice.id, admin).status == InvoiceStatus.PAID

    def test_overdue_back_to_pending(self, issue, invoice_service, admin):
        invoice = issue()
        invoice_service.mark_overdue(invoice.id, admin)
        updated = invoice_service.update_invoice(
            invoice.id,
            admin,
            due_date=ISSUED + timedelta(days=60),
            status=InvoiceStatus.PENDING,
        )
        assert updated.status == InvoiceStatus.PENDING
        assert updated.due_date == ISSUED + timedelta(days=60)


class TestPaidIsTerminal:
    @pytest.fixture
    def paid(self, issue, invoice_service, admin):
        invoice = issue()
        return invoice_service.record_payment(invoice.id, admin)

    def test_update_rejected(self, invoice_service, paid, admin):
        with pytest.raises(PaidInvoiceImmutableError) as exc_info:
            invoice_service.update_invoice(paid.id, admin, amount=usd(1))
        assert exc_info.value.operation == "update"
        assert invoice_service.get(paid.id).amount == usd(250000)

    def test_status_change_rejected(self, invoice_service, paid, admin):
        with pytest.raises(PaidInvoiceImmutableError):
            invoice_service.update_invoice(paid.id, admin, status=InvoiceStatus.PENDING)

    def test_second_payment_rejected(self, invoice_service, paid, admin):
        with pytest.raises(PaidInvoiceImmutableError):
            invoice_service.record_payment(paid.id, admin)

    def test_delete_rejected(self, invoice_service, paid, admin):
        with pytest.raises(PaidInvoiceImmutableError):
            invoice_service.delete_invoice(paid.id, admin)
        assert invoice_service.get(paid.id).status == InvoiceStatus.PAID


class TestMaintenance:
    def test_update_fields(self, issue, invoice_service, admin):
        invoice = issue()
        updated = invoice_service.update_invoice(
            invoice.id, admin, amount=usd(300000), address="14 Elm Street"
        )
        assert updated.amount == usd(300000)
        assert updated.address == "14 Elm Street"

    def test_update_currency_mismatch(self, issue, invoice_service, admin):
        invoice = issue()
        with pytest.raises(CurrencyMismatchError):
            invoice_service.update_invoice(invoice.id, admin, amount=Money.of(1, "EUR"))

    def test_pending_to_pending_is_noop(self, issue, invoice_service, admin):
        invoice = issue()
        updated = invoice_service.update_invoice(invoice.id, admin, status=InvoiceStatus.PENDING)
        assert updated.status == InvoiceStatus.PENDING

    def test_delete_unpaid(self, issue, invoice_service, admin):
        invoice = issue()
        invoice_service.delete_invoice(invoice.id, admin)
        with pytest.raises(InvoiceNotFoundError):
            invoice_service.get(invoice.id)

    def test_unknown_invoice(self, invoice_service, admin):
        with pytest.raises(InvoiceNotFoundError):
            invoice_service.record_payment(uuid4(), admin)
