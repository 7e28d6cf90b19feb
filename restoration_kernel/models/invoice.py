"""
InvoiceModel -- customer invoices, optionally tied to a project.

Created PENDING.  Once PAID the row is frozen: no field change and no delete
(service check first, ORM listener in db/immutability.py as the backstop).
"""

from datetime import date
from uuid import UUID

from sqlalchemy import BigInteger, Date, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from restoration_kernel.db.base import TrackedBase, UUIDString
from restoration_kernel.domain.dtos import InvoiceView
from restoration_kernel.domain.values import Money
from restoration_kernel.domain.workflow import InvoiceStatus


class InvoiceModel(TrackedBase):
    """A customer invoice."""

    __tablename__ = "invoices"

    __table_args__ = (
        UniqueConstraint("invoice_number", name="uq_invoice_number"),
        Index("idx_invoice_status", "status"),
        Index("idx_invoice_project", "project_id"),
    )

    invoice_number: Mapped[int] = mapped_column(BigInteger, nullable=False)
    project_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("projects.id"), nullable=True
    )
    customer: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    project_details: Mapped[str] = mapped_column(Text, nullable=False, default="")
    amount_minor: Mapped[int] = mapped_column(BigInteger, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    issued_on: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=InvoiceStatus.PENDING.value
    )

    @property
    def amount(self) -> Money:
        return Money.of(self.amount_minor, self.currency)

    def to_dto(self) -> InvoiceView:
        return InvoiceView(
            id=self.id,
            invoice_number=self.invoice_number,
            project_id=self.project_id,
            customer=self.customer,
            address=self.address,
            project_details=self.project_details,
            amount=self.amount,
            issued_on=self.issued_on,
            due_date=self.due_date,
            status=InvoiceStatus(self.status),
            generated_by_id=self.created_by_id,
        )
