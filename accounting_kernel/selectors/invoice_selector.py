"""
Module: accounting_kernel.selectors.invoice_selector
Responsibility: Branch-scoped read model of an invoice aggregate.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Reads are always scoped to the caller's branch.  An invoice of
      another branch is reported exactly like a missing one.
    - Rows are re-read from the database (populate_existing), so callers
      observe what was persisted, never a pending in-memory state.
"""

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from accounting_kernel.domain.dtos import InvoiceDetail, InvoiceLineDetail, encode_token
from accounting_kernel.exceptions import NotFoundError
from accounting_kernel.models.branch import Branch
from accounting_kernel.models.contact import Contact
from accounting_kernel.models.invoice import Invoice, InvoiceLine
from accounting_kernel.selectors.base import BaseSelector


def _line_detail(line: InvoiceLine) -> InvoiceLineDetail:
    return InvoiceLineDetail(
        id=line.id,
        item_id=line.item_id,
        item_code=line.item_code,
        item_name=line.item_name,
        unit=line.unit,
        account_code=line.account_code,
        quantity=line.quantity,
        unit_price=line.unit_price,
        vat_rate=line.vat_rate,
        discount_rate=line.discount_rate,
        withholding_rate=line.withholding_rate,
        gross=line.gross,
        discount_amount=line.discount_amount,
        net=line.net,
        vat=line.vat,
        withholding_amount=line.withholding_amount,
        grand_total=line.grand_total,
        is_deleted=line.is_deleted,
        created_at_utc=line.created_at_utc,
        updated_at_utc=line.updated_at_utc,
        deleted_at_utc=line.deleted_at_utc,
    )


class InvoiceSelector(BaseSelector):
    def get_detail(
        self,
        branch_id: int,
        invoice_id: int,
        include_deleted_lines: bool = False,
    ) -> InvoiceDetail:
        """
        Load the invoice header, its lines (ordered by id) and the display
        fields of its contact and branch.

        Raises:
            NotFoundError: no live invoice with this id in ``branch_id``.
        """
        invoice = self.session.execute(
            select(Invoice)
            .where(
                Invoice.id == invoice_id,
                Invoice.branch_id == branch_id,
                Invoice.is_deleted.is_(False),
            )
            .options(selectinload(Invoice.lines))
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if invoice is None:
            raise NotFoundError("Invoice", invoice_id)

        contact_code, contact_name = self.session.execute(
            select(Contact.code, Contact.name).where(Contact.id == invoice.contact_id)
        ).one()
        branch_code, branch_name = self.session.execute(
            select(Branch.code, Branch.name).where(Branch.id == invoice.branch_id)
        ).one()

        lines = sorted(invoice.lines, key=lambda line: line.id)
        if not include_deleted_lines:
            lines = [line for line in lines if not line.is_deleted]

        return InvoiceDetail(
            id=invoice.id,
            branch_id=invoice.branch_id,
            branch_code=branch_code,
            branch_name=branch_name,
            contact_id=invoice.contact_id,
            contact_code=contact_code,
            contact_name=contact_name,
            order_id=invoice.order_id,
            invoice_number=invoice.invoice_number,
            invoice_type=invoice.invoice_type,
            document_type=invoice.document_type,
            date_utc=invoice.date_utc,
            currency=invoice.currency,
            currency_rate=invoice.currency_rate,
            waybill_number=invoice.waybill_number,
            waybill_date_utc=invoice.waybill_date_utc,
            payment_due_date_utc=invoice.payment_due_date_utc,
            total_line_gross=invoice.total_line_gross,
            total_discount=invoice.total_discount,
            total_net=invoice.total_net,
            total_vat=invoice.total_vat,
            total_withholding=invoice.total_withholding,
            total_gross=invoice.total_gross,
            balance=invoice.balance,
            created_at_utc=invoice.created_at_utc,
            updated_at_utc=invoice.updated_at_utc,
            concurrency_token=encode_token(invoice.row_version),
            lines=tuple(_line_detail(line) for line in lines),
        )

