import logging
from datetime import date, datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from shared.core.exceptions import BillingValidationError, RecordNotFoundError
from ...enum.financials_enum import InvoiceStatus
from ...models.financials.invoices import Invoice
from ...schemas.financials.invoices_schemas import InvoiceOut, InvoicesRequest, InvoicesResponse
from .vat_calculator import round2, to_money

logger = logging.getLogger(__name__)


def build_invoices_filters(params: InvoicesRequest):
    filters = [Invoice.is_deleted == False]

    if params.status and params.status.lower() != "all":
        filters.append(Invoice.status == params.status)

    if params.invoice_kind and params.invoice_kind.lower() != "all":
        filters.append(Invoice.invoice_kind == params.invoice_kind)

    if params.invoice_month:
        filters.append(Invoice.invoice_month == params.invoice_month)

    if params.search:
        filters.append(Invoice.invoice_number.ilike(f"%{params.search}%"))

    return filters


def balance_due(invoice: Invoice):
    return round2(to_money(invoice.amount) - to_money(invoice.applied_credit))


def to_invoice_out(invoice: Invoice) -> InvoiceOut:
    out = InvoiceOut.model_validate(invoice)
    out.balance_due = balance_due(invoice)
    return out


def get_invoices(db: Session, params: InvoicesRequest) -> InvoicesResponse:
    base_query = db.query(Invoice).filter(*build_invoices_filters(params))
    total = base_query.with_entities(func.count(Invoice.id)).scalar()

    query = (
        base_query
        .options(selectinload(Invoice.line_items))
        .order_by(Invoice.invoice_number.desc())
        .offset(params.skip or 0)
    )
    if params.limit:
        query = query.limit(params.limit)

    return InvoicesResponse(
        invoices=[to_invoice_out(invoice) for invoice in query.all()],
        total=total
    )


def get_invoice_by_id(db: Session, invoice_id: UUID) -> Invoice:
    invoice = db.query(Invoice).filter(
        Invoice.id == invoice_id,
        Invoice.is_deleted == False
    ).first()
    if not invoice:
        raise RecordNotFoundError(f"Invoice {invoice_id} not found")
    return invoice


def mark_invoice_sent(db: Session, invoice_id: UUID) -> Invoice:
    invoice = get_invoice_by_id(db, invoice_id)
    if invoice.status != InvoiceStatus.draft.value:
        raise BillingValidationError(
            f"Only draft invoices can be sent, {invoice.invoice_number} is {invoice.status}")
    invoice.status = InvoiceStatus.sent.value
    db.commit()
    db.refresh(invoice)
    return invoice


def mark_invoice_paid(db: Session, invoice_id: UUID, paid_at: Optional[datetime] = None) -> Invoice:
    invoice = get_invoice_by_id(db, invoice_id)
    if invoice.status in (InvoiceStatus.paid.value, InvoiceStatus.credited.value):
        raise BillingValidationError(
            f"Invoice {invoice.invoice_number} is already {invoice.status}")
    invoice.status = InvoiceStatus.paid.value
    invoice.paid_at = paid_at or datetime.now().replace(microsecond=0)
    db.commit()
    db.refresh(invoice)
    return invoice


def mark_overdue_invoices(db: Session, today: date) -> int:
    """Flag sent invoices whose due date has passed. Returns how many changed."""
    updated = (
        db.query(Invoice)
        .filter(
            Invoice.status == InvoiceStatus.sent.value,
            Invoice.due_date < today,
            Invoice.is_deleted == False
        )
        .update({Invoice.status: InvoiceStatus.overdue.value}, synchronize_session=False)
    )
    db.commit()
    if updated:
        logger.info("%d invoice(s) marked overdue", updated)
    return updated
