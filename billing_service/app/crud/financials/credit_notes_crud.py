import logging
from datetime import date
from uuid import UUID

from sqlalchemy.orm import Session

from shared.core.exceptions import BillingValidationError, RecordNotFoundError
from ...enum.financials_enum import CreditNoteStatus
from ...models.financials.credit_notes import CreditNote, CreditNoteLineItem
from ...models.financials.invoices import Invoice
from ...models.leasing_tenants.tenants import ExternalCustomer, Tenant
from ...schemas.financials.credit_notes_schemas import CreditNoteCreate
from .document_numbers import next_credit_note_number
from .invoice_builder import line_item, lines_total
from .vat_calculator import calculate_vat, validate_vat_rate

logger = logging.getLogger(__name__)


def _check_owner(db: Session, payload: CreditNoteCreate) -> None:
    if payload.tenant_id:
        owner = db.query(Tenant).filter(
            Tenant.id == payload.tenant_id, Tenant.is_deleted == False).first()
    else:
        owner = db.query(ExternalCustomer).filter(
            ExternalCustomer.id == payload.external_customer_id,
            ExternalCustomer.is_deleted == False).first()
    if not owner:
        raise RecordNotFoundError("Customer for credit note not found")

    if payload.original_invoice_id:
        invoice = db.query(Invoice).filter(
            Invoice.id == payload.original_invoice_id, Invoice.is_deleted == False).first()
        if not invoice:
            raise RecordNotFoundError(f"Invoice {payload.original_invoice_id} not found")
        if invoice.tenant_id != payload.tenant_id or \
                invoice.external_customer_id != payload.external_customer_id:
            raise BillingValidationError(
                f"Invoice {invoice.invoice_number} belongs to another customer")


def issue_credit_note(db: Session, payload: CreditNoteCreate) -> CreditNote:
    """Create an issued credit note; lines are summed and VAT is added on top."""
    _check_owner(db, payload)

    lines = [line_item(l.description, l.quantity, l.unit_price) for l in payload.line_items]
    subtotal = lines_total(lines)
    if subtotal <= 0:
        raise BillingValidationError("Credit note total must be greater than zero")

    rate = validate_vat_rate(payload.vat_rate)
    breakdown = calculate_vat(subtotal, rate, False)

    note = CreditNote(
        credit_note_number=next_credit_note_number(db),
        original_invoice_id=payload.original_invoice_id,
        tenant_id=payload.tenant_id,
        external_customer_id=payload.external_customer_id,
        credit_date=payload.credit_date or date.today(),
        reason=payload.reason,
        subtotal=breakdown.subtotal,
        vat_rate=rate,
        vat_amount=breakdown.vat_amount,
        total_amount=breakdown.total,
        status=CreditNoteStatus.issued.value,
        notes=payload.notes,
    )
    note.line_items = [
        CreditNoteLineItem(
            description=line["description"],
            quantity=line["quantity"],
            unit_price=line["unit_price"],
            amount=line["amount"],
        )
        for line in lines
    ]
    db.add(note)
    db.commit()
    db.refresh(note)
    logger.info("Credit note %s issued for %s", note.credit_note_number, note.total_amount)
    return note


def get_credit_note_by_id(db: Session, credit_note_id: UUID) -> CreditNote:
    note = db.query(CreditNote).filter(
        CreditNote.id == credit_note_id,
        CreditNote.is_deleted == False
    ).first()
    if not note:
        raise RecordNotFoundError(f"Credit note {credit_note_id} not found")
    return note
