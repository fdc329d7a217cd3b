"""
Credit ledger: how much of each credit note is still unapplied, and the
applications that move that credit onto invoices (or out as refunds).

available credit = total_amount - sum(applied_amount), never below zero.
Every application is validated against it before anything is written.
"""
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from shared.core.exceptions import BillingValidationError, RecordNotFoundError
from ...enum.financials_enum import CreditApplicationType, CreditNoteStatus, InvoiceStatus
from ...enum.leasing_tenants_enum import CustomerType
from ...models.financials.credit_notes import CreditApplication, CreditNote
from ...models.financials.invoices import Invoice
from ...schemas.financials.credit_notes_schemas import (
    AvailableCreditOut, CreditRunResult, CustomerCreditOut, UnappliedCreditNoteOut
)
from .vat_calculator import ZERO, round2, to_money

logger = logging.getLogger(__name__)

CLOSED_INVOICE_STATUSES = (InvoiceStatus.paid.value, InvoiceStatus.credited.value)
AUTO_CREDIT_INVOICE_STATUSES = (InvoiceStatus.sent.value, InvoiceStatus.overdue.value)


# ----------------------------------------------------------------------
# Lookups
# ----------------------------------------------------------------------

def get_credit_note(db: Session, credit_note_id: UUID, for_update: bool = False) -> CreditNote:
    query = db.query(CreditNote).filter(
        CreditNote.id == credit_note_id,
        CreditNote.is_deleted == False
    )
    if for_update:
        query = query.with_for_update()
    note = query.first()
    if not note:
        raise RecordNotFoundError(f"Credit note {credit_note_id} not found")
    return note


def applied_total(db: Session, credit_note_id: UUID) -> Decimal:
    total = db.query(
        func.coalesce(func.sum(CreditApplication.applied_amount), 0)
    ).filter(CreditApplication.credit_note_id == credit_note_id).scalar()
    return round2(total)


def _available(note: CreditNote, applied: Decimal) -> Decimal:
    return max(round2(to_money(note.total_amount) - applied), ZERO)


def available_credit(db: Session, credit_note_id: UUID) -> Decimal:
    note = get_credit_note(db, credit_note_id)
    return _available(note, applied_total(db, credit_note_id))


def get_available_credit(db: Session, credit_note_id: UUID) -> AvailableCreditOut:
    note = get_credit_note(db, credit_note_id)
    applied = applied_total(db, credit_note_id)
    return AvailableCreditOut(
        credit_note_id=note.id,
        total_amount=round2(note.total_amount),
        applied_amount=applied,
        available_credit=_available(note, applied),
    )


def get_applications(db: Session, credit_note_id: UUID) -> List[CreditApplication]:
    get_credit_note(db, credit_note_id)
    return (
        db.query(CreditApplication)
        .filter(CreditApplication.credit_note_id == credit_note_id)
        .order_by(CreditApplication.application_date.desc(), CreditApplication.created_at.desc())
        .all()
    )


def customer_key(record) -> Tuple[CustomerType, UUID]:
    if record.tenant_id:
        return CustomerType.tenant, record.tenant_id
    return CustomerType.external, record.external_customer_id


def customer_name(note: CreditNote) -> str:
    if note.tenant:
        return note.tenant.company_name
    if note.external_customer:
        return note.external_customer.company_name
    return "Unknown"


# ----------------------------------------------------------------------
# Applications
# ----------------------------------------------------------------------

def _record_application(
    db: Session,
    credit_note_id: UUID,
    amount,
    application_type: CreditApplicationType,
    invoice_id: Optional[UUID] = None,
    application_date: Optional[date] = None,
    notes: Optional[str] = None,
) -> CreditApplication:
    try:
        amount = round2(amount)
        if amount <= 0:
            raise BillingValidationError("Applied amount must be greater than zero")

        # the note row stays locked until commit, so concurrent applications
        # cannot both pass the availability check
        note = get_credit_note(db, credit_note_id, for_update=True)
        if note.status == CreditNoteStatus.draft.value:
            raise BillingValidationError(
                f"Credit note {note.credit_note_number} has not been issued")

        available = _available(note, applied_total(db, note.id))
        if amount > available:
            raise BillingValidationError(
                f"Amount {amount} exceeds available credit {available} "
                f"on credit note {note.credit_note_number}")

        invoice = None
        if invoice_id is not None:
            invoice = db.query(Invoice).filter(
                Invoice.id == invoice_id,
                Invoice.is_deleted == False
            ).with_for_update().first()
            if not invoice:
                raise RecordNotFoundError(f"Invoice {invoice_id} not found")
            if customer_key(invoice) != customer_key(note):
                raise BillingValidationError(
                    f"Invoice {invoice.invoice_number} belongs to another customer")
            if invoice.status in CLOSED_INVOICE_STATUSES:
                raise BillingValidationError(
                    f"Invoice {invoice.invoice_number} is already {invoice.status}")
            outstanding = round2(to_money(invoice.amount) - to_money(invoice.applied_credit))
            if amount > outstanding:
                raise BillingValidationError(
                    f"Amount {amount} exceeds the balance due {outstanding} "
                    f"on invoice {invoice.invoice_number}")
    except Exception:
        # nothing written yet; release the row locks
        db.rollback()
        raise

    application = CreditApplication(
        credit_note_id=note.id,
        invoice_id=invoice.id if invoice else None,
        applied_amount=amount,
        application_type=application_type.value,
        application_date=application_date or date.today(),
        notes=notes,
    )
    db.add(application)

    if invoice is not None:
        invoice.applied_credit = round2(to_money(invoice.applied_credit) + amount)
        if invoice.applied_credit >= to_money(invoice.amount):
            invoice.status = InvoiceStatus.credited.value

    if available - amount == 0:
        note.status = CreditNoteStatus.applied.value

    db.commit()
    db.refresh(application)
    logger.info("Applied %s from credit note %s (%s)", amount, note.credit_note_number,
                application_type.value)
    return application


def apply_credit_to_invoice(
    db: Session, credit_note_id: UUID, invoice_id: UUID, amount, application_date: Optional[date] = None
) -> CreditApplication:
    return _record_application(
        db, credit_note_id, amount, CreditApplicationType.invoice_credit,
        invoice_id=invoice_id, application_date=application_date)


def record_refund(
    db: Session, credit_note_id: UUID, amount, notes: Optional[str] = None,
    application_date: Optional[date] = None
) -> CreditApplication:
    return _record_application(
        db, credit_note_id, amount, CreditApplicationType.refund,
        application_date=application_date, notes=notes or "Refunded to customer")


def record_manual_application(
    db: Session, credit_note_id: UUID, amount, notes: Optional[str] = None,
    application_date: Optional[date] = None
) -> CreditApplication:
    return _record_application(
        db, credit_note_id, amount, CreditApplicationType.manual,
        application_date=application_date, notes=notes or "Applied manually")


# ----------------------------------------------------------------------
# Read-only projections
# ----------------------------------------------------------------------

def _issued_notes_with_available(db: Session) -> List[Tuple[CreditNote, Decimal]]:
    applied_by_note = dict(
        db.query(CreditApplication.credit_note_id, func.sum(CreditApplication.applied_amount))
        .group_by(CreditApplication.credit_note_id)
        .all()
    )
    notes = (
        db.query(CreditNote)
        .filter(
            CreditNote.is_deleted == False,
            CreditNote.status != CreditNoteStatus.draft.value
        )
        .order_by(CreditNote.credit_date, CreditNote.credit_note_number)
        .all()
    )
    return [(note, _available(note, round2(applied_by_note.get(note.id) or 0))) for note in notes]


def get_unapplied_credit_notes(db: Session) -> List[UnappliedCreditNoteOut]:
    results = []
    for note, available in _issued_notes_with_available(db):
        if available <= 0:
            continue
        kind, owner_id = customer_key(note)
        results.append(UnappliedCreditNoteOut(
            id=note.id,
            credit_note_number=note.credit_note_number,
            credit_date=note.credit_date,
            customer_id=owner_id,
            customer_type=kind.value,
            customer_name=customer_name(note),
            total_amount=round2(note.total_amount),
            available_credit=available,
            status=note.status,
        ))
    return results


def _open_invoices_query(db: Session, kind: CustomerType, owner_id: UUID):
    owner_column = Invoice.tenant_id if kind == CustomerType.tenant else Invoice.external_customer_id
    return db.query(Invoice).filter(
        owner_column == owner_id,
        Invoice.is_deleted == False,
        Invoice.status.notin_(CLOSED_INVOICE_STATUSES)
    )


def get_credit_by_customer(db: Session) -> List[CustomerCreditOut]:
    customers: Dict[Tuple[CustomerType, UUID], CustomerCreditOut] = {}

    for note, available in _issued_notes_with_available(db):
        key = customer_key(note)
        if key not in customers:
            open_invoices = _open_invoices_query(db, *key).all()
            customers[key] = CustomerCreditOut(
                customer_id=key[1],
                customer_type=key[0].value,
                customer_name=customer_name(note),
                total_credit=ZERO,
                available_credit=ZERO,
                unapplied_credit_notes=0,
                outstanding_invoices=len(open_invoices),
                outstanding_amount=round2(sum(
                    (to_money(inv.amount) - to_money(inv.applied_credit) for inv in open_invoices), ZERO)),
            )

        customer = customers[key]
        customer.total_credit = round2(customer.total_credit + to_money(note.total_amount))
        customer.available_credit = round2(customer.available_credit + available)
        if available > 0:
            customer.unapplied_credit_notes += 1

    return [c for c in customers.values() if c.available_credit > 0]


# ----------------------------------------------------------------------
# Scheduled handler
# ----------------------------------------------------------------------

def apply_available_credit(db: Session, now: datetime) -> CreditRunResult:
    """
    Spend each customer's available credit on their oldest sent or overdue
    invoices, oldest credit note first.
    """
    result = CreditRunResult()

    for note, _ in _issued_notes_with_available(db):
        kind, owner_id = customer_key(note)
        note_id, note_number = note.id, note.credit_note_number
        invoices = (
            _open_invoices_query(db, kind, owner_id)
            .filter(Invoice.status.in_(AUTO_CREDIT_INVOICE_STATUSES))
            .order_by(Invoice.invoice_date, Invoice.invoice_number)
            .all()
        )
        for invoice in invoices:
            invoice_id = invoice.id
            try:
                # re-read both sides; earlier applications in this run moved them
                available = available_credit(db, note_id)
                if available <= 0:
                    break
                outstanding = round2(to_money(invoice.amount) - to_money(invoice.applied_credit))
                if outstanding <= 0:
                    continue
                amount = min(available, outstanding)
                apply_credit_to_invoice(db, note_id, invoice_id, amount, application_date=now.date())
            except Exception:
                db.rollback()
                result.failed += 1
                logger.exception("Applying credit note %s to invoice %s failed", note_number, invoice_id)
                continue
            result.applications += 1
            result.applied_amount = round2(result.applied_amount + amount)

    logger.info("Automatic credit run %s", result.summary())
    return result
