"""Pieces shared by the rent and usage invoice generators."""
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ...core.clock import get_company_settings
from ...enum.financials_enum import InvoiceStatus
from ...models.financials.invoices import Invoice, InvoiceLineItem
from .document_numbers import next_invoice_number
from .vat_calculator import ZERO, round2, to_money, validate_vat_rate, calculate_vat

DEFAULT_PAYMENT_TERM_DAYS = 14


def line_item(description: str, quantity, unit_price, booking_id: Optional[UUID] = None) -> Dict:
    quantity = to_money(quantity)
    unit_price = round2(unit_price)
    return {
        "description": description,
        "quantity": quantity,
        "unit_price": unit_price,
        "amount": round2(quantity * unit_price),
        "booking_id": booking_id,
    }


def discount_line(description: str, discount_amount: Decimal) -> Dict:
    # synthetic line: negative price, quantity 1
    return line_item(description, 1, -round2(discount_amount))


def format_percentage(percentage) -> str:
    text = str(round2(percentage))
    return text.rstrip("0").rstrip(".") if "." in text else text


def payment_term_days(db: Session) -> int:
    settings_row = get_company_settings(db)
    if settings_row and settings_row.payment_term_days is not None:
        return settings_row.payment_term_days
    return DEFAULT_PAYMENT_TERM_DAYS


def lines_total(lines: List[Dict]) -> Decimal:
    return round2(sum((line["amount"] for line in lines), ZERO))


def build_invoice(
    db: Session,
    *,
    invoice_kind: str,
    base_amount: Decimal,
    vat_rate,
    vat_inclusive: bool,
    lines: List[Dict],
    invoice_date: date,
    term_days: int,
    invoice_month: Optional[str] = None,
    lease_id: Optional[UUID] = None,
    tenant_id: Optional[UUID] = None,
    external_customer_id: Optional[UUID] = None,
    notes: Optional[str] = None,
) -> Invoice:
    """
    Add a draft invoice with its line items to the session and flush.

    The number is drawn right before the insert, inside the caller's
    transaction; the caller commits (or rolls back) the invoice, its lines
    and the number together.
    """
    rate = validate_vat_rate(vat_rate)
    breakdown = calculate_vat(base_amount, rate, vat_inclusive)

    invoice = Invoice(
        invoice_number=next_invoice_number(db),
        invoice_kind=invoice_kind,
        lease_id=lease_id,
        tenant_id=tenant_id,
        external_customer_id=external_customer_id,
        invoice_date=invoice_date,
        due_date=invoice_date + timedelta(days=term_days),
        invoice_month=invoice_month,
        subtotal=breakdown.subtotal,
        vat_amount=breakdown.vat_amount,
        amount=breakdown.total,
        vat_rate=rate,
        vat_inclusive=vat_inclusive,
        status=InvoiceStatus.draft.value,
        applied_credit=ZERO,
        notes=notes,
    )
    invoice.line_items = [
        InvoiceLineItem(position=position, **line)
        for position, line in enumerate(lines)
    ]
    db.add(invoice)
    db.flush()
    return invoice
