import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Union
from uuid import UUID

from sqlalchemy.orm import Session

from ...core.billing_period import month_bounds
from ...enum.booking_enum import BookingStatus
from ...enum.financials_enum import InvoiceKind
from ...enum.leasing_tenants_enum import CustomerType
from ...models.bookings.flex_day_bookings import FlexDayBooking
from ...models.bookings.meeting_room_bookings import MeetingRoomBooking
from ...models.financials.invoices import Invoice, InvoiceLineItem
from ...models.leasing_tenants.tenants import ExternalCustomer, Tenant
from ...schemas.financials.invoices_schemas import GenerationResult
from .invoice_builder import build_invoice, discount_line, format_percentage, line_item, payment_term_days
from .vat_calculator import ZERO, percentage_of, round2, to_money

logger = logging.getLogger(__name__)

# Usage invoices are always 21% VAT exclusive
USAGE_VAT_RATE = Decimal("21")
USAGE_VAT_INCLUSIVE = False

Booking = Union[MeetingRoomBooking, FlexDayBooking]


@dataclass
class BillingCustomer:
    customer_type: CustomerType
    id: UUID
    name: str
    meeting_discount_percentage: Decimal = ZERO

    @classmethod
    def from_tenant(cls, tenant: Tenant) -> "BillingCustomer":
        return cls(CustomerType.tenant, tenant.id, tenant.company_name,
                   to_money(tenant.meeting_discount_percentage))

    @classmethod
    def from_external(cls, customer: ExternalCustomer) -> "BillingCustomer":
        return cls(CustomerType.external, customer.id, customer.company_name,
                   to_money(customer.meeting_discount_percentage))

    def owner_filter(self, model):
        if self.customer_type == CustomerType.tenant:
            return model.tenant_id == self.id
        return model.external_customer_id == self.id

    def owner_fields(self) -> Dict:
        if self.customer_type == CustomerType.tenant:
            return {"tenant_id": self.id}
        return {"external_customer_id": self.id}


def get_billing_customers(db: Session) -> List[BillingCustomer]:
    tenants = (
        db.query(Tenant)
        .filter(Tenant.is_deleted == False)
        .order_by(Tenant.company_name, Tenant.id)
        .all()
    )
    externals = (
        db.query(ExternalCustomer)
        .filter(ExternalCustomer.is_deleted == False)
        .order_by(ExternalCustomer.company_name, ExternalCustomer.id)
        .all()
    )
    return [BillingCustomer.from_tenant(t) for t in tenants] + \
        [BillingCustomer.from_external(c) for c in externals]


def get_unbilled_bookings(db: Session, customer: BillingCustomer, invoice_month: str) -> List[Booking]:
    """Completed bookings of the month that no invoice has claimed yet."""
    start, end = month_bounds(invoice_month)
    bookings: List[Booking] = []
    for model in (MeetingRoomBooking, FlexDayBooking):
        bookings.extend(
            db.query(model)
            .filter(
                customer.owner_filter(model),
                model.booking_date >= start,
                model.booking_date <= end,
                model.status == BookingStatus.completed.value,
                model.invoice_id.is_(None)
            )
            .order_by(model.booking_date, model.created_at, model.id)
            .all()
        )
    bookings.sort(key=lambda b: b.booking_date)
    return bookings


def find_usage_invoice(db: Session, customer: BillingCustomer, invoice_month: str) -> Optional[Invoice]:
    return db.query(Invoice).filter(
        customer.owner_filter(Invoice),
        Invoice.invoice_month == invoice_month,
        Invoice.lease_id.is_(None),
        Invoice.is_deleted == False
    ).first()


def gross_amount(booking: Booking) -> Decimal:
    return round2(to_money(booking.total_amount) + to_money(booking.discount_amount))


def describe_booking(booking: Booking) -> str:
    space_name = booking.space.space_number if booking.space else "Unknown space"
    day = booking.booking_date.isoformat()

    if isinstance(booking, MeetingRoomBooking):
        hours = to_money(booking.total_hours).quantize(Decimal("0.1"))
        return (
            f"Meeting room {space_name} {day} "
            f"{booking.start_time.strftime('%H:%M')}-{booking.end_time.strftime('%H:%M')} ({hours} h)"
        )

    if booking.is_half_day:
        period = booking.half_day_period or "half day"
        return f"Flex workspace {space_name} {day} ({period})"
    return f"Flex workspace {space_name} {day} (full day)"


def build_usage_notes(bookings: List[Booking], lines: List[Dict]) -> str:
    """Readable summary stored on the invoice: one row per booking, then the discounts."""
    rows = [f"{describe_booking(b)}: {gross_amount(b)}" for b in bookings]
    rows.extend(
        f"{line['description']}: {line['amount']}"
        for line in lines if line["booking_id"] is None
    )
    return "\n".join(rows)


def create_usage_invoice(
    db: Session,
    customer: BillingCustomer,
    bookings: List[Booking],
    invoice_month: str,
    invoice_date: date,
    term_days: int,
) -> Invoice:
    lines = [line_item(describe_booking(b), 1, gross_amount(b), booking_id=b.id) for b in bookings]

    total_before_discount = round2(sum((gross_amount(b) for b in bookings), ZERO))
    total_discount = round2(sum((to_money(b.discount_amount) for b in bookings), ZERO))
    if total_discount > 0:
        lines.append(discount_line("Booking discounts", total_discount))

    # the flat customer discount only applies when no booking carried its own
    additional_discount = ZERO
    pct = customer.meeting_discount_percentage or ZERO
    if pct > 0 and total_discount == 0:
        additional_discount = percentage_of(total_before_discount - total_discount, pct)
        if additional_discount > 0:
            lines.append(discount_line(f"Customer discount ({format_percentage(pct)}%)", additional_discount))

    # lines are summed first; VAT is applied once on the aggregate
    base_amount = total_before_discount - total_discount - additional_discount

    return build_invoice(
        db,
        invoice_kind=InvoiceKind.usage.value,
        base_amount=base_amount,
        vat_rate=USAGE_VAT_RATE,
        vat_inclusive=USAGE_VAT_INCLUSIVE,
        lines=lines,
        invoice_date=invoice_date,
        term_days=term_days,
        invoice_month=invoice_month,
        notes=build_usage_notes(bookings, lines),
        **customer.owner_fields(),
    )


def link_bookings(db: Session, invoice_id: UUID, bookings: List[Booking]) -> None:
    for booking in bookings:
        booking.invoice_id = invoice_id
    db.commit()


def repair_booking_links(db: Session, invoice: Invoice) -> int:
    """
    Link bookings that an existing invoice bills but that never got their
    ``invoice_id`` (a run that stopped between the invoice commit and the
    linkage commit). Returns the number of bookings relinked.
    """
    booking_ids = [
        row.booking_id for row in
        db.query(InvoiceLineItem.booking_id).filter(
            InvoiceLineItem.invoice_id == invoice.id,
            InvoiceLineItem.booking_id.isnot(None)
        ).all()
    ]
    if not booking_ids:
        return 0

    relinked = 0
    for model in (MeetingRoomBooking, FlexDayBooking):
        relinked += (
            db.query(model)
            .filter(model.id.in_(booking_ids), model.invoice_id.is_(None))
            .update({model.invoice_id: invoice.id}, synchronize_session=False)
        )
    if relinked:
        db.commit()
        logger.warning("Relinked %d booking(s) to invoice %s", relinked, invoice.invoice_number)
    return relinked


def generate_usage_invoices(
    db: Session,
    invoice_month: str,
    customers: Optional[Iterable[BillingCustomer]] = None,
    today: Optional[date] = None,
) -> GenerationResult:
    """
    Bill every customer's completed, unbilled meeting-room and flex-day
    bookings of ``invoice_month`` on one draft usage invoice.

    The invoice and its lines commit together; the booking linkage commits
    afterwards. The linkage is what marks a booking as billed, so a failure
    there is logged and left for the next run to repair.
    """
    month_bounds(invoice_month)
    today = today or date.today()
    result = GenerationResult(invoice_month=invoice_month)

    candidates = list(customers) if customers is not None else get_billing_customers(db)
    term_days = payment_term_days(db)
    logger.info("Generating usage invoices for %s, %d candidate customer(s)",
                invoice_month, len(candidates))

    for customer in candidates:
        try:
            bookings = get_unbilled_bookings(db, customer, invoice_month)
            if not bookings:
                continue

            existing = find_usage_invoice(db, customer, invoice_month)
            if existing:
                repair_booking_links(db, existing)
                result.skipped += 1
                continue

            invoice = create_usage_invoice(db, customer, bookings, invoice_month, today, term_days)
            invoice_id, invoice_number = invoice.id, invoice.invoice_number
            db.commit()
        except Exception:
            db.rollback()
            result.failed += 1
            logger.exception("Usage invoice for %s %s (%s) failed",
                             customer.customer_type.value, customer.id, invoice_month)
            continue

        result.created += 1
        result.invoice_ids.append(invoice_id)
        logger.info("Usage invoice %s created for %s with %d booking(s)",
                    invoice_number, customer.name, len(bookings))

        try:
            link_bookings(db, invoice_id, bookings)
        except Exception:
            db.rollback()
            result.link_failures += 1
            logger.exception("Linking bookings to invoice %s failed; they stay eligible until repaired",
                             invoice_number)

    logger.info("Usage invoices %s", result.summary())
    return result
