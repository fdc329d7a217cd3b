import logging
import re
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session, selectinload

from shared.core.exceptions import BillingValidationError
from ...core.billing_period import days_in_month, parse_invoice_month
from ...enum.financials_enum import InvoiceKind
from ...enum.leasing_tenants_enum import FlexPricingModel, LeaseStatus, LeaseType
from ...models.financials.invoices import Invoice
from ...models.leasing_tenants.leases import Lease, LeaseSpace
from ...schemas.financials.invoices_schemas import GenerationResult
from .invoice_builder import (
    build_invoice, discount_line, format_percentage, line_item, lines_total, payment_term_days
)
from .vat_calculator import ZERO, percentage_of, round2, round_whole, to_money

logger = logging.getLogger(__name__)

DEPOSIT_DESCRIPTION = "Advance payment gas, water & electricity"
WEEKS_PER_MONTH = Decimal("4.33")
_HALL_PREFIX = re.compile(r"^(Bedrijfsruimte|Hal)\s*", re.IGNORECASE)


def working_days_in_month(invoice_month: str) -> int:
    """Five working days out of every seven, rounded half-up."""
    return int(round_whole(Decimal(days_in_month(invoice_month)) * 5 / 7))


def credits_per_month(credits_per_week) -> int:
    return int(round_whole(to_money(credits_per_week) * WEEKS_PER_MONTH))


def space_display_name(space) -> str:
    name = space.space_number
    if space.space_type == "bedrijfsruimte":
        number = _HALL_PREFIX.sub("", name).strip()
        if number[:1].isdigit():
            return f"Hal {number}"
    return name


def _flex_lines(lease: Lease, invoice_month: str) -> List[Dict]:
    model = lease.flex_pricing_model

    if model == FlexPricingModel.monthly_unlimited.value:
        if lease.flex_monthly_rate is None:
            raise BillingValidationError(f"Flex lease {lease.id} has no monthly rate")
        return [line_item(f"Flex workspace, unlimited ({invoice_month})", 1, lease.flex_monthly_rate)]

    if model == FlexPricingModel.daily.value:
        if lease.flex_daily_rate is None:
            raise BillingValidationError(f"Flex lease {lease.id} has no daily rate")
        days = working_days_in_month(invoice_month)
        return [line_item(f"Flex workspace, {days} working days ({invoice_month})", days, lease.flex_daily_rate)]

    if model == FlexPricingModel.credit_based.value:
        if lease.flex_credit_rate is None or lease.credits_per_week is None:
            raise BillingValidationError(f"Flex lease {lease.id} has no credit rate or credit allowance")
        credits = credits_per_month(lease.credits_per_week)
        return [line_item(f"Flex workspace, {credits} credits ({invoice_month})", credits, lease.flex_credit_rate)]

    raise BillingValidationError(
        f"Flex lease {lease.id} has unknown pricing model {model!r}")


def build_rent_lines(lease: Lease, invoice_month: str) -> List[Dict]:
    """One line per leased space, or one line per flex pricing unit."""
    if lease.lease_type == LeaseType.flex.value:
        return _flex_lines(lease, invoice_month)

    return [
        line_item(f"{space_display_name(ls.space)} ({invoice_month})", 1, ls.monthly_rent)
        for ls in lease.lease_spaces
    ]


def calculate_rent_amount(lease: Lease, invoice_month: str) -> Decimal:
    return lines_total(build_rent_lines(lease, invoice_month))


def get_active_leases(db: Session) -> List[Lease]:
    return (
        db.query(Lease)
        .options(selectinload(Lease.lease_spaces).selectinload(LeaseSpace.space),
                 selectinload(Lease.tenant))
        .filter(
            Lease.status == LeaseStatus.active.value,
            Lease.is_deleted == False
        )
        .order_by(Lease.created_at, Lease.id)
        .all()
    )


def rent_invoice_exists(db: Session, lease_id, invoice_month: str) -> bool:
    return db.query(Invoice.id).filter(
        Invoice.lease_id == lease_id,
        Invoice.invoice_month == invoice_month,
        Invoice.is_deleted == False
    ).first() is not None


def create_rent_invoice(
    db: Session, lease: Lease, invoice_month: str, invoice_date: date, term_days: int
) -> Invoice:
    lines = build_rent_lines(lease, invoice_month)
    rent_amount = lines_total(lines)

    discount_pct = to_money(lease.tenant.lease_discount_percentage) if lease.tenant else ZERO
    discount_amount = percentage_of(rent_amount, discount_pct) if discount_pct > 0 else ZERO
    if discount_amount > 0:
        lines.append(discount_line(f"Discount ({format_percentage(discount_pct)}%)", discount_amount))

    # the deposit is never discounted
    deposit = round2(lease.security_deposit or 0)
    if deposit > 0:
        lines.append(line_item(DEPOSIT_DESCRIPTION, 1, deposit))

    if not lines:
        raise BillingValidationError(f"Lease {lease.id} has nothing to bill")

    # lines are summed first; VAT is applied once on the aggregate
    base_amount = rent_amount - discount_amount + deposit

    return build_invoice(
        db,
        invoice_kind=InvoiceKind.rent.value,
        base_amount=base_amount,
        vat_rate=lease.vat_rate,
        vat_inclusive=bool(lease.vat_inclusive),
        lines=lines,
        invoice_date=invoice_date,
        term_days=term_days,
        invoice_month=invoice_month,
        lease_id=lease.id,
        tenant_id=lease.tenant_id,
    )


def generate_rent_invoices(
    db: Session,
    invoice_month: str,
    leases: Optional[Iterable[Lease]] = None,
    today: Optional[date] = None,
) -> GenerationResult:
    """
    Create one draft rent invoice per lease for ``invoice_month``.

    Leases that already have an invoice for the month are skipped. Each
    invoice is committed on its own; a failing lease is rolled back and
    counted, and the batch carries on with the next one.
    """
    parse_invoice_month(invoice_month)
    today = today or date.today()
    result = GenerationResult(invoice_month=invoice_month)

    candidates = list(leases) if leases is not None else get_active_leases(db)
    term_days = payment_term_days(db)
    logger.info("Generating rent invoices for %s, %d candidate lease(s)",
                invoice_month, len(candidates))

    for lease in candidates:
        lease_id = lease.id
        try:
            # re-read right before the insert
            if rent_invoice_exists(db, lease_id, invoice_month):
                result.skipped += 1
                continue

            invoice = create_rent_invoice(db, lease, invoice_month, today, term_days)
            db.commit()
            result.created += 1
            result.invoice_ids.append(invoice.id)
            logger.info("Rent invoice %s created for lease %s",
                        invoice.invoice_number, lease_id)
        except Exception:
            db.rollback()
            result.failed += 1
            logger.exception("Rent invoice for lease %s (%s) failed", lease_id, invoice_month)

    logger.info("Rent invoices %s", result.summary())
    return result
