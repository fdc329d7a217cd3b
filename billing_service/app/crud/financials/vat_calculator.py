from decimal import Decimal, ROUND_HALF_UP
from typing import Union

from shared.core.exceptions import BillingValidationError
from ...schemas.financials.invoices_schemas import VatBreakdown

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

MoneyLike = Union[Decimal, int, float, str]


def to_money(value: MoneyLike) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    # str() first so floats keep their printed value (0.1 -> "0.1")
    return Decimal(str(value))


def round2(value: MoneyLike) -> Decimal:
    """Round half-up to whole cents."""
    return to_money(value).quantize(CENT, rounding=ROUND_HALF_UP)


def round_whole(value: MoneyLike) -> Decimal:
    return to_money(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def percentage_of(amount: MoneyLike, percentage: MoneyLike) -> Decimal:
    return round2(to_money(amount) * to_money(percentage) / HUNDRED)


def validate_vat_rate(vat_rate: MoneyLike) -> Decimal:
    rate = to_money(vat_rate)
    if rate < 0:
        raise BillingValidationError(f"VAT rate cannot be negative: {rate}")
    return rate


def calculate_vat(base_amount: MoneyLike, vat_rate: MoneyLike, vat_inclusive: bool) -> VatBreakdown:
    """
    Split ``base_amount`` into subtotal, VAT and total.

    Rounding is applied at every step, so ``subtotal + vat_amount == total``
    holds exactly. Callers pass the aggregate of their line items: VAT is
    computed once per document, never per line. Negative rates must be
    rejected with ``validate_vat_rate`` before calling this.
    """
    base = to_money(base_amount)
    rate = to_money(vat_rate)

    if vat_inclusive:
        total = round2(base)
        subtotal = round2(base / (1 + rate / HUNDRED))
        vat_amount = round2(total - subtotal)
    else:
        subtotal = round2(base)
        vat_amount = round2(base * rate / HUNDRED)
        total = round2(subtotal + vat_amount)

    return VatBreakdown(subtotal=subtotal, vat_amount=vat_amount, total=total)
