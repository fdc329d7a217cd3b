from decimal import Decimal

import pytest

from shared.core.exceptions import BillingValidationError
from billing_service.app.crud.financials.vat_calculator import (
    calculate_vat, percentage_of, round2, validate_vat_rate
)


def test_exclusive_vat_is_added_on_top():
    breakdown = calculate_vat(Decimal("800"), Decimal("21"), False)
    assert breakdown.subtotal == Decimal("800.00")
    assert breakdown.vat_amount == Decimal("168.00")
    assert breakdown.total == Decimal("968.00")


def test_inclusive_vat_is_extracted_from_the_total():
    breakdown = calculate_vat(Decimal("121"), Decimal("21"), True)
    assert breakdown.total == Decimal("121.00")
    assert breakdown.subtotal == Decimal("100.00")
    assert breakdown.vat_amount == Decimal("21.00")


@pytest.mark.parametrize("base", ["0.01", "10.05", "99.99", "1234.57", "163.35"])
@pytest.mark.parametrize("rate", ["0", "9", "21"])
@pytest.mark.parametrize("inclusive", [True, False])
def test_subtotal_plus_vat_equals_total(base, rate, inclusive):
    breakdown = calculate_vat(Decimal(base), Decimal(rate), inclusive)
    assert breakdown.subtotal + breakdown.vat_amount == breakdown.total
    for value in (breakdown.subtotal, breakdown.vat_amount, breakdown.total):
        assert value == value.quantize(Decimal("0.01"))


def test_rounding_is_half_up():
    assert round2(Decimal("0.125")) == Decimal("0.13")
    assert round2(Decimal("2.675")) == Decimal("2.68")
    assert percentage_of(Decimal("150"), Decimal("10")) == Decimal("15.00")


def test_zero_rate_has_no_vat():
    breakdown = calculate_vat(Decimal("50"), Decimal("0"), False)
    assert breakdown.vat_amount == Decimal("0.00")
    assert breakdown.total == Decimal("50.00")


def test_negative_rate_is_rejected():
    with pytest.raises(BillingValidationError):
        validate_vat_rate(Decimal("-1"))
