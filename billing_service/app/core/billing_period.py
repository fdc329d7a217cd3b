import calendar
import re
from datetime import date, datetime, time
from typing import Tuple

from dateutil.relativedelta import relativedelta

from shared.core.exceptions import BillingValidationError

_MONTH_RE = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")


def parse_invoice_month(invoice_month: str) -> Tuple[int, int]:
    match = _MONTH_RE.match(invoice_month or "")
    if not match:
        raise BillingValidationError(
            f"Invoice month must look like YYYY-MM, got {invoice_month!r}")
    return int(match.group(1)), int(match.group(2))


def month_bounds(invoice_month: str) -> Tuple[date, date]:
    """First and last calendar day of an invoice month."""
    year, month = parse_invoice_month(invoice_month)
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def days_in_month(invoice_month: str) -> int:
    year, month = parse_invoice_month(invoice_month)
    return calendar.monthrange(year, month)[1]


def month_of(day: date) -> str:
    return day.strftime("%Y-%m")


def previous_month_of(day: date) -> str:
    return month_of(day.replace(day=1) - relativedelta(months=1))


def first_of_next_month(moment: datetime) -> datetime:
    first = moment.date().replace(day=1) + relativedelta(months=1)
    return datetime.combine(first, time.min)


def first_of_next_year(moment: datetime) -> datetime:
    return datetime(moment.year + 1, 1, 1)
