"""Source of "now" for the billing core.

Every component asks a clock for the current moment instead of calling
``datetime.now()`` directly, so an operator can move the whole system to a
simulated date (``company_settings.test_mode`` / ``test_date``) to rehearse a
billing cutover.
"""
import logging
from datetime import date, datetime, time
from typing import Optional

from sqlalchemy.orm import Session

from ..models.common.company_settings import CompanySettings

logger = logging.getLogger(__name__)


class Clock:
    def now(self) -> datetime:
        raise NotImplementedError

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now().replace(microsecond=0)


class FixedClock(Clock):
    """Clock pinned to one moment. Used for the simulated date and in tests."""

    def __init__(self, moment: datetime):
        self.moment = moment

    def now(self) -> datetime:
        return self.moment

    def advance(self, delta) -> None:
        self.moment = self.moment + delta


def get_company_settings(db: Session) -> Optional[CompanySettings]:
    return db.query(CompanySettings).order_by(CompanySettings.created_at).first()


def resolve_clock(db: Session) -> Clock:
    settings_row = get_company_settings(db)
    if settings_row and settings_row.test_mode and settings_row.test_date:
        logger.debug("Test mode active, simulated date %s", settings_row.test_date)
        # simulated dates start at midnight
        return FixedClock(datetime.combine(settings_row.test_date, time.min))
    return SystemClock()
