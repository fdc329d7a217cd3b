import logging
from datetime import datetime

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from ...enum.booking_enum import BookingStatus
from ...models.bookings.flex_day_bookings import FlexDayBooking
from ...models.bookings.meeting_room_bookings import MeetingRoomBooking
from ...schemas.bookings.bookings_schemas import BookingSweepResult

logger = logging.getLogger(__name__)


def complete_past_bookings(db: Session, now: datetime) -> BookingSweepResult:
    """Mark confirmed bookings that have already taken place as completed."""
    today, current_time = now.date(), now.time()

    meeting_rooms = (
        db.query(MeetingRoomBooking)
        .filter(
            MeetingRoomBooking.status == BookingStatus.confirmed.value,
            or_(
                MeetingRoomBooking.booking_date < today,
                and_(MeetingRoomBooking.booking_date == today,
                     MeetingRoomBooking.end_time <= current_time)
            )
        )
        .update({MeetingRoomBooking.status: BookingStatus.completed.value},
                synchronize_session=False)
    )
    # flex days run until the end of the day
    flex_days = (
        db.query(FlexDayBooking)
        .filter(
            FlexDayBooking.status == BookingStatus.confirmed.value,
            FlexDayBooking.booking_date < today
        )
        .update({FlexDayBooking.status: BookingStatus.completed.value},
                synchronize_session=False)
    )
    db.commit()

    result = BookingSweepResult(meeting_rooms_completed=meeting_rooms, flex_days_completed=flex_days)
    logger.info("Booking sweep %s", result.summary())
    return result
