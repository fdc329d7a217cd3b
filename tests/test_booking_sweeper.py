from datetime import date, datetime, time

from conftest import make_flex_booking, make_meeting_booking, make_space, make_tenant
from billing_service.app.crud.bookings.booking_sweeper import complete_past_bookings
from billing_service.app.models import FlexDayBooking, MeetingRoomBooking

NOW = datetime(2025, 3, 10, 12, 0)
TODAY = NOW.date()
YESTERDAY = date(2025, 3, 9)


def status_of(db, model, booking):
    db.expire_all()
    return db.get(model, booking.id).status


def test_past_confirmed_bookings_are_completed(db):
    tenant = make_tenant(db)
    room = make_space(db, "Vergaderzaal 1", "meeting_room")
    desk = make_space(db, "Flexplek A", "flex")

    yesterday = make_meeting_booking(db, room, YESTERDAY, 50, status="confirmed", tenant=tenant)
    this_morning = make_meeting_booking(db, room, TODAY, 50, status="confirmed", tenant=tenant,
                                        start=time(9, 0), end=time(11, 0))
    this_afternoon = make_meeting_booking(db, room, TODAY, 50, status="confirmed", tenant=tenant,
                                          start=time(13, 0), end=time(15, 0))
    pending = make_meeting_booking(db, room, YESTERDAY, 50, status="pending", tenant=tenant)
    flex_yesterday = make_flex_booking(db, desk, YESTERDAY, 25, status="confirmed", tenant=tenant)
    flex_today = make_flex_booking(db, desk, TODAY, 25, status="confirmed", tenant=tenant)

    result = complete_past_bookings(db, NOW)

    assert result.meeting_rooms_completed == 2
    assert result.flex_days_completed == 1
    assert status_of(db, MeetingRoomBooking, yesterday) == "completed"
    assert status_of(db, MeetingRoomBooking, this_morning) == "completed"
    assert status_of(db, MeetingRoomBooking, this_afternoon) == "confirmed"
    assert status_of(db, MeetingRoomBooking, pending) == "pending"
    assert status_of(db, FlexDayBooking, flex_yesterday) == "completed"
    assert status_of(db, FlexDayBooking, flex_today) == "confirmed"

    assert complete_past_bookings(db, NOW).meeting_rooms_completed == 0
