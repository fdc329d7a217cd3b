from datetime import date
from decimal import Decimal

import pytest

from conftest import (
    make_external_customer, make_flex_booking, make_meeting_booking, make_space, make_tenant
)
from billing_service.app.crud.financials import usage_invoice_generator
from billing_service.app.crud.financials.usage_invoice_generator import generate_usage_invoices
from billing_service.app.models import FlexDayBooking, Invoice, InvoiceLineItem, MeetingRoomBooking

RUN_DAY = date(2025, 3, 1)


@pytest.fixture()
def meeting_room(db):
    return make_space(db, space_number="Vergaderzaal 1", space_type="meeting_room")


def test_three_bookings_with_flat_customer_discount(db, meeting_room):
    tenant = make_tenant(db, meeting_discount_percentage=Decimal("10"))
    bookings = [
        make_meeting_booking(db, meeting_room, date(2025, 2, day), 50, tenant=tenant)
        for day in (3, 10, 17)
    ]

    result = generate_usage_invoices(db, "2025-02", today=RUN_DAY)

    assert result.created == 1
    invoice = db.query(Invoice).one()
    assert invoice.invoice_kind == "usage"
    assert invoice.lease_id is None
    assert invoice.tenant_id == tenant.id
    assert invoice.subtotal == Decimal("135.00")
    assert invoice.vat_rate == Decimal("21")
    assert invoice.vat_amount == Decimal("28.35")
    assert invoice.amount == Decimal("163.35")

    discount = invoice.line_items[-1]
    assert discount.description == "Customer discount (10%)"
    assert discount.amount == Decimal("-15.00")
    assert {line.booking_id for line in invoice.line_items[:-1]} == {b.id for b in bookings}
    assert "Meeting room Vergaderzaal 1 2025-02-03 09:00-11:00" in invoice.notes

    db.expire_all()
    assert all(b.invoice_id == invoice.id for b in db.query(MeetingRoomBooking).all())


def test_linked_bookings_are_never_billed_again(db, meeting_room):
    tenant = make_tenant(db)
    make_meeting_booking(db, meeting_room, date(2025, 2, 3), 50, tenant=tenant)

    generate_usage_invoices(db, "2025-02", today=RUN_DAY)
    second = generate_usage_invoices(db, "2025-02", today=RUN_DAY)

    assert second.created == 0
    assert db.query(Invoice).count() == 1


def test_booking_discounts_replace_the_customer_discount(db, meeting_room):
    tenant = make_tenant(db, meeting_discount_percentage=Decimal("10"))
    make_meeting_booking(db, meeting_room, date(2025, 2, 3), 45, discount_amount=5, tenant=tenant)
    make_meeting_booking(db, meeting_room, date(2025, 2, 4), 50, tenant=tenant)

    generate_usage_invoices(db, "2025-02", today=RUN_DAY)

    invoice = db.query(Invoice).one()
    descriptions = [line.description for line in invoice.line_items]
    assert "Booking discounts" in descriptions
    assert not any(d.startswith("Customer discount") for d in descriptions)
    # gross 100, booking discount 5
    assert invoice.subtotal == Decimal("95.00")
    assert invoice.amount == Decimal("114.95")


def test_only_completed_bookings_of_the_month(db, meeting_room):
    tenant = make_tenant(db)
    make_meeting_booking(db, meeting_room, date(2025, 2, 3), 50, tenant=tenant)
    make_meeting_booking(db, meeting_room, date(2025, 2, 4), 60, tenant=tenant, status="confirmed")
    make_meeting_booking(db, meeting_room, date(2025, 2, 5), 70, tenant=tenant, status="cancelled")
    make_meeting_booking(db, meeting_room, date(2025, 3, 3), 80, tenant=tenant)

    generate_usage_invoices(db, "2025-02", today=RUN_DAY)

    invoice = db.query(Invoice).one()
    assert invoice.subtotal == Decimal("50.00")
    assert len(invoice.line_items) == 1


def test_meeting_and_flex_bookings_share_one_invoice_per_customer(db, meeting_room):
    desk = make_space(db, space_number="Flexplek A", space_type="flex")
    tenant = make_tenant(db)
    walk_in = make_external_customer(db)
    make_meeting_booking(db, meeting_room, date(2025, 2, 3), 50, tenant=tenant)
    make_flex_booking(db, desk, date(2025, 2, 4), 25, tenant=tenant)
    make_flex_booking(db, desk, date(2025, 2, 5), 15, external_customer=walk_in, is_half_day=True)

    result = generate_usage_invoices(db, "2025-02", today=RUN_DAY)

    assert result.created == 2
    tenant_invoice = db.query(Invoice).filter(Invoice.tenant_id == tenant.id).one()
    assert tenant_invoice.subtotal == Decimal("75.00")
    external_invoice = db.query(Invoice).filter(Invoice.external_customer_id == walk_in.id).one()
    assert external_invoice.subtotal == Decimal("15.00")
    assert "(morning)" in external_invoice.notes

    db.expire_all()
    assert all(b.invoice_id is not None for b in db.query(FlexDayBooking).all())


def test_failed_linkage_is_repaired_on_the_next_run(db, meeting_room, monkeypatch):
    tenant = make_tenant(db)
    booking = make_meeting_booking(db, meeting_room, date(2025, 2, 3), 50, tenant=tenant)

    def fail_linking(*args, **kwargs):
        raise RuntimeError("connection lost")

    monkeypatch.setattr(usage_invoice_generator, "link_bookings", fail_linking)
    first = generate_usage_invoices(db, "2025-02", today=RUN_DAY)
    assert first.created == 1
    assert first.link_failures == 1

    db.expire_all()
    assert db.get(MeetingRoomBooking, booking.id).invoice_id is None

    monkeypatch.undo()
    second = generate_usage_invoices(db, "2025-02", today=RUN_DAY)

    assert second.created == 0
    assert second.skipped == 1
    invoice = db.query(Invoice).one()
    db.expire_all()
    assert db.get(MeetingRoomBooking, booking.id).invoice_id == invoice.id



def test_failed_line_insert_leaves_no_invoice_and_bookings_unbilled(db, meeting_room, failing_first_line_insert):
    make_meeting_booking(db, meeting_room, date(2025, 2, 3), 50, tenant=make_tenant(db))
    make_meeting_booking(db, meeting_room, date(2025, 2, 4), 60,
                         external_customer=make_external_customer(db))

    result = generate_usage_invoices(db, "2025-02", today=RUN_DAY)

    assert result.failed == 1
    assert result.created == 1
    invoice = db.query(Invoice).one()
    assert invoice.invoice_number == "INV-000001"
    assert db.query(InvoiceLineItem).count() == 1

    db.expire_all()
    linked = [b.invoice_id for b in db.query(MeetingRoomBooking).all()]
    assert invoice.id in linked
    assert linked.count(None) == 1

    retry = generate_usage_invoices(db, "2025-02", today=RUN_DAY)
    assert retry.created == 1
    assert db.query(Invoice).count() == 2


def test_invalid_month_is_rejected(db):
    from shared.core.exceptions import BillingValidationError

    with pytest.raises(BillingValidationError):
        generate_usage_invoices(db, "2025-13", today=RUN_DAY)
