import os

# must be set before the application modules read their settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SCHEDULER_ENABLED"] = "false"

from datetime import date, time
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from shared.core.database import Base, get_db
from billing_service.app.main import app
from billing_service.app.models import (
    CompanySettings, ExternalCustomer, FlexDayBooking, InvoiceLineItem, Lease, LeaseSpace,
    MeetingRoomBooking, OfficeSpace, Tenant
)


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    yield TestingSessionLocal
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def failing_first_line_insert():
    """The first invoice line INSERT raises, after the invoice row and its number are flushed."""
    inserted = []

    def fail_first(mapper, connection, target):
        inserted.append(target.description)
        if len(inserted) == 1:
            raise RuntimeError("line item insert failed")

    event.listen(InvoiceLineItem, "before_insert", fail_first)
    yield inserted
    event.remove(InvoiceLineItem, "before_insert", fail_first)


# ----------------------------------------------------------------------
# Record helpers
# ----------------------------------------------------------------------

def make_settings(db, **fields):
    settings_row = CompanySettings(company_name="Bedrijvencentrum", **fields)
    db.add(settings_row)
    db.commit()
    return settings_row


def make_tenant(db, company_name="Acme BV", **fields):
    tenant = Tenant(company_name=company_name, **fields)
    db.add(tenant)
    db.commit()
    return tenant


def make_external_customer(db, company_name="Walk-in BV", **fields):
    customer = ExternalCustomer(company_name=company_name, **fields)
    db.add(customer)
    db.commit()
    return customer


def make_space(db, space_number="Kantoor 1", space_type="kantoor"):
    space = OfficeSpace(space_number=space_number, space_type=space_type)
    db.add(space)
    db.commit()
    return space


def make_lease(db, tenant, rents=(), start_date=date(2024, 1, 1), **fields):
    lease = Lease(tenant_id=tenant.id, start_date=start_date, **fields)
    db.add(lease)
    db.flush()
    for index, rent in enumerate(rents, start=1):
        space = OfficeSpace(space_number=f"Kantoor {index}", space_type="kantoor")
        db.add(space)
        db.flush()
        db.add(LeaseSpace(lease_id=lease.id, space_id=space.id,
                          monthly_rent=Decimal(str(rent)), price_per_sqm=Decimal("10.00")))
    db.commit()
    return lease


def make_meeting_booking(db, space, booking_date, total_amount, discount_amount="0",
                         status="completed", tenant=None, external_customer=None,
                         start=time(9, 0), end=time(11, 0)):
    booking = MeetingRoomBooking(
        space_id=space.id,
        tenant_id=tenant.id if tenant else None,
        external_customer_id=external_customer.id if external_customer else None,
        booking_date=booking_date,
        start_time=start,
        end_time=end,
        total_hours=Decimal("2"),
        hourly_rate=Decimal(str(total_amount)) / 2,
        total_amount=Decimal(str(total_amount)),
        discount_amount=Decimal(str(discount_amount)),
        status=status,
    )
    db.add(booking)
    db.commit()
    return booking


def make_flex_booking(db, space, booking_date, total_amount, status="completed",
                      tenant=None, external_customer=None, is_half_day=False):
    booking = FlexDayBooking(
        space_id=space.id,
        tenant_id=tenant.id if tenant else None,
        external_customer_id=external_customer.id if external_customer else None,
        booking_date=booking_date,
        is_half_day=is_half_day,
        half_day_period="morning" if is_half_day else None,
        total_amount=Decimal(str(total_amount)),
        discount_amount=Decimal("0"),
        status=status,
    )
    db.add(booking)
    db.commit()
    return booking
