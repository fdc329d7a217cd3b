from datetime import date, datetime
from decimal import Decimal

from conftest import make_lease, make_settings, make_tenant
from billing_service.app.crud.leasing_tenants.rent_indexation import apply_rent_indexation
from billing_service.app.models import AdminNotification, Lease, LeaseSpace


def rent_of(db, lease):
    db.expire_all()
    return db.query(LeaseSpace).filter(LeaseSpace.lease_id == lease.id).one()


def test_rent_is_indexed_once_per_year(db):
    make_settings(db, rent_indexation_percentage=Decimal("3"))
    lease = make_lease(db, make_tenant(db), rents=[1000], start_date=date(2023, 6, 1),
                       last_indexed_year=2024)

    late_december = apply_rent_indexation(db, datetime(2024, 12, 31, 9, 0))
    assert late_december.indexed == 0
    assert rent_of(db, lease).monthly_rent == Decimal("1000.00")

    january = apply_rent_indexation(db, datetime(2025, 1, 2, 9, 0))
    assert january.indexed == 1
    space = rent_of(db, lease)
    assert space.monthly_rent == Decimal("1030.00")
    assert space.price_per_sqm == Decimal("10.30")

    again = apply_rent_indexation(db, datetime(2025, 1, 2, 15, 0))
    assert again.indexed == 0
    assert rent_of(db, lease).monthly_rent == Decimal("1030.00")
    assert db.get(Lease, lease.id).last_indexed_year == 2025

    notifications = db.query(AdminNotification).all()
    assert len(notifications) == 1
    assert notifications[0].notification_type == "rent_indexation_applied"
    assert notifications[0].lease_id == lease.id


def test_zero_percentage_changes_nothing(db):
    make_settings(db, rent_indexation_percentage=Decimal("0"))
    lease = make_lease(db, make_tenant(db), rents=[1000], start_date=date(2023, 6, 1))

    result = apply_rent_indexation(db, datetime(2025, 1, 1, 0, 0))

    assert result.indexed == 0
    assert rent_of(db, lease).monthly_rent == Decimal("1000.00")
    assert db.get(Lease, lease.id).last_indexed_year is None


def test_missing_settings_means_no_indexation(db):
    lease = make_lease(db, make_tenant(db), rents=[1000], start_date=date(2023, 6, 1))

    apply_rent_indexation(db, datetime(2025, 1, 1, 0, 0))

    assert rent_of(db, lease).monthly_rent == Decimal("1000.00")


def test_new_flex_and_inactive_leases_are_not_indexed(db):
    make_settings(db, rent_indexation_percentage=Decimal("3"))
    tenant = make_tenant(db)
    started_this_year = make_lease(db, tenant, rents=[1000], start_date=date(2025, 1, 1))
    ended = make_lease(db, tenant, rents=[1000], start_date=date(2020, 1, 1), status="ended")
    make_lease(db, tenant, start_date=date(2020, 1, 1), lease_type="flex",
               flex_pricing_model="monthly_unlimited", flex_monthly_rate=Decimal("250"))

    result = apply_rent_indexation(db, datetime(2025, 1, 1, 0, 0))

    assert result.indexed == 0
    assert rent_of(db, started_this_year).monthly_rent == Decimal("1000.00")
    assert rent_of(db, ended).monthly_rent == Decimal("1000.00")


def test_every_space_of_a_lease_is_indexed(db):
    make_settings(db, rent_indexation_percentage=Decimal("2.5"))
    lease = make_lease(db, make_tenant(db), rents=[500, 333.33], start_date=date(2022, 3, 1))

    apply_rent_indexation(db, datetime(2025, 1, 1, 0, 0))

    db.expire_all()
    rents = sorted(ls.monthly_rent for ls in db.query(LeaseSpace).filter(LeaseSpace.lease_id == lease.id))
    # 333.33 * 1.025 = 341.66325
    assert rents == [Decimal("341.66"), Decimal("512.50")]
