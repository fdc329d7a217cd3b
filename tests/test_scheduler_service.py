import dataclasses
from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from conftest import make_lease, make_settings, make_tenant
from shared.core.exceptions import BillingValidationError
from billing_service.app.core.clock import FixedClock, resolve_clock
from billing_service.app.crud.scheduler import scheduler_service
from billing_service.app.crud.scheduler.scheduler_service import (
    compute_next_run, ensure_scheduled_jobs, get_job_state, run_due_jobs, run_job_now, set_job_enabled
)
from billing_service.app.enum.scheduler_enum import JobCadence, JobState, JobType
from billing_service.app.models import Invoice, Lease, LeaseSpace, ScheduledJob

START = datetime(2025, 3, 15, 10, 0)


def job(db, job_type):
    db.expire_all()
    return db.query(ScheduledJob).filter(ScheduledJob.job_type == job_type.value).one()


def ran(result):
    return [run.job_type for run in result.jobs]


def rent_of(db, lease):
    db.expire_all()
    return db.query(LeaseSpace).filter(LeaseSpace.lease_id == lease.id).one().monthly_rent


def test_every_registered_job_gets_a_row(db):
    rows = ensure_scheduled_jobs(db, START)

    assert [row.job_type for row in rows] == [job_type.value for job_type in JobType]
    next_runs = {row.job_type: row.next_run_at for row in rows}
    assert next_runs.pop(JobType.apply_rent_indexation.value) == datetime(2026, 1, 1)
    assert all(next_run == START for next_run in next_runs.values())
    enabled = {row.job_type: row.is_enabled for row in rows}
    assert enabled[JobType.apply_customer_credit.value] is False
    assert enabled[JobType.generate_monthly_invoices.value] is True

    ensure_scheduled_jobs(db, START + timedelta(days=1))
    assert db.query(ScheduledJob).count() == len(JobType)


def test_next_run_per_cadence():
    assert compute_next_run(JobCadence.daily, START) == datetime(2025, 3, 16, 10, 0)
    assert compute_next_run(JobCadence.monthly, START) == datetime(2025, 4, 1)
    assert compute_next_run(JobCadence.monthly, datetime(2025, 12, 31, 23, 0)) == datetime(2026, 1, 1)
    assert compute_next_run(JobCadence.yearly, START) == datetime(2026, 1, 1)


def test_job_states():
    row = ScheduledJob(job_type="x", is_enabled=True, next_run_at=START)
    assert get_job_state(row, START) == JobState.due
    assert get_job_state(row, START - timedelta(seconds=1)) == JobState.idle
    row.is_enabled = False
    assert get_job_state(row, START) == JobState.disabled


def test_first_pass_runs_enabled_jobs_then_waits(db):
    make_lease(db, make_tenant(db), rents=[500, 300])
    clock = FixedClock(START)

    first = run_due_jobs(db, clock)

    assert ran(first) == [
        "complete_past_bookings", "generate_monthly_invoices", "generate_usage_invoices",
        "notify_expiring_leases", "mark_overdue_invoices",
    ]
    assert all(run.succeeded for run in first.jobs)
    invoice = db.query(Invoice).one()
    assert invoice.invoice_month == "2025-03"
    assert invoice.invoice_date == date(2025, 3, 15)

    monthly = job(db, JobType.generate_monthly_invoices)
    assert monthly.last_run_at == START
    assert monthly.next_run_at == datetime(2025, 4, 1)
    assert monthly.last_summary.startswith("2025-03: created=1")

    clock.advance(timedelta(hours=1))
    assert run_due_jobs(db, clock).jobs == []

    clock.moment = datetime(2025, 3, 16, 10, 0)
    assert ran(run_due_jobs(db, clock)) == [
        "complete_past_bookings", "notify_expiring_leases", "mark_overdue_invoices",
    ]


def test_failing_handler_keeps_its_markers(db, monkeypatch):
    def broken_handler(db, now):
        raise RuntimeError("store unavailable")

    registry = [
        dataclasses.replace(d, handler=broken_handler) if d.job_type == JobType.generate_usage_invoices else d
        for d in scheduler_service.JOB_REGISTRY
    ]
    monkeypatch.setattr(scheduler_service, "JOB_REGISTRY", registry)
    clock = FixedClock(START)

    result = run_due_jobs(db, clock)

    failed = [run for run in result.jobs if not run.succeeded]
    assert [run.job_type for run in failed] == ["generate_usage_invoices"]
    assert len(result.jobs) == 5

    usage = job(db, JobType.generate_usage_invoices)
    assert usage.last_run_at is None
    assert usage.next_run_at == START
    assert "store unavailable" in usage.last_summary

    # retried on the next tick, the others are not
    clock.advance(timedelta(hours=1))
    assert ran(run_due_jobs(db, clock)) == ["generate_usage_invoices"]


def test_disabled_job_is_caught_up_when_enabled_again(db):
    clock = FixedClock(START)
    run_due_jobs(db, clock)
    set_job_enabled(db, JobType.complete_past_bookings, False, clock)

    clock.advance(timedelta(days=3))
    assert "complete_past_bookings" not in ran(run_due_jobs(db, clock))
    assert job(db, JobType.complete_past_bookings).next_run_at == START + timedelta(days=1)

    clock.advance(timedelta(hours=1))
    set_job_enabled(db, JobType.complete_past_bookings, True, clock)
    assert ran(run_due_jobs(db, clock)) == ["complete_past_bookings"]


def test_run_now_forces_a_job(db):
    clock = FixedClock(START)
    run_due_jobs(db, clock)
    clock.advance(timedelta(minutes=5))

    result = run_job_now(db, JobType.generate_monthly_invoices, clock)

    assert ran(result) == ["generate_monthly_invoices"]
    assert job(db, JobType.generate_monthly_invoices).last_run_at == clock.now()


def test_run_now_refuses_disabled_jobs(db):
    with pytest.raises(BillingValidationError):
        run_job_now(db, JobType.apply_customer_credit, FixedClock(START))


def test_yearly_indexation_waits_for_january_first(db):
    make_settings(db, rent_indexation_percentage=Decimal("3"))
    lease = make_lease(db, make_tenant(db), rents=[1000], start_date=date(2023, 6, 1))
    clock = FixedClock(datetime(2024, 12, 31, 9, 0))

    first = run_due_jobs(db, clock)
    assert "apply_rent_indexation" not in ran(first)
    assert job(db, JobType.apply_rent_indexation).next_run_at == datetime(2025, 1, 1)
    assert rent_of(db, lease) == Decimal("1000.00")

    clock.moment = datetime(2025, 1, 2, 9, 0)
    assert "apply_rent_indexation" in ran(run_due_jobs(db, clock))
    clock.advance(timedelta(hours=2))
    run_due_jobs(db, clock)
    run_job_now(db, JobType.apply_rent_indexation, clock)

    assert rent_of(db, lease) == Decimal("1030.00")
    assert db.get(Lease, lease.id).last_indexed_year == 2025
    assert job(db, JobType.apply_rent_indexation).next_run_at == datetime(2026, 1, 1)


def test_simulated_date_drives_the_pass(db):
    make_settings(db, test_mode=True, test_date=date(2025, 1, 2))

    assert resolve_clock(db).now() == datetime(2025, 1, 2)
    run_due_jobs(db)

    assert job(db, JobType.generate_monthly_invoices).last_run_at == datetime(2025, 1, 2)
