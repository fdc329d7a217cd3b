"""
Scheduled-job controller.

Each job has one ``scheduled_jobs`` row. A pass runs every enabled job
whose ``next_run_at`` has been reached, in registry order, and then moves
its ``next_run_at`` to the next occurrence. A handler that raises is rolled
back and keeps its run markers, so the next tick retries it.
"""
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from shared.core.exceptions import BillingValidationError, RecordNotFoundError
from ...core.billing_period import first_of_next_month, first_of_next_year, month_of, previous_month_of
from ...core.clock import Clock, resolve_clock
from ...enum.scheduler_enum import JobCadence, JobState, JobType
from ...models.system.scheduled_jobs import ScheduledJob
from ...schemas.scheduler.scheduled_jobs_schemas import (
    JobRunResult, ScheduledJobOut, SchedulerPassResult
)
from ..bookings.booking_sweeper import complete_past_bookings
from ..financials.credit_ledger import apply_available_credit
from ..financials.invoices_crud import mark_overdue_invoices
from ..financials.rent_invoice_generator import generate_rent_invoices
from ..financials.usage_invoice_generator import generate_usage_invoices
from ..leasing_tenants.lease_expiry_notifier import notify_expiring_leases
from ..leasing_tenants.rent_indexation import apply_rent_indexation

logger = logging.getLogger(__name__)

SUMMARY_MAX_LENGTH = 1000


# ----------------------------------------------------------------------
# Handlers
# ----------------------------------------------------------------------

def _monthly_rent_invoices(db: Session, now: datetime):
    return generate_rent_invoices(db, month_of(now.date()), today=now.date())


def _previous_month_usage_invoices(db: Session, now: datetime):
    return generate_usage_invoices(db, previous_month_of(now.date()), today=now.date())


def _overdue_invoices(db: Session, now: datetime) -> str:
    return f"marked_overdue={mark_overdue_invoices(db, now.date())}"


@dataclass(frozen=True)
class JobDefinition:
    job_type: JobType
    cadence: JobCadence
    handler: Callable[[Session, datetime], object]
    description: str
    enabled_by_default: bool = True


JOB_REGISTRY: List[JobDefinition] = [
    JobDefinition(JobType.complete_past_bookings, JobCadence.daily, complete_past_bookings,
                  "Mark confirmed bookings in the past as completed"),
    JobDefinition(JobType.generate_monthly_invoices, JobCadence.monthly, _monthly_rent_invoices,
                  "Rent invoices for the current month"),
    JobDefinition(JobType.generate_usage_invoices, JobCadence.monthly, _previous_month_usage_invoices,
                  "Usage invoices for bookings of the previous month"),
    JobDefinition(JobType.apply_rent_indexation, JobCadence.yearly, apply_rent_indexation,
                  "Yearly rent indexation"),
    JobDefinition(JobType.notify_expiring_leases, JobCadence.daily, notify_expiring_leases,
                  "Notify about leases ending within 60 and 30 days"),
    JobDefinition(JobType.mark_overdue_invoices, JobCadence.daily, _overdue_invoices,
                  "Flag sent invoices past their due date"),
    JobDefinition(JobType.apply_customer_credit, JobCadence.daily, apply_available_credit,
                  "Apply available credit to open invoices", enabled_by_default=False),
]

JOB_DEFINITIONS: Dict[str, JobDefinition] = {d.job_type.value: d for d in JOB_REGISTRY}

# one pass at a time per process (ticker vs. manual runs)
_pass_lock = threading.Lock()


# ----------------------------------------------------------------------
# State
# ----------------------------------------------------------------------

def compute_next_run(cadence: JobCadence, now: datetime) -> datetime:
    if cadence == JobCadence.daily:
        return now + timedelta(days=1)
    if cadence == JobCadence.monthly:
        return first_of_next_month(now)
    return first_of_next_year(now)


def get_job_state(job: ScheduledJob, now: datetime) -> JobState:
    if not job.is_enabled:
        return JobState.disabled
    if job.next_run_at is None or job.next_run_at <= now:
        return JobState.due
    return JobState.idle


def initial_run_at(cadence: JobCadence, now: datetime) -> datetime:
    # yearly jobs wait for their Jan 1 trigger instead of firing on the deploy date
    if cadence == JobCadence.yearly:
        return first_of_next_year(now)
    return now


def ensure_scheduled_jobs(db: Session, now: datetime) -> List[ScheduledJob]:
    """Create the rows missing for registered jobs. Daily and monthly rows are due immediately."""
    existing = {row.job_type: row for row in db.query(ScheduledJob).all()}
    created = False
    for definition in JOB_REGISTRY:
        if definition.job_type.value in existing:
            continue
        row = ScheduledJob(
            job_type=definition.job_type.value,
            is_enabled=definition.enabled_by_default,
            next_run_at=initial_run_at(definition.cadence, now),
        )
        db.add(row)
        existing[row.job_type] = row
        created = True
        logger.info("Scheduled job %s registered", row.job_type)
    if created:
        db.commit()
    return [existing[d.job_type.value] for d in JOB_REGISTRY]


def get_scheduled_job(db: Session, job_type: JobType) -> ScheduledJob:
    job = db.query(ScheduledJob).filter(ScheduledJob.job_type == job_type.value).first()
    if not job:
        raise RecordNotFoundError(f"Scheduled job {job_type.value} not found")
    return job


def to_job_out(job: ScheduledJob, now: datetime) -> ScheduledJobOut:
    definition = JOB_DEFINITIONS.get(job.job_type)
    return ScheduledJobOut(
        job_type=job.job_type,
        cadence=definition.cadence.value if definition else "",
        description=definition.description if definition else None,
        is_enabled=job.is_enabled,
        state=get_job_state(job, now).value,
        last_run_at=job.last_run_at,
        next_run_at=job.next_run_at,
        last_summary=job.last_summary,
    )


def list_scheduled_jobs(db: Session, clock: Optional[Clock] = None) -> List[ScheduledJobOut]:
    now = (clock or resolve_clock(db)).now()
    return [to_job_out(job, now) for job in ensure_scheduled_jobs(db, now)]


def set_job_enabled(db: Session, job_type: JobType, is_enabled: bool,
                    clock: Optional[Clock] = None) -> ScheduledJobOut:
    now = (clock or resolve_clock(db)).now()
    ensure_scheduled_jobs(db, now)
    job = get_scheduled_job(db, job_type)
    # next_run_at is left alone: a stale one is caught up on the next tick
    job.is_enabled = is_enabled
    db.commit()
    db.refresh(job)
    logger.info("Scheduled job %s %s", job.job_type, "enabled" if is_enabled else "disabled")
    return to_job_out(job, now)


# ----------------------------------------------------------------------
# Running
# ----------------------------------------------------------------------

def _summarize(outcome) -> str:
    if outcome is None:
        return "completed"
    if hasattr(outcome, "summary"):
        return outcome.summary()
    return str(outcome)


def _run_job(db: Session, job: ScheduledJob, definition: JobDefinition, now: datetime) -> JobRunResult:
    job_id, job_type = job.id, job.job_type
    logger.info("Running scheduled job %s", job_type)

    try:
        outcome = definition.handler(db, now)
    except Exception as exc:
        db.rollback()
        logger.exception("Scheduled job %s failed", job_type)
        summary = f"failed at {now.isoformat()}: {exc}"[:SUMMARY_MAX_LENGTH]
        # markers stay as they are so the next tick retries
        failed_job = db.get(ScheduledJob, job_id)
        failed_job.last_summary = summary
        db.commit()
        return JobRunResult(job_type=job_type, succeeded=False, summary=summary)

    summary = _summarize(outcome)[:SUMMARY_MAX_LENGTH]
    finished_job = db.get(ScheduledJob, job_id)
    finished_job.last_run_at = now
    finished_job.next_run_at = compute_next_run(definition.cadence, now)
    finished_job.last_summary = summary
    db.commit()
    logger.info("Scheduled job %s done: %s", job_type, summary)
    return JobRunResult(job_type=job_type, succeeded=True, summary=summary)


def _run_pass(db: Session, now: datetime) -> SchedulerPassResult:
    result = SchedulerPassResult(ran_at=now)
    for definition, job in zip(JOB_REGISTRY, ensure_scheduled_jobs(db, now)):
        if get_job_state(job, now) != JobState.due:
            continue
        result.jobs.append(_run_job(db, job, definition, now))
    return result


def run_due_jobs(db: Session, clock: Optional[Clock] = None) -> SchedulerPassResult:
    """Run every due job once. Returns what ran and how it went."""
    with _pass_lock:
        now = (clock or resolve_clock(db)).now()
        result = _run_pass(db, now)
    if result.jobs:
        logger.info("Scheduler pass at %s ran %d job(s)", now.isoformat(), len(result.jobs))
    return result


def run_job_now(db: Session, job_type: JobType, clock: Optional[Clock] = None) -> SchedulerPassResult:
    """Make ``job_type`` due immediately and run a pass."""
    with _pass_lock:
        now = (clock or resolve_clock(db)).now()
        ensure_scheduled_jobs(db, now)
        job = get_scheduled_job(db, job_type)
        if not job.is_enabled:
            raise BillingValidationError(f"Scheduled job {job_type.value} is disabled")
        job.next_run_at = now
        db.commit()
        return _run_pass(db, now)
