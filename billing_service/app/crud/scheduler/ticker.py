import asyncio
import logging

from shared.core.database import SessionLocal
from ...schemas.scheduler.scheduled_jobs_schemas import SchedulerPassResult
from .scheduler_service import run_due_jobs

logger = logging.getLogger(__name__)


def run_scheduled_pass() -> SchedulerPassResult:
    db = SessionLocal()
    try:
        return run_due_jobs(db)
    finally:
        db.close()


async def run_scheduler_loop(stop_event: asyncio.Event, interval_seconds: float) -> None:
    """Run a pass now and then every ``interval_seconds`` until ``stop_event`` is set."""
    logger.info("Scheduler started, polling every %s seconds", interval_seconds)
    while not stop_event.is_set():
        try:
            # handlers use blocking database calls
            await asyncio.to_thread(run_scheduled_pass)
        except Exception:
            logger.exception("Scheduler pass failed")

        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
        except asyncio.TimeoutError:
            pass
    logger.info("Scheduler stopped")
