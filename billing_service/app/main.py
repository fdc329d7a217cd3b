import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.core.config import settings
from shared.core.database import Base, SessionLocal, engine
from shared.exception_handler import setup_exception_handlers
from . import models  # noqa: F401  registers every table on Base
from .core.clock import resolve_clock
from .crud.scheduler.scheduler_service import ensure_scheduled_jobs
from .crud.scheduler.ticker import run_scheduler_loop
from .router.financials import credit_notes_router, invoice_router
from .router.scheduler import scheduled_jobs_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

# Create all tables
Base.metadata.create_all(bind=engine)


def seed_scheduled_jobs():
    db = SessionLocal()
    try:
        ensure_scheduled_jobs(db, resolve_clock(db).now())
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not settings.SCHEDULER_ENABLED:
        logger.info("Scheduler disabled by configuration")
        yield
        return

    seed_scheduled_jobs()
    stop_event = asyncio.Event()
    ticker = asyncio.create_task(
        run_scheduler_loop(stop_event, settings.SCHEDULER_POLL_INTERVAL_SECONDS))
    try:
        yield
    finally:
        stop_event.set()
        await ticker


app = FastAPI(title="Billing Service API", lifespan=lifespan)

origins = [
    "http://localhost:8080",
    "http://127.0.0.1:8003"
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_exception_handlers(app)

# Include routers
app.include_router(scheduled_jobs_router.router)
app.include_router(invoice_router.router)
app.include_router(credit_notes_router.router)
