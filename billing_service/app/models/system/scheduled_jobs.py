import uuid
from sqlalchemy import Boolean, Column, DateTime, String, Text, Uuid
from sqlalchemy.sql import func
from shared.core.database import Base


class ScheduledJob(Base):
    __tablename__ = "scheduled_jobs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    job_type = Column(String(48), nullable=False, unique=True)
    is_enabled = Column(Boolean, default=True, nullable=False)
    last_run_at = Column(DateTime, nullable=True)
    next_run_at = Column(DateTime, nullable=True)
    # outcome of the last attempt, shown to the operator
    last_summary = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
