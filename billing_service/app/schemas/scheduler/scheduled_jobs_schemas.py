from datetime import datetime
from pydantic import BaseModel
from typing import List, Optional


class ScheduledJobOut(BaseModel):
    job_type: str
    cadence: str
    description: Optional[str] = None
    is_enabled: bool
    state: str
    last_run_at: Optional[datetime] = None
    next_run_at: Optional[datetime] = None
    last_summary: Optional[str] = None


class JobEnabledRequest(BaseModel):
    is_enabled: bool


class JobRunResult(BaseModel):
    job_type: str
    succeeded: bool
    summary: str


class SchedulerPassResult(BaseModel):
    ran_at: datetime
    jobs: List[JobRunResult] = []
