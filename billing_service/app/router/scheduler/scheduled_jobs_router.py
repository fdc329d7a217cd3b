from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shared.core.database import get_db
from shared.core.schemas import JsonOutResult
from shared.helpers.json_response_helper import success_response
from shared.utils.app_status_code import AppStatusCode
from ...crud.scheduler import scheduler_service as crud
from ...enum.scheduler_enum import JobType
from ...schemas.scheduler.scheduled_jobs_schemas import (
    JobEnabledRequest, ScheduledJobOut, SchedulerPassResult
)

router = APIRouter(
    prefix="/api/scheduled-jobs",
    tags=["scheduled-jobs"]
)


@router.get("", response_model=JsonOutResult[List[ScheduledJobOut]])
def list_scheduled_jobs(db: Session = Depends(get_db)):
    return success_response(crud.list_scheduled_jobs(db))


@router.put("/{job_type}/enabled", response_model=JsonOutResult[ScheduledJobOut])
def set_job_enabled(
        job_type: JobType,
        request: JobEnabledRequest,
        db: Session = Depends(get_db)):
    job = crud.set_job_enabled(db, job_type, request.is_enabled)
    return success_response(job, "Scheduled job updated", AppStatusCode.OPERATION_SUCCESSFUL)


@router.post("/{job_type}/run", response_model=JsonOutResult[SchedulerPassResult])
def run_job_now(job_type: JobType, db: Session = Depends(get_db)):
    result = crud.run_job_now(db, job_type)
    return success_response(result, "Scheduler pass completed", AppStatusCode.OPERATION_SUCCESSFUL)


@router.post("/tick", response_model=JsonOutResult[SchedulerPassResult])
def tick(db: Session = Depends(get_db)):
    result = crud.run_due_jobs(db)
    return success_response(result, "Scheduler pass completed", AppStatusCode.OPERATION_SUCCESSFUL)
