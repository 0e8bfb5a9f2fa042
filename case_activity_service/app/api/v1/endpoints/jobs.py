# API Router for manually triggering scheduled jobs
from fastapi import APIRouter, Depends, HTTPException
import logging

from case_activity_service.app.dependencies.services import get_scheduler
from case_activity_service.app.service.exceptions import JobAlreadyRunningError
from case_activity_service.app.service.jobs.scheduler import INACTIVITY_SCAN_JOB, WEEKLY_DIGEST_JOB, JobScheduler

logger = logging.getLogger(__name__)
router = APIRouter()


async def _trigger(scheduler: JobScheduler, job_name: str) -> dict:
    try:
        report = await scheduler.run_job(job_name)
    except JobAlreadyRunningError as e:
        logger.warning(f"Manual trigger rejected: {e}")
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Manual run of job '{job_name}' failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Job '{job_name}' failed")
    return {"job": job_name, "report": report.model_dump()}


@router.post("/jobs/inactivity-scan", tags=["Jobs"])
async def trigger_inactivity_scan(scheduler: JobScheduler = Depends(get_scheduler)):
    return await _trigger(scheduler, INACTIVITY_SCAN_JOB)


@router.post("/jobs/weekly-digest", tags=["Jobs"])
async def trigger_weekly_digest(scheduler: JobScheduler = Depends(get_scheduler)):
    return await _trigger(scheduler, WEEKLY_DIGEST_JOB)
