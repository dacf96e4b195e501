"""
Scheduler API Endpoints

Admin-only view of the in-process background scheduler and manual job runs.
"""

from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from postpilot.models.user import User
from postpilot.services.scheduler import BackgroundScheduler, get_background_scheduler
from postpilot.utils.auth import require_admin
from postpilot.utils.logger import log_user_action

router = APIRouter()
logger = structlog.get_logger(__name__)


@router.get("/status")
async def get_scheduler_status(
    current_user: User = Depends(require_admin),
    scheduler: BackgroundScheduler = Depends(get_background_scheduler),
) -> Dict[str, Any]:
    return scheduler.get_job_status()


@router.post("/jobs/{job_name}/run")
async def run_job(
    job_name: str,
    current_user: User = Depends(require_admin),
    scheduler: BackgroundScheduler = Depends(get_background_scheduler),
) -> Dict[str, Any]:
    """Run one scheduler job immediately and return its result."""
    try:
        outcome = await scheduler.run_job_once(job_name)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    log_user_action(current_user.id, "run_scheduler_job", resource_type="job", resource_id=job_name)
    return outcome
