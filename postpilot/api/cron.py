"""
Cron API Endpoint

Entry point for the external scheduler. Guarded by the shared
``CRON_SECRET`` bearer token.
"""

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from postpilot.services.cron import CronService
from postpilot.utils.auth import verify_cron_secret

router = APIRouter()
logger = structlog.get_logger(__name__)


def get_cron_service() -> CronService:
    """Get cron service instance."""
    return CronService()


@router.get("", dependencies=[Depends(verify_cron_secret)])
async def run_cron(cron: CronService = Depends(get_cron_service)):
    """Run every housekeeping job once and report the outcome."""
    try:
        return await cron.run()
    except Exception as e:
        logger.error("Cron job error", error=str(e))
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": str(e) or "Failed to process scheduled posts"}
        )
