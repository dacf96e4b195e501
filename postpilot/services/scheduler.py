"""
Background Job Scheduler Service

This service runs the periodic jobs in-process when no external cron is
configured:
- Dispatch of scheduled posts that fell due
- Engagement metrics collection
- Expiry of stale pending payments
- Monthly quota resets
"""

import asyncio
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional

import structlog

from postpilot.config.settings import get_settings
from postpilot.services.analytics import AnalyticsService
from postpilot.services.billing import BillingService
from postpilot.services.publishing import PublishingService
from postpilot.services.quota import QuotaService
from postpilot.utils.time import utcnow

LOOP_SLEEP_SECONDS = 30


class BackgroundScheduler:
    """Background job scheduler for automated tasks."""

    def __init__(
        self,
        publishing: Optional[PublishingService] = None,
        analytics: Optional[AnalyticsService] = None,
        billing: Optional[BillingService] = None,
        quota: Optional[QuotaService] = None
    ):
        """Initialize scheduler with services."""
        settings = get_settings()
        self.logger = structlog.get_logger(__name__)
        self.publishing = publishing or PublishingService()
        self.analytics = analytics or AnalyticsService()
        self.billing = billing or BillingService()
        self.quota = quota or QuotaService()

        # Job control
        self.is_running = False
        self.job_intervals = {
            "publish_due_posts": settings.publish_interval_seconds,
            "collect_metrics": settings.metrics_interval_seconds,
            "expire_pending_payments": settings.payments_interval_seconds,
            "reset_monthly_quotas": settings.quota_reset_interval_seconds,
        }
        self.jobs: Dict[str, Callable[[datetime], Awaitable[Dict[str, Any]]]] = {
            "publish_due_posts": self._publish_due_posts_job,
            "collect_metrics": self._collect_metrics_job,
            "expire_pending_payments": self._expire_pending_payments_job,
            "reset_monthly_quotas": self._reset_monthly_quotas_job,
        }
        self.last_run: Dict[str, datetime] = {}
        self.last_result: Dict[str, Dict[str, Any]] = {}
        self._task: Optional[asyncio.Task] = None

    async def start(self):
        """Start the scheduler loop as a background task."""
        if self.is_running:
            self.logger.warning("Scheduler already running")
            return

        self.is_running = True
        self.logger.info("Starting background scheduler", jobs=list(self.job_intervals))
        self._task = asyncio.create_task(self._run_scheduler_loop())

    async def stop(self):
        """Stop the background scheduler."""
        self.is_running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self.logger.info("Stopping background scheduler")

    async def _run_scheduler_loop(self):
        """Main scheduler loop."""
        while self.is_running:
            try:
                await self._check_and_run_jobs(utcnow())
                await asyncio.sleep(LOOP_SLEEP_SECONDS)

            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.logger.error("Scheduler loop error", error=str(e))
                await asyncio.sleep(LOOP_SLEEP_SECONDS * 2)

    def due_jobs(self, current_time: datetime):
        """Names of the jobs whose interval has elapsed."""
        jobs_to_run = []
        for job_name, interval_seconds in self.job_intervals.items():
            last_run = self.last_run.get(job_name)
            if not last_run or (current_time - last_run).total_seconds() >= interval_seconds:
                jobs_to_run.append(job_name)
        return jobs_to_run

    async def _check_and_run_jobs(self, current_time: datetime):
        """Check which jobs need to run and execute them one after another."""
        jobs_to_run = self.due_jobs(current_time)
        if jobs_to_run:
            self.logger.info("Running scheduled jobs", jobs=jobs_to_run)

        for job_name in jobs_to_run:
            await self._run_job(job_name, current_time)

    async def _run_job(self, job_name: str, current_time: datetime) -> Dict[str, Any]:
        """Run a specific job; failures are logged and reported, not raised."""
        self.logger.info("Starting job", job=job_name)
        try:
            result = await self.jobs[job_name](current_time)
            self.logger.info("Job completed", job=job_name, result=result)
        except Exception as e:
            self.logger.error("Job failed", job=job_name, error=str(e))
            result = {"error": str(e)}

        self.last_run[job_name] = current_time
        self.last_result[job_name] = result
        return result

    async def _publish_due_posts_job(self, current_time: datetime) -> Dict[str, Any]:
        report = await self.publishing.process_due_posts(current_time)
        return {"processed": report.processed, "success": report.success, "failed": report.failed}

    async def _collect_metrics_job(self, current_time: datetime) -> Dict[str, Any]:
        result = await self.analytics.update_recent_post_metrics()
        return {"posts_processed": result.posts_processed, "updated": result.updated}

    async def _expire_pending_payments_job(self, current_time: datetime) -> Dict[str, Any]:
        return {
            "transactions_failed": await self.billing.expire_pending_transactions(current_time),
            "invoices_failed": await self.billing.expire_pending_invoices(current_time),
        }

    async def _reset_monthly_quotas_job(self, current_time: datetime) -> Dict[str, Any]:
        return {"providers_reset": await self.quota.reset_monthly_quotas(current_time)}

    async def run_job_once(self, job_name: str) -> Dict[str, Any]:
        """Run a specific job once (for testing or manual triggering)."""
        if job_name not in self.job_intervals:
            raise ValueError(f"Unknown job: {job_name}")

        self.logger.info("Running job manually", job=job_name)

        current_time = utcnow()
        result = await self._run_job(job_name, current_time)

        return {"job": job_name, "status": "completed", "run_at": current_time, "result": result}

    def get_job_status(self) -> Dict[str, Any]:
        """Get current status of the scheduler and jobs."""
        current_time = utcnow()
        job_statuses = {}

        for job_name, interval_seconds in self.job_intervals.items():
            last_run = self.last_run.get(job_name)
            if last_run:
                time_since_last_run = (current_time - last_run).total_seconds()
                next_run_in = max(0, interval_seconds - time_since_last_run)
            else:
                time_since_last_run = None
                next_run_in = 0

            job_statuses[job_name] = {
                "interval_seconds": interval_seconds,
                "last_run": last_run,
                "time_since_last_run": time_since_last_run,
                "next_run_in": next_run_in,
                "last_result": self.last_result.get(job_name),
            }

        return {
            "is_running": self.is_running,
            "current_time": current_time,
            "jobs": job_statuses
        }


_background_scheduler: Optional[BackgroundScheduler] = None


def get_background_scheduler() -> BackgroundScheduler:
    """Process-wide scheduler, created on first use."""
    global _background_scheduler
    if _background_scheduler is None:
        _background_scheduler = BackgroundScheduler()
    return _background_scheduler
