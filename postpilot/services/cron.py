"""
Cron Service

One pass of the periodic housekeeping triggered by the external cron
endpoint: dispatch due posts, reset monthly quotas and expire stale
payments.
"""

from datetime import datetime
from typing import Any, Dict, Optional

import structlog

from postpilot.services.billing import BillingService
from postpilot.services.publishing import PublishingService
from postpilot.services.quota import QuotaService
from postpilot.utils.time import ensure_utc, utcnow


class CronService:
    """Runs every cron job once and reports what each did."""

    def __init__(
        self,
        publishing: Optional[PublishingService] = None,
        quota: Optional[QuotaService] = None,
        billing: Optional[BillingService] = None
    ):
        self.logger = structlog.get_logger(__name__)
        self.publishing = publishing or PublishingService()
        self.quota = quota or QuotaService()
        self.billing = billing or BillingService()

    async def run(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Run all jobs in order.

        Errors propagate so the caller can answer with a failed run; jobs
        already completed keep their effects.
        """
        now = ensure_utc(now) or utcnow()
        self.logger.info("Cron run started", now=now.isoformat())

        dispatch = await self.publishing.process_due_posts(now)
        quotas_reset = await self.quota.reset_monthly_quotas(now)
        transactions_failed = await self.billing.expire_pending_transactions(now)
        invoices_failed = await self.billing.expire_pending_invoices(now)

        finished = utcnow().isoformat()
        report = {
            "success": True,
            "jobs": {
                "scheduledPosts": {
                    "processed": dispatch.processed,
                    "results": {
                        "success": dispatch.success,
                        "failed": dispatch.failed,
                        "details": [
                            detail.model_dump(mode="json", exclude_none=True)
                            for detail in dispatch.details
                        ],
                    },
                },
                "quotaResets": {"resetCount": quotas_reset, "timestamp": finished},
                "transactions": {"failedCount": transactions_failed, "timestamp": finished},
                "invoices": {"failedCount": invoices_failed, "timestamp": finished},
            },
            "timestamp": finished,
        }

        self.logger.info(
            "Cron run finished",
            posts_processed=dispatch.processed,
            posts_failed=dispatch.failed,
            quotas_reset=quotas_reset,
            transactions_failed=transactions_failed,
            invoices_failed=invoices_failed
        )
        return report
