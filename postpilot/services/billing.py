"""
Billing Housekeeping Service

Expires payments that were left pending for too long and tells the
user about it.
"""

from datetime import datetime, timedelta
from typing import Optional

import structlog

from postpilot.config.settings import get_settings
from postpilot.integrations.firestore import FirestoreClient, firestore_client
from postpilot.models.billing import PaymentStatus
from postpilot.services.notifications import NotificationService
from postpilot.utils.logger import log_business_event
from postpilot.utils.time import ensure_utc, utcnow


class BillingService:
    """Service for billing housekeeping jobs."""

    def __init__(
        self,
        db: Optional[FirestoreClient] = None,
        notifications: Optional[NotificationService] = None
    ):
        self.settings = get_settings()
        self.logger = structlog.get_logger(__name__)
        self.db = db or firestore_client
        self.notifications = notifications or NotificationService(self.db)

    def _cutoff(self, now: Optional[datetime]) -> datetime:
        now = ensure_utc(now) or utcnow()
        return now - timedelta(hours=self.settings.pending_payment_expiry_hours)

    async def expire_pending_transactions(self, now: Optional[datetime] = None) -> int:
        """Mark transactions pending since before the cutoff as FAILED."""
        transactions = await self.db.get_stale_pending_transactions(self._cutoff(now))

        for transaction in transactions:
            await self.db.update_transaction(transaction.id, {
                "status": PaymentStatus.FAILED,
                "updated_at": utcnow(),
            })
            await self.notifications.notify(
                transaction.user_id,
                "❌ Transaction Failed",
                f"Your transaction ({transaction.currency} {transaction.amount}) could not be processed. "
                "Please try again or contact support."
            )

        if transactions:
            log_business_event("pending_transactions_expired", count=len(transactions))
        return len(transactions)

    async def expire_pending_invoices(self, now: Optional[datetime] = None) -> int:
        """Mark invoices pending since before the cutoff as FAILED."""
        invoices = await self.db.get_stale_pending_invoices(self._cutoff(now))

        for invoice in invoices:
            await self.db.update_invoice(invoice.id, {
                "payment_status": PaymentStatus.FAILED,
                "updated_at": utcnow(),
            })
            await self.notifications.notify(
                invoice.user_id,
                "❌ Invoice Payment Failed",
                f"Invoice #{invoice.id[:8]} for {invoice.currency} {invoice.total_amount} has expired. "
                "Please generate a new payment link."
            )

        if invoices:
            log_business_event("pending_invoices_expired", count=len(invoices))
        return len(invoices)
