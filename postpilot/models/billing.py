"""
Billing records the housekeeping jobs look at.

Payment flows themselves live outside this service; only the status
fields the expiry job flips are modelled here.
"""

from datetime import datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field

from postpilot.utils.time import utcnow


class PaymentStatus(str, Enum):
    """Payment status shared by transactions and invoices."""
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class Transaction(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    amount: float
    currency: str = "INR"
    status: PaymentStatus = PaymentStatus.PENDING
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Invoice(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    total_amount: float
    currency: str = "INR"
    payment_status: PaymentStatus = PaymentStatus.PENDING
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
