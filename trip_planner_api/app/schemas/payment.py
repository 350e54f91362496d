"""
Pydantic models for payment data.

Participants report payments they made; an administrator confirms or
rejects them.  Only confirmed payments count toward a balance.
"""

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field


PaymentMethod = Literal["venmo", "cash", "zelle", "paypal", "credit_card", "other"]
PaymentStatus = Literal["pending", "confirmed", "rejected"]


class PaymentBase(BaseModel):
    amount: Decimal = Field(..., gt=0, examples=["300.00"])
    event_id: Optional[int] = Field(None, description="Event the payment is for, if any")
    payment_method: PaymentMethod = "other"
    payment_reference: Optional[str] = None
    notes: Optional[str] = None


class PaymentCreate(PaymentBase):
    """Schema for reporting a payment."""
    pass


class PaymentRead(PaymentBase):
    """Schema for reading a payment."""

    id: int
    participant_id: int
    status: PaymentStatus = "pending"
    confirmed_by: Optional[int] = None
    confirmed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
    }


class PaymentStatusUpdate(BaseModel):
    status: PaymentStatus
