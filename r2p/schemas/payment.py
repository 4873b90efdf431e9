"""
Payment Schemas
Pydantic models for finance processing
"""

from pydantic import BaseModel, Field
from datetime import datetime

from r2p.models.payment import PaymentMethod


class PaymentCreate(BaseModel):
    """Schema for processing a payment"""
    amount_paid: float = Field(..., gt=0)
    payment_method: PaymentMethod


class PaymentResponse(BaseModel):
    """Schema for payment response"""
    id: int
    request_id: int
    finance_officer_id: int
    amount_paid: float
    payment_method: PaymentMethod
    payment_date: datetime

    class Config:
        from_attributes = True
