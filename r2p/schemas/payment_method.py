"""
Payment Method Schemas
Pydantic models for stored payout details; responses mask account data
"""

from pydantic import BaseModel, Field, field_serializer, field_validator
from typing import Optional
from datetime import datetime

from r2p.models.payment_method import PaymentMethodType
from r2p.utils.helpers import mask_email, mask_tail


def _normalize_type(value):
    if isinstance(value, str):
        return value.strip().lower()
    return value


class PaymentMethodCreate(BaseModel):
    """Schema for adding a payment method"""
    type: PaymentMethodType
    bank_name: Optional[str] = Field(None, max_length=100)
    account_number: Optional[str] = Field(None, max_length=50)
    account_name: Optional[str] = Field(None, max_length=100)
    paypal_email: Optional[str] = Field(None, max_length=255)
    phone_number: Optional[str] = Field(None, max_length=30)
    provider: Optional[str] = Field(None, max_length=50)
    is_default: bool = False

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, value):
        return _normalize_type(value)


class PaymentMethodUpdate(BaseModel):
    """Schema for updating a payment method; absent fields stay as they are"""
    type: Optional[PaymentMethodType] = None
    bank_name: Optional[str] = Field(None, max_length=100)
    account_number: Optional[str] = Field(None, max_length=50)
    account_name: Optional[str] = Field(None, max_length=100)
    paypal_email: Optional[str] = Field(None, max_length=255)
    phone_number: Optional[str] = Field(None, max_length=30)
    provider: Optional[str] = Field(None, max_length=50)
    is_default: Optional[bool] = None

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, value):
        return _normalize_type(value)


class PaymentMethodResponse(BaseModel):
    """Schema for payment method response"""
    id: int
    user_id: int
    type: PaymentMethodType
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    account_name: Optional[str] = None
    paypal_email: Optional[str] = None
    phone_number: Optional[str] = None
    provider: Optional[str] = None
    is_default: bool
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_serializer("account_number", "phone_number")
    def mask_number(self, value: Optional[str]) -> Optional[str]:
        return mask_tail(value)

    @field_serializer("paypal_email")
    def mask_paypal_email(self, value: Optional[str]) -> Optional[str]:
        return mask_email(value)
