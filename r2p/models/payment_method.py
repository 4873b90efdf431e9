"""
Payment Method Model
Payout details a user keeps on file (bank account, PayPal, mobile money)
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from r2p.config.database import Base


class PaymentMethodType(str, enum.Enum):
    """Kinds of stored payout details"""
    BANK = "bank"
    PAYPAL = "paypal"
    MOBILE_MONEY = "mobile_money"


class UserPaymentMethod(Base):
    """Payment method on file for a user"""
    __tablename__ = "payment_methods"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(Enum(PaymentMethodType), nullable=False)

    # Bank
    bank_name = Column(String(100), nullable=True)
    account_number = Column(String(50), nullable=True)
    account_name = Column(String(100), nullable=True)

    # PayPal
    paypal_email = Column(String(255), nullable=True)

    # Mobile money
    phone_number = Column(String(30), nullable=True)
    provider = Column(String(50), nullable=True)

    is_default = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="payment_methods")

    def __repr__(self):
        return f"<UserPaymentMethod {self.id} {self.type.value} user={self.user_id}>"
