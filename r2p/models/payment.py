"""
Payment Model
Records finance processing of an approved request
"""

from sqlalchemy import Column, Integer, Float, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from r2p.config.database import Base


class PaymentMethod(str, enum.Enum):
    """Payment methods"""
    BANK = "bank"
    MOBILE_MONEY = "mobile_money"
    CASH = "cash"


class Payment(Base):
    """Payment model"""
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)

    # One payment per request
    request_id = Column(Integer, ForeignKey("resource_requests.id"), unique=True, nullable=False)
    finance_officer_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    amount_paid = Column(Float, nullable=False)
    payment_method = Column(Enum(PaymentMethod), nullable=False)
    payment_date = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    # Relationships
    request = relationship("ResourceRequest", back_populates="payment")
    finance_officer = relationship("User", foreign_keys=[finance_officer_id])

    def __repr__(self):
        return f"<Payment request={self.request_id} - {self.amount_paid}>"
