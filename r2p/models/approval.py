"""
Approval Model
Immutable record of one approve/reject decision on a request
"""

from sqlalchemy import Column, Integer, DateTime, Enum, ForeignKey, Text
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from r2p.config.database import Base
from r2p.models.user import UserRole


class ApprovalDecision(str, enum.Enum):
    """Approval decision"""
    APPROVED = "approved"
    REJECTED = "rejected"


class Approval(Base):
    """Approval model (append-only)"""
    __tablename__ = "approvals"

    id = Column(Integer, primary_key=True, index=True)

    # Request and Approver
    request_id = Column(Integer, ForeignKey("resource_requests.id"), nullable=False, index=True)
    approver_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    approver_role = Column(Enum(UserRole), nullable=True)

    # Decision details
    decision = Column(Enum(ApprovalDecision), nullable=False)
    comment = Column(Text, nullable=True)

    # Timestamps
    decision_date = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    request = relationship("ResourceRequest", back_populates="approvals")
    approver = relationship("User", back_populates="approvals", foreign_keys=[approver_id])

    def __repr__(self):
        return f"<Approval request={self.request_id} - {self.decision.value}>"
