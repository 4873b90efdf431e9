"""
Resource Request Model
Represents resource acquisition requests moving through the approval pipeline
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, Enum, ForeignKey, Text, CheckConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from r2p.config.database import Base


class RequestStatus(str, enum.Enum):
    """Request status"""
    DRAFT = "draft"
    SUBMITTED = "submitted"
    SEMI_APPROVED = "semi_approved"  # manager approved (or manager-authored), awaiting admin
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"


class RequestPriority(str, enum.Enum):
    """Request priority"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


# Fields the owner may edit; once submitted only description
EDITABLE_FIELDS = [
    "title",
    "resource_name",
    "resource_type",
    "description",
    "quantity",
    "estimated_cost",
    "priority",
]
SUBMITTED_EDITABLE_FIELDS = ["description"]


class ResourceRequest(Base):
    """Resource request model"""
    __tablename__ = "resource_requests"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_request_quantity_positive"),
        CheckConstraint("estimated_cost >= 0", name="ck_request_cost_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)

    # Ownership and scoping
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=False, index=True)

    # Request details
    title = Column(String, nullable=False)
    resource_name = Column(String, nullable=False)
    resource_type = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    estimated_cost = Column(Float, nullable=False, default=0)
    priority = Column(Enum(RequestPriority), default=RequestPriority.MEDIUM, nullable=False)

    # Workflow
    status = Column(Enum(RequestStatus), default=RequestStatus.SUBMITTED, nullable=False, index=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="requests", foreign_keys=[user_id])
    department = relationship("Department", back_populates="requests")
    approvals = relationship(
        "Approval",
        back_populates="request",
        cascade="all, delete-orphan",
        order_by="Approval.decision_date.desc()"
    )
    payment = relationship("Payment", back_populates="request", uselist=False, cascade="all, delete-orphan")

    def __repr__(self):
        return f"<ResourceRequest {self.id} - {self.title} - {self.status.value}>"

    @property
    def owner_role(self):
        """Role of the user who created the request"""
        return self.user.role if self.user else None
