"""
Approval Schemas
Pydantic models for approval workflow
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from r2p.models.approval import ApprovalDecision
from r2p.models.user import UserRole
from r2p.schemas.user import UserSummary


class ApprovalCreate(BaseModel):
    """Schema for an approve or reject decision"""
    comment: Optional[str] = Field(None, max_length=1000)


class ApprovalResponse(BaseModel):
    """Schema for approval response"""
    id: int
    request_id: int
    approver_id: int
    approver_role: Optional[UserRole] = None
    decision: ApprovalDecision
    comment: Optional[str] = None
    decision_date: datetime
    approver: Optional[UserSummary] = None

    class Config:
        from_attributes = True
