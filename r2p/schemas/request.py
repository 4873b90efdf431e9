"""
Resource Request Schemas
Pydantic models for request creation, editing and responses
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from r2p.models.request import RequestStatus, RequestPriority
from r2p.schemas.user import UserSummary
from r2p.schemas.department import DepartmentSummary


class RequestCreate(BaseModel):
    """Schema for creating a resource request"""
    title: str = Field(..., min_length=3, max_length=200)
    resource_name: str = Field(..., min_length=1, max_length=200)
    resource_type: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)
    quantity: int = Field(1, ge=1)
    estimated_cost: float = Field(..., ge=0)
    priority: RequestPriority = RequestPriority.MEDIUM
    department_id: Optional[int] = None
    save_as_draft: bool = False


class RequestUpdate(BaseModel):
    """
    Schema for editing a request

    All fields optional; which ones apply depends on the request's status.
    """
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    resource_name: Optional[str] = Field(None, min_length=1, max_length=200)
    resource_type: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)
    quantity: Optional[int] = Field(None, ge=1)
    estimated_cost: Optional[float] = Field(None, ge=0)
    priority: Optional[RequestPriority] = None


class RequestResponse(BaseModel):
    """Schema for request response"""
    id: int
    user_id: int
    department_id: int
    title: str
    resource_name: str
    resource_type: str
    description: Optional[str] = None
    quantity: int
    estimated_cost: float
    priority: RequestPriority
    status: RequestStatus
    created_at: datetime
    updated_at: Optional[datetime] = None
    user: Optional[UserSummary] = None
    department: Optional[DepartmentSummary] = None

    class Config:
        from_attributes = True


def serialize_request(request) -> dict:
    """Render a ResourceRequest as JSON-ready data"""
    return RequestResponse.model_validate(request).model_dump(mode="json")
