"""
Department Schemas
Pydantic models for departments and manager assignments
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from r2p.schemas.user import UserSummary


class DepartmentSummary(BaseModel):
    """Compact department representation embedded in other responses"""
    id: int
    name: str

    class Config:
        from_attributes = True


class DepartmentCreate(BaseModel):
    """Schema for creating a department"""
    name: str = Field(..., min_length=2, max_length=100)
    code: Optional[str] = Field(None, max_length=20)
    description: Optional[str] = None


class DepartmentUpdate(BaseModel):
    """Schema for updating a department"""
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    code: Optional[str] = Field(None, max_length=20)
    description: Optional[str] = None


class DepartmentResponse(BaseModel):
    """Schema for department response"""
    id: int
    name: str
    code: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime
    managers: List[UserSummary] = []

    class Config:
        from_attributes = True


class ManagerAssign(BaseModel):
    """Assign a manager to a department"""
    user_id: int
