"""
User Schemas
Pydantic models for user-related requests and responses
"""

from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional
from datetime import datetime

from r2p.models.user import UserRole


class UserSummary(BaseModel):
    """Compact user representation embedded in other responses"""
    id: int
    full_name: str
    email: str
    role: UserRole

    class Config:
        from_attributes = True


class UserBase(BaseModel):
    """Base user schema with common fields"""
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=50)
    full_name: str = Field(..., min_length=1, max_length=200)
    department_id: Optional[int] = None


class UserCreate(UserBase):
    """Schema for creating a new user"""
    password: str = Field(..., min_length=8)
    role: UserRole = UserRole.EMPLOYEE

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, value):
        return UserRole.normalize(value)


class UserUpdate(BaseModel):
    """Schema for updating user information"""
    full_name: Optional[str] = None
    role: Optional[UserRole] = None
    department_id: Optional[int] = None
    is_active: Optional[bool] = None

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, value):
        return UserRole.normalize(value) if value is not None else None


class UserResponse(BaseModel):
    """Schema for user response"""
    id: int
    email: str
    username: str
    full_name: str
    role: UserRole
    department_id: Optional[int] = None
    is_active: bool
    created_at: datetime
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True


class AdminPasswordReset(BaseModel):
    """Password set by an admin for another account"""
    new_password: str = Field(..., min_length=8)
