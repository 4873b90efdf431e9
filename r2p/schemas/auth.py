"""
Authentication Schemas
Pydantic models for authentication requests and responses
"""

from pydantic import BaseModel, EmailStr, Field


class Token(BaseModel):
    """JWT token response"""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshRequest(BaseModel):
    """Refresh token exchange"""
    refresh_token: str


class ForgotPasswordRequest(BaseModel):
    """Request a password reset code"""
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    """Reset password with an emailed code"""
    email: EmailStr
    otp: str = Field(..., min_length=4, max_length=10)
    new_password: str = Field(..., min_length=8)
