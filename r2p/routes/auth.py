"""
Authentication Routes
Login, token refresh and password reset
"""

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from r2p.config.database import get_db
from r2p.config.settings import settings
from r2p.services.auth_service import auth_service
from r2p.services.email_service import email_service
from r2p.services.notification_service import send_email_safely
from r2p.schemas.auth import Token, RefreshRequest, ForgotPasswordRequest, ResetPasswordRequest
from r2p.schemas.user import UserResponse
from r2p.models.user import User
from r2p.utils.logger import setup_logger

logger = setup_logger()
router = APIRouter()


@router.post("/login", response_model=Token)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
):
    """
    Login endpoint

    OAuth2 compatible token login with username or email
    """
    user = auth_service.authenticate_user(db, form_data.username, form_data.password)

    if not user:
        logger.warning(f"Failed login attempt for {form_data.username}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive. Please contact administrator."
        )

    logger.info(f"User logged in: {user.username}")
    return auth_service.create_tokens(user)


@router.post("/refresh", response_model=Token)
async def refresh_token(
    payload: RefreshRequest,
    db: Session = Depends(get_db)
):
    """Refresh access token using refresh token"""
    return auth_service.refresh_tokens(db, payload.refresh_token)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: User = Depends(auth_service.get_current_user)
):
    """Get current user information"""
    return current_user


@router.post("/forgot-password")
async def forgot_password(
    payload: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    """
    Send a reset code for an existing account

    The response is the same whether or not the email is registered.
    """
    response = {
        "success": True,
        "message": "If this email is registered, you will receive a reset code shortly.",
        "expires_in_minutes": settings.OTP_EXPIRE_MINUTES
    }

    user = db.query(User).filter(User.email == payload.email).first()
    if not user or not user.is_active:
        logger.info(f"Password reset requested for unknown or inactive email {payload.email}")
        return response

    otp = auth_service.issue_reset_otp(db, user)
    background_tasks.add_task(
        send_email_safely, email_service.send_otp_email, user.email, user.full_name, otp
    )
    return response


@router.post("/reset-password")
async def reset_password(
    payload: ResetPasswordRequest,
    db: Session = Depends(get_db)
):
    """Verify the reset code and set a new password"""
    user = db.query(User).filter(User.email == payload.email).first()

    if not user or not auth_service.reset_password(db, user, payload.otp, payload.new_password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired reset code"
        )

    return {
        "success": True,
        "message": "Password reset successfully. You can now login with your new password."
    }
