"""
Authentication Service
Handles user authentication and authorization
"""

from datetime import datetime, timedelta
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from r2p.config.database import get_db
from r2p.config.settings import settings
from r2p.models.user import User, UserRole
from r2p.utils.security import (
    verify_password,
    get_password_hash,
    generate_otp,
    create_access_token,
    create_refresh_token,
    decode_token,
)
from r2p.utils.logger import setup_logger

logger = setup_logger()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


class AuthService:
    """Authentication service"""

    def find_user(self, db: Session, username: str) -> Optional[User]:
        """Look a user up by username or email"""
        return db.query(User).filter(
            (User.username == username) | (User.email == username)
        ).first()

    def authenticate_user(self, db: Session, username: str, password: str) -> Optional[User]:
        """
        Authenticate user with username and password

        Args:
            db: Database session
            username: Username or email
            password: Password

        Returns:
            User: Authenticated user, or None on bad credentials
        """
        user = self.find_user(db, username)

        if not user:
            return None

        if not verify_password(password, user.hashed_password):
            return None

        # Update last login
        user.last_login = datetime.utcnow()
        db.commit()

        logger.info(f"User authenticated: {user.username}")
        return user

    def create_tokens(self, user: User) -> dict:
        """
        Create access and refresh tokens for user

        Args:
            user: User object

        Returns:
            dict: Access and refresh tokens
        """
        access_token = create_access_token(
            data={
                "sub": str(user.id),
                "username": user.username,
                "role": UserRole.normalize(user.role).value,
                "department_id": user.department_id
            }
        )

        refresh_token = create_refresh_token(
            data={"sub": str(user.id)}
        )

        return {
            "access_token": access_token,
            "refresh_token": refresh_token,
            "token_type": "bearer"
        }

    def refresh_tokens(self, db: Session, refresh_token: str) -> dict:
        """
        Exchange a refresh token for a new token pair

        Raises:
            HTTPException: If the token is invalid or the user is gone or inactive
        """
        payload = decode_token(refresh_token)
        if not payload or payload.get("type") != "refresh" or not payload.get("sub"):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid refresh token"
            )

        user = db.query(User).filter(User.id == int(payload["sub"])).first()
        if not user or not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid refresh token"
            )

        return self.create_tokens(user)

    def issue_reset_otp(self, db: Session, user: User) -> str:
        """
        Generate a password reset code and store its hash

        Returns:
            str: The plain code, to be emailed
        """
        otp = generate_otp()
        user.reset_token = get_password_hash(otp)
        user.reset_token_expires_at = datetime.utcnow() + timedelta(minutes=settings.OTP_EXPIRE_MINUTES)
        db.commit()

        logger.info(f"Password reset code issued for user {user.id}")
        return otp

    def reset_password(self, db: Session, user: User, otp: str, new_password: str) -> bool:
        """
        Set a new password if the reset code matches and has not expired

        Returns:
            bool: True when the password was changed
        """
        if not user.is_reset_token_valid() or not verify_password(otp, user.reset_token):
            logger.warning(f"Invalid or expired reset code for user {user.id}")
            return False

        user.hashed_password = get_password_hash(new_password)
        user.reset_token = None
        user.reset_token_expires_at = None
        user.last_password_reset = datetime.utcnow()
        db.commit()

        logger.info(f"Password reset for user {user.id}")
        return True

    async def get_current_user(
        self,
        token: str = Depends(oauth2_scheme),
        db: Session = Depends(get_db)
    ) -> User:
        """
        Get current authenticated user from token

        Args:
            token: JWT token
            db: Database session

        Returns:
            User: Current user

        Raises:
            HTTPException: If authentication fails
        """
        credentials_exception = HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

        payload = decode_token(token)
        if payload is None or payload.get("type") != "access":
            raise credentials_exception

        user_id: str = payload.get("sub")
        if user_id is None:
            raise credentials_exception

        user = db.query(User).filter(User.id == int(user_id)).first()
        if user is None:
            raise credentials_exception

        if not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="User account is inactive"
            )

        return user

    def require_role(self, *roles):
        """
        Dependency factory requiring one of the given role(s)

        Args:
            roles: Allowed roles, as UserRole members or strings in any casing
        """
        allowed = {UserRole.normalize(role) for role in roles}

        async def role_checker(current_user: User = Depends(self.get_current_user)):
            if UserRole.normalize(current_user.role) not in allowed:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"Access denied. Required role(s): {', '.join(sorted(r.value for r in allowed))}"
                )
            return current_user

        return role_checker


# Create singleton instance
auth_service = AuthService()
