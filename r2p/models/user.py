"""
User Model
Represents system users with role-based access control
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from r2p.config.database import Base


class UserRole(str, enum.Enum):
    """User roles"""
    EMPLOYEE = "employee"
    MANAGER = "manager"
    DEPARTMENT_HEAD = "department_head"
    FINANCE = "finance"
    ADMIN = "admin"

    @classmethod
    def normalize(cls, value) -> "UserRole":
        """
        Coerce a role given in any casing ("MANAGER", "Manager", "manager")
        or as a member into a UserRole

        Raises:
            ValueError: If the value names no known role
        """
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower().replace("-", "_").replace(" ", "_")
        if text == "departmenthead":
            text = cls.DEPARTMENT_HEAD.value
        return cls(text)


class User(Base):
    """User model"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    username = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=False)
    hashed_password = Column(String, nullable=False)

    # Role and Department
    role = Column(Enum(UserRole), default=UserRole.EMPLOYEE, nullable=False)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=True, index=True)

    is_active = Column(Boolean, default=True, nullable=False)

    # Password reset (hashed OTP)
    reset_token = Column(String(255), nullable=True)
    reset_token_expires_at = Column(DateTime, nullable=True)
    last_password_reset = Column(DateTime, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login = Column(DateTime, nullable=True)

    # Relationships
    department = relationship("Department", back_populates="members", foreign_keys=[department_id])
    requests = relationship("ResourceRequest", back_populates="user", foreign_keys="ResourceRequest.user_id")
    approvals = relationship("Approval", back_populates="approver", foreign_keys="Approval.approver_id")
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")
    payment_methods = relationship("UserPaymentMethod", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User {self.username} ({self.role.value})>"

    def has_role(self, *roles) -> bool:
        """Check the user's role against any of the given roles (any casing)"""
        return UserRole.normalize(self.role) in {UserRole.normalize(r) for r in roles}

    def is_reset_token_valid(self) -> bool:
        """Check if password reset token (OTP) is still valid"""
        if not self.reset_token:
            return False
        if not self.reset_token_expires_at:
            return False
        return self.reset_token_expires_at > datetime.utcnow()
