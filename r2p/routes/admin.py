"""
Admin Routes
User management and system administration endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy import func
from typing import List, Optional
from datetime import datetime

from r2p.config.database import get_db
from r2p.services.auth_service import auth_service
from r2p.services.audit_service import record_audit
from r2p.models.user import User, UserRole
from r2p.models.department import Department, DepartmentManager
from r2p.models.request import ResourceRequest
from r2p.models.payment import Payment
from r2p.models.audit_log import AuditLog
from r2p.models.approval import Approval
from r2p.schemas.user import UserCreate, UserUpdate, UserResponse, AdminPasswordReset
from r2p.utils.exceptions import ConflictError, NotFoundError
from r2p.utils.helpers import clamp_pagination, page_meta, enum_value
from r2p.utils.logger import setup_logger
from r2p.utils.security import get_password_hash

logger = setup_logger()
router = APIRouter()

require_admin = auth_service.require_role(UserRole.ADMIN)


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")
    return user


def _ensure_department(db: Session, department_id: Optional[int]):
    if department_id is not None and not db.get(Department, department_id):
        raise NotFoundError(f"Department not found with ID: {department_id}")


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """
    Create a user with an initial password (Admin only)
    """
    if db.query(User).filter(User.username == user_data.username).first():
        raise ConflictError(f"Username '{user_data.username}' already exists")

    if db.query(User).filter(User.email == user_data.email).first():
        raise ConflictError(f"Email '{user_data.email}' already exists")

    _ensure_department(db, user_data.department_id)

    user = User(
        email=user_data.email,
        username=user_data.username,
        full_name=user_data.full_name,
        hashed_password=get_password_hash(user_data.password),
        role=user_data.role,
        department_id=user_data.department_id,
        is_active=True
    )
    db.add(user)
    db.flush()

    record_audit(
        db,
        user_id=current_user.id,
        action="create_user",
        entity_type="user",
        entity_id=user.id,
        description=f"Created user {user.username} with role {user.role.value}"
    )
    db.commit()
    db.refresh(user)

    logger.info(f"Admin {current_user.username} created user {user.username}")
    return user


@router.get("/users", response_model=List[UserResponse])
async def get_all_users(
    is_active: Optional[bool] = None,
    role: Optional[str] = None,
    department_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 20,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """
    Get all users (Admin only)

    **Filters:**
    - is_active: Filter by active status
    - role: Filter by role (any casing)
    - department_id: Filter by department
    """
    query = db.query(User)

    if is_active is not None:
        query = query.filter(User.is_active == is_active)

    if role:
        try:
            query = query.filter(User.role == UserRole.normalize(role))
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid role '{role}'"
            )

    if department_id is not None:
        query = query.filter(User.department_id == department_id)

    skip, limit = clamp_pagination(skip, limit)
    return query.order_by(User.id).offset(skip).limit(limit).all()


@router.get("/users/{user_id}", response_model=UserResponse)
async def get_user_details(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Get specific user details (Admin only)"""
    return _get_user_or_404(db, user_id)


@router.put("/users/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    user_data: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """
    Update a user's name, role, department or active flag (Admin only)

    Admins cannot deactivate or demote themselves.
    """
    user = _get_user_or_404(db, user_id)
    changes = user_data.model_dump(exclude_unset=True)

    if user.id == current_user.id and (
        changes.get("is_active") is False
        or ("role" in changes and changes["role"] != UserRole.ADMIN)
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot deactivate or change the role of your own account"
        )

    if "department_id" in changes:
        _ensure_department(db, changes["department_id"])

    for field, value in changes.items():
        if field in ("role", "is_active", "full_name") and value is None:
            continue
        setattr(user, field, value)

    record_audit(
        db,
        user_id=current_user.id,
        action="update_user",
        entity_type="user",
        entity_id=user.id,
        description=f"Updated user {user.username}",
        changes={key: enum_value(value) for key, value in changes.items()}
    )
    db.commit()
    db.refresh(user)

    logger.info(f"Admin {current_user.username} updated user {user.username}: {list(changes)}")
    return user


def _has_history(db: Session, user_id: int) -> bool:
    """Whether workflow or audit rows still point at the user"""
    return any((
        db.query(ResourceRequest.id).filter(ResourceRequest.user_id == user_id).first(),
        db.query(Approval.id).filter(Approval.approver_id == user_id).first(),
        db.query(Payment.id).filter(Payment.finance_officer_id == user_id).first(),
        db.query(AuditLog.id).filter(AuditLog.user_id == user_id).first(),
    ))


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """
    Permanently delete a user (Admin only)

    Only accounts with no requests, decisions, payments or audit entries can
    be deleted; deactivate the others instead.
    """
    if user_id == current_user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete your own account"
        )

    user = _get_user_or_404(db, user_id)

    if _has_history(db, user.id):
        raise ConflictError("User has request, approval or audit history; deactivate the account instead")

    db.query(DepartmentManager).filter(DepartmentManager.user_id == user.id).delete(synchronize_session=False)
    record_audit(
        db,
        user_id=current_user.id,
        action="delete_user",
        entity_type="user",
        entity_id=user.id,
        description=f"Deleted user {user.username}"
    )
    db.delete(user)
    db.commit()

    logger.info(f"Admin {current_user.username} deleted user {user_id}")
    return {"success": True, "message": "User deleted successfully"}


@router.put("/users/{user_id}/reset-password")
async def reset_user_password(
    user_id: int,
    payload: AdminPasswordReset,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Set a new password for a user and void any pending reset code (Admin only)"""
    user = _get_user_or_404(db, user_id)

    user.hashed_password = get_password_hash(payload.new_password)
    user.reset_token = None
    user.reset_token_expires_at = None
    user.last_password_reset = datetime.utcnow()

    record_audit(
        db,
        user_id=current_user.id,
        action="reset_password",
        entity_type="user",
        entity_id=user.id,
        description=f"Reset password for user {user.username}"
    )
    db.commit()

    logger.info(f"Admin {current_user.username} reset the password of {user.username}")
    return {"success": True, "message": "Password reset successfully"}


@router.get("/audit-logs")
async def get_audit_logs(
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 20,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Audit trail, newest first (Admin only)"""
    query = db.query(AuditLog)
    if entity_type:
        query = query.filter(AuditLog.entity_type == entity_type)
    if entity_id is not None:
        query = query.filter(AuditLog.entity_id == entity_id)

    skip, limit = clamp_pagination(skip, limit)
    total = query.count()
    logs = query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).offset(skip).limit(limit).all()

    return {
        "success": True,
        "data": [
            {
                "id": log.id,
                "user_id": log.user_id,
                "action": log.action,
                "entity_type": log.entity_type,
                "entity_id": log.entity_id,
                "description": log.description,
                "changes": log.changes,
                "created_at": log.created_at.isoformat() if log.created_at else None,
            }
            for log in logs
        ],
        "pagination": page_meta(total, skip, limit)
    }


@router.get("/system-stats")
async def get_system_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Counts of users and requests by status, and total paid (Admin only)"""
    requests_by_status = {
        enum_value(request_status): count
        for request_status, count in db.query(
            ResourceRequest.status, func.count(ResourceRequest.id)
        ).group_by(ResourceRequest.status).all()
    }
    users_by_role = {
        enum_value(role): count
        for role, count in db.query(User.role, func.count(User.id)).group_by(User.role).all()
    }
    total_paid = db.query(func.coalesce(func.sum(Payment.amount_paid), 0)).scalar()

    return {
        "success": True,
        "users": {
            "total": sum(users_by_role.values()),
            "active": db.query(User).filter(User.is_active == True).count(),
            "by_role": users_by_role
        },
        "requests": {
            "total": sum(requests_by_status.values()),
            "by_status": requests_by_status
        },
        "payments": {
            "count": db.query(Payment).count(),
            "total_paid": float(total_paid or 0)
        }
    }
