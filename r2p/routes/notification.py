"""
Notification Routes
In-app notifications for the current user
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from datetime import datetime

from r2p.config.database import get_db
from r2p.services.auth_service import auth_service
from r2p.models.user import User
from r2p.models.notification import Notification
from r2p.models.request import ResourceRequest
from r2p.utils.exceptions import NotFoundError
from r2p.utils.helpers import clamp_pagination, page_meta, enum_value
from r2p.utils.logger import setup_logger

logger = setup_logger()
router = APIRouter()


def _unread_query(db: Session, user_id: int):
    return db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.is_read == False
    )


@router.get("")
async def get_my_notifications(
    unread_only: bool = False,
    skip: int = 0,
    limit: int = 20,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """
    Get current user's notifications, newest first

    **Parameters:**
    - unread_only: If True, only return unread notifications
    - skip / limit: pagination
    """
    skip, limit = clamp_pagination(skip, limit)

    query = db.query(Notification).filter(Notification.user_id == current_user.id)
    if unread_only:
        query = query.filter(Notification.is_read == False)

    total = query.count()
    notifications = query.order_by(
        Notification.created_at.desc(), Notification.id.desc()
    ).offset(skip).limit(limit).all()

    request_ids = {n.request_id for n in notifications if n.request_id}
    statuses = {}
    if request_ids:
        statuses = {
            r.id: enum_value(r.status)
            for r in db.query(ResourceRequest).filter(ResourceRequest.id.in_(request_ids)).all()
        }

    data = [
        {
            "id": n.id,
            "type": enum_value(n.type),
            "title": n.title,
            "message": n.message,
            "request_id": n.request_id,
            "request_status": statuses.get(n.request_id),
            "is_read": n.is_read,
            "read_at": n.read_at.isoformat() if n.read_at else None,
            "created_at": n.created_at.isoformat() if n.created_at else None,
        }
        for n in notifications
    ]

    return {
        "success": True,
        "data": data,
        "unread_count": _unread_query(db, current_user.id).count(),
        "pagination": page_meta(total, skip, limit)
    }


@router.get("/unread-count")
async def get_unread_count(
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """Count of unread notifications (lightweight endpoint for polling)"""
    return {
        "success": True,
        "unread_count": _unread_query(db, current_user.id).count()
    }


@router.put("/mark-all-read")
async def mark_all_notifications_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """Mark all notifications as read for current user"""
    count = _unread_query(db, current_user.id).update({
        "is_read": True,
        "read_at": datetime.utcnow()
    }, synchronize_session=False)
    db.commit()

    logger.info(f"User {current_user.username} marked {count} notifications as read")

    return {
        "success": True,
        "message": "All notifications marked as read",
        "count": count
    }


@router.put("/{notification_id}/read")
async def mark_notification_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """Mark a specific notification as read"""
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == current_user.id
    ).first()

    if not notification:
        raise NotFoundError("Notification not found")

    if not notification.is_read:
        notification.is_read = True
        notification.read_at = datetime.utcnow()
        db.commit()

    return {
        "success": True,
        "message": "Notification marked as read"
    }
