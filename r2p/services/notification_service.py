"""
Notification Service
Creates in-app notifications and queues emails for request events
"""

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session
from typing import Optional, List, Dict, Any

from r2p.models.notification import Notification, NotificationType
from r2p.models.department import DepartmentManager
from r2p.models.payment import Payment
from r2p.models.request import ResourceRequest, RequestStatus
from r2p.models.user import User, UserRole
from r2p.services.email_service import email_service
from r2p.utils.helpers import enum_value, format_currency
from r2p.utils.logger import setup_logger

logger = setup_logger()


def request_email_data(request: ResourceRequest) -> Dict[str, Any]:
    """Plain values for email templates, safe to hand to a background task"""
    return {
        "id": request.id,
        "title": request.title,
        "resource_name": request.resource_name,
        "quantity": request.quantity,
        "estimated_cost": request.estimated_cost,
        "status": enum_value(request.status),
    }


def send_email_safely(send, *args, **kwargs) -> bool:
    """
    Run an EmailService send method, logging instead of raising

    Used as a BackgroundTasks callable so a mail failure never reaches the
    client or the decision that triggered it.
    """
    try:
        return bool(send(*args, **kwargs))
    except Exception as e:
        logger.error(f"Email dispatch failed ({getattr(send, '__name__', send)}): {str(e)}")
        return False


def queue_approval_required_emails(
    background_tasks: BackgroundTasks,
    approvers: List[User],
    request: ResourceRequest
) -> None:
    """Schedule one review email per approver after the response is sent"""
    data = request_email_data(request)
    requester = request.user.full_name if request.user else "a user"
    for approver in approvers:
        background_tasks.add_task(
            send_email_safely,
            email_service.send_approval_required_notification,
            approver.email,
            approver.full_name,
            data,
            requester
        )


class NotificationService:
    """Service for managing notifications"""

    def approvers_for(self, db: Session, request: ResourceRequest) -> List[User]:
        """
        Users who act next on a request

        Submitted requests go to the department's managers (first admin if
        none), semi-approved to admins, approved to finance.
        """
        status = request.status
        if status == RequestStatus.SUBMITTED:
            approvers = db.query(User).join(
                DepartmentManager, DepartmentManager.user_id == User.id
            ).filter(
                DepartmentManager.department_id == request.department_id,
                User.is_active == True,
                User.id != request.user_id
            ).all()
            if approvers:
                return approvers
            target_role = UserRole.ADMIN
            first_only = True
        elif status == RequestStatus.SEMI_APPROVED:
            target_role = UserRole.ADMIN
            first_only = False
        elif status == RequestStatus.APPROVED:
            target_role = UserRole.FINANCE
            first_only = False
        else:
            return []

        query = db.query(User).filter(User.role == target_role, User.is_active == True).order_by(User.id)
        if first_only:
            admin = query.first()
            return [admin] if admin else []
        return query.all()

    def _add(self, db: Session, user_id: int, type_: NotificationType, title: str, message: str, request_id: int):
        db.add(Notification(
            user_id=user_id,
            type=type_,
            title=title,
            message=message,
            request_id=request_id
        ))

    def _discard(self, db: Session, what: str, error: Exception) -> None:
        """Roll back a failed notification write; the decision is already committed"""
        db.rollback()
        logger.error(f"Failed to store {what} notification: {str(error)}")

    async def notify_approval_required(self, db: Session, request: ResourceRequest) -> List[User]:
        """
        Notify the next tier of approvers that a request needs action

        Returns:
            List of notified users, empty when nobody could be notified
        """
        try:
            approvers = self.approvers_for(db, request)
            if not approvers:
                logger.warning(f"No approvers found to notify for request {request.id} ({enum_value(request.status)})")
                return []

            requester = request.user.full_name if request.user else "a user"
            if request.status == RequestStatus.APPROVED:
                title = "Request Ready for Payment"
                message = f"Request '{request.title}' from {requester} is approved and awaiting payment."
            else:
                title = "New Request Requires Approval"
                message = (
                    f"Request '{request.title}' from {requester} requires your approval. "
                    f"Estimated cost: {format_currency(request.estimated_cost)}."
                )

            for approver in approvers:
                self._add(db, approver.id, NotificationType.APPROVAL_REQUIRED, title, message, request.id)
            db.commit()
        except Exception as e:
            self._discard(db, "approval required", e)
            return []

        logger.info(f"Notified {len(approvers)} approver(s) for request {request.id}")
        return approvers

    async def notify_request_approved(
        self,
        db: Session,
        request: ResourceRequest,
        approver_name: str,
        comment: Optional[str] = None
    ) -> bool:
        """Notify the requester that their request was approved"""
        try:
            if request.status == RequestStatus.APPROVED:
                message = f"Your request '{request.title}' has been fully approved by {approver_name}."
            else:
                message = f"Your request '{request.title}' was approved by {approver_name} and is awaiting admin approval."
            if comment:
                message += f" Comment: {comment}"

            self._add(db, request.user_id, NotificationType.REQUEST_APPROVED, "Request Approved", message, request.id)
            db.commit()
            return True
        except Exception as e:
            self._discard(db, "approval", e)
            return False

    async def notify_request_rejected(
        self,
        db: Session,
        request: ResourceRequest,
        rejected_by: str,
        reason: Optional[str] = None
    ) -> bool:
        """Notify the requester that their request was rejected"""
        try:
            message = f"Your request '{request.title}' was rejected by {rejected_by}."
            if reason:
                message += f" Reason: {reason}"

            self._add(db, request.user_id, NotificationType.REQUEST_REJECTED, "Request Rejected", message, request.id)
            db.commit()
            return True
        except Exception as e:
            self._discard(db, "rejection", e)
            return False

    async def notify_payment_processed(self, db: Session, request: ResourceRequest, payment: Payment) -> bool:
        """Notify the requester that finance paid their request"""
        try:
            message = (
                f"Payment of {format_currency(payment.amount_paid)} for '{request.title}' "
                f"was processed via {enum_value(payment.payment_method).replace('_', ' ')}."
            )
            self._add(db, request.user_id, NotificationType.PAYMENT_PROCESSED, "Payment Processed", message, request.id)
            db.commit()
            return True
        except Exception as e:
            self._discard(db, "payment", e)
            return False


# Create singleton instance
notification_service = NotificationService()
