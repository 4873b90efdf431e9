"""
Approval Routes
Approve/reject decisions, review queues and decision history
"""

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from r2p.config.database import get_db
from r2p.services.auth_service import auth_service
from r2p.services.approval_service import approval_service
from r2p.services.request_service import request_service
from r2p.services.email_service import email_service
from r2p.services.notification_service import (
    notification_service,
    queue_approval_required_emails,
    request_email_data,
    send_email_safely,
)
from r2p.services.policy_service import can_approve, can_reject, raise_for_denial
from r2p.models.user import User, UserRole
from r2p.models.request import RequestStatus
from r2p.schemas.approval import ApprovalCreate, ApprovalResponse
from r2p.schemas.request import serialize_request
from r2p.utils.exceptions import PermissionDeniedError
from r2p.utils.helpers import clamp_pagination, page_meta
from r2p.utils.logger import setup_logger

logger = setup_logger()
router = APIRouter()

require_approver = auth_service.require_role(UserRole.MANAGER, UserRole.ADMIN)


def _serialize_approval(approval) -> dict:
    return ApprovalResponse.model_validate(approval).model_dump(mode="json")


@router.post("/{request_id}/approve")
async def approve_request(
    request_id: int,
    payload: ApprovalCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_approver)
):
    """
    Approve a request

    A manager's approval moves a submitted request to semi-approved; an
    admin's approval of a semi-approved request makes it final.
    """
    request = request_service.get_request_or_404(db, request_id)
    raise_for_denial(can_approve(request, current_user.role, current_user.department_id))

    result = await approval_service.approve(
        db,
        request_id,
        current_user.id,
        payload.comment,
        current_user.role,
        expected_status=request.status
    )
    request = result["request"]
    approval = result["approval"]
    new_status = result["new_status"]

    await notification_service.notify_request_approved(db, request, current_user.full_name, approval.comment)
    if request.user:
        background_tasks.add_task(
            send_email_safely,
            email_service.send_approval_notification,
            request.user.email,
            request.user.full_name,
            request_email_data(request),
            current_user.full_name,
            UserRole.normalize(current_user.role).value,
            approval.comment
        )

    if new_status in (RequestStatus.SEMI_APPROVED, RequestStatus.APPROVED):
        approvers = await notification_service.notify_approval_required(db, request)
        queue_approval_required_emails(background_tasks, approvers, request)

    message = "Request fully approved" if new_status == RequestStatus.APPROVED else "Request approved, awaiting admin approval"
    return {
        "success": True,
        "message": message,
        "data": {
            "request": serialize_request(request),
            "approval": _serialize_approval(approval),
            "new_status": new_status.value
        }
    }


@router.post("/{request_id}/reject")
async def reject_request(
    request_id: int,
    payload: ApprovalCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_approver)
):
    """Reject a submitted or semi-approved request"""
    request = request_service.get_request_or_404(db, request_id)
    raise_for_denial(can_reject(request, current_user.role, current_user.department_id))

    result = await approval_service.reject(
        db,
        request_id,
        current_user.id,
        payload.comment,
        actor_role=current_user.role,
        expected_status=request.status
    )
    request = result["request"]
    approval = result["approval"]

    await notification_service.notify_request_rejected(db, request, current_user.full_name, approval.comment)
    if request.user:
        background_tasks.add_task(
            send_email_safely,
            email_service.send_rejection_notification,
            request.user.email,
            request.user.full_name,
            request_email_data(request),
            current_user.full_name,
            approval.comment
        )

    return {
        "success": True,
        "message": "Request rejected",
        "data": {
            "request": serialize_request(request),
            "approval": _serialize_approval(approval)
        }
    }


@router.get("/pending")
async def get_pending_approvals(
    skip: int = 0,
    limit: int = 20,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_approver)
):
    """Get requests waiting for the current user's review"""
    skip, limit = clamp_pagination(skip, limit)
    requests, total = await approval_service.get_pending_approvals(
        db, current_user.role, current_user.department_id, skip, limit
    )

    logger.info(f"{current_user.username} viewing {len(requests)} pending approvals")

    return {
        "success": True,
        "data": [serialize_request(r) for r in requests],
        "pagination": page_meta(total, skip, limit)
    }


@router.get("/{request_id}/history")
async def get_approval_history(
    request_id: int,
    skip: int = 0,
    limit: int = 20,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """Get the decisions recorded on a request, newest first"""
    request = request_service.get_request_or_404(db, request_id)
    if not request_service.check_permission(request, current_user):
        raise PermissionDeniedError("You do not have permission to access this request")

    skip, limit = clamp_pagination(skip, limit)
    approvals, total = await approval_service.get_approval_history(db, request_id, skip, limit)

    return {
        "success": True,
        "data": [_serialize_approval(a) for a in approvals],
        "pagination": page_meta(total, skip, limit)
    }
