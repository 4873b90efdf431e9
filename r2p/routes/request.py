"""
Resource Request Routes
Create, list, edit, submit and cancel resource requests
"""

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session
from typing import Optional

from r2p.config.database import get_db
from r2p.services.auth_service import auth_service
from r2p.services.request_service import request_service
from r2p.services.notification_service import notification_service, queue_approval_required_emails
from r2p.services.policy_service import can_transition, raise_for_denial
from r2p.models.user import User, UserRole
from r2p.models.request import ResourceRequest, RequestStatus
from r2p.schemas.request import RequestCreate, RequestUpdate, serialize_request
from r2p.utils.exceptions import PermissionDeniedError
from r2p.utils.helpers import clamp_pagination, page_meta
from r2p.utils.logger import setup_logger

logger = setup_logger()
router = APIRouter()

AWAITING_REVIEW = (RequestStatus.SUBMITTED, RequestStatus.SEMI_APPROVED)


async def _announce_for_review(
    db: Session,
    background_tasks: BackgroundTasks,
    request: ResourceRequest
) -> None:
    if request.status in AWAITING_REVIEW:
        approvers = await notification_service.notify_approval_required(db, request)
        queue_approval_required_emails(background_tasks, approvers, request)


def _visible_request(db: Session, request_id: int, current_user: User) -> ResourceRequest:
    request = request_service.get_request_or_404(db, request_id)
    if not request_service.check_permission(request, current_user):
        raise PermissionDeniedError("You do not have permission to access this request")
    return request


def _owned_request(db: Session, request_id: int, current_user: User, action: str) -> ResourceRequest:
    request = request_service.get_request_or_404(db, request_id)
    if request.user_id != current_user.id:
        raise PermissionDeniedError(f"You can only {action} your own requests")
    return request


def _listing(requests, total: int, skip: int, limit: int) -> dict:
    return {
        "success": True,
        "data": [serialize_request(r) for r in requests],
        "pagination": page_meta(total, skip, limit)
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_request(
    payload: RequestCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """
    Create a resource request

    Requests by managers enter review at the admin tier. Set
    ``save_as_draft`` to keep the request as a draft.
    """
    request = await request_service.create_request(db, payload.model_dump(), current_user)
    managers = request_service.get_department_managers(db, request)

    await _announce_for_review(db, background_tasks, request)

    message = "Request saved as draft" if request.status == RequestStatus.DRAFT else "Request created successfully"
    return {
        "success": True,
        "message": message,
        "data": serialize_request(request),
        "department_managers": managers
    }


@router.get("/my")
async def get_my_requests(
    status: Optional[RequestStatus] = None,
    skip: int = 0,
    limit: int = 20,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """Get requests created by the current user"""
    skip, limit = clamp_pagination(skip, limit)
    requests, total = await request_service.get_my_requests(db, current_user.id, status, skip, limit)
    return _listing(requests, total, skip, limit)


@router.get("")
async def get_all_requests(
    status: Optional[RequestStatus] = None,
    department_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 20,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.require_role(UserRole.MANAGER, UserRole.FINANCE, UserRole.ADMIN))
):
    """
    Get all requests

    Managers are limited to their own department.
    """
    skip, limit = clamp_pagination(skip, limit)
    requests, total = await request_service.get_all_requests(
        db,
        current_user.role,
        current_user.department_id,
        status=status,
        department_id=department_id,
        skip=skip,
        limit=limit
    )
    return _listing(requests, total, skip, limit)


@router.get("/department/{department_id}")
async def get_department_requests(
    department_id: int,
    status: Optional[RequestStatus] = None,
    skip: int = 0,
    limit: int = 20,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.require_role(
        UserRole.MANAGER, UserRole.DEPARTMENT_HEAD, UserRole.ADMIN
    ))
):
    """Get a department's requests; non-admins only see their own department"""
    if not current_user.has_role(UserRole.ADMIN) and current_user.department_id != department_id:
        raise PermissionDeniedError("You can only view requests from your own department")

    skip, limit = clamp_pagination(skip, limit)
    requests, total = await request_service.get_department_requests(db, department_id, status, skip, limit)
    return _listing(requests, total, skip, limit)


@router.get("/{request_id}")
async def get_request(
    request_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """Get a single request"""
    request = _visible_request(db, request_id, current_user)
    return {
        "success": True,
        "data": serialize_request(request),
        "department_managers": request_service.get_department_managers(db, request)
    }


@router.put("/{request_id}")
async def update_request(
    request_id: int,
    payload: RequestUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """
    Update a request

    Drafts and rejected requests accept every field. Submitted requests only
    accept a new description; other fields are reported in ``ignored_fields``.
    """
    request = _owned_request(db, request_id, current_user, "update")
    raise_for_denial(can_transition(request.status, "update"))

    request, ignored = await request_service.update_request(
        db, request, payload.model_dump(exclude_unset=True), current_user.id
    )

    message = "Request updated successfully"
    if ignored:
        message = "Only the description can be changed on a submitted request"
    return {
        "success": True,
        "message": message,
        "data": serialize_request(request),
        "ignored_fields": ignored
    }


@router.delete("/{request_id}")
async def delete_request(
    request_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """Delete a request that has not been approved yet"""
    request = _visible_request(db, request_id, current_user)
    raise_for_denial(can_transition(request.status, "delete"))

    deleted_id = await request_service.delete_request(db, request, current_user.id)
    return {
        "success": True,
        "message": "Request deleted successfully",
        "data": {"id": deleted_id}
    }


@router.post("/{request_id}/submit")
async def submit_request(
    request_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """Submit a draft, or resubmit a rejected request"""
    request = _owned_request(db, request_id, current_user, "submit")
    raise_for_denial(can_transition(request.status, "submit"))

    request = await request_service.submit_request(db, request, current_user.id)
    await _announce_for_review(db, background_tasks, request)

    return {
        "success": True,
        "message": "Request submitted successfully",
        "data": serialize_request(request)
    }


@router.post("/{request_id}/cancel")
async def cancel_request(
    request_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """Cancel a request before final approval"""
    request = _visible_request(db, request_id, current_user)
    raise_for_denial(can_transition(request.status, "cancel"))

    request = await request_service.cancel_request(db, request, current_user.id)
    return {
        "success": True,
        "message": "Request cancelled successfully",
        "data": serialize_request(request)
    }
