"""
Payment Routes
Finance processing of approved requests
"""

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session
from typing import Optional
from datetime import datetime

from r2p.config.database import get_db
from r2p.services.auth_service import auth_service
from r2p.services.payment_service import payment_service
from r2p.services.request_service import request_service
from r2p.services.email_service import email_service
from r2p.services.notification_service import notification_service, request_email_data, send_email_safely
from r2p.models.user import User, UserRole
from r2p.models.payment import PaymentMethod
from r2p.schemas.payment import PaymentCreate, PaymentResponse
from r2p.schemas.request import serialize_request
from r2p.utils.exceptions import NotFoundError
from r2p.utils.helpers import clamp_pagination, page_meta
from r2p.utils.logger import setup_logger

logger = setup_logger()
router = APIRouter()

require_finance = auth_service.require_role(UserRole.FINANCE, UserRole.ADMIN)


def _serialize_payment(payment) -> dict:
    return PaymentResponse.model_validate(payment).model_dump(mode="json")


@router.get("/pending")
async def get_pending_payments(
    skip: int = 0,
    limit: int = 20,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_finance)
):
    """Approved requests waiting for payment"""
    skip, limit = clamp_pagination(skip, limit)
    requests, total = await payment_service.get_pending_payments(db, skip, limit)
    return {
        "success": True,
        "data": [serialize_request(r) for r in requests],
        "pagination": page_meta(total, skip, limit)
    }


@router.get("")
async def get_payment_history(
    payment_method: Optional[PaymentMethod] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    skip: int = 0,
    limit: int = 20,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_finance)
):
    """Processed payments, newest first, with the filtered total amount"""
    skip, limit = clamp_pagination(skip, limit)
    history = await payment_service.get_payment_history(
        db,
        payment_method=payment_method,
        start_date=start_date,
        end_date=end_date,
        skip=skip,
        limit=limit
    )
    return {
        "success": True,
        "data": [_serialize_payment(p) for p in history["payments"]],
        "total_amount": history["total_amount"],
        "pagination": page_meta(history["total"], skip, limit)
    }


@router.get("/{payment_id}")
async def get_payment(
    payment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_finance)
):
    """Get one payment"""
    payment = await payment_service.get_payment_by_id(db, payment_id)
    if not payment:
        raise NotFoundError(f"Payment not found with ID: {payment_id}")
    return {"success": True, "data": _serialize_payment(payment)}


@router.post("/{request_id}", status_code=status.HTTP_201_CREATED)
async def process_payment(
    request_id: int,
    payload: PaymentCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_finance)
):
    """
    Pay an approved request

    The amount may not exceed the request's estimated cost and a request is
    paid at most once.
    """
    request = request_service.get_request_or_404(db, request_id)

    payment = await payment_service.process_payment(
        db,
        request,
        current_user.id,
        payload.amount_paid,
        payload.payment_method
    )

    await notification_service.notify_payment_processed(db, request, payment)
    if request.user:
        background_tasks.add_task(
            send_email_safely,
            email_service.send_payment_notification,
            request.user.email,
            request.user.full_name,
            request_email_data(request),
            _serialize_payment(payment)
        )

    return {
        "success": True,
        "message": "Payment processed successfully",
        "data": {
            "payment": _serialize_payment(payment),
            "request": serialize_request(request)
        }
    }
