"""
Payment Method Routes
The current user's stored payout details
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from r2p.config.database import get_db
from r2p.services.auth_service import auth_service
from r2p.services.payment_method_service import payment_method_service
from r2p.models.user import User
from r2p.schemas.payment_method import PaymentMethodCreate, PaymentMethodUpdate, PaymentMethodResponse
from r2p.utils.exceptions import NotFoundError

router = APIRouter()


def _serialize_method(method) -> dict:
    return PaymentMethodResponse.model_validate(method).model_dump(mode="json")


@router.get("")
async def list_payment_methods(
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """List your payment methods, default first"""
    methods = await payment_method_service.get_payment_methods(db, current_user.id, include_inactive)
    return {
        "success": True,
        "message": "Payment methods retrieved successfully",
        "data": [_serialize_method(m) for m in methods]
    }


@router.get("/default")
async def get_default_payment_method(
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """Get your default payment method"""
    method = await payment_method_service.get_default_payment_method(db, current_user.id)
    if not method:
        raise NotFoundError("No default payment method found")
    return {
        "success": True,
        "message": "Default payment method retrieved successfully",
        "data": _serialize_method(method)
    }


@router.get("/{method_id}")
async def get_payment_method(
    method_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """Get one of your payment methods"""
    method = await payment_method_service.get_payment_method(db, method_id, current_user.id)
    return {
        "success": True,
        "message": "Payment method retrieved successfully",
        "data": _serialize_method(method)
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_payment_method(
    payload: PaymentMethodCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """
    Add a payment method

    - **bank**: bank_name, account_number, account_name
    - **paypal**: paypal_email
    - **mobile_money**: phone_number, provider
    """
    method = await payment_method_service.create_payment_method(db, current_user.id, payload.model_dump())
    return {
        "success": True,
        "message": "Payment method added successfully",
        "data": _serialize_method(method)
    }


@router.put("/{method_id}")
async def update_payment_method(
    method_id: int,
    payload: PaymentMethodUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """Update a payment method"""
    method = await payment_method_service.update_payment_method(
        db, method_id, current_user.id, payload.model_dump(exclude_unset=True)
    )
    return {
        "success": True,
        "message": "Payment method updated successfully",
        "data": _serialize_method(method)
    }


@router.patch("/{method_id}/set-default")
async def set_default_payment_method(
    method_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """Make an active payment method your default"""
    method = await payment_method_service.set_default_payment_method(db, method_id, current_user.id)
    return {
        "success": True,
        "message": "Default payment method set successfully",
        "data": _serialize_method(method)
    }


@router.delete("/{method_id}")
async def delete_payment_method(
    method_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """Remove a payment method (it is deactivated, not erased)"""
    method = await payment_method_service.delete_payment_method(db, method_id, current_user.id)
    return {
        "success": True,
        "message": "Payment method deleted successfully",
        "data": _serialize_method(method)
    }
