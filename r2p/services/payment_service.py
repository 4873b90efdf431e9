"""
Payment Service
Finance processing of approved requests
"""

from sqlalchemy.orm import Session
from sqlalchemy import func
from typing import Optional, Dict, Any, List, Tuple
from datetime import datetime

from r2p.models.payment import Payment, PaymentMethod
from r2p.models.request import ResourceRequest, RequestStatus
from r2p.services.audit_service import record_audit
from r2p.services.request_service import conditional_status_update
from r2p.utils.exceptions import ConflictError, InvalidTransitionError, PaymentValidationError
from r2p.utils.helpers import enum_value, format_currency
from r2p.utils.logger import setup_logger

logger = setup_logger()


class PaymentService:
    """Service for payment business logic"""

    def validate_payment(self, request: ResourceRequest, amount_paid: float) -> None:
        """
        Check that a request can be paid for the given amount

        Raises:
            InvalidTransitionError: If the request is not approved
            PaymentValidationError: If the amount exceeds the estimated cost
        """
        if request.status != RequestStatus.APPROVED:
            raise InvalidTransitionError(
                f"Request must be approved before payment. Current status: {enum_value(request.status)}"
            )

        if amount_paid > request.estimated_cost:
            raise PaymentValidationError(
                f"Payment amount ({format_currency(amount_paid)}) cannot exceed "
                f"estimated cost ({format_currency(request.estimated_cost)})"
            )

    async def process_payment(
        self,
        db: Session,
        request: ResourceRequest,
        finance_officer_id: int,
        amount_paid: float,
        payment_method: PaymentMethod
    ) -> Payment:
        """
        Record a payment and mark the request paid

        Args:
            db: Database session
            request: Approved request
            finance_officer_id: Processing finance user
            amount_paid: Amount paid
            payment_method: bank, mobile_money or cash

        Returns:
            Payment: Created payment

        Raises:
            ConflictError: If the request already has a payment, or its status changed
        """
        existing = db.query(Payment).filter(Payment.request_id == request.id).first()
        if existing:
            raise ConflictError("Payment already exists for this request")

        self.validate_payment(request, amount_paid)

        payment = Payment(
            request_id=request.id,
            finance_officer_id=finance_officer_id,
            amount_paid=amount_paid,
            payment_method=payment_method,
            payment_date=datetime.utcnow()
        )

        conditional_status_update(db, request.id, RequestStatus.APPROVED, {"status": RequestStatus.PAID})
        db.add(payment)
        record_audit(
            db,
            user_id=finance_officer_id,
            action="process_payment",
            entity_type="request",
            entity_id=request.id,
            description=f"Paid {format_currency(amount_paid)} by {enum_value(payment_method)} for request {request.id}",
            changes={"from": RequestStatus.APPROVED.value, "to": RequestStatus.PAID.value}
        )
        db.commit()

        db.refresh(payment)
        db.refresh(request)

        logger.info(f"Payment {payment.id} processed for request {request.id} by user {finance_officer_id}")
        return payment

    async def get_pending_payments(
        self,
        db: Session,
        skip: int = 0,
        limit: int = 20
    ) -> Tuple[List[ResourceRequest], int]:
        """Approved requests waiting for payment, oldest first"""
        query = db.query(ResourceRequest).filter(ResourceRequest.status == RequestStatus.APPROVED)
        total = query.count()
        requests = query.order_by(
            ResourceRequest.updated_at.asc(), ResourceRequest.id.asc()
        ).offset(skip).limit(limit).all()
        return requests, total

    async def get_payment_history(
        self,
        db: Session,
        payment_method: Optional[PaymentMethod] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        skip: int = 0,
        limit: int = 20
    ) -> Dict[str, Any]:
        """
        Get processed payments, newest first

        Returns:
            dict: payments, total, total_amount
        """
        query = db.query(Payment)
        if payment_method:
            query = query.filter(Payment.payment_method == payment_method)
        if start_date:
            query = query.filter(Payment.payment_date >= start_date)
        if end_date:
            query = query.filter(Payment.payment_date <= end_date)

        total = query.count()
        total_amount = query.with_entities(func.coalesce(func.sum(Payment.amount_paid), 0)).scalar()
        payments = query.order_by(
            Payment.payment_date.desc(), Payment.id.desc()
        ).offset(skip).limit(limit).all()

        return {
            "payments": payments,
            "total": total,
            "total_amount": float(total_amount or 0)
        }

    async def get_payment_by_id(self, db: Session, payment_id: int) -> Optional[Payment]:
        return db.query(Payment).filter(Payment.id == payment_id).first()


# Create singleton instance
payment_service = PaymentService()
