"""
Payment Method Service
Per-user payout details with a single active default
"""

import re
from sqlalchemy.orm import Session
from typing import Optional, Dict, Any, List

from r2p.models.payment_method import UserPaymentMethod, PaymentMethodType
from r2p.services.audit_service import record_audit
from r2p.utils.exceptions import BadRequestError, NotFoundError
from r2p.utils.logger import setup_logger

logger = setup_logger()

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

DETAIL_FIELDS = (
    "bank_name",
    "account_number",
    "account_name",
    "paypal_email",
    "phone_number",
    "provider",
)


def validate_payment_method_data(method_type, data: Dict[str, Any]) -> None:
    """
    Check that the details required by a payment method type are present

    Raises:
        BadRequestError: With a message naming the missing or malformed detail
    """
    try:
        method_type = PaymentMethodType(method_type)
    except ValueError:
        raise BadRequestError("Invalid payment method type")

    if method_type == PaymentMethodType.BANK:
        if not (data.get("bank_name") and data.get("account_number") and data.get("account_name")):
            raise BadRequestError(
                "Bank name, account number, and account name are required for bank payment method"
            )
    elif method_type == PaymentMethodType.PAYPAL:
        email = data.get("paypal_email")
        if not email:
            raise BadRequestError("PayPal email is required for PayPal payment method")
        if not EMAIL_PATTERN.match(email):
            raise BadRequestError("Invalid PayPal email format")
    elif method_type == PaymentMethodType.MOBILE_MONEY:
        if not (data.get("phone_number") and data.get("provider")):
            raise BadRequestError(
                "Phone number and provider are required for mobile money payment method"
            )


class PaymentMethodService:
    """Service for a user's stored payment methods"""

    def _clear_default(self, db: Session, user_id: int, except_id: Optional[int] = None):
        query = db.query(UserPaymentMethod).filter(
            UserPaymentMethod.user_id == user_id,
            UserPaymentMethod.is_default == True
        )
        if except_id is not None:
            query = query.filter(UserPaymentMethod.id != except_id)
        query.update({UserPaymentMethod.is_default: False}, synchronize_session="fetch")

    async def create_payment_method(
        self,
        db: Session,
        user_id: int,
        data: Dict[str, Any]
    ) -> UserPaymentMethod:
        """
        Add a payment method; a new default replaces the previous one

        Raises:
            BadRequestError: Required details for the type are missing
        """
        validate_payment_method_data(data.get("type"), data)

        is_default = bool(data.get("is_default"))
        if is_default:
            self._clear_default(db, user_id)

        method = UserPaymentMethod(
            user_id=user_id,
            type=PaymentMethodType(data["type"]),
            is_default=is_default,
            **{field: data.get(field) for field in DETAIL_FIELDS}
        )
        db.add(method)
        db.flush()

        record_audit(
            db,
            user_id=user_id,
            action="create_payment_method",
            entity_type="payment_method",
            entity_id=method.id,
            description=f"Added {method.type.value} payment method"
        )
        db.commit()
        db.refresh(method)

        logger.info(f"Payment method {method.id} ({method.type.value}) added for user {user_id}")
        return method

    async def get_payment_methods(
        self,
        db: Session,
        user_id: int,
        include_inactive: bool = False
    ) -> List[UserPaymentMethod]:
        """Get a user's payment methods, default first then newest"""
        query = db.query(UserPaymentMethod).filter(UserPaymentMethod.user_id == user_id)
        if not include_inactive:
            query = query.filter(UserPaymentMethod.is_active == True)
        return query.order_by(
            UserPaymentMethod.is_default.desc(),
            UserPaymentMethod.created_at.desc(),
            UserPaymentMethod.id.desc()
        ).all()

    async def get_payment_method(
        self,
        db: Session,
        method_id: int,
        user_id: int,
        active_only: bool = False
    ) -> UserPaymentMethod:
        """
        Get one of the user's payment methods

        Raises:
            NotFoundError: No such method, or it belongs to someone else
        """
        query = db.query(UserPaymentMethod).filter(
            UserPaymentMethod.id == method_id,
            UserPaymentMethod.user_id == user_id
        )
        if active_only:
            query = query.filter(UserPaymentMethod.is_active == True)
        method = query.first()
        if not method:
            raise NotFoundError("Payment method not found")
        return method

    async def update_payment_method(
        self,
        db: Session,
        method_id: int,
        user_id: int,
        data: Dict[str, Any]
    ) -> UserPaymentMethod:
        """
        Update a payment method; absent fields stay as they are

        The merged details are validated against the resulting type.

        Raises:
            NotFoundError: Not the user's method
            BadRequestError: Merged details are incomplete, or an inactive
                method is made the default
        """
        method = await self.get_payment_method(db, method_id, user_id)
        changes = {key: value for key, value in data.items() if value is not None}

        merged = {field: getattr(method, field) for field in DETAIL_FIELDS}
        merged.update({key: changes[key] for key in DETAIL_FIELDS if key in changes})
        validate_payment_method_data(changes.get("type", method.type), merged)

        if changes.get("is_default"):
            if not method.is_active:
                raise BadRequestError("An inactive payment method cannot be the default")
            self._clear_default(db, user_id, except_id=method.id)

        for field, value in changes.items():
            setattr(method, field, PaymentMethodType(value) if field == "type" else value)

        record_audit(
            db,
            user_id=user_id,
            action="update_payment_method",
            entity_type="payment_method",
            entity_id=method.id,
            description=f"Updated payment method {method.id}",
            changes={"fields": sorted(changes)}
        )
        db.commit()
        db.refresh(method)
        return method

    async def delete_payment_method(self, db: Session, method_id: int, user_id: int) -> UserPaymentMethod:
        """Deactivate a payment method; it also stops being the default"""
        method = await self.get_payment_method(db, method_id, user_id)
        method.is_active = False
        method.is_default = False

        record_audit(
            db,
            user_id=user_id,
            action="delete_payment_method",
            entity_type="payment_method",
            entity_id=method.id,
            description=f"Removed payment method {method.id}"
        )
        db.commit()
        db.refresh(method)

        logger.info(f"Payment method {method.id} deactivated for user {user_id}")
        return method

    async def set_default_payment_method(self, db: Session, method_id: int, user_id: int) -> UserPaymentMethod:
        """
        Make an active payment method the user's default

        Raises:
            NotFoundError: Not the user's method, or inactive
        """
        method = await self.get_payment_method(db, method_id, user_id, active_only=True)
        self._clear_default(db, user_id, except_id=method.id)
        method.is_default = True

        record_audit(
            db,
            user_id=user_id,
            action="set_default_payment_method",
            entity_type="payment_method",
            entity_id=method.id,
            description=f"Set payment method {method.id} as default"
        )
        db.commit()
        db.refresh(method)
        return method

    async def get_default_payment_method(self, db: Session, user_id: int) -> Optional[UserPaymentMethod]:
        """Active default method, or None"""
        return db.query(UserPaymentMethod).filter(
            UserPaymentMethod.user_id == user_id,
            UserPaymentMethod.is_default == True,
            UserPaymentMethod.is_active == True
        ).first()


# Create singleton instance
payment_method_service = PaymentMethodService()
