"""
Model registry
Importing this package registers every table on Base.metadata
"""

from r2p.models.user import User, UserRole
from r2p.models.department import Department, DepartmentManager
from r2p.models.request import ResourceRequest, RequestStatus, RequestPriority
from r2p.models.approval import Approval, ApprovalDecision
from r2p.models.payment import Payment, PaymentMethod
from r2p.models.payment_method import UserPaymentMethod, PaymentMethodType
from r2p.models.notification import Notification, NotificationType
from r2p.models.audit_log import AuditLog

__all__ = [
    "User",
    "UserRole",
    "Department",
    "DepartmentManager",
    "ResourceRequest",
    "RequestStatus",
    "RequestPriority",
    "Approval",
    "ApprovalDecision",
    "Payment",
    "PaymentMethod",
    "UserPaymentMethod",
    "PaymentMethodType",
    "Notification",
    "NotificationType",
    "AuditLog",
]
