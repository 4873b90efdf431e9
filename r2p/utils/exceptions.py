"""
Application Exceptions
Domain errors carrying the HTTP status they map to
"""

from fastapi import status


class AppError(Exception):
    """Base class for errors rendered by the application exception handler"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class PermissionDeniedError(AppError):
    """Actor is not authorized for the action, department or role"""
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You do not have permission to perform this action"


class InvalidTransitionError(AppError):
    """Action is not permitted from the request's current status"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid status transition"


class NotFoundError(AppError):
    """Referenced entity does not exist"""
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class ConflictError(AppError):
    """Duplicate entity or a concurrent change won the race"""
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class PaymentValidationError(AppError):
    """Payment payload breaks a payment rule"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid payment"


class BadRequestError(AppError):
    """Request payload is well-formed but not acceptable"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Bad request"
