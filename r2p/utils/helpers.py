"""
Helper Utilities
Common helper functions
"""

from typing import Dict, Any, List, Optional, Tuple
from enum import Enum
import math

from r2p.config.settings import settings


def format_currency(amount: float, currency: str = "USD") -> str:
    """
    Format amount as currency

    Args:
        amount: Amount to format
        currency: Currency code

    Returns:
        str: Formatted currency string
    """
    if currency == "USD":
        return f"${amount:,.2f}"
    return f"{currency} {amount:,.2f}"


def enum_value(value: Any) -> Any:
    """Return the raw value of an enum member, or the value unchanged"""
    return value.value if isinstance(value, Enum) else value


def clamp_pagination(skip: int = 0, limit: int = None) -> Tuple[int, int]:
    """
    Normalize skip/limit query parameters

    Args:
        skip: Number of records to skip
        limit: Page size, defaults to DEFAULT_PAGE_SIZE

    Returns:
        Tuple of (skip, limit) with limit capped at MAX_PAGE_SIZE
    """
    skip = max(0, skip or 0)
    if not limit or limit < 1:
        limit = settings.DEFAULT_PAGE_SIZE
    return skip, min(limit, settings.MAX_PAGE_SIZE)


def page_meta(total: int, skip: int, limit: int) -> Dict[str, Any]:
    """
    Build pagination metadata for list responses

    Args:
        total: Total number of matching records
        skip: Records skipped
        limit: Page size

    Returns:
        dict: total, skip, limit, pages, has_next, has_previous
    """
    return {
        "total": total,
        "skip": skip,
        "limit": limit,
        "pages": math.ceil(total / limit) if limit else 0,
        "has_next": skip + limit < total,
        "has_previous": skip > 0,
    }


def get_client_ip(request) -> str:
    """
    Get client IP address from request

    Args:
        request: FastAPI request object

    Returns:
        str: Client IP address
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    if request.client:
        return request.client.host

    return "unknown"


def provided_fields(values: Dict[str, Any], allowed: List[str]) -> Dict[str, Any]:
    """Keep only keys from `allowed` whose value is not None"""
    return {key: values[key] for key in allowed if values.get(key) is not None}


def mask_tail(value: Optional[str], visible: int = 4) -> Optional[str]:
    """Hide all but the last `visible` characters: '0123456789' -> '****6789'"""
    if not value:
        return value
    return f"****{value[-visible:]}"


def mask_email(value: Optional[str]) -> Optional[str]:
    """Keep the first two characters of the mailbox: 'jane.doe@x.com' -> 'ja***@x.com'"""
    if not value or "@" not in value:
        return value
    mailbox, domain = value.split("@", 1)
    return f"{mailbox[:2]}***@{domain}"
