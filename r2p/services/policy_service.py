"""
Policy Service
Pure decision functions for request status transitions and approvals

Nothing here touches the database: callers pass the request (anything with
``status``, ``department_id`` and ``owner_role``) and the actor's role and
department, and get back a PolicyResult.
"""

from typing import NamedTuple, Optional

from r2p.models.request import RequestStatus
from r2p.models.user import UserRole
from r2p.utils.exceptions import PermissionDeniedError, InvalidTransitionError


PERMISSION_DENIED = "permission_denied"
INVALID_TRANSITION = "invalid_transition"


class PolicyResult(NamedTuple):
    """Outcome of a policy check"""
    allowed: bool
    reason: Optional[str] = None
    kind: Optional[str] = None


ALLOWED = PolicyResult(True)


# Statuses from which each owner action is permitted
TRANSITION_TABLE = {
    "update": frozenset({RequestStatus.DRAFT, RequestStatus.SUBMITTED, RequestStatus.REJECTED}),
    "delete": frozenset({RequestStatus.DRAFT, RequestStatus.SUBMITTED, RequestStatus.REJECTED}),
    "submit": frozenset({RequestStatus.DRAFT, RequestStatus.REJECTED}),
    "cancel": frozenset({RequestStatus.DRAFT, RequestStatus.SUBMITTED, RequestStatus.SEMI_APPROVED}),
}

MANAGER_APPROVABLE = frozenset({RequestStatus.DRAFT, RequestStatus.SUBMITTED})
ADMIN_APPROVABLE = frozenset({RequestStatus.SEMI_APPROVED})
REJECTABLE = frozenset({RequestStatus.SUBMITTED, RequestStatus.SEMI_APPROVED})


def _status(value) -> Optional[RequestStatus]:
    """Coerce a status member or raw string; unknown values give None"""
    if isinstance(value, RequestStatus):
        return value
    try:
        return RequestStatus(str(value).strip().lower())
    except ValueError:
        return None


def _role(value) -> Optional[UserRole]:
    if value is None:
        return None
    try:
        return UserRole.normalize(value)
    except ValueError:
        return None


def _label(status) -> str:
    status = _status(status) or status
    return status.value if isinstance(status, RequestStatus) else str(status)


def _denied(reason: str, kind: str) -> PolicyResult:
    return PolicyResult(False, reason, kind)


def can_transition(current_status, action: str) -> PolicyResult:
    """
    Check whether an owner action is allowed from the current status

    Args:
        current_status: RequestStatus member or its string value
        action: One of update, delete, submit, cancel

    Returns:
        PolicyResult: denied results name the status and the action
    """
    allowed_statuses = TRANSITION_TABLE.get(action, frozenset())
    if _status(current_status) in allowed_statuses:
        return ALLOWED

    return _denied(
        f"Cannot {action} request with status: {_label(current_status)}",
        INVALID_TRANSITION
    )


def can_approve(request, actor_role, actor_department_id) -> PolicyResult:
    """
    Check whether an actor may approve a request

    Managers approve draft/submitted requests from their own department,
    except requests authored by another manager, which go straight to an
    admin. Admins approve requests that are already semi-approved.

    Args:
        request: Object exposing status, department_id and owner_role
        actor_role: Role of the acting user (any casing)
        actor_department_id: Department of the acting user

    Returns:
        PolicyResult
    """
    role = _role(actor_role)
    status = _status(request.status)

    if role == UserRole.MANAGER:
        if request.department_id != actor_department_id:
            return _denied(
                "You can only approve requests from your own department",
                PERMISSION_DENIED
            )

        if _role(request.owner_role) == UserRole.MANAGER:
            return _denied(
                "Manager requests require admin approval. "
                "You cannot approve requests from other managers.",
                PERMISSION_DENIED
            )

        if status not in MANAGER_APPROVABLE:
            return _denied(
                f"Request has already been {_label(request.status)}. "
                "You can only approve draft or submitted requests.",
                INVALID_TRANSITION
            )

    if role == UserRole.ADMIN and status not in ADMIN_APPROVABLE:
        return _denied(
            f"Request status is {_label(request.status)}. "
            "Admin can only approve requests already approved by a manager.",
            INVALID_TRANSITION
        )

    return ALLOWED


def can_reject(request, actor_role, actor_department_id) -> PolicyResult:
    """
    Check whether an actor may reject a request

    Department scoping applies to managers only; either role may reject
    submitted or semi-approved requests.
    """
    role = _role(actor_role)

    if role == UserRole.MANAGER and request.department_id != actor_department_id:
        return _denied(
            "You can only reject requests from your own department",
            PERMISSION_DENIED
        )

    if _status(request.status) not in REJECTABLE:
        return _denied(
            f"Cannot reject request with status: {_label(request.status)}. "
            "Only submitted or manager-approved requests can be rejected.",
            INVALID_TRANSITION
        )

    return ALLOWED


def next_status_after_approval(actor_role) -> Optional[RequestStatus]:
    """
    Status a request moves to when approved by the given role

    Returns:
        RequestStatus, or None when the role does not advance the request
    """
    role = _role(actor_role)
    if role == UserRole.MANAGER:
        return RequestStatus.SEMI_APPROVED
    if role == UserRole.ADMIN:
        return RequestStatus.APPROVED
    return None


def entry_status_for(owner_role) -> RequestStatus:
    """
    Status a request enters review with

    Manager-authored requests skip the manager tier and wait for an admin.
    """
    if _role(owner_role) == UserRole.MANAGER:
        return RequestStatus.SEMI_APPROVED
    return RequestStatus.SUBMITTED


def raise_for_denial(result: PolicyResult) -> None:
    """
    Turn a denied PolicyResult into the matching application error

    Raises:
        PermissionDeniedError: For authorization denials (403)
        InvalidTransitionError: For status denials (400)
    """
    if result.allowed:
        return
    if result.kind == PERMISSION_DENIED:
        raise PermissionDeniedError(result.reason)
    raise InvalidTransitionError(result.reason)
