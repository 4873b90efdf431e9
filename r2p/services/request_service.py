"""
Request Service
Business logic for the resource request lifecycle
"""

from sqlalchemy.orm import Session
from typing import Optional, Dict, Any, List, Tuple
from datetime import datetime

from r2p.models.request import (
    ResourceRequest,
    RequestStatus,
    RequestPriority,
    EDITABLE_FIELDS,
    SUBMITTED_EDITABLE_FIELDS,
)
from r2p.models.approval import Approval
from r2p.models.department import Department
from r2p.models.user import User, UserRole
from r2p.services.audit_service import record_audit
from r2p.services.policy_service import entry_status_for
from r2p.utils.exceptions import ConflictError, NotFoundError, InvalidTransitionError
from r2p.utils.helpers import enum_value, provided_fields
from r2p.utils.logger import setup_logger

logger = setup_logger()


def conditional_status_update(
    db: Session,
    request_id: int,
    expected_status: RequestStatus,
    values: Dict[str, Any]
) -> None:
    """
    Update a request only if its status is still the one the caller checked

    Does not commit. On a lost race the transaction is rolled back.

    Raises:
        ConflictError: If the stored status no longer matches expected_status
    """
    values = dict(values)
    values.setdefault("updated_at", datetime.utcnow())

    updated = db.query(ResourceRequest).filter(
        ResourceRequest.id == request_id,
        ResourceRequest.status == expected_status
    ).update(values, synchronize_session=False)

    if updated != 1:
        db.rollback()
        logger.warning(
            f"Stale write on request {request_id}: expected status "
            f"{enum_value(expected_status)}"
        )
        raise ConflictError(
            "Request was modified by another action. Reload it and try again."
        )


class RequestService:
    """Service for request lifecycle business logic"""

    def get_request(self, db: Session, request_id: int) -> Optional[ResourceRequest]:
        """Load a request with fresh state from the database"""
        return db.query(ResourceRequest).populate_existing().filter(
            ResourceRequest.id == request_id
        ).first()

    def get_request_or_404(self, db: Session, request_id: int) -> ResourceRequest:
        """
        Load a request or fail

        Raises:
            NotFoundError: If no request has this id
        """
        request = self.get_request(db, request_id)
        if not request:
            raise NotFoundError(f"Request not found with ID: {request_id}")
        return request

    async def create_request(
        self,
        db: Session,
        data: Dict[str, Any],
        user: User
    ) -> ResourceRequest:
        """
        Create a request owned by the given user

        Manager-authored requests start semi-approved; everyone else's start
        submitted. ``save_as_draft`` starts the request in draft instead.

        Args:
            db: Database session
            data: Validated request fields (title, resource_name, ...)
            user: Creating user

        Returns:
            ResourceRequest: Created request

        Raises:
            NotFoundError: If the target department does not exist
        """
        department_id = data.get("department_id") or user.department_id
        department = db.get(Department, department_id) if department_id else None
        if not department:
            raise NotFoundError(f"Department not found with ID: {department_id}")

        if data.get("save_as_draft"):
            initial_status = RequestStatus.DRAFT
        else:
            initial_status = entry_status_for(user.role)

        request = ResourceRequest(
            user_id=user.id,
            department_id=department.id,
            title=data["title"],
            resource_name=data["resource_name"],
            resource_type=data["resource_type"],
            description=data.get("description"),
            quantity=data["quantity"],
            estimated_cost=data["estimated_cost"],
            priority=data.get("priority") or RequestPriority.MEDIUM,
            status=initial_status
        )
        db.add(request)
        db.flush()

        record_audit(
            db,
            user_id=user.id,
            action="create_request",
            entity_type="request",
            entity_id=request.id,
            description=f"Created request '{request.title}' in department {department.name}",
            changes={"status": initial_status.value}
        )

        db.commit()
        db.refresh(request)

        logger.info(
            f"Request {request.id} created by user {user.id} "
            f"({enum_value(user.role)}) with status {initial_status.value}"
        )
        return request

    async def get_my_requests(
        self,
        db: Session,
        user_id: int,
        status: Optional[RequestStatus] = None,
        skip: int = 0,
        limit: int = 20
    ) -> Tuple[List[ResourceRequest], int]:
        """
        Get requests created by a user, newest first

        Returns:
            Tuple of (requests, total)
        """
        query = db.query(ResourceRequest).filter(ResourceRequest.user_id == user_id)
        if status:
            query = query.filter(ResourceRequest.status == status)

        total = query.count()
        requests = query.order_by(
            ResourceRequest.created_at.desc(), ResourceRequest.id.desc()
        ).offset(skip).limit(limit).all()
        return requests, total

    async def get_all_requests(
        self,
        db: Session,
        user_role: UserRole,
        user_department_id: Optional[int],
        status: Optional[RequestStatus] = None,
        department_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 20
    ) -> Tuple[List[ResourceRequest], int]:
        """
        Get requests visible to an approver role, newest first

        Managers only ever see their own department, whatever filter they pass.

        Returns:
            Tuple of (requests, total)
        """
        query = db.query(ResourceRequest)

        if UserRole.normalize(user_role) == UserRole.MANAGER:
            query = query.filter(ResourceRequest.department_id == user_department_id)
        elif department_id:
            query = query.filter(ResourceRequest.department_id == department_id)

        if status:
            query = query.filter(ResourceRequest.status == status)

        total = query.count()
        requests = query.order_by(
            ResourceRequest.created_at.desc(), ResourceRequest.id.desc()
        ).offset(skip).limit(limit).all()
        return requests, total

    async def get_department_requests(
        self,
        db: Session,
        department_id: int,
        status: Optional[RequestStatus] = None,
        skip: int = 0,
        limit: int = 20
    ) -> Tuple[List[ResourceRequest], int]:
        """Get a department's requests, newest first"""
        query = db.query(ResourceRequest).filter(ResourceRequest.department_id == department_id)
        if status:
            query = query.filter(ResourceRequest.status == status)

        total = query.count()
        requests = query.order_by(
            ResourceRequest.created_at.desc(), ResourceRequest.id.desc()
        ).offset(skip).limit(limit).all()
        return requests, total

    def check_permission(self, request: ResourceRequest, user: User) -> bool:
        """
        Check whether a user may see and act on a request

        Owner, a manager of the request's department, admins and finance.
        """
        role = UserRole.normalize(user.role)

        is_owner = request.user_id == user.id
        is_manager_of_dept = role == UserRole.MANAGER and request.department_id == user.department_id
        is_admin = role == UserRole.ADMIN
        is_finance = role == UserRole.FINANCE

        return is_owner or is_manager_of_dept or is_admin or is_finance

    async def update_request(
        self,
        db: Session,
        request: ResourceRequest,
        fields: Dict[str, Any],
        actor_id: int
    ) -> Tuple[ResourceRequest, List[str]]:
        """
        Apply an owner's edits

        Once submitted only the description may change; other provided fields
        are ignored and reported back. Drafts and rejected requests accept
        every editable field.

        Args:
            db: Database session
            request: Request to update (status already checked by policy)
            fields: Provided fields; None values are treated as absent
            actor_id: Acting user

        Returns:
            Tuple of (updated request, names of ignored fields)

        Raises:
            InvalidTransitionError: If the status does not allow edits
            ConflictError: If the status changed concurrently
        """
        current_status = request.status
        supplied = provided_fields(fields, EDITABLE_FIELDS)

        if current_status == RequestStatus.SUBMITTED:
            allowed = SUBMITTED_EDITABLE_FIELDS
        elif current_status in (RequestStatus.DRAFT, RequestStatus.REJECTED):
            allowed = EDITABLE_FIELDS
        else:
            raise InvalidTransitionError(
                f"Cannot update request with status: {enum_value(current_status)}"
            )

        changes = {key: value for key, value in supplied.items() if key in allowed}
        ignored = sorted(key for key in supplied if key not in allowed)

        if ignored:
            logger.info(
                f"Request {request.id} is {enum_value(current_status)}; "
                f"ignoring fields {ignored}"
            )

        if changes:
            conditional_status_update(db, request.id, current_status, changes)
            record_audit(
                db,
                user_id=actor_id,
                action="update_request",
                entity_type="request",
                entity_id=request.id,
                description=f"Updated request {request.id}",
                changes={key: enum_value(value) for key, value in changes.items()}
            )
            db.commit()

        db.refresh(request)
        return request, ignored

    async def delete_request(
        self,
        db: Session,
        request: ResourceRequest,
        actor_id: int
    ) -> int:
        """
        Hard delete a request and its decision history

        Returns:
            int: Id of the deleted request

        Raises:
            ConflictError: If the status changed concurrently
        """
        request_id = request.id
        expected_status = request.status

        db.query(Approval).filter(Approval.request_id == request_id).delete(synchronize_session=False)
        deleted = db.query(ResourceRequest).filter(
            ResourceRequest.id == request_id,
            ResourceRequest.status == expected_status
        ).delete(synchronize_session=False)

        if deleted != 1:
            db.rollback()
            raise ConflictError("Request was modified by another action. Reload it and try again.")

        record_audit(
            db,
            user_id=actor_id,
            action="delete_request",
            entity_type="request",
            entity_id=request_id,
            description=f"Deleted request {request_id} in status {enum_value(expected_status)}"
        )
        db.commit()

        logger.info(f"Request {request_id} deleted by user {actor_id}")
        return request_id

    async def submit_request(
        self,
        db: Session,
        request: ResourceRequest,
        actor_id: int
    ) -> ResourceRequest:
        """
        Submit a draft or resubmit a rejected request

        The request re-enters review at the tier its owner's role requires.
        """
        new_status = entry_status_for(request.owner_role)
        return await self._change_status(db, request, new_status, actor_id, "submit_request")

    async def cancel_request(
        self,
        db: Session,
        request: ResourceRequest,
        actor_id: int
    ) -> ResourceRequest:
        """Cancel a request; cancellation ends in the rejected status"""
        return await self._change_status(
            db, request, RequestStatus.REJECTED, actor_id, "cancel_request"
        )

    async def _change_status(
        self,
        db: Session,
        request: ResourceRequest,
        new_status: RequestStatus,
        actor_id: int,
        action: str
    ) -> ResourceRequest:
        old_status = request.status
        conditional_status_update(db, request.id, old_status, {"status": new_status})
        record_audit(
            db,
            user_id=actor_id,
            action=action,
            entity_type="request",
            entity_id=request.id,
            description=f"Request {request.id}: {enum_value(old_status)} -> {new_status.value}",
            changes={"from": enum_value(old_status), "to": new_status.value}
        )
        db.commit()
        db.refresh(request)

        logger.info(f"Request {request.id} moved to {new_status.value} by user {actor_id}")
        return request

    def get_department_managers(self, db: Session, request: ResourceRequest) -> List[str]:
        """
        Names of the people who review this request's department

        Falls back to the first admin when the department has no managers.
        """
        names = [manager.full_name for manager in request.department.managers] if request.department else []
        if names:
            return names

        admin = db.query(User).filter(
            User.role == UserRole.ADMIN,
            User.is_active == True
        ).order_by(User.id).first()
        return [admin.full_name] if admin else []


# Create singleton instance
request_service = RequestService()
