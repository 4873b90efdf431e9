"""
Approval Service
Records approve/reject decisions and moves requests through review tiers
"""

from sqlalchemy.orm import Session
from sqlalchemy import false
from typing import Optional, Dict, Any, List, Tuple

from r2p.models.approval import Approval, ApprovalDecision
from r2p.models.request import ResourceRequest, RequestStatus
from r2p.models.user import User, UserRole
from r2p.services.audit_service import record_audit
from r2p.services.policy_service import next_status_after_approval
from r2p.services.request_service import conditional_status_update
from r2p.utils.exceptions import NotFoundError
from r2p.utils.helpers import enum_value
from r2p.utils.logger import setup_logger

logger = setup_logger()


class ApprovalService:
    """Service for approval business logic"""

    def _load(self, db: Session, request_id: int) -> ResourceRequest:
        request = db.query(ResourceRequest).populate_existing().filter(
            ResourceRequest.id == request_id
        ).first()
        if not request:
            raise NotFoundError(f"Request not found with ID: {request_id}")
        return request

    async def approve(
        self,
        db: Session,
        request_id: int,
        approver_id: int,
        comment: Optional[str],
        actor_role,
        expected_status: Optional[RequestStatus] = None
    ) -> Dict[str, Any]:
        """
        Approve a request

        The caller has already run the approval policy against
        ``expected_status``. The Approval row and the status change commit
        together, and only if the request is still in that status.

        Args:
            db: Database session
            request_id: Request ID
            approver_id: Approving user ID
            comment: Optional comment, defaults to "Approved"
            actor_role: Approver's role
            expected_status: Status the policy check saw (defaults to current)

        Returns:
            dict: approval, request, new_status

        Raises:
            NotFoundError: If the request does not exist
            ConflictError: If the status changed since the policy check
        """
        request = self._load(db, request_id)
        expected = expected_status or request.status
        role = UserRole.normalize(actor_role)

        new_status = next_status_after_approval(role) or expected
        if new_status == expected and role not in (UserRole.MANAGER, UserRole.ADMIN):
            logger.warning(
                f"Approval by {role.value} {approver_id} on request {request_id} leaves status unchanged"
            )

        approval = Approval(
            request_id=request_id,
            approver_id=approver_id,
            approver_role=role,
            decision=ApprovalDecision.APPROVED,
            comment=comment or "Approved"
        )

        conditional_status_update(db, request_id, expected, {"status": new_status})
        db.add(approval)
        record_audit(
            db,
            user_id=approver_id,
            action="approve_request",
            entity_type="request",
            entity_id=request_id,
            description=f"{role.value} approved request {request_id}",
            changes={"from": enum_value(expected), "to": new_status.value}
        )
        db.commit()

        db.refresh(approval)
        db.refresh(request)

        logger.info(
            f"Request {request_id} approved by user {approver_id} ({role.value}): "
            f"{enum_value(expected)} -> {new_status.value}"
        )

        return {
            "approval": approval,
            "request": request,
            "new_status": new_status
        }

    async def reject(
        self,
        db: Session,
        request_id: int,
        approver_id: int,
        comment: Optional[str],
        actor_role=None,
        expected_status: Optional[RequestStatus] = None
    ) -> Dict[str, Any]:
        """
        Reject a request

        Returns:
            dict: approval, request

        Raises:
            NotFoundError: If the request does not exist
            ConflictError: If the status changed since the policy check
        """
        request = self._load(db, request_id)
        expected = expected_status or request.status
        role = UserRole.normalize(actor_role) if actor_role else None

        approval = Approval(
            request_id=request_id,
            approver_id=approver_id,
            approver_role=role,
            decision=ApprovalDecision.REJECTED,
            comment=comment or "Rejected"
        )

        conditional_status_update(db, request_id, expected, {"status": RequestStatus.REJECTED})
        db.add(approval)
        record_audit(
            db,
            user_id=approver_id,
            action="reject_request",
            entity_type="request",
            entity_id=request_id,
            description=f"Request {request_id} rejected: {approval.comment}",
            changes={"from": enum_value(expected), "to": RequestStatus.REJECTED.value}
        )
        db.commit()

        db.refresh(approval)
        db.refresh(request)

        logger.info(f"Request {request_id} rejected by user {approver_id}")

        return {
            "approval": approval,
            "request": request
        }

    async def get_approval_history(
        self,
        db: Session,
        request_id: int,
        skip: int = 0,
        limit: int = 20
    ) -> Tuple[List[Approval], int]:
        """
        Get decisions recorded on a request, newest first

        Returns:
            Tuple of (approvals, total)
        """
        query = db.query(Approval).filter(Approval.request_id == request_id)
        total = query.count()
        approvals = query.order_by(
            Approval.decision_date.desc(), Approval.id.desc()
        ).offset(skip).limit(limit).all()
        return approvals, total

    async def get_pending_approvals(
        self,
        db: Session,
        role,
        department_id: Optional[int],
        skip: int = 0,
        limit: int = 20
    ) -> Tuple[List[ResourceRequest], int]:
        """
        Get the review queue for an approver role

        Managers see submitted requests from their department, excluding
        requests authored by other managers. Admins see every semi-approved
        request. Any other role gets an empty queue.

        Returns:
            Tuple of (requests, total)
        """
        role = UserRole.normalize(role)
        query = db.query(ResourceRequest)

        if role == UserRole.MANAGER:
            query = query.join(User, ResourceRequest.user_id == User.id).filter(
                ResourceRequest.status == RequestStatus.SUBMITTED,
                ResourceRequest.department_id == department_id,
                User.role != UserRole.MANAGER
            )
        elif role == UserRole.ADMIN:
            query = query.filter(ResourceRequest.status == RequestStatus.SEMI_APPROVED)
        else:
            query = query.filter(false())

        total = query.count()
        requests = query.order_by(
            ResourceRequest.created_at.asc(), ResourceRequest.id.asc()
        ).offset(skip).limit(limit).all()
        return requests, total


# Create singleton instance
approval_service = ApprovalService()
