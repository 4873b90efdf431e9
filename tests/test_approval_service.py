"""
Approval Service Tests
Decision records, status progression, queues and history
"""

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from r2p.models.approval import Approval, ApprovalDecision
from r2p.models.request import ResourceRequest, RequestStatus
from r2p.models.user import UserRole
from r2p.services.approval_service import approval_service
from r2p.utils.exceptions import ConflictError, NotFoundError


@pytest.fixture
def make_request(db, users):
    """Insert a request directly with the given owner and status"""

    def _make(owner_key="employee", status=RequestStatus.SUBMITTED, title="Monitor"):
        owner = users[owner_key]
        request = ResourceRequest(
            user_id=owner.id,
            department_id=owner.department_id,
            title=title,
            resource_name="27in monitor",
            resource_type="hardware",
            quantity=1,
            estimated_cost=300.0,
            status=status
        )
        db.add(request)
        db.commit()
        db.refresh(request)
        return request

    return _make


class TestApprove:
    """Approval progression"""

    @pytest.mark.asyncio
    async def test_manager_then_admin(self, db, users, make_request):
        """Submitted -> semi_approved -> approved with two decision rows"""
        request = make_request()

        result = await approval_service.approve(db, request.id, users["manager"].id, None, UserRole.MANAGER)
        assert result["new_status"] == RequestStatus.SEMI_APPROVED
        assert result["request"].status == RequestStatus.SEMI_APPROVED
        assert result["approval"].comment == "Approved"
        assert result["approval"].approver_role == UserRole.MANAGER

        result = await approval_service.approve(db, request.id, users["admin"].id, "Budget ok", "ADMIN")
        assert result["new_status"] == RequestStatus.APPROVED
        assert result["approval"].comment == "Budget ok"

        approvals = db.query(Approval).filter(Approval.request_id == request.id).all()
        assert len(approvals) == 2
        assert all(a.decision == ApprovalDecision.APPROVED for a in approvals)

    @pytest.mark.asyncio
    async def test_other_roles_leave_status_unchanged(self, db, users, make_request):
        request = make_request()

        result = await approval_service.approve(db, request.id, users["finance"].id, None, UserRole.FINANCE)

        assert result["new_status"] == RequestStatus.SUBMITTED
        assert result["request"].status == RequestStatus.SUBMITTED

    @pytest.mark.asyncio
    async def test_stale_expected_status_conflicts(self, db, users, make_request):
        """A status changed since the policy check writes nothing"""
        request = make_request(status=RequestStatus.SEMI_APPROVED)

        with pytest.raises(ConflictError):
            await approval_service.approve(
                db, request.id, users["manager"].id, None, UserRole.MANAGER,
                expected_status=RequestStatus.SUBMITTED
            )

        assert db.query(Approval).count() == 0
        db.refresh(request)
        assert request.status == RequestStatus.SEMI_APPROVED

    @pytest.mark.asyncio
    async def test_missing_request(self, db, users):
        with pytest.raises(NotFoundError):
            await approval_service.approve(db, 9999, users["admin"].id, None, UserRole.ADMIN)


class TestReject:
    """Rejection"""

    @pytest.mark.asyncio
    async def test_reject_records_default_comment(self, db, users, make_request):
        request = make_request(status=RequestStatus.SEMI_APPROVED)

        result = await approval_service.reject(db, request.id, users["admin"].id, None, UserRole.ADMIN)

        assert result["request"].status == RequestStatus.REJECTED
        assert result["approval"].decision == ApprovalDecision.REJECTED
        assert result["approval"].comment == "Rejected"

    @pytest.mark.asyncio
    async def test_reject_without_role(self, db, users, make_request):
        request = make_request()

        result = await approval_service.reject(db, request.id, users["manager"].id, "No budget")

        assert result["approval"].approver_role is None
        assert result["approval"].comment == "No budget"


class TestHistory:
    """Decision history"""

    @pytest.mark.asyncio
    async def test_history_newest_first_with_total(self, db, users, make_request):
        request = make_request()
        await approval_service.approve(db, request.id, users["manager"].id, "first", UserRole.MANAGER)
        await approval_service.approve(db, request.id, users["admin"].id, "second", UserRole.ADMIN)

        approvals, total = await approval_service.get_approval_history(db, request.id)
        assert total == 2
        assert [a.comment for a in approvals] == ["second", "first"]

        page, total = await approval_service.get_approval_history(db, request.id, skip=1, limit=1)
        assert total == 2
        assert [a.comment for a in page] == ["first"]


class TestPendingQueues:
    """Review queues per role"""

    @pytest.mark.asyncio
    async def test_manager_queue(self, db, users, departments, make_request):
        """Own department, submitted, not authored by a manager"""
        mine = make_request(title="mine")
        make_request(owner_key="peer_manager", title="peer")
        make_request(owner_key="ops_employee", title="other department")
        make_request(status=RequestStatus.DRAFT, title="draft")

        requests, total = await approval_service.get_pending_approvals(
            db, UserRole.MANAGER, departments["it"].id
        )

        assert total == 1
        assert requests[0].id == mine.id

    @pytest.mark.asyncio
    async def test_admin_queue(self, db, users, departments, make_request):
        semi = make_request(status=RequestStatus.SEMI_APPROVED, title="semi")
        escalated = make_request(owner_key="ops_manager", status=RequestStatus.SEMI_APPROVED, title="escalated")
        make_request(title="submitted")

        requests, total = await approval_service.get_pending_approvals(db, "Admin", None)

        assert total == 2
        assert {r.id for r in requests} == {semi.id, escalated.id}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role", [UserRole.EMPLOYEE, UserRole.FINANCE, UserRole.DEPARTMENT_HEAD])
    async def test_other_roles_have_empty_queue(self, db, users, departments, make_request, role):
        make_request()
        make_request(status=RequestStatus.SEMI_APPROVED)

        requests, total = await approval_service.get_pending_approvals(db, role, departments["it"].id)

        assert total == 0
        assert requests == []
