"""
Department Tests
Department CRUD and manager assignment endpoints
"""

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from r2p.models.audit_log import AuditLog
from r2p.models.department import DepartmentManager
from r2p.models.user import User, UserRole


class TestDepartmentCrud:
    """Admin-managed department records"""

    def test_list_is_ordered_by_name(self, client, users, auth_headers):
        response = client.get("/api/departments", headers=auth_headers(users["employee"]))

        assert response.status_code == 200
        assert [d["name"] for d in response.json()["data"]] == ["Information Technology", "Operations"]
        assert response.json()["pagination"]["total"] == 2

    def test_get_includes_managers(self, client, users, departments, auth_headers):
        response = client.get(f"/api/departments/{departments['it'].id}", headers=auth_headers(users["employee"]))

        names = sorted(m["full_name"] for m in response.json()["data"]["managers"])
        assert names == ["Manager", "Peer Manager"]

    def test_create(self, client, db, users, auth_headers):
        response = client.post(
            "/api/departments",
            json={"name": "Finance", "code": "FIN"},
            headers=auth_headers(users["admin"])
        )

        assert response.status_code == 201
        assert response.json()["data"]["managers"] == []
        assert db.query(AuditLog).filter(AuditLog.action == "create_department").count() == 1

    def test_duplicate_name(self, client, users, auth_headers):
        response = client.post(
            "/api/departments",
            json={"name": "Operations"},
            headers=auth_headers(users["admin"])
        )
        assert response.status_code == 409

    def test_non_admin_cannot_create(self, client, users, auth_headers):
        response = client.post(
            "/api/departments",
            json={"name": "Legal"},
            headers=auth_headers(users["manager"])
        )
        assert response.status_code == 403

    def test_update(self, client, users, departments, auth_headers):
        response = client.put(
            f"/api/departments/{departments['ops'].id}",
            json={"description": "Facilities and logistics"},
            headers=auth_headers(users["admin"])
        )

        assert response.status_code == 200
        assert response.json()["data"]["description"] == "Facilities and logistics"
        assert response.json()["data"]["name"] == "Operations"

    def test_delete_in_use_conflicts(self, client, users, departments, auth_headers):
        response = client.delete(f"/api/departments/{departments['it'].id}", headers=auth_headers(users["admin"]))
        assert response.status_code == 409

    def test_delete_unused(self, client, users, auth_headers):
        admin = auth_headers(users["admin"])
        created = client.post("/api/departments", json={"name": "Legal"}, headers=admin).json()["data"]

        assert client.delete(f"/api/departments/{created['id']}", headers=admin).status_code == 200
        assert client.get(f"/api/departments/{created['id']}", headers=admin).status_code == 404


class TestManagerAssignment:
    """Department manager links"""

    def test_assign_manager(self, client, db, users, departments, auth_headers):
        response = client.post(
            f"/api/departments/{departments['ops'].id}/managers",
            json={"user_id": users["manager"].id},
            headers=auth_headers(users["admin"])
        )

        assert response.status_code == 201
        assert db.query(DepartmentManager).filter(
            DepartmentManager.department_id == departments["ops"].id,
            DepartmentManager.user_id == users["manager"].id
        ).count() == 1

    def test_assign_requires_manager_role(self, client, users, departments, auth_headers):
        response = client.post(
            f"/api/departments/{departments['ops'].id}/managers",
            json={"user_id": users["employee"].id},
            headers=auth_headers(users["admin"])
        )
        assert response.status_code == 400

    def test_assign_twice_conflicts(self, client, users, departments, auth_headers):
        response = client.post(
            f"/api/departments/{departments['it'].id}/managers",
            json={"user_id": users["manager"].id},
            headers=auth_headers(users["admin"])
        )
        assert response.status_code == 409

    def test_assign_unknown_user(self, client, users, departments, auth_headers):
        response = client.post(
            f"/api/departments/{departments['it'].id}/managers",
            json={"user_id": 9999},
            headers=auth_headers(users["admin"])
        )
        assert response.status_code == 404

    def test_remove_manager(self, client, db, users, departments, auth_headers):
        admin = auth_headers(users["admin"])
        url = f"/api/departments/{departments['it'].id}/managers/{users['peer_manager'].id}"

        assert client.delete(url, headers=admin).status_code == 200
        assert client.delete(url, headers=admin).status_code == 404


class TestDepartmentRequests:
    """Department-scoped request listing"""

    def test_manager_limited_to_own_department(self, client, users, departments, auth_headers, request_payload):
        client.post("/api/requests", json=request_payload, headers=auth_headers(users["employee"]))
        manager = auth_headers(users["manager"])

        response = client.get(f"/api/requests/department/{departments['it'].id}", headers=manager)
        assert response.status_code == 200
        assert response.json()["pagination"]["total"] == 1

        response = client.get(f"/api/requests/department/{departments['ops'].id}", headers=manager)
        assert response.status_code == 403

    def test_admin_sees_any_department(self, client, users, departments, auth_headers):
        response = client.get(
            f"/api/requests/department/{departments['ops'].id}",
            headers=auth_headers(users["admin"])
        )
        assert response.status_code == 200


class TestAdminUsers:
    """Admin user management"""

    def test_create_user(self, client, users, departments, auth_headers):
        response = client.post(
            "/api/admin/users",
            json={
                "email": "new.hire@example.com",
                "username": "new_hire",
                "full_name": "New Hire",
                "password": "welcome-123",
                "role": "Finance",
                "department_id": departments["ops"].id
            },
            headers=auth_headers(users["admin"])
        )

        assert response.status_code == 201
        assert response.json()["role"] == "finance"

    def test_duplicate_username(self, client, users, auth_headers):
        response = client.post(
            "/api/admin/users",
            json={
                "email": "other@example.com",
                "username": "employee",
                "full_name": "Someone",
                "password": "welcome-123"
            },
            headers=auth_headers(users["admin"])
        )
        assert response.status_code == 409

    def test_filter_by_role(self, client, users, auth_headers):
        response = client.get("/api/admin/users?role=MANAGER", headers=auth_headers(users["admin"]))

        assert response.status_code == 200
        assert {u["username"] for u in response.json()} == {"manager", "peer_manager", "ops_manager"}

    def test_invalid_role_filter(self, client, users, auth_headers):
        response = client.get("/api/admin/users?role=superuser", headers=auth_headers(users["admin"]))
        assert response.status_code == 400

    def test_admin_cannot_deactivate_self(self, client, users, auth_headers):
        response = client.put(
            f"/api/admin/users/{users['admin'].id}",
            json={"is_active": False},
            headers=auth_headers(users["admin"])
        )
        assert response.status_code == 400

    def test_promote_user(self, client, db, users, auth_headers):
        response = client.put(
            f"/api/admin/users/{users['employee'].id}",
            json={"role": "manager"},
            headers=auth_headers(users["admin"])
        )

        assert response.status_code == 200
        db.refresh(users["employee"])
        assert users["employee"].role == UserRole.MANAGER

    def test_system_stats(self, client, users, auth_headers, request_payload):
        client.post("/api/requests", json=request_payload, headers=auth_headers(users["employee"]))

        response = client.get("/api/admin/system-stats", headers=auth_headers(users["admin"]))

        body = response.json()
        assert body["users"]["total"] == 7
        assert body["requests"]["by_status"] == {"submitted": 1}
        assert body["payments"]["total_paid"] == 0.0

    def test_delete_user_without_history(self, client, db, users, auth_headers):
        manager_id = users["manager"].id

        response = client.delete(f"/api/admin/users/{manager_id}", headers=auth_headers(users["admin"]))

        assert response.status_code == 200
        assert response.json()["message"] == "User deleted successfully"
        db.expire_all()
        assert db.query(User).filter(User.id == manager_id).first() is None
        assert db.query(DepartmentManager).filter(DepartmentManager.user_id == manager_id).count() == 0
        assert db.query(AuditLog).filter(AuditLog.action == "delete_user", AuditLog.entity_id == manager_id).count() == 1

    def test_delete_user_with_requests_conflicts(self, client, db, users, auth_headers, request_payload):
        client.post("/api/requests", json=request_payload, headers=auth_headers(users["employee"]))

        response = client.delete(f"/api/admin/users/{users['employee'].id}", headers=auth_headers(users["admin"]))

        assert response.status_code == 409
        db.expire_all()
        assert db.query(User).filter(User.id == users["employee"].id).count() == 1

    def test_delete_self_and_missing_user(self, client, users, auth_headers):
        admin = auth_headers(users["admin"])

        assert client.delete(f"/api/admin/users/{users['admin'].id}", headers=admin).status_code == 400
        assert client.delete("/api/admin/users/9999", headers=admin).status_code == 404
        assert client.delete(f"/api/admin/users/{users['finance'].id}", headers=auth_headers(users["manager"])).status_code == 403

    def test_reset_password(self, client, db, users, auth_headers):
        response = client.put(
            f"/api/admin/users/{users['employee'].id}/reset-password",
            json={"new_password": "fresh-pass-456"},
            headers=auth_headers(users["admin"])
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Password reset successfully"

        login = client.post("/api/auth/login", data={"username": "employee", "password": "fresh-pass-456"})
        assert login.status_code == 200
        login = client.post("/api/auth/login", data={"username": "employee", "password": "testpass123"})
        assert login.status_code == 401

        db.refresh(users["employee"])
        assert users["employee"].last_password_reset is not None
        assert users["employee"].reset_token is None

    def test_reset_password_too_short(self, client, users, auth_headers):
        response = client.put(
            f"/api/admin/users/{users['employee'].id}/reset-password",
            json={"new_password": "short"},
            headers=auth_headers(users["admin"])
        )
        assert response.status_code == 422


class TestNotifications:
    """In-app notifications"""

    def test_submission_notifies_department_managers(self, client, users, auth_headers, request_payload):
        client.post("/api/requests", json=request_payload, headers=auth_headers(users["employee"]))
        manager = auth_headers(users["manager"])

        response = client.get("/api/notifications", headers=manager)

        assert response.status_code == 200
        data = response.json()["data"]
        assert len(data) == 1
        assert data[0]["type"] == "approval_required"
        assert data[0]["request_status"] == "submitted"
        assert response.json()["unread_count"] == 1

        assert client.get("/api/notifications", headers=auth_headers(users["ops_manager"])).json()["data"] == []

    def test_mark_read(self, client, users, auth_headers, request_payload):
        client.post("/api/requests", json=request_payload, headers=auth_headers(users["employee"]))
        manager = auth_headers(users["manager"])
        notification_id = client.get("/api/notifications", headers=manager).json()["data"][0]["id"]

        assert client.put(f"/api/notifications/{notification_id}/read", headers=manager).status_code == 200
        assert client.get("/api/notifications/unread-count", headers=manager).json()["unread_count"] == 0

    def test_cannot_read_someone_elses_notification(self, client, users, auth_headers, request_payload):
        client.post("/api/requests", json=request_payload, headers=auth_headers(users["employee"]))
        notification_id = client.get(
            "/api/notifications", headers=auth_headers(users["manager"])
        ).json()["data"][0]["id"]

        response = client.put(
            f"/api/notifications/{notification_id}/read",
            headers=auth_headers(users["employee"])
        )
        assert response.status_code == 404

    def test_mark_all_read(self, client, users, auth_headers, request_payload):
        employee = auth_headers(users["employee"])
        client.post("/api/requests", json=request_payload, headers=employee)
        client.post("/api/requests", json=request_payload, headers=employee)
        peer = auth_headers(users["peer_manager"])

        response = client.put("/api/notifications/mark-all-read", headers=peer)

        assert response.json()["count"] == 2
        assert client.get("/api/notifications?unread_only=true", headers=peer).json()["data"] == []
