"""
Authentication Tests
Tests for login, token refresh and password reset
"""

import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from datetime import datetime, timedelta

import pytest

from r2p.models.user import UserRole
from r2p.services.auth_service import auth_service
from r2p.utils.security import create_access_token

TEST_PASSWORD = "testpass123"


def login(client, username, password=TEST_PASSWORD):
    return client.post(
        "/api/auth/login",
        data={
            "username": username,
            "password": password
        }
    )


class TestAuthentication:
    """Test authentication endpoints"""

    def test_login_wrong_password(self, client, users):
        """Test login with wrong password"""
        response = login(client, "employee", "wrongpassword")
        assert response.status_code == 401

    def test_login_nonexistent_user(self, client, test_db):
        """Test login with non-existent user"""
        response = login(client, "nonexistent", "password123")
        assert response.status_code == 401

    def test_unauthorized_access(self, client, test_db):
        """Test accessing protected endpoint without token"""
        response = client.get("/api/auth/me")
        assert response.status_code == 401

    def test_login_success(self, client, users):
        """Test successful login"""
        response = login(client, "employee")

        assert response.status_code == 200
        data = response.json()
        assert "access_token" in data
        assert "refresh_token" in data
        assert data["token_type"] == "bearer"

    def test_login_with_email(self, client, users):
        response = login(client, "finance@example.com")
        assert response.status_code == 200

    def test_inactive_user_cannot_login(self, client, make_user):
        make_user("leaver", UserRole.EMPLOYEE, is_active=False)

        response = login(client, "leaver")

        assert response.status_code == 403

    def test_get_current_user(self, client, users):
        """Test getting current user info"""
        token = login(client, "manager").json()["access_token"]

        response = client.get(
            "/api/auth/me",
            headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["username"] == "manager"
        assert data["email"] == "manager@example.com"
        assert data["role"] == "manager"
        assert data["last_login"] is not None

    def test_deactivated_user_token_rejected(self, client, db, users, auth_headers):
        headers = auth_headers(users["employee"])
        users["employee"].is_active = False
        db.commit()

        response = client.get("/api/auth/me", headers=headers)

        assert response.status_code == 403

    def test_refresh_token_is_not_an_access_token(self, client, users):
        tokens = login(client, "employee").json()

        response = client.get(
            "/api/auth/me",
            headers={"Authorization": f"Bearer {tokens['refresh_token']}"}
        )
        assert response.status_code == 401

    def test_expired_access_token(self, client, users):
        token = create_access_token(
            data={"sub": str(users["employee"].id)},
            expires_delta=timedelta(seconds=-1)
        )

        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401


class TestTokenRefresh:
    """Refresh token exchange"""

    def test_refresh(self, client, users):
        tokens = login(client, "employee").json()

        response = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})

        assert response.status_code == 200
        new_access = response.json()["access_token"]
        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {new_access}"})
        assert me.json()["username"] == "employee"

    def test_access_token_cannot_refresh(self, client, users):
        tokens = login(client, "employee").json()

        response = client.post("/api/auth/refresh", json={"refresh_token": tokens["access_token"]})

        assert response.status_code == 401

    def test_garbage_token(self, client, test_db):
        response = client.post("/api/auth/refresh", json={"refresh_token": "not-a-jwt"})
        assert response.status_code == 401


class TestPasswordReset:
    """Forgot/reset password flow"""

    def test_forgot_password_same_response_for_unknown_email(self, client, users):
        known = client.post("/api/auth/forgot-password", json={"email": "employee@example.com"})
        unknown = client.post("/api/auth/forgot-password", json={"email": "nobody@example.com"})

        assert known.status_code == unknown.status_code == 200
        assert known.json() == unknown.json()

    def test_forgot_password_stores_hashed_code(self, client, db, users):
        client.post("/api/auth/forgot-password", json={"email": "employee@example.com"})

        db.refresh(users["employee"])
        assert users["employee"].reset_token is not None
        assert users["employee"].is_reset_token_valid()

    def test_reset_password(self, client, db, users):
        otp = auth_service.issue_reset_otp(db, users["employee"])

        response = client.post(
            "/api/auth/reset-password",
            json={"email": "employee@example.com", "otp": otp, "new_password": "brand-new-pass"}
        )
        assert response.status_code == 200

        assert login(client, "employee").status_code == 401
        assert login(client, "employee", "brand-new-pass").status_code == 200

    def test_code_is_single_use(self, client, db, users):
        otp = auth_service.issue_reset_otp(db, users["employee"])
        body = {"email": "employee@example.com", "otp": otp, "new_password": "brand-new-pass"}

        assert client.post("/api/auth/reset-password", json=body).status_code == 200
        assert client.post("/api/auth/reset-password", json=body).status_code == 400

    def test_wrong_code(self, client, db, users):
        otp = auth_service.issue_reset_otp(db, users["employee"])
        wrong = "000000" if otp != "000000" else "111111"

        response = client.post(
            "/api/auth/reset-password",
            json={"email": "employee@example.com", "otp": wrong, "new_password": "brand-new-pass"}
        )
        assert response.status_code == 400

    def test_expired_code(self, client, db, users):
        otp = auth_service.issue_reset_otp(db, users["employee"])
        users["employee"].reset_token_expires_at = datetime.utcnow() - timedelta(minutes=1)
        db.commit()

        response = client.post(
            "/api/auth/reset-password",
            json={"email": "employee@example.com", "otp": otp, "new_password": "brand-new-pass"}
        )
        assert response.status_code == 400


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
