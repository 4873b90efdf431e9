"""
Shared test fixtures
SQLite test database, seeded departments/users and auth helpers
"""

import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set test environment variables BEFORE importing anything else
os.environ['DATABASE_URL'] = 'sqlite:///./test_r2p.db'
os.environ['SECRET_KEY'] = 'test-secret-key-not-for-production'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['SMTP_USERNAME'] = ''
os.environ['SMTP_PASSWORD'] = ''
os.environ['LOG_LEVEL'] = 'WARNING'

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from r2p.main import app
from r2p.config.database import Base, get_db
from r2p.models.department import Department, DepartmentManager
from r2p.models.user import User, UserRole
from r2p.services.auth_service import auth_service
from r2p.utils.security import get_password_hash

# Test database
SQLALCHEMY_DATABASE_URL = os.environ['DATABASE_URL']
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TEST_PASSWORD = "testpass123"


def override_get_db():
    """Override database dependency for testing"""
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture
def client():
    """HTTP client against the app with the test database"""
    return TestClient(app)


@pytest.fixture(scope="function")
def test_db():
    """Create test database"""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(test_db):
    """Session on the test database"""
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def departments(db):
    """Two departments: IT and Operations"""
    it = Department(name="Information Technology", code="IT")
    ops = Department(name="Operations", code="OPS")
    db.add_all([it, ops])
    db.commit()
    return {"it": it, "ops": ops}


@pytest.fixture
def make_user(db, departments):
    """Factory creating active users; managers are linked to their department"""

    def _make(username, role, department="it", is_active=True):
        department_obj = departments[department] if department else None
        user = User(
            email=f"{username}@example.com",
            username=username,
            full_name=username.replace("_", " ").title(),
            hashed_password=get_password_hash(TEST_PASSWORD),
            role=role,
            department_id=department_obj.id if department_obj else None,
            is_active=is_active
        )
        db.add(user)
        db.flush()
        if role == UserRole.MANAGER and department_obj:
            db.add(DepartmentManager(user_id=user.id, department_id=department_obj.id))
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def users(make_user):
    """
    One user per role in IT, a second IT manager, and an Operations manager
    """
    return {
        "employee": make_user("employee", UserRole.EMPLOYEE),
        "manager": make_user("manager", UserRole.MANAGER),
        "peer_manager": make_user("peer_manager", UserRole.MANAGER),
        "ops_manager": make_user("ops_manager", UserRole.MANAGER, department="ops"),
        "ops_employee": make_user("ops_employee", UserRole.EMPLOYEE, department="ops"),
        "admin": make_user("admin", UserRole.ADMIN),
        "finance": make_user("finance", UserRole.FINANCE),
    }


@pytest.fixture
def auth_headers():
    """Build a bearer header for a user without going through login"""

    def _headers(user):
        token = auth_service.create_tokens(user)["access_token"]
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def request_payload():
    """Valid body for POST /api/requests"""
    return {
        "title": "Developer laptop",
        "resource_name": "Laptop 14in",
        "resource_type": "hardware",
        "description": "Replacement machine",
        "quantity": 2,
        "estimated_cost": 3000.0,
        "priority": "high"
    }
