"""
Database Setup Script
Creates all tables and seeds departments, users and a sample request

Run with: python -m r2p.database.setup_database
"""

from r2p.config.database import Base, SessionLocal, engine
import r2p.models  # noqa: F401
from r2p.models.department import Department, DepartmentManager
from r2p.models.request import ResourceRequest, RequestStatus, RequestPriority
from r2p.models.user import User, UserRole
from r2p.utils.security import get_password_hash
from r2p.utils.logger import setup_logger

logger = setup_logger()

DEPARTMENTS = [
    {"name": "Information Technology", "code": "IT", "description": "Hardware, software and infrastructure"},
    {"name": "Operations", "code": "OPS", "description": "Day-to-day operations"},
    {"name": "Finance", "code": "FIN", "description": "Payments and budgeting"},
]

# (username, full name, role, department code, password)
USERS = [
    ("admin", "System Administrator", UserRole.ADMIN, "IT", "admin123"),
    ("it.manager", "IT Manager", UserRole.MANAGER, "IT", "manager123"),
    ("ops.manager", "Operations Manager", UserRole.MANAGER, "OPS", "manager123"),
    ("finance", "Finance Officer", UserRole.FINANCE, "FIN", "finance123"),
    ("employee", "Test Employee", UserRole.EMPLOYEE, "IT", "employee123"),
]


def create_tables():
    """Create all database tables"""
    print("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    print("Database tables created successfully")


def create_departments(db) -> dict:
    """Create departments, returning them keyed by code"""
    print("\nCreating departments...")
    departments = {}
    for data in DEPARTMENTS:
        department = db.query(Department).filter(Department.code == data["code"]).first()
        if not department:
            department = Department(**data)
            db.add(department)
            print(f"  + {data['name']}")
        departments[data["code"]] = department
    db.commit()
    return departments


def create_users(db, departments: dict) -> dict:
    """Create seed users and manager assignments, returning users keyed by username"""
    print("\nCreating users...")
    users = {}
    for username, full_name, role, dept_code, password in USERS:
        user = db.query(User).filter(User.username == username).first()
        if not user:
            user = User(
                email=f"{username}@r2p.local",
                username=username,
                full_name=full_name,
                hashed_password=get_password_hash(password),
                role=role,
                department_id=departments[dept_code].id,
                is_active=True
            )
            db.add(user)
            db.flush()
            print(f"  + {username} ({role.value}) / {password}")

            if role == UserRole.MANAGER:
                db.add(DepartmentManager(user_id=user.id, department_id=departments[dept_code].id))
        users[username] = user
    db.commit()
    return users


def create_sample_request(db, users: dict):
    """Create one submitted request from the seed employee"""
    employee = users["employee"]
    if db.query(ResourceRequest).filter(ResourceRequest.user_id == employee.id).first():
        return

    db.add(ResourceRequest(
        user_id=employee.id,
        department_id=employee.department_id,
        title="Developer laptop",
        resource_name="Laptop 14in",
        resource_type="hardware",
        description="Replacement for a failing machine",
        quantity=1,
        estimated_cost=1500,
        priority=RequestPriority.HIGH,
        status=RequestStatus.SUBMITTED
    ))
    db.commit()
    print("\nSample request created")


def main():
    create_tables()
    db = SessionLocal()
    try:
        departments = create_departments(db)
        users = create_users(db, departments)
        create_sample_request(db, users)
    except Exception:
        db.rollback()
        logger.exception("Database setup failed")
        raise
    finally:
        db.close()
    print("\nDatabase setup complete")


if __name__ == "__main__":
    main()
