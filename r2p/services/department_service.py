"""
Department Service
Department records and manager assignments
"""

from sqlalchemy.orm import Session
from typing import Optional, Dict, Any, List, Tuple

from r2p.models.department import Department, DepartmentManager
from r2p.models.request import ResourceRequest
from r2p.models.user import User, UserRole
from r2p.services.audit_service import record_audit
from r2p.utils.exceptions import ConflictError, NotFoundError, BadRequestError
from r2p.utils.logger import setup_logger

logger = setup_logger()


class DepartmentService:
    """Service for department management"""

    async def get_departments(
        self,
        db: Session,
        skip: int = 0,
        limit: int = 20
    ) -> Tuple[List[Department], int]:
        """Get departments ordered by name"""
        query = db.query(Department)
        total = query.count()
        departments = query.order_by(Department.name.asc()).offset(skip).limit(limit).all()
        return departments, total

    async def get_department(self, db: Session, department_id: int) -> Department:
        """
        Get a department

        Raises:
            NotFoundError: If no department has this id
        """
        department = db.query(Department).filter(Department.id == department_id).first()
        if not department:
            raise NotFoundError(f"Department not found with ID: {department_id}")
        return department

    def _ensure_name_available(self, db: Session, name: str, exclude_id: Optional[int] = None):
        existing = db.query(Department).filter(Department.name == name).first()
        if existing and existing.id != exclude_id:
            raise ConflictError(f"Department '{name}' already exists")

    async def create_department(
        self,
        db: Session,
        data: Dict[str, Any],
        actor_id: int
    ) -> Department:
        """
        Create a department

        Raises:
            ConflictError: If the name is taken
        """
        self._ensure_name_available(db, data["name"])

        department = Department(
            name=data["name"],
            code=data.get("code"),
            description=data.get("description")
        )
        db.add(department)
        db.flush()

        record_audit(
            db,
            user_id=actor_id,
            action="create_department",
            entity_type="department",
            entity_id=department.id,
            description=f"Created department {department.name}"
        )
        db.commit()
        db.refresh(department)

        logger.info(f"Department created: {department.name}")
        return department

    async def update_department(
        self,
        db: Session,
        department_id: int,
        data: Dict[str, Any],
        actor_id: int
    ) -> Department:
        """Update name, code or description; absent fields stay as they are"""
        department = await self.get_department(db, department_id)

        if data.get("name"):
            self._ensure_name_available(db, data["name"], exclude_id=department.id)
            department.name = data["name"]
        if data.get("code") is not None:
            department.code = data["code"]
        if data.get("description") is not None:
            department.description = data["description"]

        record_audit(
            db,
            user_id=actor_id,
            action="update_department",
            entity_type="department",
            entity_id=department.id,
            description=f"Updated department {department.name}",
            changes={key: value for key, value in data.items() if value is not None}
        )
        db.commit()
        db.refresh(department)
        return department

    async def delete_department(self, db: Session, department_id: int, actor_id: int) -> None:
        """
        Delete a department with no requests and no members

        Raises:
            ConflictError: If requests or users still reference it
        """
        department = await self.get_department(db, department_id)

        in_use = (
            db.query(ResourceRequest).filter(ResourceRequest.department_id == department.id).count()
            or db.query(User).filter(User.department_id == department.id).count()
        )
        if in_use:
            raise ConflictError("Department still has users or requests and cannot be deleted")

        record_audit(
            db,
            user_id=actor_id,
            action="delete_department",
            entity_type="department",
            entity_id=department.id,
            description=f"Deleted department {department.name}"
        )
        db.delete(department)
        db.commit()

        logger.info(f"Department deleted: {department_id}")

    async def assign_manager(
        self,
        db: Session,
        department_id: int,
        user_id: int,
        actor_id: int
    ) -> DepartmentManager:
        """
        Make a manager-role user a manager of a department

        Raises:
            NotFoundError: Unknown department or user
            BadRequestError: User does not have the manager role
            ConflictError: Already assigned
        """
        department = await self.get_department(db, department_id)

        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError(f"User not found with ID: {user_id}")

        if not user.has_role(UserRole.MANAGER):
            raise BadRequestError("User must have MANAGER role to be assigned as department manager")

        existing = db.query(DepartmentManager).filter(
            DepartmentManager.user_id == user_id,
            DepartmentManager.department_id == department_id
        ).first()
        if existing:
            raise ConflictError("This user is already a manager of this department")

        link = DepartmentManager(user_id=user.id, department_id=department.id)
        db.add(link)
        record_audit(
            db,
            user_id=actor_id,
            action="assign_manager",
            entity_type="department",
            entity_id=department.id,
            description=f"Assigned {user.full_name} as manager of {department.name}"
        )
        db.commit()
        db.refresh(link)

        logger.info(f"User {user.id} assigned as manager of department {department.id}")
        return link

    async def remove_manager(
        self,
        db: Session,
        department_id: int,
        user_id: int,
        actor_id: int
    ) -> None:
        """
        Remove a manager assignment

        Raises:
            NotFoundError: If the assignment does not exist
        """
        link = db.query(DepartmentManager).filter(
            DepartmentManager.user_id == user_id,
            DepartmentManager.department_id == department_id
        ).first()
        if not link:
            raise NotFoundError("Manager assignment not found")

        db.delete(link)
        record_audit(
            db,
            user_id=actor_id,
            action="remove_manager",
            entity_type="department",
            entity_id=department_id,
            description=f"Removed user {user_id} as manager of department {department_id}"
        )
        db.commit()


# Create singleton instance
department_service = DepartmentService()
