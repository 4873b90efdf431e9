"""
Department Routes
Department records and manager assignments
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from r2p.config.database import get_db
from r2p.services.auth_service import auth_service
from r2p.services.department_service import department_service
from r2p.models.user import User, UserRole
from r2p.schemas.department import DepartmentCreate, DepartmentUpdate, DepartmentResponse, ManagerAssign
from r2p.utils.helpers import clamp_pagination, page_meta

router = APIRouter()

require_admin = auth_service.require_role(UserRole.ADMIN)


def _serialize_department(department) -> dict:
    return DepartmentResponse.model_validate(department).model_dump(mode="json")


@router.get("")
async def list_departments(
    skip: int = 0,
    limit: int = 20,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """List departments by name"""
    skip, limit = clamp_pagination(skip, limit)
    departments, total = await department_service.get_departments(db, skip, limit)
    return {
        "success": True,
        "data": [_serialize_department(d) for d in departments],
        "pagination": page_meta(total, skip, limit)
    }


@router.get("/{department_id}")
async def get_department(
    department_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """Get one department with its managers"""
    department = await department_service.get_department(db, department_id)
    return {"success": True, "data": _serialize_department(department)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_department(
    payload: DepartmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Create a department"""
    department = await department_service.create_department(db, payload.model_dump(), current_user.id)
    return {
        "success": True,
        "message": "Department created successfully",
        "data": _serialize_department(department)
    }


@router.put("/{department_id}")
async def update_department(
    department_id: int,
    payload: DepartmentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Update a department"""
    department = await department_service.update_department(
        db, department_id, payload.model_dump(exclude_unset=True), current_user.id
    )
    return {
        "success": True,
        "message": "Department updated successfully",
        "data": _serialize_department(department)
    }


@router.delete("/{department_id}")
async def delete_department(
    department_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Delete an unused department"""
    await department_service.delete_department(db, department_id, current_user.id)
    return {"success": True, "message": "Department deleted successfully"}


@router.post("/{department_id}/managers", status_code=status.HTTP_201_CREATED)
async def assign_manager(
    department_id: int,
    payload: ManagerAssign,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Assign a manager-role user to a department"""
    link = await department_service.assign_manager(db, department_id, payload.user_id, current_user.id)
    return {
        "success": True,
        "message": "Manager assigned successfully",
        "data": {"user_id": link.user_id, "department_id": link.department_id}
    }


@router.delete("/{department_id}/managers/{user_id}")
async def remove_manager(
    department_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Remove a manager assignment"""
    await department_service.remove_manager(db, department_id, user_id, current_user.id)
    return {"success": True, "message": "Manager removed successfully"}
