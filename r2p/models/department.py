"""
Department Model
Scoping unit for requests and manager authority
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from r2p.config.database import Base


class Department(Base):
    """Department model"""
    __tablename__ = "departments"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, index=True, nullable=False)
    code = Column(String(20), unique=True, nullable=True)
    description = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    members = relationship("User", back_populates="department", foreign_keys="User.department_id")
    manager_links = relationship("DepartmentManager", back_populates="department", cascade="all, delete-orphan")
    requests = relationship("ResourceRequest", back_populates="department")

    def __repr__(self):
        return f"<Department {self.name}>"

    @property
    def managers(self):
        """Users assigned as managers of this department"""
        return [link.user for link in self.manager_links]


class DepartmentManager(Base):
    """Manager assignment linking a user to a department"""
    __tablename__ = "department_managers"
    __table_args__ = (
        UniqueConstraint("user_id", "department_id", name="uq_department_manager"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=False)
    assigned_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User")
    department = relationship("Department", back_populates="manager_links")

    def __repr__(self):
        return f"<DepartmentManager user={self.user_id} department={self.department_id}>"
