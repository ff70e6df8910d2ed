from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, Column, DateTime, Integer, String, func
from sqlmodel import Field, Relationship, SQLModel

from .base import utc_now

if TYPE_CHECKING:
    from . import ProjectMember, TaskAssignee, WorkspaceMember


class Department(SQLModel, table=True):
    """Department model"""

    __tablename__ = "departments"

    id: Optional[int] = Field(default=None, sa_column=Column(Integer, primary_key=True, autoincrement=True))
    name: str = Field(sa_column=Column(String, nullable=False))

    # Relationships
    roles: list["DepartmentRole"] = Relationship(back_populates="department")
    users: list["User"] = Relationship(
        back_populates="department",
        sa_relationship_kwargs={"foreign_keys": "User.department_id"},
    )


class DepartmentRole(SQLModel, table=True):
    """Role inside a department (e.g. Backend Developer)"""

    __tablename__ = "department_roles"

    id: Optional[int] = Field(default=None, sa_column=Column(Integer, primary_key=True, autoincrement=True))
    name: str = Field(sa_column=Column(String, nullable=False))
    department_id: int = Field(foreign_key="departments.id", nullable=False)

    # Relationships
    department: Department = Relationship(back_populates="roles")
    users: list["User"] = Relationship(
        back_populates="department_role",
        sa_relationship_kwargs={"foreign_keys": "User.department_role_id"},
    )


class User(SQLModel, table=True):
    """User model"""

    __tablename__ = "users"

    id: Optional[int] = Field(default=None, sa_column=Column(Integer, primary_key=True, autoincrement=True))
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), server_default=func.now(), nullable=False),
    )

    username: str = Field(sa_column=Column(String, unique=True, nullable=False))
    email: str = Field(sa_column=Column(String, unique=True, nullable=False))
    name: Optional[str] = Field(default=None, sa_column=Column(String))
    avatar_url: Optional[str] = Field(default=None, sa_column=Column(String))
    is_admin: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    department_id: Optional[int] = Field(default=None, foreign_key="departments.id")
    department_role_id: Optional[int] = Field(default=None, foreign_key="department_roles.id")

    # Relationships
    department: Optional[Department] = Relationship(
        back_populates="users",
        sa_relationship_kwargs={"foreign_keys": "User.department_id"},
    )
    department_role: Optional[DepartmentRole] = Relationship(
        back_populates="users",
        sa_relationship_kwargs={"foreign_keys": "User.department_role_id"},
    )
    workspace_memberships: list["WorkspaceMember"] = Relationship(back_populates="user")  # type: ignore
    project_memberships: list["ProjectMember"] = Relationship(back_populates="user")  # type: ignore
    task_assignments: list["TaskAssignee"] = Relationship(back_populates="user")  # type: ignore
