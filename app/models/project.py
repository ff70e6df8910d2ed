from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Column, DateTime, Integer, String, Text, func
from sqlmodel import Field, Relationship, SQLModel

from .base import utc_now

if TYPE_CHECKING:
    from . import Task, User, Workspace


class Project(SQLModel, table=True):
    """Project model"""

    __tablename__ = "projects"

    id: Optional[int] = Field(default=None, sa_column=Column(Integer, primary_key=True, autoincrement=True))
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), server_default=func.now(), nullable=False),
    )

    title: str = Field(sa_column=Column(String, nullable=False))
    description: Optional[str] = Field(default=None, sa_column=Column(Text))
    workspace_id: int = Field(foreign_key="workspaces.id", nullable=False)
    created_by: Optional[int] = Field(default=None, foreign_key="users.id")

    # Relationships
    workspace: "Workspace" = Relationship(back_populates="projects")  # type: ignore
    members: list["ProjectMember"] = Relationship(back_populates="project")
    tasks: list["Task"] = Relationship(back_populates="project")  # type: ignore


class ProjectMember(SQLModel, table=True):
    """Junction table for users and projects"""

    __tablename__ = "project_members"

    project_id: int = Field(foreign_key="projects.id", primary_key=True)
    user_id: int = Field(foreign_key="users.id", primary_key=True)
    role: str = Field(default="MEMBER", sa_column=Column(String, nullable=False))

    # Relationships
    project: Project = Relationship(back_populates="members")
    user: "User" = Relationship(back_populates="project_memberships")  # type: ignore
