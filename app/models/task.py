from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, func
from sqlmodel import Field, Relationship, SQLModel

from .base import utc_now

if TYPE_CHECKING:
    from . import Project, TaskTag, User


class TaskStatus(str, Enum):
    TODO = "TODO"
    IN_PROGRESS = "IN PROGRESS"
    IN_REVIEW = "IN REVIEW"
    DONE = "DONE"


class TaskPriority(str, Enum):
    URGENT = "URGENT"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class Task(SQLModel, table=True):
    """Task model. Rows with a parent_task_id are subtasks."""

    __tablename__ = "tasks"

    id: Optional[int] = Field(default=None, sa_column=Column(Integer, primary_key=True, autoincrement=True))
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), server_default=func.now(), nullable=False),
    )
    updated_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), onupdate=func.now()))

    title: str = Field(sa_column=Column(String, nullable=False))
    description: Optional[str] = Field(default=None, sa_column=Column(Text))
    project_id: int = Field(foreign_key="projects.id", nullable=False)
    parent_task_id: Optional[int] = Field(default=None, foreign_key="tasks.id")
    created_by: Optional[int] = Field(default=None, foreign_key="users.id")
    status: str = Field(default=TaskStatus.TODO.value, sa_column=Column(String, nullable=False))
    priority: str = Field(default=TaskPriority.MEDIUM.value, sa_column=Column(String, nullable=False))
    start_date: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True)))
    due_date: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True)))
    started_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True)))
    completed_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True)))
    is_expired: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))

    # Relationships
    project: "Project" = Relationship(back_populates="tasks")  # type: ignore
    parent: Optional["Task"] = Relationship(
        back_populates="subtasks",
        sa_relationship_kwargs={"remote_side": "Task.id", "foreign_keys": "Task.parent_task_id"},
    )
    subtasks: list["Task"] = Relationship(
        back_populates="parent",
        sa_relationship_kwargs={"foreign_keys": "Task.parent_task_id"},
    )
    assignees: list["TaskAssignee"] = Relationship(back_populates="task")
    tags: list["TaskTag"] = Relationship(back_populates="task")  # type: ignore


class TaskAssignee(SQLModel, table=True):
    """Junction table for tasks and assigned users"""

    __tablename__ = "task_assignees"

    task_id: int = Field(foreign_key="tasks.id", primary_key=True)
    user_id: int = Field(foreign_key="users.id", primary_key=True)

    # Relationships
    task: Task = Relationship(back_populates="assignees")
    user: "User" = Relationship(back_populates="task_assignments")  # type: ignore
