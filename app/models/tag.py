from typing import TYPE_CHECKING, Optional

from sqlalchemy import Column, Integer, String
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from . import Task


class Tag(SQLModel, table=True):
    """Tag model"""

    __tablename__ = "tags"

    id: Optional[int] = Field(default=None, sa_column=Column(Integer, primary_key=True, autoincrement=True))
    name: str = Field(sa_column=Column(String, nullable=False))

    # Relationships
    tasks: list["TaskTag"] = Relationship(back_populates="tag")


class TaskTag(SQLModel, table=True):
    """Junction table for tasks and tags (many-to-many relationship)"""

    __tablename__ = "task_tags"

    task_id: int = Field(foreign_key="tasks.id", primary_key=True)
    tag_id: int = Field(foreign_key="tags.id", primary_key=True)

    # Relationships
    task: "Task" = Relationship(back_populates="tags")  # type: ignore
    tag: Tag = Relationship(back_populates="tasks")
