from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Column, DateTime, Integer, String, func
from sqlmodel import Field, Relationship, SQLModel

from .base import utc_now

if TYPE_CHECKING:
    from . import Project, User


class WorkspaceRole(str, Enum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    MEMBER = "MEMBER"


# Roles that see every project of a workspace
WORKSPACE_MANAGER_ROLES = (WorkspaceRole.OWNER.value, WorkspaceRole.ADMIN.value, WorkspaceRole.MANAGER.value)


class Workspace(SQLModel, table=True):
    """Workspace model"""

    __tablename__ = "workspaces"

    id: Optional[int] = Field(default=None, sa_column=Column(Integer, primary_key=True, autoincrement=True))
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), server_default=func.now(), nullable=False),
    )

    name: str = Field(sa_column=Column(String, nullable=False))
    owner_id: int = Field(foreign_key="users.id", nullable=False)

    # Relationships
    owner: "User" = Relationship(sa_relationship_kwargs={"foreign_keys": "Workspace.owner_id"})  # type: ignore
    members: list["WorkspaceMember"] = Relationship(back_populates="workspace")
    projects: list["Project"] = Relationship(back_populates="workspace")  # type: ignore


class WorkspaceMember(SQLModel, table=True):
    """Junction table for users and workspaces"""

    __tablename__ = "workspace_members"

    workspace_id: int = Field(foreign_key="workspaces.id", primary_key=True)
    user_id: int = Field(foreign_key="users.id", primary_key=True)
    role: str = Field(default=WorkspaceRole.MEMBER.value, sa_column=Column(String, nullable=False))

    # Relationships
    workspace: Workspace = Relationship(back_populates="members")
    user: "User" = Relationship(back_populates="workspace_memberships")  # type: ignore
