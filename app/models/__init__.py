from .project import Project, ProjectMember
from .tag import Tag, TaskTag
from .task import Task, TaskAssignee, TaskPriority, TaskStatus
from .user import Department, DepartmentRole, User
from .workspace import WORKSPACE_MANAGER_ROLES, Workspace, WorkspaceMember, WorkspaceRole

__all__ = [
    "User",
    "Department",
    "DepartmentRole",
    "Workspace",
    "WorkspaceMember",
    "WorkspaceRole",
    "WORKSPACE_MANAGER_ROLES",
    "Project",
    "ProjectMember",
    "Task",
    "TaskAssignee",
    "TaskStatus",
    "TaskPriority",
    "Tag",
    "TaskTag",
]
