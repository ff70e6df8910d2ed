import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import HTTPException
from sqlalchemy import and_, or_, true
from sqlmodel import Session, select

from app.constants.messages import MessageConstants
from app.models import (
    WORKSPACE_MANAGER_ROLES,
    Project,
    ProjectMember,
    Task,
    TaskAssignee,
    User,
    Workspace,
    WorkspaceMember,
    WorkspaceRole,
)
from app.schemas.dashboard import ViewType

logger = logging.getLogger(__name__)

SYSTEM_ADMIN_ROLE = "ADMIN"
SELF_ROLE = "SELF"

# Lower rank wins when a user holds several roles
ROLE_RANK = {
    WorkspaceRole.OWNER.value: 0,
    WorkspaceRole.ADMIN.value: 1,
    WorkspaceRole.MANAGER.value: 2,
    WorkspaceRole.MEMBER.value: 3,
}


@dataclass
class DashboardContext:
    """Who is asking, about what, and with which role"""

    view_type: ViewType
    user: User
    user_role: str
    workspace_id: Optional[int] = None
    project_id: Optional[int] = None
    profile_user_id: Optional[int] = None
    workspace_name: Optional[str] = None
    project_name: Optional[str] = None
    # Profile viewers other than the user themself only see managed workspaces
    restrict_to_managed: bool = False

    @property
    def user_id(self) -> int:
        return self.user.id

    @property
    def is_admin(self) -> bool:
        return bool(self.user.is_admin)

    @property
    def scope_key(self) -> str:
        """Cache key segment; every view includes the viewer id"""
        if self.view_type == ViewType.WORKSPACE:
            return f"workspace-{self.workspace_id}:viewer-{self.user_id}"
        if self.view_type == ViewType.PROJECT:
            return f"workspace-{self.workspace_id}:project-{self.project_id}:viewer-{self.user_id}"
        if self.view_type == ViewType.PROFILE:
            return f"profile-{self.profile_user_id}:viewer-{self.user_id}"
        return f"user-{self.user_id}"

    def to_meta(self) -> Dict[str, Any]:
        meta: Dict[str, Any] = {"viewType": self.view_type.value, "userRole": self.user_role}
        if self.workspace_id is not None:
            meta["workspaceId"] = self.workspace_id
        if self.project_id is not None:
            meta["projectId"] = self.project_id
        if self.profile_user_id is not None:
            meta["userId"] = self.profile_user_id
        return meta


def managed_workspace_ids(user_id: int):
    """Workspaces the user owns or administers/manages"""
    return select(Workspace.id).where(
        or_(
            Workspace.owner_id == user_id,
            Workspace.id.in_(
                select(WorkspaceMember.workspace_id).where(
                    WorkspaceMember.user_id == user_id,
                    WorkspaceMember.role.in_(WORKSPACE_MANAGER_ROLES),
                )
            ),
        )
    )


def get_workspace_role(db: Session, user: User, workspace: Workspace) -> Optional[str]:
    if workspace.owner_id == user.id:
        return WorkspaceRole.OWNER.value
    membership = db.exec(
        select(WorkspaceMember).where(
            WorkspaceMember.workspace_id == workspace.id,
            WorkspaceMember.user_id == user.id,
        )
    ).first()
    return membership.role if membership else None


def resolve_landing_context(db: Session, user: User) -> DashboardContext:
    if user.is_admin:
        return DashboardContext(view_type=ViewType.LANDING, user=user, user_role=SYSTEM_ADMIN_ROLE)

    owned = db.exec(select(Workspace.id).where(Workspace.owner_id == user.id).limit(1)).first()
    if owned is None:
        logger.info("[DASHBOARD] user %s has no owned workspaces", user.id)
        raise HTTPException(status_code=403, detail=MessageConstants.NO_OWNED_WORKSPACES)
    return DashboardContext(view_type=ViewType.LANDING, user=user, user_role=WorkspaceRole.OWNER.value)


def resolve_workspace_context(db: Session, user: User, workspace_id: int) -> DashboardContext:
    workspace = db.get(Workspace, workspace_id)
    if not workspace:
        raise HTTPException(status_code=404, detail=MessageConstants.WORKSPACE_NOT_FOUND)

    role = get_workspace_role(db, user, workspace)
    if role is None:
        if not user.is_admin:
            raise HTTPException(status_code=403, detail=MessageConstants.WORKSPACE_ACCESS_DENIED)
        role = SYSTEM_ADMIN_ROLE

    return DashboardContext(
        view_type=ViewType.WORKSPACE,
        user=user,
        user_role=role,
        workspace_id=workspace.id,
        workspace_name=workspace.name,
    )


def resolve_project_context(db: Session, user: User, workspace_id: int, project_id: int) -> DashboardContext:
    workspace = db.get(Workspace, workspace_id)
    if not workspace:
        raise HTTPException(status_code=404, detail=MessageConstants.WORKSPACE_NOT_FOUND)
    project = db.get(Project, project_id)
    if not project or project.workspace_id != workspace.id:
        raise HTTPException(status_code=404, detail=MessageConstants.PROJECT_NOT_FOUND)

    role = get_workspace_role(db, user, workspace)
    if role not in WORKSPACE_MANAGER_ROLES:
        membership = db.exec(
            select(ProjectMember).where(
                ProjectMember.project_id == project.id,
                ProjectMember.user_id == user.id,
            )
        ).first()
        if membership:
            role = membership.role
        elif user.is_admin:
            role = SYSTEM_ADMIN_ROLE
        else:
            raise HTTPException(status_code=403, detail=MessageConstants.PROJECT_ACCESS_DENIED)

    return DashboardContext(
        view_type=ViewType.PROJECT,
        user=user,
        user_role=role,
        workspace_id=workspace.id,
        project_id=project.id,
        workspace_name=workspace.name,
        project_name=project.title,
    )


def resolve_profile_context(db: Session, user: User, target_user_id: int) -> DashboardContext:
    target = db.get(User, target_user_id)
    if not target:
        raise HTTPException(status_code=404, detail=MessageConstants.PROFILE_NOT_FOUND)

    context = DashboardContext(
        view_type=ViewType.PROFILE,
        user=user,
        user_role=SELF_ROLE,
        profile_user_id=target.id,
    )
    if target.id == user.id:
        return context
    if user.is_admin:
        context.user_role = SYSTEM_ADMIN_ROLE
        return context

    # Best role the viewer holds in a workspace the target belongs to
    target_workspaces = select(WorkspaceMember.workspace_id).where(WorkspaceMember.user_id == target.id)
    rows = db.exec(
        select(Workspace.owner_id, WorkspaceMember.role)
        .outerjoin(
            WorkspaceMember,
            and_(WorkspaceMember.workspace_id == Workspace.id, WorkspaceMember.user_id == user.id),
        )
        .where(
            Workspace.id.in_(target_workspaces),
            or_(Workspace.owner_id == user.id, WorkspaceMember.user_id == user.id),
        )
    ).all()
    roles = [WorkspaceRole.OWNER.value if owner_id == user.id else role for owner_id, role in rows]
    managing = sorted((r for r in roles if r in WORKSPACE_MANAGER_ROLES), key=ROLE_RANK.get)
    if not managing:
        raise HTTPException(status_code=403, detail=MessageConstants.PROFILE_ACCESS_DENIED)

    context.user_role = managing[0]
    context.restrict_to_managed = True
    return context


def project_scope_query(context: DashboardContext):
    """SELECT of the project ids visible in this context"""
    if context.view_type == ViewType.PROJECT:
        return select(Project.id).where(Project.id == context.project_id)

    if context.view_type == ViewType.WORKSPACE:
        query = select(Project.id).where(Project.workspace_id == context.workspace_id)
        if context.user_role not in WORKSPACE_MANAGER_ROLES and context.user_role != SYSTEM_ADMIN_ROLE:
            query = query.where(
                Project.id.in_(select(ProjectMember.project_id).where(ProjectMember.user_id == context.user_id))
            )
        return query

    if context.view_type == ViewType.PROFILE:
        query = select(Project.id).where(
            Project.id.in_(select(ProjectMember.project_id).where(ProjectMember.user_id == context.profile_user_id))
        )
        if context.restrict_to_managed:
            query = query.where(Project.workspace_id.in_(managed_workspace_ids(context.user_id)))
        return query

    # landing
    if context.is_admin:
        return select(Project.id)
    return select(Project.id).where(
        Project.workspace_id.in_(select(Workspace.id).where(Workspace.owner_id == context.user_id))
    )


def task_scope_filter(context: DashboardContext):
    """WHERE clause selecting the top-level tasks visible in this context"""
    conditions = [Task.parent_task_id.is_(None)]

    if context.view_type == ViewType.PROFILE:
        conditions.append(
            Task.id.in_(select(TaskAssignee.task_id).where(TaskAssignee.user_id == context.profile_user_id))
        )
        if context.restrict_to_managed:
            conditions.append(
                Task.project_id.in_(
                    select(Project.id).where(Project.workspace_id.in_(managed_workspace_ids(context.user_id)))
                )
            )
    elif context.view_type == ViewType.LANDING and context.is_admin:
        conditions.append(true())
    else:
        conditions.append(Task.project_id.in_(project_scope_query(context)))

    return and_(*conditions)
