"""Unit tests for dashboard access control and task scoping"""

import pytest
from fastapi import HTTPException
from sqlmodel import Session, select

from app.models import Task
from app.schemas.dashboard import ViewType
from app.services.dashboard_scope import (
    resolve_landing_context,
    resolve_profile_context,
    resolve_project_context,
    resolve_workspace_context,
    task_scope_filter,
)
from tests.factories import (
    ProjectFactory,
    TaskFactory,
    UserFactory,
    WorkspaceFactory,
    WorkspaceMemberFactory,
)


def visible_task_ids(db: Session, context):
    return set(db.exec(select(Task.id).where(task_scope_filter(context))).all())


class TestLandingContext:
    """Tests for the landing view"""

    def test_owner_gets_owner_role(self, db_session: Session):
        owner = UserFactory.create(db_session)
        WorkspaceFactory.create(db_session, owner)

        context = resolve_landing_context(db_session, owner)

        assert context.view_type == ViewType.LANDING
        assert context.user_role == "OWNER"
        assert context.scope_key == f"user-{owner.id}"

    def test_user_without_owned_workspace_is_denied(self, db_session: Session):
        """Test that plain members have no landing dashboard"""
        owner = UserFactory.create(db_session)
        member = UserFactory.create(db_session)
        WorkspaceMemberFactory.create(db_session, WorkspaceFactory.create(db_session, owner), member)

        with pytest.raises(HTTPException) as exc_info:
            resolve_landing_context(db_session, member)

        assert exc_info.value.status_code == 403

    def test_system_admin_sees_everything(self, db_session: Session):
        admin = UserFactory.create(db_session, is_admin=True)
        owner = UserFactory.create(db_session)
        project = ProjectFactory.create(db_session, WorkspaceFactory.create(db_session, owner))
        task = TaskFactory.create(db_session, project)

        context = resolve_landing_context(db_session, admin)

        assert context.user_role == "ADMIN"
        assert task.id in visible_task_ids(db_session, context)

    def test_owner_sees_only_owned_workspaces(self, db_session: Session):
        owner = UserFactory.create(db_session)
        other = UserFactory.create(db_session)
        mine = TaskFactory.create(db_session, ProjectFactory.create(db_session, WorkspaceFactory.create(db_session, owner)))
        theirs = TaskFactory.create(db_session, ProjectFactory.create(db_session, WorkspaceFactory.create(db_session, other)))

        visible = visible_task_ids(db_session, resolve_landing_context(db_session, owner))

        assert mine.id in visible
        assert theirs.id not in visible


class TestWorkspaceContext:
    """Tests for the workspace view"""

    def test_missing_workspace_is_404(self, db_session: Session):
        user = UserFactory.create(db_session)

        with pytest.raises(HTTPException) as exc_info:
            resolve_workspace_context(db_session, user, 999999)

        assert exc_info.value.status_code == 404

    def test_non_member_is_403(self, db_session: Session):
        workspace = WorkspaceFactory.create(db_session, UserFactory.create(db_session))
        outsider = UserFactory.create(db_session)

        with pytest.raises(HTTPException) as exc_info:
            resolve_workspace_context(db_session, outsider, workspace.id)

        assert exc_info.value.status_code == 403

    def test_system_admin_without_membership(self, db_session: Session):
        workspace = WorkspaceFactory.create(db_session, UserFactory.create(db_session))
        admin = UserFactory.create(db_session, is_admin=True)

        context = resolve_workspace_context(db_session, admin, workspace.id)

        assert context.user_role == "ADMIN"

    def test_member_sees_only_own_projects(self, db_session: Session):
        """Test that members are limited to the projects they belong to"""
        owner = UserFactory.create(db_session)
        member = UserFactory.create(db_session)
        workspace = WorkspaceFactory.create(db_session, owner)
        WorkspaceMemberFactory.create(db_session, workspace, member)
        joined = TaskFactory.create(db_session, ProjectFactory.create(db_session, workspace, members=[member]))
        hidden = TaskFactory.create(db_session, ProjectFactory.create(db_session, workspace))

        member_context = resolve_workspace_context(db_session, member, workspace.id)
        owner_context = resolve_workspace_context(db_session, owner, workspace.id)

        assert member_context.user_role == "MEMBER"
        assert visible_task_ids(db_session, member_context) == {joined.id}
        assert visible_task_ids(db_session, owner_context) == {joined.id, hidden.id}

    def test_subtasks_are_excluded(self, db_session: Session):
        owner = UserFactory.create(db_session)
        workspace = WorkspaceFactory.create(db_session, owner)
        project = ProjectFactory.create(db_session, workspace)
        parent = TaskFactory.create(db_session, project)
        TaskFactory.create(db_session, project, parent_task_id=parent.id)

        context = resolve_workspace_context(db_session, owner, workspace.id)

        assert visible_task_ids(db_session, context) == {parent.id}


class TestProjectContext:
    """Tests for the project view"""

    def test_project_of_another_workspace_is_404(self, db_session: Session):
        owner = UserFactory.create(db_session)
        workspace = WorkspaceFactory.create(db_session, owner)
        foreign = ProjectFactory.create(db_session, WorkspaceFactory.create(db_session, owner))

        with pytest.raises(HTTPException) as exc_info:
            resolve_project_context(db_session, owner, workspace.id, foreign.id)

        assert exc_info.value.status_code == 404

    def test_workspace_manager_keeps_workspace_role(self, db_session: Session):
        owner = UserFactory.create(db_session)
        manager = UserFactory.create(db_session)
        workspace = WorkspaceFactory.create(db_session, owner)
        WorkspaceMemberFactory.create(db_session, workspace, manager, role="MANAGER")
        project = ProjectFactory.create(db_session, workspace)

        context = resolve_project_context(db_session, manager, workspace.id, project.id)

        assert context.user_role == "MANAGER"
        assert context.project_name == project.title
        assert context.scope_key == f"workspace-{workspace.id}:project-{project.id}:viewer-{manager.id}"

    def test_project_member_gets_project_role(self, db_session: Session):
        owner = UserFactory.create(db_session)
        member = UserFactory.create(db_session)
        workspace = WorkspaceFactory.create(db_session, owner)
        WorkspaceMemberFactory.create(db_session, workspace, member)
        project = ProjectFactory.create(db_session, workspace, members=[member])

        context = resolve_project_context(db_session, member, workspace.id, project.id)

        assert context.user_role == "MEMBER"

    def test_workspace_member_outside_project_is_403(self, db_session: Session):
        owner = UserFactory.create(db_session)
        member = UserFactory.create(db_session)
        workspace = WorkspaceFactory.create(db_session, owner)
        WorkspaceMemberFactory.create(db_session, workspace, member)
        project = ProjectFactory.create(db_session, workspace)

        with pytest.raises(HTTPException) as exc_info:
            resolve_project_context(db_session, member, workspace.id, project.id)

        assert exc_info.value.status_code == 403


class TestProfileContext:
    """Tests for the profile view"""

    def test_own_profile(self, db_session: Session):
        user = UserFactory.create(db_session)

        context = resolve_profile_context(db_session, user, user.id)

        assert context.user_role == "SELF"
        assert not context.restrict_to_managed

    def test_missing_profile_is_404(self, db_session: Session):
        user = UserFactory.create(db_session)

        with pytest.raises(HTTPException) as exc_info:
            resolve_profile_context(db_session, user, 999999)

        assert exc_info.value.status_code == 404

    def test_unrelated_user_is_403(self, db_session: Session):
        target = UserFactory.create(db_session)
        WorkspaceMemberFactory.create(db_session, WorkspaceFactory.create(db_session, UserFactory.create(db_session)), target)
        stranger = UserFactory.create(db_session)

        with pytest.raises(HTTPException) as exc_info:
            resolve_profile_context(db_session, stranger, target.id)

        assert exc_info.value.status_code == 403

    def test_fellow_member_is_403(self, db_session: Session):
        """Test that sharing a workspace as a member is not enough"""
        owner = UserFactory.create(db_session)
        target = UserFactory.create(db_session)
        peer = UserFactory.create(db_session)
        workspace = WorkspaceFactory.create(db_session, owner)
        WorkspaceMemberFactory.create(db_session, workspace, target)
        WorkspaceMemberFactory.create(db_session, workspace, peer)

        with pytest.raises(HTTPException) as exc_info:
            resolve_profile_context(db_session, peer, target.id)

        assert exc_info.value.status_code == 403

    def test_manager_sees_only_managed_workspaces(self, db_session: Session):
        """Test that a workspace owner only sees the target's work in that workspace"""
        owner = UserFactory.create(db_session)
        target = UserFactory.create(db_session)
        managed = WorkspaceFactory.create(db_session, owner)
        elsewhere = WorkspaceFactory.create(db_session, UserFactory.create(db_session))
        WorkspaceMemberFactory.create(db_session, managed, target)
        WorkspaceMemberFactory.create(db_session, elsewhere, target)
        inside = TaskFactory.create(
            db_session, ProjectFactory.create(db_session, managed, members=[target]), assignees=[target]
        )
        outside = TaskFactory.create(
            db_session, ProjectFactory.create(db_session, elsewhere, members=[target]), assignees=[target]
        )

        owner_context = resolve_profile_context(db_session, owner, target.id)
        self_context = resolve_profile_context(db_session, target, target.id)

        assert owner_context.user_role == "OWNER"
        assert owner_context.restrict_to_managed
        assert visible_task_ids(db_session, owner_context) == {inside.id}
        assert visible_task_ids(db_session, self_context) == {inside.id, outside.id}
