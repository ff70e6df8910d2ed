"""Seeded workspace shared by the service tests"""

from types import SimpleNamespace

import pytest

from app.schemas.dashboard import ViewType
from app.services.dashboard_scope import DashboardContext
from tests.factories import (
    ProjectFactory,
    TaskFactory,
    UserFactory,
    WorkspaceFactory,
    utc,
)


@pytest.fixture
def seeded(db_session):
    """
    One workspace, one project and six top-level tasks:

    ========  ===========  ========  =======  ======  ==========================
    task      status       priority  created  due     notes
    ========  ===========  ========  =======  ======  ==========================
    todo      TODO         MEDIUM    03-10    -       planned start 03-10, idle
    overdue   IN PROGRESS  URGENT    03-12    03-13   started on time
    on_time   DONE         MEDIUM    03-01    03-05   completed 03-04
    late      DONE         MEDIUM    03-01    03-05   completed 03-07
    expired   TODO         MEDIUM    03-01    03-02   is_expired
    review    IN REVIEW    HIGH      01-10    -       outside the last month
    ========  ===========  ========  =======  ======  ==========================

    plus a DONE subtask of ``todo`` that must never be counted.
    """
    owner = UserFactory.create(db_session)
    workspace = WorkspaceFactory.create(db_session, owner)
    project = ProjectFactory.create(db_session, workspace, members=[owner])

    tasks = SimpleNamespace(
        todo=TaskFactory.create(
            db_session, project, assignees=[owner],
            created_at=utc(2025, 3, 10, 9), start_date=utc(2025, 3, 10),
        ),
        overdue=TaskFactory.create(
            db_session, project, status="IN PROGRESS", priority="URGENT",
            created_at=utc(2025, 3, 12, 9), due_date=utc(2025, 3, 13),
            start_date=utc(2025, 3, 12), started_at=utc(2025, 3, 12, 9),
        ),
        on_time=TaskFactory.create(
            db_session, project, status="DONE",
            created_at=utc(2025, 3, 1, 9), due_date=utc(2025, 3, 5), completed_at=utc(2025, 3, 4, 16),
            start_date=utc(2025, 3, 3), started_at=utc(2025, 3, 3, 8),
        ),
        late=TaskFactory.create(
            db_session, project, status="DONE",
            created_at=utc(2025, 3, 1, 9), due_date=utc(2025, 3, 5), completed_at=utc(2025, 3, 7, 10),
        ),
        expired=TaskFactory.create(
            db_session, project, is_expired=True,
            created_at=utc(2025, 3, 1, 9), due_date=utc(2025, 3, 2),
        ),
        review=TaskFactory.create(
            db_session, project, status="IN REVIEW", priority="HIGH",
            created_at=utc(2025, 1, 10, 9),
        ),
    )
    tasks.subtask = TaskFactory.create(
        db_session, project, status="DONE", parent_task_id=tasks.todo.id,
        created_at=utc(2025, 3, 11, 9), completed_at=utc(2025, 3, 11, 12),
    )

    context = DashboardContext(
        view_type=ViewType.WORKSPACE,
        user=owner,
        user_role="OWNER",
        workspace_id=workspace.id,
        workspace_name=workspace.name,
    )
    return SimpleNamespace(owner=owner, workspace=workspace, project=project, tasks=tasks, context=context)
