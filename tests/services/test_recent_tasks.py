"""Unit tests for the recent tasks listing"""

import pytest
from fastapi import HTTPException
from sqlmodel import Session

from app.models import TaskTag
from app.models.task import TaskPriority, TaskStatus
from app.schemas.dashboard import RecentTaskFilter, RecentTaskSort, RecentTaskTiming
from app.services.recent_tasks import RecentTaskService
from tests.factories import (
    DepartmentFactory,
    DepartmentRoleFactory,
    ProjectMemberFactory,
    TagFactory,
    TaskFactory,
    UserFactory,
    utc,
)

NOW = utc(2025, 3, 15, 12)


def listed_ids(result):
    return [item["id"] for item in result["data"]]


class TestListing:
    """Tests for ordering and pagination"""

    def test_newest_first(self, db_session: Session, seeded):
        result = RecentTaskService(db_session, seeded.context, now=NOW).get_recent_tasks()
        t = seeded.tasks

        assert listed_ids(result) == [t.overdue.id, t.todo.id, t.expired.id, t.late.id, t.on_time.id, t.review.id]
        assert result["pagination"] == {"page": 1, "limit": 10, "total": 6, "totalPages": 1}

    def test_second_page(self, db_session: Session, seeded):
        result = RecentTaskService(db_session, seeded.context, now=NOW).get_recent_tasks(page=2, limit=2)

        assert listed_ids(result) == [seeded.tasks.expired.id, seeded.tasks.late.id]
        assert result["pagination"]["totalPages"] == 3

    def test_sort_by_priority(self, db_session: Session, seeded):
        result = RecentTaskService(db_session, seeded.context, now=NOW).get_recent_tasks(
            sort_by=RecentTaskSort.PRIORITY
        )

        assert listed_ids(result)[:2] == [seeded.tasks.overdue.id, seeded.tasks.review.id]

    def test_sort_by_due_date_puts_undated_last(self, db_session: Session, seeded):
        """Test that tasks without a due date come after dated ones"""
        t = seeded.tasks
        result = RecentTaskService(db_session, seeded.context, now=NOW).get_recent_tasks(
            sort_by=RecentTaskSort.DUE_DATE
        )

        assert listed_ids(result)[:4] == [t.expired.id, t.on_time.id, t.late.id, t.overdue.id]
        assert set(listed_ids(result)[4:]) == {t.todo.id, t.review.id}

    def test_item_shape(self, db_session: Session, seeded):
        result = RecentTaskService(db_session, seeded.context, now=NOW).get_recent_tasks()
        item = next(i for i in result["data"] if i["id"] == seeded.tasks.todo.id)

        assert item["is_assigned_to_me"] is True
        assert item["assigned_users"][0]["username"] == seeded.owner.username
        assert item["subtasks_info"] == {"total": 1, "completed": 1, "completion_percentage": 100.0}
        assert item["project_name"] == seeded.project.title
        assert item["workspace_name"] == seeded.workspace.name
        assert item["late_start_status"] == "Late"
        assert item["tags"] == []

    def test_meta_lists_applied_filters(self, db_session: Session, seeded):
        result = RecentTaskService(db_session, seeded.context, now=NOW).get_recent_tasks(
            priority=TaskPriority.URGENT, search="report"
        )

        assert result["_meta"]["filters"]["appliedFilters"] == {"priority": TaskPriority.URGENT}
        assert result["_meta"]["filters"]["search"] == "report"
        assert result["_meta"]["filters"]["sort"] == "newest"


class TestFilters:
    """Tests for the recent tasks filters"""

    @pytest.mark.parametrize(
        "task_filter,expected",
        [
            (RecentTaskFilter.OVERDUE, "overdue"),
            (RecentTaskFilter.EXPIRED, "expired"),
            (RecentTaskFilter.LATE_COMPLETED, "late"),
            (RecentTaskFilter.LATE_STARTED, "todo"),
        ],
    )
    def test_named_filters(self, db_session: Session, seeded, task_filter, expected):
        result = RecentTaskService(db_session, seeded.context, now=NOW).get_recent_tasks(task_filter=task_filter)

        assert listed_ids(result) == [getattr(seeded.tasks, expected).id]

    def test_late_started_uses_completion_when_never_started(self, db_session: Session, seeded):
        """Test that a task completed without a start time counts as started on completion"""
        late_start = TaskFactory.create(
            db_session, seeded.project, status="DONE",
            created_at=utc(2025, 3, 7, 9), start_date=utc(2025, 3, 8), completed_at=utc(2025, 3, 9, 10),
        )
        TaskFactory.create(
            db_session, seeded.project, status="DONE",
            created_at=utc(2025, 3, 7, 9), start_date=utc(2025, 3, 8), completed_at=utc(2025, 3, 8, 23),
        )

        result = RecentTaskService(db_session, seeded.context, now=NOW).get_recent_tasks(
            task_filter=RecentTaskFilter.LATE_STARTED
        )

        assert set(listed_ids(result)) == {seeded.tasks.todo.id, late_start.id}

    def test_status_and_priority(self, db_session: Session, seeded):
        service = RecentTaskService(db_session, seeded.context, now=NOW)

        done = service.get_recent_tasks(status=TaskStatus.DONE)
        urgent = service.get_recent_tasks(priority=TaskPriority.URGENT)

        assert set(listed_ids(done)) == {seeded.tasks.on_time.id, seeded.tasks.late.id}
        assert listed_ids(urgent) == [seeded.tasks.overdue.id]

    def test_department_and_role(self, db_session: Session, seeded):
        """Test that department and role match the task's assignees"""
        engineering = DepartmentFactory.create(db_session, name="Engineering")
        backend = DepartmentRoleFactory.create(db_session, engineering, name="Backend Developer")
        qa = DepartmentRoleFactory.create(db_session, engineering, name="QA Engineer")
        engineer = UserFactory.create(db_session, department_id=engineering.id, department_role_id=backend.id)
        ProjectMemberFactory.create(db_session, seeded.project, engineer)
        task = TaskFactory.create(db_session, seeded.project, assignees=[engineer], created_at=utc(2025, 3, 14))
        service = RecentTaskService(db_session, seeded.context, now=NOW)

        assert listed_ids(service.get_recent_tasks(department=engineering.id)) == [task.id]
        assert listed_ids(service.get_recent_tasks(department=engineering.id, role=backend.id)) == [task.id]
        assert listed_ids(service.get_recent_tasks(department=engineering.id, role=qa.id)) == []

    def test_role_without_department_is_rejected(self, db_session: Session, seeded):
        with pytest.raises(HTTPException) as exc_info:
            RecentTaskService(db_session, seeded.context, now=NOW).get_recent_tasks(role=1)

        assert exc_info.value.status_code == 400

    def test_tag(self, db_session: Session, seeded):
        tag = TagFactory.create(db_session, name="backend")
        db_session.add(TaskTag(task_id=seeded.tasks.late.id, tag_id=tag.id))
        db_session.commit()

        result = RecentTaskService(db_session, seeded.context, now=NOW).get_recent_tasks(tag_id=tag.id)

        assert listed_ids(result) == [seeded.tasks.late.id]

    def test_timing(self, db_session: Session, seeded):
        service = RecentTaskService(db_session, seeded.context, now=NOW)

        ready = service.get_recent_tasks(timing=RecentTaskTiming.READY)
        unassigned = service.get_recent_tasks(timing=RecentTaskTiming.UNASSIGNED)

        assert listed_ids(ready) == [seeded.tasks.todo.id]
        assert seeded.tasks.todo.id not in listed_ids(unassigned)
        assert unassigned["pagination"]["total"] == 5

    def test_search_matches_title(self, db_session: Session, seeded):
        task = TaskFactory.create(db_session, seeded.project, title="Quarterly budget review", created_at=utc(2025, 3, 14))

        result = RecentTaskService(db_session, seeded.context, now=NOW).get_recent_tasks(search="  BUDGET ")

        assert listed_ids(result) == [task.id]

    def test_search_wildcards_are_literal(self, db_session: Session, seeded):
        """Test that ``%`` in the search text does not act as a wildcard"""
        coverage = TaskFactory.create(db_session, seeded.project, title="Reach 100% coverage", created_at=utc(2025, 3, 14))
        TaskFactory.create(db_session, seeded.project, title="Onboard 1000 users", created_at=utc(2025, 3, 14))

        result = RecentTaskService(db_session, seeded.context, now=NOW).get_recent_tasks(search="100%")

        assert listed_ids(result) == [coverage.id]
