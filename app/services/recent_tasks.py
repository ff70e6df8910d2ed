import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from sqlalchemy import case, func
from sqlalchemy.orm import selectinload
from sqlmodel import select

from app.constants.messages import MessageConstants
from app.crud.dashboard import (
    completed_late_condition,
    contains_text,
    overdue_condition,
    started_late_condition,
)
from app.models import Project, TaskTag, User
from app.models.task import Task, TaskAssignee, TaskPriority, TaskStatus
from app.schemas.common import create_pagination_meta
from app.schemas.dashboard import RecentTaskFilter, RecentTaskSort, RecentTaskTiming
from app.services.dashboard_base import DashboardService
from app.utils.aggregation import percentage
from app.utils.task_timing import start_status

logger = logging.getLogger(__name__)

PRIORITY_ORDER = case(
    {p.value: i for i, p in enumerate(TaskPriority)},
    value=Task.priority,
    else_=len(TaskPriority),
)
STATUS_ORDER = case(
    {s.value: i for i, s in enumerate(TaskStatus)},
    value=Task.status,
    else_=len(TaskStatus),
)


def assigned_to(department_id: Optional[int] = None, role_id: Optional[int] = None):
    query = select(TaskAssignee.task_id).join(User, User.id == TaskAssignee.user_id)
    if department_id is not None:
        query = query.where(User.department_id == department_id)
    if role_id is not None:
        query = query.where(User.department_role_id == role_id)
    return query


class RecentTaskService(DashboardService):
    def get_recent_tasks(
        self,
        task_filter: Optional[RecentTaskFilter] = None,
        status: Optional[TaskStatus] = None,
        priority: Optional[TaskPriority] = None,
        department: Optional[int] = None,
        role: Optional[int] = None,
        project: Optional[int] = None,
        tag_id: Optional[int] = None,
        timing: Optional[RecentTaskTiming] = None,
        search: Optional[str] = None,
        sort_by: RecentTaskSort = RecentTaskSort.NEWEST,
        page: int = 1,
        limit: int = 10,
    ) -> Dict[str, Any]:
        if role is not None and department is None:
            raise HTTPException(status_code=400, detail=MessageConstants.ROLE_REQUIRES_DEPARTMENT)

        conditions = self._filter_conditions(task_filter, status, priority, department, role, project, tag_id, timing, search)

        total = self.db.exec(select(func.count(Task.id)).where(self.scope_filter, *conditions)).one()
        query = (
            select(Task)
            .where(self.scope_filter, *conditions)
            .options(
                selectinload(Task.project).selectinload(Project.workspace),
                selectinload(Task.assignees).selectinload(TaskAssignee.user).selectinload(User.department),
                selectinload(Task.assignees).selectinload(TaskAssignee.user).selectinload(User.department_role),
                selectinload(Task.tags).selectinload(TaskTag.tag),
            )
            .order_by(*self._ordering(sort_by))
            .offset((page - 1) * limit)
            .limit(limit)
        )
        tasks = self.db.exec(query).all()
        subtasks = self._subtask_counts([task.id for task in tasks])

        applied = {
            "filter": task_filter,
            "status": status,
            "priority": priority,
            "department": department,
            "role": role,
            "project": project,
            "tagId": tag_id,
            "timing": timing,
        }
        return {
            "data": [self._serialize(task, subtasks.get(task.id, (0, 0))) for task in tasks],
            "pagination": create_pagination_meta(page, limit, total),
            "_meta": {
                "context": {"viewType": self.context.view_type.value, "userRole": self.context.user_role},
                "filters": {
                    "appliedFilters": {k: v for k, v in applied.items() if v is not None},
                    "search": search or None,
                    "sort": sort_by.value,
                },
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        }

    def _filter_conditions(self, task_filter, status, priority, department, role, project, tag_id, timing, search) -> List[Any]:
        conditions: List[Any] = []

        if task_filter == RecentTaskFilter.EXPIRED:
            conditions.append(Task.is_expired.is_(True))
        elif task_filter == RecentTaskFilter.OVERDUE:
            conditions.append(overdue_condition(self.now))
        elif task_filter == RecentTaskFilter.LATE_COMPLETED:
            conditions.append(completed_late_condition())
        elif task_filter == RecentTaskFilter.LATE_STARTED:
            conditions.append(started_late_condition(self.now))

        if status is not None:
            conditions.append(Task.status == status.value)
        if priority is not None:
            conditions.append(Task.priority == priority.value)
        if department is not None:
            conditions.append(Task.id.in_(assigned_to(department, role)))
        if project is not None:
            conditions.append(Task.project_id == project)
        if tag_id is not None:
            conditions.append(Task.id.in_(select(TaskTag.task_id).where(TaskTag.tag_id == tag_id)))
        if timing == RecentTaskTiming.READY:
            conditions.extend([
                Task.status == TaskStatus.TODO.value,
                Task.start_date.isnot(None),
                Task.start_date <= self.now,
            ])
        elif timing == RecentTaskTiming.UNASSIGNED:
            conditions.append(Task.id.not_in(select(TaskAssignee.task_id)))
        if search:
            conditions.append(contains_text(Task.title, search))

        return conditions

    def _ordering(self, sort_by: RecentTaskSort) -> List[Any]:
        if sort_by == RecentTaskSort.OLDEST:
            return [Task.created_at.asc(), Task.id.asc()]
        if sort_by == RecentTaskSort.LAST_UPDATED:
            return [func.coalesce(Task.updated_at, Task.created_at).desc(), Task.id.desc()]
        if sort_by == RecentTaskSort.DUE_DATE:
            return [Task.due_date.is_(None), Task.due_date.asc(), Task.id.asc()]
        if sort_by == RecentTaskSort.PRIORITY:
            return [PRIORITY_ORDER, Task.created_at.desc(), Task.id.desc()]
        if sort_by == RecentTaskSort.STATUS:
            return [STATUS_ORDER, Task.created_at.desc(), Task.id.desc()]
        return [Task.created_at.desc(), Task.id.desc()]

    def _subtask_counts(self, task_ids: List[int]) -> Dict[int, tuple]:
        if not task_ids:
            return {}
        rows = self.db.exec(
            select(
                Task.parent_task_id,
                func.count(Task.id),
                func.sum(case((Task.status == TaskStatus.DONE.value, 1), else_=0)),
            )
            .where(Task.parent_task_id.in_(task_ids))
            .group_by(Task.parent_task_id)
        ).all()
        return {parent_id: (total, done or 0) for parent_id, total, done in rows}

    def _serialize(self, task: Task, subtasks: tuple) -> Dict[str, Any]:
        subtask_total, subtask_done = subtasks
        assignees = [assignment.user for assignment in task.assignees]
        return {
            "id": task.id,
            "title": task.title,
            "description": task.description,
            "due_date": task.due_date,
            "start_date": task.start_date,
            "created_at": task.created_at,
            "updated_at": task.updated_at,
            "is_expired": bool(task.is_expired),
            "late_start_status": start_status(task, self.now),
            "status": task.status,
            "priority": task.priority,
            "project_name": task.project.title if task.project else None,
            "workspace_name": task.project.workspace.name if task.project and task.project.workspace else None,
            "is_assigned_to_me": any(user.id == self.context.user_id for user in assignees),
            "assigned_users": [
                {
                    "id": user.id,
                    "username": user.username,
                    "name": user.name,
                    "role": user.department_role.name if user.department_role else None,
                    "department": user.department.name if user.department else None,
                    "avatar": user.avatar_url,
                }
                for user in assignees
            ],
            "subtasks_info": {
                "total": subtask_total,
                "completed": subtask_done,
                "completion_percentage": percentage(subtask_done, subtask_total),
            },
            "tags": [{"id": link.tag.id, "name": link.tag.name} for link in task.tags],
        }
