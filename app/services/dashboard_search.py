"""
Typeahead search for the dashboard filter pickers.

All four searches use keyset pagination over ``(name, id)``: the response
carries the last row as ``cursor`` and the client sends it back to get the
next page.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from sqlalchemy import and_, distinct, func, or_
from sqlmodel import select

from app.constants.messages import MessageConstants
from app.crud.dashboard import contains_text
from app.models import (
    Department,
    DepartmentRole,
    Project,
    ProjectMember,
    Tag,
    Task,
    TaskAssignee,
    TaskTag,
    User,
    Workspace,
)
from app.schemas.dashboard import ViewType
from app.services.dashboard_base import DashboardService
from app.services.dashboard_scope import project_scope_query

logger = logging.getLogger(__name__)


def parse_cursor(raw: Optional[str], name_field: str) -> Optional[Dict[str, Any]]:
    """Decode the JSON cursor ``{"<name_field>": str, "id": int}``"""
    if not raw:
        return None
    try:
        cursor = json.loads(raw)
        return {name_field: str(cursor[name_field]), "id": int(cursor["id"])}
    except (ValueError, TypeError, KeyError) as e:
        raise HTTPException(status_code=400, detail=MessageConstants.INVALID_CURSOR) from e


def keyset_after(name_column, id_column, cursor: Optional[Dict[str, Any]], name_field: str) -> List[Any]:
    if cursor is None:
        return []
    name = cursor[name_field]
    return [or_(name_column > name, and_(name_column == name, id_column > cursor["id"]))]


def paginate(rows: List[Any], limit: int, name_field: str) -> Dict[str, Any]:
    """Split the ``limit + 1`` rows into page, next cursor and hasMore"""
    has_more = len(rows) > limit
    page = rows[:limit]
    cursor = None
    if has_more and page:
        last = page[-1]
        cursor = {name_field: last[name_field], "id": last["id"]}
    return {"data": page, "cursor": cursor, "hasMore": has_more}


class DashboardSearchService(DashboardService):
    def _meta(self) -> Dict[str, Any]:
        return {"context": {"viewType": self.context.view_type.value, "userRole": self.context.user_role}}

    def _scope_users(self):
        """SELECT of user ids that belong to the visible projects"""
        if self.context.view_type == ViewType.LANDING and self.context.is_admin:
            return select(User.id)
        return select(ProjectMember.user_id).where(ProjectMember.project_id.in_(project_scope_query(self.context)))

    def _visible_department_ids(self):
        if self.context.view_type == ViewType.LANDING and self.context.is_admin:
            return select(Department.id)
        return select(User.department_id).where(User.id.in_(self._scope_users()), User.department_id.isnot(None))

    def _task_counts_by(self, column, ids: List[int]) -> Dict[int, int]:
        """In-scope task counts grouped by a user column (department/role)"""
        if not ids:
            return {}
        rows = self.db.exec(
            select(column, func.count(distinct(Task.id)))
            .select_from(Task)
            .join(TaskAssignee, TaskAssignee.task_id == Task.id)
            .join(User, User.id == TaskAssignee.user_id)
            .where(self.scope_filter, column.in_(ids))
            .group_by(column)
        ).all()
        return dict(rows)

    def _user_counts_by(self, column, ids: List[int]) -> Dict[int, int]:
        if not ids:
            return {}
        rows = self.db.exec(
            select(column, func.count(User.id))
            .where(column.in_(ids), User.id.in_(self._scope_users()))
            .group_by(column)
        ).all()
        return dict(rows)

    def search_projects(self, search: Optional[str], cursor: Optional[str], limit: int) -> Dict[str, Any]:
        after = parse_cursor(cursor, "title")
        query = (
            select(Project.id, Project.title, Workspace.name)
            .join(Workspace, Workspace.id == Project.workspace_id)
            .where(Project.id.in_(project_scope_query(self.context)))
            .where(*keyset_after(Project.title, Project.id, after, "title"))
            .order_by(Project.title, Project.id)
            .limit(limit + 1)
        )
        if search:
            query = query.where(contains_text(Project.title, search))
        rows = self.db.exec(query).all()

        ids = [row[0] for row in rows]
        task_counts = dict(self.db.exec(
            select(Task.project_id, func.count(Task.id))
            .where(self.scope_filter, Task.project_id.in_(ids))
            .group_by(Task.project_id)
        ).all()) if ids else {}
        member_counts = dict(self.db.exec(
            select(ProjectMember.project_id, func.count(ProjectMember.user_id))
            .where(ProjectMember.project_id.in_(ids))
            .group_by(ProjectMember.project_id)
        ).all()) if ids else {}

        items = [
            {
                "id": project_id,
                "title": title,
                "workspace_name": workspace_name,
                "task_count": task_counts.get(project_id, 0),
                "member_count": member_counts.get(project_id, 0),
            }
            for project_id, title, workspace_name in rows
        ]
        return {**paginate(items, limit, "title"), "_meta": self._meta()}

    def search_tags(self, search: Optional[str], cursor: Optional[str], limit: int) -> Dict[str, Any]:
        after = parse_cursor(cursor, "name")
        query = (
            select(Tag.id, Tag.name, func.count(distinct(Task.id)))
            .select_from(Tag)
            .join(TaskTag, TaskTag.tag_id == Tag.id)
            .join(Task, Task.id == TaskTag.task_id)
            .where(self.scope_filter)
            .where(*keyset_after(Tag.name, Tag.id, after, "name"))
            .group_by(Tag.id, Tag.name)
            .order_by(Tag.name, Tag.id)
            .limit(limit + 1)
        )
        if search:
            query = query.where(contains_text(Tag.name, search))
        items = [
            {"id": tag_id, "name": name, "task_count": task_count}
            for tag_id, name, task_count in self.db.exec(query).all()
        ]
        return {**paginate(items, limit, "name"), "_meta": self._meta()}

    def search_departments(self, search: Optional[str], cursor: Optional[str], limit: int) -> Dict[str, Any]:
        after = parse_cursor(cursor, "name")
        query = (
            select(Department.id, Department.name)
            .where(Department.id.in_(self._visible_department_ids()))
            .where(*keyset_after(Department.name, Department.id, after, "name"))
            .order_by(Department.name, Department.id)
            .limit(limit + 1)
        )
        if search:
            query = query.where(contains_text(Department.name, search))
        rows = self.db.exec(query).all()

        ids = [row[0] for row in rows]
        user_counts = self._user_counts_by(User.department_id, ids)
        task_counts = self._task_counts_by(User.department_id, ids)
        roles: Dict[int, List[str]] = {}
        if ids:
            for department_id, role_name in self.db.exec(
                select(DepartmentRole.department_id, DepartmentRole.name)
                .where(DepartmentRole.department_id.in_(ids))
                .order_by(DepartmentRole.name)
            ).all():
                roles.setdefault(department_id, []).append(role_name)

        items = [
            {
                "id": department_id,
                "name": name,
                "user_count": user_counts.get(department_id, 0),
                "task_count": task_counts.get(department_id, 0),
                "roles": roles.get(department_id, []),
            }
            for department_id, name in rows
        ]
        return {**paginate(items, limit, "name"), "_meta": self._meta()}

    def search_department_roles(
        self, department_id: Optional[int], search: Optional[str], cursor: Optional[str], limit: int
    ) -> Dict[str, Any]:
        if department_id is None:
            raise HTTPException(status_code=400, detail=MessageConstants.DEPARTMENT_ID_REQUIRED)
        department = self.db.get(Department, department_id)
        if not department:
            raise HTTPException(status_code=404, detail=MessageConstants.DEPARTMENT_NOT_FOUND)
        visible = self.db.exec(
            select(Department.id).where(
                Department.id == department_id,
                Department.id.in_(self._visible_department_ids()),
            )
        ).first()
        if visible is None:
            raise HTTPException(status_code=403, detail=MessageConstants.DEPARTMENT_ACCESS_DENIED)

        after = parse_cursor(cursor, "name")
        query = (
            select(DepartmentRole.id, DepartmentRole.name)
            .where(DepartmentRole.department_id == department_id)
            .where(*keyset_after(DepartmentRole.name, DepartmentRole.id, after, "name"))
            .order_by(DepartmentRole.name, DepartmentRole.id)
            .limit(limit + 1)
        )
        if search:
            query = query.where(contains_text(DepartmentRole.name, search))
        rows = self.db.exec(query).all()

        ids = [row[0] for row in rows]
        user_counts = self._user_counts_by(User.department_role_id, ids)
        task_counts = self._task_counts_by(User.department_role_id, ids)
        items = [
            {
                "id": role_id,
                "name": name,
                "department_name": department.name,
                "user_count": user_counts.get(role_id, 0),
                "task_count": task_counts.get(role_id, 0),
            }
            for role_id, name in rows
        ]
        meta = self._meta()
        meta["department"] = {"id": department.id, "name": department.name}
        return {**paginate(items, limit, "name"), "_meta": meta}
