"""
Dashboard analytics routes.

Every endpoint is mounted once per view context:

    /api/dashboard/<endpoint>                                          landing
    /api/dashboard/workspace/{workspace_id}/<endpoint>                 workspace
    /api/dashboard/workspace/{workspace_id}/project/{project_id}/<endpoint>
    /api/dashboard/profile/{user_id}/<endpoint>                        profile
"""

from typing import Any, Callable, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session

from app.api.dependencies.dashboard import (
    get_landing_context,
    get_profile_context,
    get_project_context,
    get_workspace_context,
)
from app.constants.messages import MessageConstants
from app.core.config import settings
from app.db import get_db
from app.models.task import TaskPriority, TaskStatus
from app.schemas.common import DashboardResponse
from app.schemas.dashboard import (
    DepartmentRoleSearchItem,
    DepartmentSearchItem,
    OnTimeLateByMonth,
    OverdueTrendPoint,
    PriorityBreakdown,
    ProjectCompletion,
    ProjectSearchItem,
    RecentTaskFilter,
    RecentTaskItem,
    RecentTaskSort,
    RecentTaskTiming,
    StatusOverviewByMonth,
    SummaryStats,
    TagSearchItem,
    TaskStatisticRow,
    TaskTrendPoint,
    TeamPerformance,
    ViewType,
)
from app.services.dashboard_cache import (
    CacheKind,
    DashboardCache,
    build_cache_key,
    get_dashboard_cache,
    select_ttl,
)
from app.services.dashboard_scope import DashboardContext
from app.services.dashboard_search import DashboardSearchService
from app.services.recent_tasks import RecentTaskService
from app.services.task_analytics import TaskAnalyticsService
from app.services.task_trends import TaskTrendService
from app.utils.aggregation import TimePeriod
from app.utils.date_range import DatePreset, DateRange, DateRangeError, resolve_date_range

router = APIRouter(prefix=f"{settings.API_PREFIX}/dashboard", tags=["Dashboard"])

VIEW_ROUTES = (
    (ViewType.LANDING, "", get_landing_context),
    (ViewType.WORKSPACE, "/workspace/{workspace_id}", get_workspace_context),
    (ViewType.PROJECT, "/workspace/{workspace_id}/project/{project_id}", get_project_context),
    (ViewType.PROFILE, "/profile/{user_id}", get_profile_context),
)

ERROR_RESPONSES = {
    400: {"description": "Invalid parameters or date range"},
    401: {"description": "Missing or invalid bearer token"},
    403: {"description": "Insufficient access for this view"},
    404: {"description": "Workspace, project or user not found"},
}


def dashboard_route(path: str, summary: str, response_model: Any):
    """Register the decorated endpoint factory under every view prefix"""

    def decorator(factory: Callable[[Callable], Callable]):
        route_name = path.strip("/").replace("/", "_").replace("-", "_")
        for view_type, prefix, context_dependency in VIEW_ROUTES:
            router.add_api_route(
                prefix + path,
                factory(context_dependency),
                methods=["GET"],
                response_model=response_model,
                response_model_exclude_unset=True,
                responses=ERROR_RESPONSES,
                summary=f"{summary} ({view_type.value})",
                name=f"{route_name}_{view_type.value}",
            )
        return factory

    return decorator


def date_range_query(default_preset: DatePreset):
    def dependency(
        preset: Optional[str] = Query(
            None, description="lastMonth, lastQuarter, lastYear, allTime or custom"
        ),
        start_date: Optional[str] = Query(None, alias="startDate", description="YYYY-MM-DD"),
        end_date: Optional[str] = Query(None, alias="endDate", description="YYYY-MM-DD"),
    ) -> DateRange:
        try:
            return resolve_date_range(preset, start_date, end_date, default_preset)
        except DateRangeError as e:
            raise HTTPException(status_code=400, detail=f"{MessageConstants.INVALID_DATE_RANGE}: {e}") from e

    return dependency


def respond(
    cache: DashboardCache,
    key: str,
    ttl: int,
    message: str,
    compute: Callable[[], Dict[str, Any]],
) -> Dict[str, Any]:
    body = cache.fetch(key, ttl, compute)
    return {"success": True, "message": message, **body}


@dashboard_route("/stats/summary", "Task summary counts", DashboardResponse[SummaryStats])
def stats_summary(context_dependency):
    def endpoint(
        date_range: DateRange = Depends(date_range_query(DatePreset.LAST_MONTH)),
        context: DashboardContext = Depends(context_dependency),
        db: Session = Depends(get_db),
        cache: DashboardCache = Depends(get_dashboard_cache),
    ):
        """Counts of tasks created in the range, by workflow status, plus overdue and expired."""
        return respond(
            cache,
            build_cache_key("stats/summary", context, date_range),
            select_ttl(context.view_type, CacheKind.STANDARD, date_range),
            MessageConstants.DASHBOARD_STATS_RETRIEVED,
            lambda: TaskAnalyticsService(db, context).get_summary(date_range),
        )

    return endpoint


@dashboard_route("/task-trends", "New vs completed tasks over time", DashboardResponse[List[TaskTrendPoint]])
def task_trends(context_dependency):
    def endpoint(
        time_period: TimePeriod = Query(TimePeriod.DAILY, alias="timePeriod"),
        date_range: DateRange = Depends(date_range_query(DatePreset.LAST_MONTH)),
        context: DashboardContext = Depends(context_dependency),
        db: Session = Depends(get_db),
        cache: DashboardCache = Depends(get_dashboard_cache),
    ):
        """Tasks created and completed per daily, weekly or monthly bucket."""
        return respond(
            cache,
            build_cache_key("task-trends", context, date_range, {"timePeriod": time_period}),
            select_ttl(context.view_type, CacheKind.ANALYTICS, date_range),
            MessageConstants.TASK_TRENDS_RETRIEVED,
            lambda: TaskTrendService(db, context).get_task_trends(date_range, time_period),
        )

    return endpoint


@dashboard_route("/team-performance", "Team performance score and distribution", DashboardResponse[TeamPerformance])
def team_performance(context_dependency):
    def endpoint(
        date_range: DateRange = Depends(date_range_query(DatePreset.LAST_MONTH)),
        context: DashboardContext = Depends(context_dependency),
        db: Session = Depends(get_db),
        cache: DashboardCache = Depends(get_dashboard_cache),
    ):
        return respond(
            cache,
            build_cache_key("team-performance", context, date_range),
            select_ttl(context.view_type, CacheKind.ANALYTICS, date_range),
            MessageConstants.TEAM_PERFORMANCE_RETRIEVED,
            lambda: TaskAnalyticsService(db, context).get_team_performance(date_range),
        )

    return endpoint


@dashboard_route("/ontime-late-task-completion", "On-time vs late completions by month", DashboardResponse[OnTimeLateByMonth])
def ontime_late_completion(context_dependency):
    def endpoint(
        date_range: DateRange = Depends(date_range_query(DatePreset.LAST_12_MONTHS)),
        context: DashboardContext = Depends(context_dependency),
        db: Session = Depends(get_db),
        cache: DashboardCache = Depends(get_dashboard_cache),
    ):
        """A task completed after the end of its due day counts as late."""
        return respond(
            cache,
            build_cache_key("completion-analysis", context, date_range),
            select_ttl(context.view_type, CacheKind.ANALYTICS, date_range),
            MessageConstants.ONTIME_COMPLETION_RETRIEVED,
            lambda: TaskTrendService(db, context).get_ontime_late_completion(date_range),
        )

    return endpoint


@dashboard_route("/ontime-late-task-start", "On-time vs late starts by month", DashboardResponse[OnTimeLateByMonth])
def ontime_late_start(context_dependency):
    def endpoint(
        date_range: DateRange = Depends(date_range_query(DatePreset.LAST_12_MONTHS)),
        context: DashboardContext = Depends(context_dependency),
        db: Session = Depends(get_db),
        cache: DashboardCache = Depends(get_dashboard_cache),
    ):
        """Tasks are bucketed by planned start month; not-yet-due starts are left out."""
        return respond(
            cache,
            build_cache_key("start-tasks-analysis", context, date_range),
            select_ttl(context.view_type, CacheKind.ANALYTICS, date_range),
            MessageConstants.ONTIME_START_RETRIEVED,
            lambda: TaskTrendService(db, context).get_ontime_late_start(date_range),
        )

    return endpoint


@dashboard_route("/priority-breakdown", "Task status counts per priority", DashboardResponse[PriorityBreakdown])
def priority_breakdown(context_dependency):
    def endpoint(
        date_range: DateRange = Depends(date_range_query(DatePreset.LAST_12_MONTHS)),
        context: DashboardContext = Depends(context_dependency),
        db: Session = Depends(get_db),
        cache: DashboardCache = Depends(get_dashboard_cache),
    ):
        return respond(
            cache,
            build_cache_key("priority-breakdown", context, date_range),
            select_ttl(context.view_type, CacheKind.STANDARD, date_range),
            MessageConstants.PRIORITY_BREAKDOWN_RETRIEVED,
            lambda: TaskAnalyticsService(db, context).get_priority_breakdown(date_range),
        )

    return endpoint


@dashboard_route("/overdue-tasks-trend", "Overdue task counts over time", DashboardResponse[List[OverdueTrendPoint]])
def overdue_tasks_trend(context_dependency):
    def endpoint(
        view: TimePeriod = Query(TimePeriod.DAILY),
        date_range: DateRange = Depends(date_range_query(DatePreset.LAST_MONTH)),
        context: DashboardContext = Depends(context_dependency),
        db: Session = Depends(get_db),
        cache: DashboardCache = Depends(get_dashboard_cache),
    ):
        """Each point counts the tasks that were open and past due at the end of the bucket."""
        return respond(
            cache,
            build_cache_key("overdue-trends", context, date_range, {"view": view}),
            select_ttl(context.view_type, CacheKind.ANALYTICS, date_range),
            MessageConstants.OVERDUE_TREND_RETRIEVED,
            lambda: TaskTrendService(db, context).get_overdue_trend(date_range, view),
        )

    return endpoint


@dashboard_route("/task-status-overview", "Monthly task status percentages", DashboardResponse[StatusOverviewByMonth])
def task_status_overview(context_dependency):
    def endpoint(
        date_range: DateRange = Depends(date_range_query(DatePreset.LAST_12_MONTHS)),
        context: DashboardContext = Depends(context_dependency),
        db: Session = Depends(get_db),
        cache: DashboardCache = Depends(get_dashboard_cache),
    ):
        return respond(
            cache,
            build_cache_key("task-status-overview", context, date_range),
            select_ttl(context.view_type, CacheKind.STANDARD, date_range),
            MessageConstants.STATUS_OVERVIEW_RETRIEVED,
            lambda: TaskAnalyticsService(db, context).get_status_overview(date_range),
        )

    return endpoint


@dashboard_route("/task-statistics", "Status counts overall and in range", DashboardResponse[List[TaskStatisticRow]])
def task_statistics(context_dependency):
    def endpoint(
        date_range: DateRange = Depends(date_range_query(DatePreset.ALL_TIME)),
        context: DashboardContext = Depends(context_dependency),
        db: Session = Depends(get_db),
        cache: DashboardCache = Depends(get_dashboard_cache),
    ):
        return respond(
            cache,
            build_cache_key("task-statistics", context, date_range),
            select_ttl(context.view_type, CacheKind.STANDARD, date_range),
            MessageConstants.TASK_STATISTICS_RETRIEVED,
            lambda: TaskAnalyticsService(db, context).get_task_statistics(date_range),
        )

    return endpoint


@dashboard_route("/project-completion", "Completion rates and velocity", DashboardResponse[ProjectCompletion])
def project_completion(context_dependency):
    def endpoint(
        date_range: DateRange = Depends(date_range_query(DatePreset.LAST_MONTH)),
        context: DashboardContext = Depends(context_dependency),
        db: Session = Depends(get_db),
        cache: DashboardCache = Depends(get_dashboard_cache),
    ):
        return respond(
            cache,
            build_cache_key("project-completion", context, date_range),
            select_ttl(context.view_type, CacheKind.STANDARD, date_range),
            MessageConstants.PROJECT_COMPLETION_RETRIEVED,
            lambda: TaskAnalyticsService(db, context).get_project_completion(date_range),
        )

    return endpoint


@dashboard_route("/recent-tasks", "Filtered, paginated task list", DashboardResponse[List[RecentTaskItem]])
def recent_tasks(context_dependency):
    def endpoint(
        task_filter: Optional[RecentTaskFilter] = Query(None, alias="filter"),
        status: Optional[TaskStatus] = Query(None),
        priority: Optional[TaskPriority] = Query(None),
        department: Optional[int] = Query(None, description="Department ID of an assignee"),
        role: Optional[int] = Query(None, description="Department role ID; requires department"),
        project: Optional[int] = Query(None, description="Project ID"),
        tag_id: Optional[int] = Query(None, alias="tagId"),
        timing: Optional[RecentTaskTiming] = Query(None),
        search: Optional[str] = Query(None, max_length=200),
        sort_by: RecentTaskSort = Query(RecentTaskSort.NEWEST, alias="sortBy"),
        page: int = Query(1, ge=1),
        limit: int = Query(10, ge=1, le=100),
        context: DashboardContext = Depends(context_dependency),
        db: Session = Depends(get_db),
        cache: DashboardCache = Depends(get_dashboard_cache),
    ):
        params = {
            "filter": task_filter,
            "status": status,
            "priority": priority,
            "department": department,
            "role": role,
            "project": project,
            "tagId": tag_id,
            "timing": timing,
            "search": search,
            "sortBy": sort_by,
            "page": page,
            "limit": limit,
        }
        if role is not None and department is None:
            raise HTTPException(status_code=400, detail=MessageConstants.ROLE_REQUIRES_DEPARTMENT)
        return respond(
            cache,
            build_cache_key("recent-tasks", context, params=params),
            select_ttl(context.view_type, CacheKind.STANDARD),
            MessageConstants.RECENT_TASKS_RETRIEVED,
            lambda: RecentTaskService(db, context).get_recent_tasks(
                task_filter=task_filter,
                status=status,
                priority=priority,
                department=department,
                role=role,
                project=project,
                tag_id=tag_id,
                timing=timing,
                search=search,
                sort_by=sort_by,
                page=page,
                limit=limit,
            ),
        )

    return endpoint


def search_params(
    search: Optional[str] = Query(None, max_length=100),
    cursor: Optional[str] = Query(None, description='JSON keyset cursor, e.g. {"name": "Design", "id": 7}'),
    limit: int = Query(5, ge=1, le=50),
) -> Dict[str, Any]:
    return {"search": search, "cursor": cursor, "limit": limit}


@dashboard_route("/search-projects", "Search projects in scope", DashboardResponse[List[ProjectSearchItem]])
def search_projects(context_dependency):
    def endpoint(
        params: Dict[str, Any] = Depends(search_params),
        context: DashboardContext = Depends(context_dependency),
        db: Session = Depends(get_db),
        cache: DashboardCache = Depends(get_dashboard_cache),
    ):
        return respond(
            cache,
            build_cache_key("search-projects", context, params=params),
            select_ttl(context.view_type, CacheKind.SEARCH),
            MessageConstants.PROJECTS_SEARCH_RETRIEVED,
            lambda: DashboardSearchService(db, context).search_projects(**params),
        )

    return endpoint


@dashboard_route("/search-tags", "Search tags used in scope", DashboardResponse[List[TagSearchItem]])
def search_tags(context_dependency):
    def endpoint(
        params: Dict[str, Any] = Depends(search_params),
        context: DashboardContext = Depends(context_dependency),
        db: Session = Depends(get_db),
        cache: DashboardCache = Depends(get_dashboard_cache),
    ):
        return respond(
            cache,
            build_cache_key("search-tags", context, params=params),
            select_ttl(context.view_type, CacheKind.SEARCH),
            MessageConstants.TAGS_SEARCH_RETRIEVED,
            lambda: DashboardSearchService(db, context).search_tags(**params),
        )

    return endpoint


@dashboard_route("/search-departments", "Search departments in scope", DashboardResponse[List[DepartmentSearchItem]])
def search_departments(context_dependency):
    def endpoint(
        params: Dict[str, Any] = Depends(search_params),
        context: DashboardContext = Depends(context_dependency),
        db: Session = Depends(get_db),
        cache: DashboardCache = Depends(get_dashboard_cache),
    ):
        return respond(
            cache,
            build_cache_key("search-departments", context, params=params),
            select_ttl(context.view_type, CacheKind.SEARCH),
            MessageConstants.DEPARTMENTS_SEARCH_RETRIEVED,
            lambda: DashboardSearchService(db, context).search_departments(**params),
        )

    return endpoint


@dashboard_route(
    "/search-department-roles", "Search roles of a department", DashboardResponse[List[DepartmentRoleSearchItem]]
)
def search_department_roles(context_dependency):
    def endpoint(
        department_id: Optional[int] = Query(None, alias="departmentId"),
        params: Dict[str, Any] = Depends(search_params),
        context: DashboardContext = Depends(context_dependency),
        db: Session = Depends(get_db),
        cache: DashboardCache = Depends(get_dashboard_cache),
    ):
        if department_id is None:
            raise HTTPException(status_code=400, detail=MessageConstants.DEPARTMENT_ID_REQUIRED)
        return respond(
            cache,
            build_cache_key("search-department-roles", context, params={"departmentId": department_id, **params}),
            select_ttl(context.view_type, CacheKind.SEARCH),
            MessageConstants.DEPARTMENT_ROLES_SEARCH_RETRIEVED,
            lambda: DashboardSearchService(db, context).search_department_roles(department_id, **params),
        )

    return endpoint
