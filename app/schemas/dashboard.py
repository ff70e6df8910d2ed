from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel

from app.schemas.common import CamelModel


class ViewType(str, Enum):
    LANDING = "landing"
    WORKSPACE = "workspace"
    PROJECT = "project"
    PROFILE = "profile"


class RecentTaskFilter(str, Enum):
    LATE_COMPLETED = "Late Completed"
    LATE_STARTED = "Late Started"
    EXPIRED = "Expired Tasks"
    OVERDUE = "Overdue Tasks"


class RecentTaskTiming(str, Enum):
    READY = "Ready Tasks"
    UNASSIGNED = "No Assigned Tasks"


class RecentTaskSort(str, Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    LAST_UPDATED = "lastUpdated"
    DUE_DATE = "dueDate"
    PRIORITY = "priority"
    STATUS = "status"


# stats/summary


class SummaryStats(CamelModel):
    total_tasks: int
    todo_tasks: int
    in_progress_tasks: int
    in_review_tasks: int
    completed_tasks: int
    overdue_tasks: int
    expired_tasks: int


# task-trends


class TaskTrendPoint(CamelModel):
    period: str
    period_key: str
    completed_tasks: int
    new_tasks: int
    total: int


# overdue-tasks-trend


class OverdueTrendPoint(CamelModel):
    date: str
    period_key: str
    count: int


# team-performance


class PerformanceDistribution(CamelModel):
    in_progress: float
    done: float
    late_completed: float
    in_review: float
    overdue: float
    expired: float


class PerformanceSection(CamelModel):
    performance_score: float
    distribution: PerformanceDistribution


class TeamPerformance(BaseModel):
    overall: PerformanceSection
    period: PerformanceSection


# task-statistics


class CountWithPercentage(BaseModel):
    count: int
    percentage: float


class TaskStatisticRow(BaseModel):
    status: str
    overall: CountWithPercentage
    period: CountWithPercentage


# project-completion


class CompletionMetrics(CamelModel):
    days_in_period: int
    average_completions_per_day: float
    completion_velocity: float


class CompletionSection(CamelModel):
    total_tasks: int
    completed_tasks: int
    completion_percentage: float


class PeriodCompletionSection(CompletionSection):
    tasks_completed_in_period: int
    completion_metrics: CompletionMetrics


class ProjectCompletion(BaseModel):
    overall: CompletionSection
    period: PeriodCompletionSection


# ontime-late-*, priority-breakdown, task-status-overview share keyed maps
OnTimeLateByMonth = Dict[str, Dict[str, int]]
PriorityBreakdown = Dict[str, Dict[str, Dict[str, int]]]
StatusOverviewByMonth = Dict[str, Dict[str, float]]


# recent-tasks


class AssignedUser(BaseModel):
    id: int
    username: str
    name: Optional[str] = None
    role: Optional[str] = None
    department: Optional[str] = None
    avatar: Optional[str] = None


class SubtasksInfo(BaseModel):
    total: int
    completed: int
    completion_percentage: float


class TagItem(BaseModel):
    id: int
    name: str


class RecentTaskItem(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    start_date: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    is_expired: bool
    late_start_status: Optional[str] = None
    status: str
    priority: str
    project_name: Optional[str] = None
    workspace_name: Optional[str] = None
    is_assigned_to_me: bool
    assigned_users: List[AssignedUser]
    subtasks_info: SubtasksInfo
    tags: List[TagItem]


# search-*


class ProjectSearchItem(BaseModel):
    id: int
    title: str
    workspace_name: Optional[str] = None
    task_count: int
    member_count: int


class TagSearchItem(BaseModel):
    id: int
    name: str
    task_count: int


class DepartmentSearchItem(BaseModel):
    id: int
    name: str
    user_count: int
    task_count: int
    roles: List[str]


class DepartmentRoleSearchItem(BaseModel):
    id: int
    name: str
    department_name: Optional[str] = None
    user_count: int
    task_count: int
