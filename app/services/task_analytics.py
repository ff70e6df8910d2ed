import logging
from collections import Counter
from typing import Any, Dict, List, Mapping

from app.crud.dashboard import (
    crud_count_completed_between,
    crud_count_tasks_by_bucket,
    crud_count_tasks_by_priority_and_status,
    crud_count_tasks_by_status,
    crud_get_task_timing_rows,
    performance_bucket,
    range_conditions,
    statistic_bucket,
)
from app.models.task import Task, TaskPriority, TaskStatus
from app.services.dashboard_base import DashboardService
from app.utils.aggregation import (
    TimePeriod,
    bucket_start,
    generate_buckets,
    month_label,
    percentage,
    percentage_str,
)
from app.utils.date_range import DateRange
from app.utils.task_timing import display_status

logger = logging.getLogger(__name__)

STATISTIC_STATUSES = ["Todo", "In Progress", "In Review", "Done", "Overdue", "Expired"]
OVERVIEW_STATUSES = ["Todo", "In Progress", "Review", "Done", "Overdue"]
PRIORITIES = [p.value for p in TaskPriority]
STATUSES = [s.value for s in TaskStatus]

PERFORMANCE_CATEGORIES = ["inProgress", "done", "lateCompleted", "inReview", "overdue", "expired", "todo"]


def performance_section(counts: Mapping[str, int]) -> Dict[str, Any]:
    """
    Distribution of outcomes plus a 0-100 score.

    Score weights: done 1, late completed 0.5, in review 0.5, in progress 0.25.
    """
    total = sum(counts.values())
    distribution = {
        key: percentage(counts.get(key, 0), total)
        for key in ("inProgress", "done", "lateCompleted", "inReview", "overdue", "expired")
    }
    score = (
        distribution["done"]
        + 0.5 * distribution["lateCompleted"]
        + 0.5 * distribution["inReview"]
        + 0.25 * distribution["inProgress"]
    )
    return {
        "performanceScore": round(min(max(score, 0.0), 100.0), 1),
        "distribution": distribution,
    }


class TaskAnalyticsService(DashboardService):
    """Point-in-time statistics over the tasks of a dashboard context"""

    def _created_in(self, date_range: DateRange) -> List[Any]:
        return range_conditions(Task.created_at, date_range.start_datetime, date_range.end_datetime_exclusive)

    def get_summary(self, date_range: DateRange) -> Dict[str, Any]:
        counts = crud_count_tasks_by_status(
            self.db,
            self.scope_filter,
            self.now,
            created_from=date_range.start_datetime,
            created_before=date_range.end_datetime_exclusive,
        )
        logger.info("[DASHBOARD] summary %s: %s", self.context.scope_key, counts)
        return {
            "data": {
                "totalTasks": counts["total"],
                "todoTasks": counts["todo"],
                "inProgressTasks": counts["in_progress"],
                "inReviewTasks": counts["in_review"],
                "completedTasks": counts["done"],
                "overdueTasks": counts["overdue"],
                "expiredTasks": counts["expired"],
            },
            "_meta": self.base_meta(date_range),
        }

    def get_task_statistics(self, date_range: DateRange) -> Dict[str, Any]:
        bucket = statistic_bucket(self.now)
        overall_total, overall = crud_count_tasks_by_bucket(self.db, self.scope_filter, bucket, STATISTIC_STATUSES)
        period_total, period = crud_count_tasks_by_bucket(
            self.db,
            self.scope_filter,
            bucket,
            STATISTIC_STATUSES,
            created_from=date_range.start_datetime,
            created_before=date_range.end_datetime_exclusive,
        )

        data = [
            {
                "status": status,
                "overall": {"count": overall[status], "percentage": percentage(overall[status], overall_total)},
                "period": {"count": period[status], "percentage": percentage(period[status], period_total)},
            }
            for status in STATISTIC_STATUSES
        ]
        meta = self.base_meta(date_range)
        meta["summary"] = {"overall": {"total": overall_total}, "period": {"total": period_total}}
        return {"data": data, "_meta": meta}

    def get_status_overview(self, date_range: DateRange) -> Dict[str, Any]:
        date_range = self.pin_range(date_range)
        rows = crud_get_task_timing_rows(self.db, self.scope_filter, *self._created_in(date_range))

        months = generate_buckets(date_range.start, date_range.end, TimePeriod.MONTHLY)
        per_month: Dict[Any, Counter] = {month: Counter() for month in months}
        overall: Counter = Counter()
        for row in rows:
            status = display_status(row, self.now)
            month = bucket_start(row.created_at, TimePeriod.MONTHLY)
            if month in per_month:
                per_month[month][status] += 1
            overall[status] += 1

        data = {}
        for month in months:
            counts = per_month[month]
            month_total = sum(counts.values())
            data[month_label(month)] = {status: percentage(counts[status], month_total) for status in OVERVIEW_STATUSES}

        meta = self.base_meta(date_range)
        meta["summary"] = {
            "totalTasks": len(rows),
            "statusDistribution": {status: percentage(overall[status], len(rows)) for status in OVERVIEW_STATUSES},
            "periodCount": len(months),
        }
        meta["statuses"] = OVERVIEW_STATUSES
        return {"data": data, "_meta": meta}

    def get_priority_breakdown(self, date_range: DateRange) -> Dict[str, Any]:
        total_rows = crud_count_tasks_by_priority_and_status(self.db, self.scope_filter)
        period_rows = crud_count_tasks_by_priority_and_status(
            self.db,
            self.scope_filter,
            created_from=date_range.start_datetime,
            created_before=date_range.end_datetime_exclusive,
        )

        data = {
            priority: {"total": {s: 0 for s in STATUSES}, "period": {s: 0 for s in STATUSES}}
            for priority in PRIORITIES
        }
        for section, rows in (("total", total_rows), ("period", period_rows)):
            for priority, status, count in rows:
                if priority in data and status in data[priority][section]:
                    data[priority][section][status] += count

        grand_total = sum(sum(v["total"].values()) for v in data.values())
        period_total = sum(sum(v["period"].values()) for v in data.values())
        distribution = {}
        for priority in PRIORITIES:
            p_period = sum(data[priority]["period"].values())
            distribution[priority] = {
                "total": sum(data[priority]["total"].values()),
                "period": p_period,
                "percentage": percentage_str(p_period, period_total),
            }

        meta = self.base_meta(date_range)
        meta["summary"] = {"total": grand_total, "period": period_total, "priorityDistribution": distribution}
        meta["priorities"] = PRIORITIES
        return {"data": data, "_meta": meta}

    def get_project_completion(self, date_range: DateRange) -> Dict[str, Any]:
        overall = crud_count_tasks_by_status(self.db, self.scope_filter, self.now)
        period = crud_count_tasks_by_status(
            self.db,
            self.scope_filter,
            self.now,
            created_from=date_range.start_datetime,
            created_before=date_range.end_datetime_exclusive,
        )
        completed_in_period = crud_count_completed_between(
            self.db, self.scope_filter, date_range.start_datetime, date_range.end_datetime_exclusive
        )
        days = self.pin_range(date_range).days or 1
        per_day = round(completed_in_period / days, 2)

        data = {
            "overall": {
                "totalTasks": overall["total"],
                "completedTasks": overall["done"],
                "completionPercentage": percentage(overall["done"], overall["total"]),
            },
            "period": {
                "totalTasks": period["total"],
                "completedTasks": period["done"],
                "completionPercentage": percentage(period["done"], period["total"]),
                "tasksCompletedInPeriod": completed_in_period,
                "completionMetrics": {
                    "daysInPeriod": days,
                    "averageCompletionsPerDay": per_day,
                    # completions per week
                    "completionVelocity": round(completed_in_period / days * 7, 2),
                },
            },
        }
        return {"data": data, "_meta": self.base_meta(date_range)}

    def get_team_performance(self, date_range: DateRange) -> Dict[str, Any]:
        bucket = performance_bucket(self.now)
        total, overall = crud_count_tasks_by_bucket(self.db, self.scope_filter, bucket, PERFORMANCE_CATEGORIES)
        period_total, period = crud_count_tasks_by_bucket(
            self.db,
            self.scope_filter,
            bucket,
            PERFORMANCE_CATEGORIES,
            created_from=date_range.start_datetime,
            created_before=date_range.end_datetime_exclusive,
        )

        meta = self.base_meta(date_range)
        meta["dateRange"]["type"] = date_range.preset.value
        meta["counts"] = {"total": total, "period": period_total}
        return {
            "data": {
                "overall": performance_section(overall),
                "period": performance_section(period),
            },
            "_meta": meta,
        }

