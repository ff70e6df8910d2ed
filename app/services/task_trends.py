import logging
from collections import Counter
from datetime import datetime
from typing import Any, Dict, List

from sqlalchemy import and_, or_

from app.crud.dashboard import crud_get_task_timing_rows, range_conditions
from app.models.task import Task, TaskStatus
from app.services.dashboard_base import DashboardService
from app.utils.aggregation import (
    PERIOD_UNITS,
    TimePeriod,
    average,
    bucket_end,
    bucket_label,
    bucket_start,
    generate_buckets,
    month_label,
    percentage,
    percentage_str,
    period_key,
    peak,
    trailing_trend,
)
from app.utils.date_range import DateRange
from app.utils.task_timing import (
    LATE,
    ON_TIME,
    as_utc,
    completion_status,
    start_status,
    was_overdue_at,
)

logger = logging.getLogger(__name__)

FLAT_TREND = {"direction": "stable", "change": 0}


def empty_on_time_late() -> Dict[str, int]:
    return {ON_TIME: 0, LATE: 0}


class TaskTrendService(DashboardService):
    """Bucketed time series over the tasks of a dashboard context"""

    def get_task_trends(self, date_range: DateRange, period: TimePeriod) -> Dict[str, Any]:
        date_range = self.pin_range(date_range)
        start, end = date_range.start_datetime, date_range.end_datetime_exclusive
        rows = crud_get_task_timing_rows(
            self.db,
            self.scope_filter,
            or_(
                and_(*range_conditions(Task.created_at, start, end)),
                and_(Task.completed_at.isnot(None), *range_conditions(Task.completed_at, start, end)),
            ),
        )

        buckets = generate_buckets(date_range.start, date_range.end, period)
        new_counts: Counter = Counter()
        completed_counts: Counter = Counter()
        for row in rows:
            if date_range.contains(row.created_at):
                new_counts[bucket_start(row.created_at, period)] += 1
            if row.status == TaskStatus.DONE.value and date_range.contains(row.completed_at):
                completed_counts[bucket_start(row.completed_at, period)] += 1

        data = []
        for bucket in buckets:
            completed, new = completed_counts[bucket], new_counts[bucket]
            data.append({
                "period": bucket_label(bucket, period),
                "periodKey": period_key(bucket),
                "completedTasks": completed,
                "newTasks": new,
                "total": completed + new,
            })

        total_new = sum(new_counts.values())
        total_completed = sum(completed_counts.values())
        meta = self.base_meta(date_range)
        meta["aggregation"] = {"period": period.value, "totalPeriods": len(buckets)}
        meta["summary"] = {
            "totalTasks": total_new + total_completed,
            "totalCompleted": total_completed,
            "totalNew": total_new,
            "averagePerPeriod": average([point["total"] for point in data]),
        }
        return {"data": data, "_meta": meta}

    def get_overdue_trend(self, date_range: DateRange, view: TimePeriod) -> Dict[str, Any]:
        date_range = self.pin_range(date_range, Task.due_date)
        start, end = date_range.start_datetime, date_range.end_datetime_exclusive
        rows = crud_get_task_timing_rows(
            self.db,
            self.scope_filter,
            Task.due_date.isnot(None),
            Task.due_date < end,
            Task.created_at < end,
            or_(Task.completed_at.is_(None), Task.completed_at >= start),
        )

        data = []
        counts: List[int] = []
        overdue_ids = set()
        for bucket in generate_buckets(date_range.start, date_range.end, view):
            # Snapshot at bucket end, or now for the running bucket
            moment: datetime = min(bucket_end(bucket, view), end, as_utc(self.now))
            overdue = [row.id for row in rows if was_overdue_at(row, moment)]
            overdue_ids.update(overdue)
            counts.append(len(overdue))
            data.append({
                "date": bucket_label(bucket, view),
                "periodKey": period_key(bucket),
                "count": len(overdue),
            })

        meta = self.base_meta(date_range)
        meta["aggregation"] = {"view": view.value, "unit": PERIOD_UNITS[view]}
        meta["summary"] = {
            "total": len(overdue_ids),
            "average": average(counts),
            "peak": peak(counts),
            "trend": trailing_trend(counts) or FLAT_TREND,
        }
        return {"data": data, "_meta": meta}

    def get_ontime_late_completion(self, date_range: DateRange) -> Dict[str, Any]:
        date_range = self.pin_range(date_range, Task.completed_at)
        rows = crud_get_task_timing_rows(
            self.db,
            self.scope_filter,
            Task.status == TaskStatus.DONE.value,
            Task.completed_at.isnot(None),
            *range_conditions(Task.completed_at, date_range.start_datetime, date_range.end_datetime_exclusive),
        )

        data = {month_label(m): empty_on_time_late() for m in self._months(date_range)}
        for row in rows:
            data[month_label(row.completed_at)][completion_status(row)] += 1

        total_on_time = sum(month[ON_TIME] for month in data.values())
        total_late = sum(month[LATE] for month in data.values())
        meta = self.base_meta(date_range)
        meta["totals"] = {
            "totalOnTime": total_on_time,
            "totalLate": total_late,
            "totalTasks": total_on_time + total_late,
            "onTimePercentage": percentage_str(total_on_time, total_on_time + total_late),
        }
        return {"data": data, "_meta": meta}

    def get_ontime_late_start(self, date_range: DateRange) -> Dict[str, Any]:
        date_range = self.pin_range(date_range, Task.start_date)
        rows = crud_get_task_timing_rows(
            self.db,
            self.scope_filter,
            Task.start_date.isnot(None),
            *range_conditions(Task.start_date, date_range.start_datetime, date_range.end_datetime_exclusive),
        )

        data = {month_label(m): empty_on_time_late() for m in self._months(date_range)}
        for row in rows:
            status = start_status(row, self.now)
            if status is not None:
                data[month_label(row.start_date)][status] += 1

        total_on_time = sum(month[ON_TIME] for month in data.values())
        total_late = sum(month[LATE] for month in data.values())
        monthly_rates = [percentage(m[ON_TIME], m[ON_TIME] + m[LATE]) for m in data.values()]

        meta = self.base_meta(date_range)
        meta["metrics"] = {
            "totalTasks": total_on_time + total_late,
            "totalOnTime": total_on_time,
            "totalLate": total_late,
            "onTimePercentage": percentage_str(total_on_time, total_on_time + total_late),
            "trend": trailing_trend(monthly_rates) or FLAT_TREND,
        }
        return {"data": data, "_meta": meta}

    def _months(self, date_range: DateRange):
        return generate_buckets(date_range.start, date_range.end, TimePeriod.MONTHLY)
