"""
On-time / late / overdue classification of task rows.

Rows may be ORM objects or query rows exposing the same attribute names.
Naive datetimes (SQLite) are treated as UTC.
"""

from datetime import datetime, time, timedelta, timezone
from typing import Any, Optional

from app.models.task import TaskStatus

ON_TIME = "On Time"
LATE = "Late"


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def end_of_day(value: datetime) -> datetime:
    """Exclusive end of the UTC day holding ``value``"""
    value = as_utc(value)
    return datetime.combine(value.date() + timedelta(days=1), time.min, tzinfo=timezone.utc)


def is_done(task: Any) -> bool:
    return task.status == TaskStatus.DONE.value


def is_expired(task: Any) -> bool:
    return bool(task.is_expired)


def is_overdue(task: Any, now: datetime) -> bool:
    """Past due and still open; expired tasks are reported separately"""
    if is_done(task) or is_expired(task) or task.due_date is None:
        return False
    return as_utc(task.due_date) < as_utc(now)


def is_completed_late(task: Any) -> bool:
    if not is_done(task) or task.completed_at is None or task.due_date is None:
        return False
    return as_utc(task.completed_at) >= end_of_day(task.due_date)


def completion_status(task: Any) -> Optional[str]:
    if not is_done(task):
        return None
    return LATE if is_completed_late(task) else ON_TIME


def start_status(task: Any, now: datetime) -> Optional[str]:
    """
    ``On Time`` when work began by the end of the planned start day,
    ``Late`` when it began after, or has not begun once that day is over.
    None while the planned start day has not passed yet.
    """
    if task.start_date is None:
        return None
    deadline = end_of_day(task.start_date)
    started_at = as_utc(task.started_at)
    if started_at is None and is_done(task):
        started_at = as_utc(task.completed_at)
    if started_at is not None:
        return ON_TIME if started_at < deadline else LATE
    if as_utc(now) >= deadline:
        return LATE
    return None


def was_overdue_at(task: Any, moment: datetime) -> bool:
    """Whether the task was open and past due at ``moment``"""
    moment = as_utc(moment)
    if task.due_date is None or is_expired(task):
        return False
    if as_utc(task.created_at) >= moment:
        return False
    if as_utc(task.due_date) >= moment:
        return False
    completed_at = as_utc(task.completed_at)
    if completed_at is not None and completed_at < moment:
        return False
    if completed_at is None and is_done(task):
        return False
    return True


def display_status(task: Any, now: datetime) -> str:
    """Status bucket for the monthly overview; overdue overrides open statuses"""
    if is_overdue(task, now):
        return "Overdue"
    return {
        TaskStatus.TODO.value: "Todo",
        TaskStatus.IN_PROGRESS.value: "In Progress",
        TaskStatus.IN_REVIEW.value: "Review",
        TaskStatus.DONE.value: "Done",
    }.get(task.status, "Todo")
