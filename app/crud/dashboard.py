from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import Date, and_, case, func, literal, or_
from sqlmodel import Session, select

from app.models.task import Task, TaskStatus

# Columns needed to classify a task without loading relationships
TASK_TIMING_COLUMNS = (
    Task.id,
    Task.status,
    Task.priority,
    Task.created_at,
    Task.start_date,
    Task.due_date,
    Task.started_at,
    Task.completed_at,
    Task.is_expired,
)


def range_conditions(column, start: Optional[datetime], end_exclusive: Optional[datetime]) -> List[Any]:
    conditions = []
    if start is not None:
        conditions.append(column >= start)
    if end_exclusive is not None:
        conditions.append(column < end_exclusive)
    return conditions


def contains_text(column, text: str):
    """Case-insensitive substring match treating ``%``, ``_`` and ``\\`` literally"""
    escaped = text.strip().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return column.ilike(f"%{escaped}%", escape="\\")


def overdue_condition(now: datetime):
    """Open, not expired and past its due date"""
    return and_(
        Task.status != TaskStatus.DONE.value,
        Task.is_expired.is_(False),
        Task.due_date.isnot(None),
        Task.due_date < now,
    )


def completed_late_condition():
    """Done on a later UTC day than the due date"""
    return and_(
        Task.status == TaskStatus.DONE.value,
        Task.completed_at.isnot(None),
        Task.due_date.isnot(None),
        func.date(Task.completed_at) > func.date(Task.due_date),
    )


def started_late_condition(now: datetime):
    """
    Work began on a later UTC day than the planned start, or has not begun
    and the planned start day is over. Done tasks without ``started_at``
    count as started when they were completed.
    """
    effective_start = func.coalesce(
        Task.started_at,
        case((Task.status == TaskStatus.DONE.value, Task.completed_at)),
    )
    return and_(
        Task.start_date.isnot(None),
        or_(
            func.date(effective_start) > func.date(Task.start_date),
            and_(effective_start.is_(None), func.date(Task.start_date) < literal(now.date(), Date)),
        ),
    )


def statistic_bucket(now: datetime):
    """Disjoint status bucket with precedence Expired > Done > Overdue > status"""
    return case(
        (Task.is_expired.is_(True), "Expired"),
        (Task.status == TaskStatus.DONE.value, "Done"),
        (overdue_condition(now), "Overdue"),
        (Task.status == TaskStatus.IN_PROGRESS.value, "In Progress"),
        (Task.status == TaskStatus.IN_REVIEW.value, "In Review"),
        else_="Todo",
    )


def performance_bucket(now: datetime):
    """Outcome category used by the team performance score"""
    return case(
        (completed_late_condition(), "lateCompleted"),
        (Task.status == TaskStatus.DONE.value, "done"),
        (Task.is_expired.is_(True), "expired"),
        (overdue_condition(now), "overdue"),
        (Task.status == TaskStatus.IN_PROGRESS.value, "inProgress"),
        (Task.status == TaskStatus.IN_REVIEW.value, "inReview"),
        else_="todo",
    )


def crud_count_tasks_by_bucket(
    db: Session,
    scope_filter,
    bucket,
    labels: Sequence[str],
    created_from: Optional[datetime] = None,
    created_before: Optional[datetime] = None,
) -> Tuple[int, Dict[str, int]]:
    """Total and per-label counts of a ``case`` bucket expression"""
    query = select(
        func.count(Task.id),
        *[func.sum(case((bucket == label, 1), else_=0)) for label in labels],
    ).where(scope_filter, *range_conditions(Task.created_at, created_from, created_before))

    total, *counts = db.exec(query).one()
    return total or 0, {label: count or 0 for label, count in zip(labels, counts)}


def crud_count_tasks_by_status(
    db: Session,
    scope_filter,
    now: datetime,
    created_from: Optional[datetime] = None,
    created_before: Optional[datetime] = None,
) -> Dict[str, int]:
    """Single-pass status counts; overdue/expired overlap the status counts"""
    query = select(
        func.count(Task.id).label("total"),
        func.sum(case((Task.status == TaskStatus.TODO.value, 1), else_=0)).label("todo"),
        func.sum(case((Task.status == TaskStatus.IN_PROGRESS.value, 1), else_=0)).label("in_progress"),
        func.sum(case((Task.status == TaskStatus.IN_REVIEW.value, 1), else_=0)).label("in_review"),
        func.sum(case((Task.status == TaskStatus.DONE.value, 1), else_=0)).label("done"),
        func.sum(case((overdue_condition(now), 1), else_=0)).label("overdue"),
        func.sum(case((Task.is_expired.is_(True), 1), else_=0)).label("expired"),
    ).where(scope_filter, *range_conditions(Task.created_at, created_from, created_before))

    result = db.exec(query).one()
    return {
        "total": result.total or 0,
        "todo": result.todo or 0,
        "in_progress": result.in_progress or 0,
        "in_review": result.in_review or 0,
        "done": result.done or 0,
        "overdue": result.overdue or 0,
        "expired": result.expired or 0,
    }


def crud_count_tasks_by_priority_and_status(
    db: Session,
    scope_filter,
    created_from: Optional[datetime] = None,
    created_before: Optional[datetime] = None,
) -> List[Any]:
    """Rows of (priority, status, count)"""
    query = (
        select(Task.priority, Task.status, func.count(Task.id).label("count"))
        .where(scope_filter, *range_conditions(Task.created_at, created_from, created_before))
        .group_by(Task.priority, Task.status)
    )
    return db.exec(query).all()


def crud_get_task_timing_rows(db: Session, scope_filter, *conditions) -> List[Any]:
    """Lightweight task rows for timing classification"""
    query = select(*TASK_TIMING_COLUMNS).where(scope_filter, *conditions).order_by(Task.id)
    return db.exec(query).all()


def crud_get_earliest_task_date(db: Session, scope_filter, column=Task.created_at) -> Optional[datetime]:
    return db.exec(select(func.min(column)).where(scope_filter)).one()


def crud_count_completed_between(
    db: Session,
    scope_filter,
    completed_from: Optional[datetime],
    completed_before: Optional[datetime],
) -> int:
    query = select(func.count(Task.id)).where(
        scope_filter,
        Task.status == TaskStatus.DONE.value,
        Task.completed_at.isnot(None),
        *range_conditions(Task.completed_at, completed_from, completed_before),
    )
    return db.exec(query).one() or 0
