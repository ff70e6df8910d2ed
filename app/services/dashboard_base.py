from datetime import date, datetime, timezone
from typing import Any, Dict, Optional

from sqlmodel import Session

from app.crud.dashboard import crud_get_earliest_task_date
from app.models.task import Task
from app.services.dashboard_scope import DashboardContext, task_scope_filter
from app.utils.aggregation import as_date
from app.utils.date_range import DateRange


class DashboardService:
    """Shared plumbing: scope filter, clock and the common ``_meta`` blocks"""

    def __init__(self, db: Session, context: DashboardContext, now: Optional[datetime] = None):
        self.db = db
        self.context = context
        self.now = now or datetime.now(timezone.utc)
        self.scope_filter = task_scope_filter(context)

    @property
    def today(self) -> date:
        return self.now.date()

    def base_meta(self, date_range: Optional[DateRange] = None) -> Dict[str, Any]:
        meta: Dict[str, Any] = {"context": self.context.to_meta()}
        if date_range is not None:
            meta["dateRange"] = date_range.to_meta()
        return meta

    def pin_range(self, date_range: DateRange, column=Task.created_at) -> DateRange:
        """Give an all-time range a first day so it can be bucketed"""
        if not date_range.is_all_time:
            return date_range
        earliest = crud_get_earliest_task_date(self.db, self.scope_filter, column)
        return date_range.with_start(as_date(earliest) if earliest else date_range.end)
