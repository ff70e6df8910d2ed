"""
Date range presets used by the dashboard endpoints.

Every endpoint accepts either a ``preset`` or an explicit ``startDate``/``endDate``
pair. Ranges are whole UTC days, inclusive on both ends; queries use the
half-open interval ``[start_datetime, end_datetime_exclusive)``.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional

from app.constants.messages import MessageConstants
from app.core.config import settings


class DatePreset(str, Enum):
    LAST_MONTH = "lastMonth"
    LAST_QUARTER = "lastQuarter"
    LAST_YEAR = "lastYear"
    ALL_TIME = "allTime"
    CUSTOM = "custom"
    # Default of the month-bucketed endpoints
    LAST_12_MONTHS = "last12Months"


PRESET_LABELS = {
    DatePreset.LAST_MONTH: "Last Month",
    DatePreset.LAST_QUARTER: "Last Quarter",
    DatePreset.LAST_YEAR: "Last Year",
    DatePreset.ALL_TIME: "All Time",
    DatePreset.CUSTOM: "Custom Range",
    DatePreset.LAST_12_MONTHS: "Last 12 months",
}

# Inclusive day counts of the rolling presets
PRESET_DAYS = {
    DatePreset.LAST_MONTH: 30,
    DatePreset.LAST_QUARTER: 90,
    DatePreset.LAST_YEAR: 365,
}


class DateRangeError(ValueError):
    """Raised for malformed or inconsistent date range parameters"""


@dataclass(frozen=True)
class DateRange:
    start: Optional[date]
    end: date
    label: str
    preset: DatePreset

    @property
    def is_all_time(self) -> bool:
        return self.start is None

    @property
    def start_datetime(self) -> Optional[datetime]:
        if self.start is None:
            return None
        return datetime.combine(self.start, time.min, tzinfo=timezone.utc)

    @property
    def end_datetime_exclusive(self) -> datetime:
        return datetime.combine(self.end + timedelta(days=1), time.min, tzinfo=timezone.utc)

    @property
    def days(self) -> Optional[int]:
        if self.start is None:
            return None
        return (self.end - self.start).days + 1

    def with_start(self, start: date) -> "DateRange":
        """Pin an open (all time) range to a concrete first day"""
        return DateRange(start=min(start, self.end), end=self.end, label=self.label, preset=self.preset)

    def contains(self, moment: Optional[datetime]) -> bool:
        if moment is None:
            return False
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        if self.start_datetime is not None and moment < self.start_datetime:
            return False
        return moment < self.end_datetime_exclusive

    def to_meta(self) -> Dict[str, Any]:
        return {
            "startDate": self.start.isoformat() if self.start else None,
            "endDate": self.end.isoformat(),
            "label": self.label,
        }


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def parse_iso_date(value: str) -> date:
    """Parse ``YYYY-MM-DD`` (a full ISO timestamp is accepted and truncated)"""
    value = value.strip()
    try:
        if len(value) > 10:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        return date.fromisoformat(value)
    except ValueError as e:
        raise DateRangeError(f"Invalid date: {value}") from e


def shift_months(day: date, months: int) -> date:
    """Move ``day`` by whole months, clamping the day-of-month"""
    month_index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    next_month_first = date(year + (month // 12), month % 12 + 1, 1)
    last_day = (next_month_first - timedelta(days=1)).day
    return date(year, month, min(day.day, last_day))


def resolve_date_range(
    preset: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    default_preset: DatePreset = DatePreset.LAST_MONTH,
    today: Optional[date] = None,
) -> DateRange:
    """
    Normalize the date query parameters into a DateRange.

    Explicit dates win over a preset. Both dates are required for a custom
    range and ``start`` must not be after ``end``.
    """
    today = today or utc_today()

    if start_date or end_date or preset == DatePreset.CUSTOM.value:
        if not (start_date and end_date):
            raise DateRangeError(MessageConstants.CUSTOM_RANGE_REQUIRES_DATES)
        start = parse_iso_date(start_date)
        end = parse_iso_date(end_date)
        if start > end:
            raise DateRangeError("startDate must not be after endDate")
        if (end - start).days + 1 > settings.DASHBOARD_MAX_RANGE_DAYS:
            raise DateRangeError(MessageConstants.DATE_RANGE_TOO_LONG)
        return DateRange(start=start, end=end, label=PRESET_LABELS[DatePreset.CUSTOM], preset=DatePreset.CUSTOM)

    if preset is None:
        resolved = default_preset
    else:
        try:
            resolved = DatePreset(preset)
        except ValueError as e:
            raise DateRangeError(f"Unknown preset: {preset}") from e

    if resolved == DatePreset.ALL_TIME:
        return DateRange(start=None, end=today, label=PRESET_LABELS[resolved], preset=resolved)
    if resolved == DatePreset.LAST_12_MONTHS:
        start = shift_months(today.replace(day=1), -11)
        return DateRange(start=start, end=today, label=PRESET_LABELS[resolved], preset=resolved)

    start = today - timedelta(days=PRESET_DAYS[resolved] - 1)
    return DateRange(start=start, end=today, label=PRESET_LABELS[resolved], preset=resolved)
