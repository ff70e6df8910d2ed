"""Time buckets and number formatting shared by the dashboard endpoints"""

from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Dict, Iterable, List, Optional, Union

from app.utils.date_range import shift_months


class TimePeriod(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


PERIOD_UNITS = {
    TimePeriod.DAILY: "day",
    TimePeriod.WEEKLY: "week",
    TimePeriod.MONTHLY: "month",
}


def as_date(value: Union[date, datetime]) -> date:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value


def bucket_start(value: Union[date, datetime], period: TimePeriod) -> date:
    """First day of the bucket holding ``value``; weeks start on Monday"""
    day = as_date(value)
    if period == TimePeriod.WEEKLY:
        return day - timedelta(days=day.weekday())
    if period == TimePeriod.MONTHLY:
        return day.replace(day=1)
    return day


def next_bucket(start: date, period: TimePeriod) -> date:
    if period == TimePeriod.WEEKLY:
        return start + timedelta(days=7)
    if period == TimePeriod.MONTHLY:
        return shift_months(start, 1)
    return start + timedelta(days=1)


def generate_buckets(start: date, end: date, period: TimePeriod) -> List[date]:
    """Ordered bucket starts covering every day from ``start`` to ``end``"""
    if start > end:
        return []
    buckets = []
    current = bucket_start(start, period)
    while current <= end:
        buckets.append(current)
        current = next_bucket(current, period)
    return buckets


def bucket_end(start: date, period: TimePeriod) -> datetime:
    """Exclusive UTC upper bound of the bucket starting at ``start``"""
    return datetime(*next_bucket(start, period).timetuple()[:3], tzinfo=timezone.utc)


def bucket_label(start: date, period: TimePeriod) -> str:
    if period == TimePeriod.WEEKLY:
        return f"Week of {start:%b} {start.day}, {start.year}"
    if period == TimePeriod.MONTHLY:
        return f"{start:%B} {start.year}"
    return f"{start:%a}, {start:%b} {start.day}"


def period_key(start: date) -> str:
    return f"{start.isoformat()}T00:00:00.000Z"


def month_label(value: Union[date, datetime]) -> str:
    return bucket_label(bucket_start(value, TimePeriod.MONTHLY), TimePeriod.MONTHLY)


def percentage(part: float, total: float, digits: int = 2) -> float:
    if not total:
        return 0.0
    return round(part / total * 100, digits)


def percentage_str(part: float, total: float) -> str:
    return f"{percentage(part, total):.2f}"


def average(values: Iterable[float], digits: int = 2) -> float:
    values = list(values)
    if not values:
        return 0.0
    return round(sum(values) / len(values), digits)


def peak(values: Iterable[int]) -> int:
    return max(values, default=0)


def trend(current: float, previous: float, digits: int = 2) -> Dict[str, Union[str, float]]:
    """Direction and signed change between two consecutive values"""
    change = round(current - previous, digits)
    if change > 0:
        direction = "up"
    elif change < 0:
        direction = "down"
    else:
        direction = "stable"
    return {"direction": direction, "change": change}


def trailing_trend(values: List[float], digits: int = 2) -> Optional[Dict[str, Union[str, float]]]:
    """Trend between the last two values, or None with fewer than two"""
    if len(values) < 2:
        return None
    return trend(values[-1], values[-2], digits)
