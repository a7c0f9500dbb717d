"""
Reporting Time Windows

Maps dashboard filters to ``[start, end]`` ranges and builds the calendar
buckets used by the monthly and daily series. All values are naive UTC.
"""

import calendar
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import ClassVar, List, Optional, Tuple

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_EPOCH = datetime(2020, 1, 1)


def utcnow() -> datetime:
    """Current UTC time without tzinfo, matching the stored timestamps."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TimeFilter(str, Enum):
    """Named time-window selectors"""
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    THREE_MONTHS = "3months"
    SIX_MONTHS = "6months"
    ALL = "all"

    @classmethod
    def parse(cls, value: Optional[str], default: Optional["TimeFilter"] = None) -> "TimeFilter":
        """
        Resolve a raw query value.

        A missing or blank value yields ``default`` (``month`` unless given).
        Any other value outside the enumeration widens to ``all``.
        """
        if value is None or not value.strip():
            return default or cls.MONTH
        try:
            return cls(value.strip().lower())
        except ValueError:
            logger.warning("Unknown dashboard filter, using 'all'", filter=value)
            return cls.ALL


@dataclass(frozen=True)
class TimeWindow:
    """Closed time range ``start <= t <= end``"""
    start: datetime
    end: datetime
    end_inclusive: ClassVar[bool] = True


@dataclass(frozen=True)
class Bucket:
    """Half-open calendar bucket ``start <= t < end`` with a display label"""
    label: str
    start: datetime
    end: datetime
    end_inclusive: ClassVar[bool] = False


def shift_months(moment: datetime, months: int) -> datetime:
    """Move ``moment`` by whole calendar months, clamping the day."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def month_start(moment: datetime, offset: int = 0) -> datetime:
    """First instant of the month ``offset`` months away from ``moment``."""
    first = start_of_day(moment).replace(day=1)
    return shift_months(first, offset)


def resolve_window(
    time_filter: TimeFilter,
    now: Optional[datetime] = None,
    epoch: datetime = DEFAULT_EPOCH,
) -> TimeWindow:
    """
    Resolve a filter to the window the dashboard queries.

    Args:
        time_filter: Selected filter
        now: Reference time (defaults to the current UTC time)
        epoch: Start of the ``all`` window

    Returns:
        TimeWindow ending at ``now``
    """
    now = now or utcnow()

    if time_filter == TimeFilter.TODAY:
        start = start_of_day(now)
    elif time_filter == TimeFilter.WEEK:
        start = now - timedelta(days=7)
    elif time_filter == TimeFilter.MONTH:
        start = shift_months(now, -1)
    elif time_filter == TimeFilter.THREE_MONTHS:
        start = shift_months(now, -3)
    elif time_filter == TimeFilter.SIX_MONTHS:
        start = shift_months(now, -6)
    else:
        start = epoch

    # an epoch configured in the future still yields a valid window
    return TimeWindow(start=min(start, now), end=now)


def recent_months(now: datetime, count: int) -> List[Bucket]:
    """The last ``count`` calendar months, oldest first, current month included."""
    buckets = []
    for offset in range(count - 1, -1, -1):
        start = month_start(now, -offset)
        buckets.append(Bucket(
            label=start.strftime("%b %Y"),
            start=start,
            end=shift_months(start, 1),
        ))
    return buckets


def recent_days(now: datetime, count: int) -> List[Bucket]:
    """The last ``count`` calendar days, oldest first, today included."""
    today = start_of_day(now)
    buckets = []
    for offset in range(count - 1, -1, -1):
        start = today - timedelta(days=offset)
        buckets.append(Bucket(
            label=f"{start.day} {start.strftime('%b')}",
            start=start,
            end=start + timedelta(days=1),
        ))
    return buckets


def current_and_previous_month(now: datetime) -> Tuple[Bucket, Bucket]:
    """Buckets for this calendar month and the one before it."""
    previous, current = recent_months(now, 2)
    return current, previous
