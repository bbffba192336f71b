from __future__ import annotations

from datetime import datetime
from typing import List, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .configuration import DEFAULT_DATE_FORMAT
from .models import TimeWindow, Urgency, WorkItem


def _coerce_timezone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("UTC")


def _normalize_datetime(dt: datetime, tz: ZoneInfo) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


def days_between(start: datetime, end: datetime, timezone: str = "UTC") -> int:
    """
    Calendar-day difference from ``start`` to ``end`` in ``timezone``.

    11pm today to 1am tomorrow is one day, not zero. Negative when ``end``
    falls on an earlier date.
    """

    tz = _coerce_timezone(timezone)
    start_day = _normalize_datetime(start, tz).date()
    end_day = _normalize_datetime(end, tz).date()
    return (end_day - start_day).days


def filter_work_items_by_window(
    window: TimeWindow,
    items: Sequence[WorkItem],
    now: datetime,
    timezone: str = "UTC",
) -> List[WorkItem]:
    """
    Keep the items due within ``window`` of ``now``, in input order.

    Overdue items have a negative day difference and therefore pass every
    window. Callers relying on "upcoming" meaning "not yet due" must drop them
    themselves.
    """

    return [item for item in items if days_between(now, item.due_at, timezone) <= window.days]


def format_date(value: datetime, date_format: str = DEFAULT_DATE_FORMAT, timezone: str = "UTC") -> str:
    local = _normalize_datetime(value, _coerce_timezone(timezone))
    return local.strftime(date_format).replace("{day}", str(local.day))


def format_due_label(
    item: WorkItem,
    now: datetime,
    timezone: str = "UTC",
    date_format: str = DEFAULT_DATE_FORMAT,
) -> str:
    days = days_between(now, item.due_at, timezone)
    if days == 0:
        return "Due today!"
    if days == 1:
        return "Due tomorrow"
    if 2 <= days <= 7:
        return f"Due in {days} days"
    return f"Due {format_date(item.due_at, date_format, timezone)}"


def urgency_of(item: WorkItem, now: datetime, timezone: str = "UTC") -> Urgency:
    days = days_between(now, item.due_at, timezone)
    if days <= 1:
        return Urgency.CRITICAL
    if days <= 3:
        return Urgency.WARNING
    if days <= 7:
        return Urgency.NOTICE
    return Urgency.NORMAL


def _plural(count: int, unit: str) -> str:
    return f"1 {unit} ago" if count == 1 else f"{count} {unit}s ago"


def time_ago(occurred_at: datetime, now: datetime, timezone: str = "UTC") -> str:
    tz = _coerce_timezone(timezone)
    elapsed = _normalize_datetime(now, tz) - _normalize_datetime(occurred_at, tz)
    seconds = int(elapsed.total_seconds())
    if seconds < 60:
        return "Just now"

    days = elapsed.days
    if days >= 365:
        return _plural(days // 365, "year")
    if days >= 30:
        return _plural(days // 30, "month")
    if days == 1:
        return "Yesterday"
    if days > 1:
        return f"{days} days ago"

    hours = seconds // 3600
    if hours > 0:
        return _plural(hours, "hour")
    return _plural(seconds // 60, "minute")
