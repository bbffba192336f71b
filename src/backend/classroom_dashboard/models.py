from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Sequence


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class TrendDirection(str, Enum):
    UP = "up"
    DOWN = "down"
    FLAT = "flat"
    NONE = "none"


class ActivityCategory(str, Enum):
    GRADE_UPDATE = "gradeUpdate"
    NEW_ASSIGNMENT = "newAssignment"
    STUDENT_UPDATE = "studentUpdate"
    SYSTEM_NOTICE = "systemNotice"


class AnnouncementPriority(str, Enum):
    NORMAL = "normal"
    HIGH = "high"


class Urgency(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    NOTICE = "notice"
    NORMAL = "normal"


class TimeWindow(str, Enum):
    """
    Named look-ahead used to decide which work items count as upcoming.
    """

    WEEK = "week"
    MONTH = "month"
    SEMESTER = "semester"
    YEAR = "year"

    @property
    def days(self) -> int:
        return _WINDOW_DAYS[self]

    @classmethod
    def parse(cls, label: str) -> "TimeWindow":
        try:
            return cls(label.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown time window: {label!r}") from None


_WINDOW_DAYS = {
    TimeWindow.WEEK: 7,
    TimeWindow.MONTH: 30,
    TimeWindow.SEMESTER: 120,
    TimeWindow.YEAR: 365,
}


@dataclass(frozen=True)
class SummaryMetric:
    id: str
    label: str
    display_value: str
    description: str = ""
    trend_direction: TrendDirection = TrendDirection.NONE
    trend_label: str = ""

    @classmethod
    def from_delta(
        cls,
        id: str,
        label: str,
        display_value: str,
        delta: Optional[float] = None,
        unit: str = "",
        description: str = "",
    ) -> "SummaryMetric":
        """
        Build a card whose trend arrow and caption follow the sign of ``delta``.

        Whole-number deltas render without decimals ("+3"), fractional ones
        with a single decimal ("-0.5%"). Deltas that round to zero are flat.
        """

        if delta is None:
            direction, trend_label = TrendDirection.NONE, ""
        else:
            if float(delta).is_integer():
                magnitude = str(int(delta))
            else:
                magnitude = f"{delta:.1f}"
            if float(magnitude) == 0:
                direction, trend_label = TrendDirection.FLAT, f"0{unit}"
            elif delta > 0:
                direction, trend_label = TrendDirection.UP, f"+{magnitude}{unit}"
            elif delta < 0:
                direction, trend_label = TrendDirection.DOWN, f"{magnitude}{unit}"
            else:
                direction, trend_label = TrendDirection.FLAT, f"0{unit}"
        return cls(
            id=id,
            label=label,
            display_value=display_value,
            description=description,
            trend_direction=direction,
            trend_label=trend_label,
        )


@dataclass(frozen=True)
class WorkItem:
    """
    Assignment-like task shown in the upcoming feed.

    ``submitted_count`` should not exceed ``total_expected`` when the latter is
    known; ``submission_rate`` clamps rather than trusting upstream data.
    """

    id: str
    title: str
    due_at: datetime
    description: str = ""
    submitted_count: int = 0
    total_expected: int = 0

    @property
    def submission_rate(self) -> float:
        if self.total_expected <= 0:
            return 0.0
        return min(1.0, max(0, self.submitted_count) / self.total_expected)


@dataclass(frozen=True)
class ActivityEvent:
    id: str
    title: str
    occurred_at: datetime
    category: ActivityCategory
    description: str = ""


@dataclass(frozen=True)
class Announcement:
    id: str
    title: str
    content: str
    published_at: datetime
    author: str
    priority: AnnouncementPriority = AnnouncementPriority.NORMAL


@dataclass(frozen=True)
class DashboardSnapshot:
    """
    The four collections a dashboard screen renders, as of one provider fetch.

    Collections are frozen into tuples and activity is ordered newest first.
    The sort is stable so events sharing a timestamp keep provider order.
    Naive timestamps are ordered as UTC.
    """

    metrics: Sequence[SummaryMetric] = field(default_factory=tuple)
    work_items: Sequence[WorkItem] = field(default_factory=tuple)
    activity: Sequence[ActivityEvent] = field(default_factory=tuple)
    announcements: Sequence[Announcement] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "metrics", tuple(self.metrics))
        object.__setattr__(self, "work_items", tuple(self.work_items))
        object.__setattr__(
            self,
            "activity",
            tuple(sorted(self.activity, key=lambda event: _as_utc(event.occurred_at), reverse=True)),
        )
        object.__setattr__(self, "announcements", tuple(self.announcements))

    def as_dict(self) -> Dict[str, Any]:
        """
        Convert the snapshot into a JSON-serialisable structure.
        """

        def _serialize(obj: Any) -> Any:
            if isinstance(obj, DashboardSnapshot):
                return {
                    "metrics": _serialize(obj.metrics),
                    "workItems": _serialize(obj.work_items),
                    "activity": _serialize(obj.activity),
                    "announcements": _serialize(obj.announcements),
                }
            if isinstance(obj, SummaryMetric):
                return {
                    "id": obj.id,
                    "label": obj.label,
                    "displayValue": obj.display_value,
                    "description": obj.description,
                    "trendDirection": obj.trend_direction.value,
                    "trendLabel": obj.trend_label,
                }
            if isinstance(obj, WorkItem):
                return {
                    "id": obj.id,
                    "title": obj.title,
                    "description": obj.description,
                    "dueAt": obj.due_at.isoformat(),
                    "submittedCount": obj.submitted_count,
                    "totalExpected": obj.total_expected,
                }
            if isinstance(obj, ActivityEvent):
                return {
                    "id": obj.id,
                    "title": obj.title,
                    "description": obj.description,
                    "occurredAt": obj.occurred_at.isoformat(),
                    "category": obj.category.value,
                }
            if isinstance(obj, Announcement):
                return {
                    "id": obj.id,
                    "title": obj.title,
                    "content": obj.content,
                    "publishedAt": obj.published_at.isoformat(),
                    "author": obj.author,
                    "priority": obj.priority.value,
                }
            if isinstance(obj, Iterable) and not isinstance(obj, (str, bytes)):
                return [_serialize(item) for item in obj]
            return obj

        return _serialize(self)


EMPTY_SNAPSHOT = DashboardSnapshot()


@dataclass(frozen=True)
class DashboardState:
    """What an observer sees when it reads the aggregator at a point in time."""

    snapshot: DashboardSnapshot
    loading: bool
    last_error: Optional[Exception] = None
    last_updated: Optional[datetime] = None

    def as_dict(self) -> Dict[str, Any]:
        payload = self.snapshot.as_dict()
        payload["loading"] = self.loading
        payload["lastError"] = None if self.last_error is None else str(self.last_error)
        payload["lastUpdated"] = None if self.last_updated is None else self.last_updated.isoformat()
        return payload
