"""
Pytest configuration and shared fixtures.

Provides a fixed clock, sample dashboard collections and a provider whose
fetches stay pending until the test resolves them.
"""

import asyncio
from datetime import datetime, timezone
from typing import List

import pytest

from backend.classroom_dashboard.models import (
    ActivityCategory,
    ActivityEvent,
    Announcement,
    AnnouncementPriority,
    DashboardSnapshot,
    SummaryMetric,
    TrendDirection,
    WorkItem,
)
from backend.classroom_dashboard.provider import DataProvider

NOW = datetime(2024, 1, 10, 9, 0, tzinfo=timezone.utc)


def make_item(item_id: str, due_at: datetime, **kwargs) -> WorkItem:
    return WorkItem(id=item_id, title=kwargs.pop("title", f"Assignment {item_id}"), due_at=due_at, **kwargs)


def make_snapshot(tag: str) -> DashboardSnapshot:
    """Small but complete snapshot; ``tag`` is stamped into every id."""
    return DashboardSnapshot(
        metrics=[
            SummaryMetric(
                id=f"{tag}-students",
                label="Students",
                display_value="12",
                trend_direction=TrendDirection.UP,
                trend_label="+3",
            )
        ],
        work_items=[make_item(f"{tag}-math", datetime(2024, 1, 11, tzinfo=timezone.utc))],
        activity=[
            ActivityEvent(
                id=f"{tag}-grade",
                title="Grade Update",
                occurred_at=datetime(2024, 1, 10, 8, 0, tzinfo=timezone.utc),
                category=ActivityCategory.GRADE_UPDATE,
            )
        ],
        announcements=[
            Announcement(
                id=f"{tag}-assembly",
                title="Assembly",
                content="Friday assembly moved to the gym.",
                published_at=datetime(2024, 1, 9, tzinfo=timezone.utc),
                author="Principal",
                priority=AnnouncementPriority.HIGH,
            )
        ],
    )


class GatedProvider(DataProvider):
    """Every fetch parks on a future the test resolves or fails explicitly."""

    def __init__(self) -> None:
        self.pending: List[asyncio.Future] = []

    async def fetch_dashboard_snapshot(self) -> DashboardSnapshot:
        future = asyncio.get_running_loop().create_future()
        self.pending.append(future)
        return await future

    async def wait_for_calls(self, count: int) -> None:
        while len(self.pending) < count:
            await asyncio.sleep(0)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def gated_provider():
    return GatedProvider()


@pytest.fixture
def snapshot_a():
    return make_snapshot("a")


@pytest.fixture
def snapshot_b():
    return make_snapshot("b")
