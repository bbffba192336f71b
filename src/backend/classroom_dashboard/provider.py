from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, Row
from sqlalchemy.exc import SQLAlchemyError

from .models import (
    ActivityCategory,
    ActivityEvent,
    Announcement,
    AnnouncementPriority,
    DashboardSnapshot,
    SummaryMetric,
    TrendDirection,
    WorkItem,
)

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """The data source could not produce a snapshot."""


class DataProvider:
    """
    Interface for loading dashboard snapshots.

    Implementations must raise ``ProviderError`` for any failure of the
    backing source so the aggregator can record it without knowing the
    transport.
    """

    async def fetch_dashboard_snapshot(self) -> DashboardSnapshot:
        raise NotImplementedError


class StaticDataProvider(DataProvider):
    """
    In-memory provider returning whatever snapshot it was last given.

    Deterministic, so it doubles as the test provider. ``fail_with`` arms an
    error that every following fetch raises until ``clear_failure``.
    """

    def __init__(self, snapshot: Optional[DashboardSnapshot] = None) -> None:
        self.snapshot = snapshot or DashboardSnapshot()
        self.failure: Optional[ProviderError] = None
        self.fetch_count = 0

    def set_snapshot(self, snapshot: DashboardSnapshot) -> None:
        self.snapshot = snapshot

    def fail_with(self, error: ProviderError) -> None:
        self.failure = error

    def clear_failure(self) -> None:
        self.failure = None

    async def fetch_dashboard_snapshot(self) -> DashboardSnapshot:
        self.fetch_count += 1
        if self.failure is not None:
            raise self.failure
        return self.snapshot


class SQLDataProvider(DataProvider):
    """
    Load the dashboard collections from a relational store.

    Expected tables:
      - summary_metrics(id, label, display_value, description, trend_direction, trend_label, position)
      - work_items(id, title, description, due_at, submitted_count, total_expected)
      - activity_events(id, title, description, occurred_at, category)
      - announcements(id, title, content, published_at, author, priority)
    """

    def __init__(self, engine: Engine, activity_limit: int = 20, announcement_limit: int = 10):
        self.engine = engine
        self.activity_limit = activity_limit
        self.announcement_limit = announcement_limit

    async def fetch_dashboard_snapshot(self) -> DashboardSnapshot:
        try:
            return await asyncio.to_thread(self._load_snapshot)
        except SQLAlchemyError as exc:
            raise ProviderError(f"Failed to load dashboard snapshot: {exc}") from exc
        except (ValueError, TypeError) as exc:
            raise ProviderError(f"Malformed dashboard row: {exc}") from exc

    def _load_snapshot(self) -> DashboardSnapshot:
        with self.engine.connect() as connection:
            metric_rows = connection.execute(
                text(
                    """
                    SELECT id, label, display_value, description, trend_direction, trend_label
                    FROM summary_metrics
                    ORDER BY position ASC, id ASC
                    """
                )
            ).fetchall()
            work_item_rows = connection.execute(
                text(
                    """
                    SELECT id, title, description, due_at, submitted_count, total_expected
                    FROM work_items
                    ORDER BY due_at ASC, id ASC
                    """
                )
            ).fetchall()
            activity_rows = connection.execute(
                text(
                    """
                    SELECT id, title, description, occurred_at, category
                    FROM activity_events
                    ORDER BY occurred_at DESC, id ASC
                    LIMIT :limit
                    """
                ),
                {"limit": self.activity_limit},
            ).fetchall()
            announcement_rows = connection.execute(
                text(
                    """
                    SELECT id, title, content, published_at, author, priority
                    FROM announcements
                    ORDER BY published_at DESC, id ASC
                    LIMIT :limit
                    """
                ),
                {"limit": self.announcement_limit},
            ).fetchall()

        logger.debug(
            "Loaded %d metrics, %d work items, %d activity events, %d announcements",
            len(metric_rows),
            len(work_item_rows),
            len(activity_rows),
            len(announcement_rows),
        )
        return DashboardSnapshot(
            metrics=[self._row_to_metric(row) for row in metric_rows],
            work_items=[self._row_to_work_item(row) for row in work_item_rows],
            activity=[self._row_to_activity(row) for row in activity_rows],
            announcements=[self._row_to_announcement(row) for row in announcement_rows],
        )

    @staticmethod
    def _as_datetime(value) -> datetime:
        # SQLite hands back text for DATETIME columns declared via raw DDL.
        if isinstance(value, str):
            return datetime.fromisoformat(value)
        return value

    @staticmethod
    def _row_to_metric(row: Row) -> SummaryMetric:
        direction = row.trend_direction or TrendDirection.NONE.value
        return SummaryMetric(
            id=str(row.id),
            label=str(row.label),
            display_value=str(row.display_value),
            description=row.description or "",
            trend_direction=TrendDirection(direction),
            trend_label=row.trend_label or "",
        )

    @classmethod
    def _row_to_work_item(cls, row: Row) -> WorkItem:
        return WorkItem(
            id=str(row.id),
            title=str(row.title),
            description=row.description or "",
            due_at=cls._as_datetime(row.due_at),
            submitted_count=int(row.submitted_count or 0),
            total_expected=int(row.total_expected or 0),
        )

    @classmethod
    def _row_to_activity(cls, row: Row) -> ActivityEvent:
        return ActivityEvent(
            id=str(row.id),
            title=str(row.title),
            description=row.description or "",
            occurred_at=cls._as_datetime(row.occurred_at),
            category=ActivityCategory(row.category),
        )

    @classmethod
    def _row_to_announcement(cls, row: Row) -> Announcement:
        return Announcement(
            id=str(row.id),
            title=str(row.title),
            content=row.content or "",
            published_at=cls._as_datetime(row.published_at),
            author=row.author or "",
            priority=AnnouncementPriority(row.priority or AnnouncementPriority.NORMAL.value),
        )


@dataclass(frozen=True)
class ProviderConfig:
    database_url: Optional[str] = None

    @classmethod
    def from_env(cls) -> "ProviderConfig":
        return cls(database_url=os.getenv("CLASSROOM_DASHBOARD_DATABASE_URL"))


def build_provider_from_env(config: Optional[ProviderConfig] = None) -> Optional[DataProvider]:
    cfg = config or ProviderConfig.from_env()
    if cfg.database_url:
        engine = create_engine(cfg.database_url)
        return SQLDataProvider(engine)
    return None

