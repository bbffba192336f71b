from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from .configuration import DashboardConfig
from .models import (
    ActivityEvent,
    Announcement,
    DashboardSnapshot,
    DashboardState,
    EMPTY_SNAPSHOT,
    SummaryMetric,
    TimeWindow,
    Urgency,
    WorkItem,
)
from .provider import DataProvider, ProviderError
from .scheduling import filter_work_items_by_window, format_due_label, time_ago, urgency_of

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DashboardAggregator:
    """
    Holds the dashboard snapshot for one screen/session and reloads it on demand.

    Each ``load``/``refresh`` call takes a ticket from a monotonically
    increasing counter. Only the call holding the latest ticket may replace the
    snapshot or record an error, so a slow superseded request can never
    overwrite newer state. The snapshot is swapped as one reference, which
    keeps the four collections consistent for any reader.
    """

    def __init__(
        self,
        provider: DataProvider,
        config: Optional[DashboardConfig] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.provider = provider
        self.config = config or DashboardConfig()
        self._clock = clock
        self._snapshot: DashboardSnapshot = EMPTY_SNAPSHOT
        self._last_error: Optional[ProviderError] = None
        self._last_updated: Optional[datetime] = None
        self._issued = 0
        self._loading = False

    @property
    def snapshot(self) -> DashboardSnapshot:
        return self._snapshot

    @property
    def metrics(self) -> Sequence[SummaryMetric]:
        return self._snapshot.metrics

    @property
    def work_items(self) -> Sequence[WorkItem]:
        return self._snapshot.work_items

    @property
    def activity(self) -> Sequence[ActivityEvent]:
        return self._snapshot.activity

    @property
    def announcements(self) -> Sequence[Announcement]:
        return self._snapshot.announcements

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def last_error(self) -> Optional[ProviderError]:
        return self._last_error

    @property
    def last_updated(self) -> Optional[datetime]:
        return self._last_updated

    def state(self) -> DashboardState:
        return DashboardState(
            snapshot=self._snapshot,
            loading=self._loading,
            last_error=self._last_error,
            last_updated=self._last_updated,
        )

    async def load(self) -> DashboardState:
        self._issued += 1
        ticket = self._issued
        self._loading = True

        try:
            snapshot = await self.provider.fetch_dashboard_snapshot()
        except ProviderError as exc:
            if ticket != self._issued:
                logger.debug("Discarding failure of superseded load #%d: %s", ticket, exc)
                return self.state()
            logger.warning("Dashboard load #%d failed: %s", ticket, exc)
            self._loading = False
            self._last_error = exc
            return self.state()
        except Exception:
            if ticket == self._issued:
                self._loading = False
            raise

        if ticket != self._issued:
            logger.debug("Discarding result of superseded load #%d (latest is #%d)", ticket, self._issued)
            return self.state()

        self._loading = False
        self._snapshot = snapshot
        self._last_error = None
        self._last_updated = self._clock()
        logger.info(
            "Dashboard load #%d applied: %d metrics, %d work items, %d activity events, %d announcements",
            ticket,
            len(snapshot.metrics),
            len(snapshot.work_items),
            len(snapshot.activity),
            len(snapshot.announcements),
        )
        return self.state()

    async def refresh(self) -> DashboardState:
        return await self.load()

    def filter_work_items_by_window(
        self,
        window: TimeWindow,
        items: Sequence[WorkItem],
        now: Optional[datetime] = None,
    ) -> List[WorkItem]:
        return filter_work_items_by_window(window, items, now or self._clock(), self.config.timezone)

    def upcoming_work_items(
        self,
        window: Optional[TimeWindow] = None,
        now: Optional[datetime] = None,
    ) -> List[WorkItem]:
        return self.filter_work_items_by_window(window or self.config.default_window, self.work_items, now)

    def format_due_label(self, item: WorkItem, now: Optional[datetime] = None) -> str:
        return format_due_label(item, now or self._clock(), self.config.timezone, self.config.date_format)

    def urgency_of(self, item: WorkItem, now: Optional[datetime] = None) -> Urgency:
        return urgency_of(item, now or self._clock(), self.config.timezone)

    def time_ago(self, event: ActivityEvent, now: Optional[datetime] = None) -> str:
        return time_ago(event.occurred_at, now or self._clock(), self.config.timezone)
