"""
Classroom dashboard backend.

Holds the snapshot a teacher dashboard renders (summary metrics, upcoming work
items, recent activity and announcements), reloads it from a pluggable data
provider, and applies the time-window policy that decides which assignments
count as upcoming.
"""

from .aggregator import DashboardAggregator  # noqa: F401
from .configuration import DashboardConfig, load_dashboard_config  # noqa: F401
from .models import (  # noqa: F401
    ActivityCategory,
    ActivityEvent,
    Announcement,
    AnnouncementPriority,
    DashboardSnapshot,
    DashboardState,
    SummaryMetric,
    TimeWindow,
    TrendDirection,
    Urgency,
    WorkItem,
)
from .palette import color_for, palette_index, stable_hash  # noqa: F401
from .profile import UserProfile  # noqa: F401
from .provider import (  # noqa: F401
    DataProvider,
    ProviderConfig,
    ProviderError,
    SQLDataProvider,
    StaticDataProvider,
    build_provider_from_env,
)
from .scheduling import (  # noqa: F401
    days_between,
    filter_work_items_by_window,
    format_due_label,
    time_ago,
    urgency_of,
)
