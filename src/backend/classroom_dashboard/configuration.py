"""
Runtime configuration for the classroom dashboard.
"""

from __future__ import annotations

import os
from typing import Any, Mapping, Optional, Tuple

from pydantic import BaseModel

from .models import TimeWindow

# Medium date style, e.g. "Feb 20, 2024". ``{day}`` is filled without padding.
DEFAULT_DATE_FORMAT = "%b {day}, %Y"

DEFAULT_PALETTE: Tuple[str, ...] = (
    "#1E88E5",  # blue
    "#43A047",  # green
    "#FB8C00",  # orange
    "#8E24AA",  # purple
    "#D81B60",  # pink
    "#3949AB",  # indigo
    "#00897B",  # teal
    "#26A69A",  # mint
    "#00ACC1",  # cyan
    "#FDD835",  # yellow
)


class DashboardConfig(BaseModel):
    timezone: str = "UTC"
    """Timezone in which calendar-day differences are computed"""

    default_window: TimeWindow = TimeWindow.WEEK
    """Window used when a client does not pick one"""

    date_format: str = DEFAULT_DATE_FORMAT
    """strftime pattern for absolute due dates; ``{day}`` expands to the unpadded day"""

    palette: Tuple[str, ...] = DEFAULT_PALETTE
    """Fixed colors handed out by stable title hash"""


def _env_str(name: str, default: Optional[str]) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


def _env_window(name: str, default: TimeWindow) -> TimeWindow:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return TimeWindow.parse(raw)
    except ValueError:
        return default


def load_dashboard_config(overrides: Optional[Mapping[str, Any]] = None) -> DashboardConfig:
    """
    Build the configuration from defaults, then ``overrides``, then env vars.

    Environment variables win so deployments can adjust behaviour without code
    changes. Malformed values fall back to the next source instead of failing.
    """

    cfg = DashboardConfig()
    values = dict(overrides or {})

    base_window = values.get("default_window", cfg.default_window)
    if isinstance(base_window, str):
        try:
            base_window = TimeWindow.parse(base_window)
        except ValueError:
            base_window = cfg.default_window

    return DashboardConfig(
        timezone=_env_str("CLASSROOM_DASHBOARD_TIMEZONE", values.get("timezone", cfg.timezone)),
        default_window=_env_window("CLASSROOM_DASHBOARD_DEFAULT_WINDOW", base_window),
        date_format=_env_str("CLASSROOM_DASHBOARD_DATE_FORMAT", values.get("date_format", cfg.date_format)),
        palette=tuple(values.get("palette", cfg.palette)),
    )
