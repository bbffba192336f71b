from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel, Field, validator

from .aggregator import DashboardAggregator
from .configuration import load_dashboard_config
from .models import (
    ActivityCategory,
    ActivityEvent,
    Announcement,
    AnnouncementPriority,
    DashboardSnapshot,
    SummaryMetric,
    TimeWindow,
    TrendDirection,
    WorkItem,
)
from .palette import color_for
from .profile import UserProfile
from .provider import DataProvider, StaticDataProvider, build_provider_from_env

app = FastAPI(title="Classroom Dashboard API", version="0.1.0")
config = load_dashboard_config()
database_provider: Optional[DataProvider] = build_provider_from_env()
inline_provider = StaticDataProvider()
aggregator = DashboardAggregator(database_provider or inline_provider, config=config)


class MetricPayload(BaseModel):
    id: str
    label: str
    display_value: str
    description: str = ""
    trend_direction: TrendDirection = TrendDirection.NONE
    trend_label: str = ""


class WorkItemPayload(BaseModel):
    id: str
    title: str
    description: str = ""
    due_at: datetime
    submitted_count: int = Field(0, ge=0)
    total_expected: int = Field(0, ge=0)

    @validator("total_expected")
    def _validate_counts(cls, total: int, values: Dict[str, Any]) -> int:
        submitted = values.get("submitted_count") or 0
        if total and submitted > total:
            raise ValueError("submitted_count cannot exceed total_expected")
        return total


class ActivityPayload(BaseModel):
    id: str
    title: str
    description: str = ""
    occurred_at: datetime
    category: ActivityCategory


class AnnouncementPayload(BaseModel):
    id: str
    title: str
    content: str
    published_at: datetime
    author: str
    priority: AnnouncementPriority = AnnouncementPriority.NORMAL


class SnapshotRequest(BaseModel):
    metrics: List[MetricPayload] = Field(default_factory=list)
    work_items: List[WorkItemPayload] = Field(default_factory=list)
    activity: List[ActivityPayload] = Field(default_factory=list)
    announcements: List[AnnouncementPayload] = Field(default_factory=list)


class SessionRequest(BaseModel):
    claims: Dict[str, Any]


class DashboardResponse(BaseModel):
    data: Dict[str, Any]
    source: str


def _source() -> str:
    return "database" if database_provider is not None else "inline"


def _parse_window(label: Optional[str]) -> TimeWindow:
    if label is None:
        return config.default_window
    try:
        return TimeWindow.parse(label)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/dashboard", response_model=DashboardResponse)
async def dashboard_state() -> DashboardResponse:
    return DashboardResponse(data=aggregator.state().as_dict(), source=_source())


@app.post("/dashboard/refresh", response_model=DashboardResponse)
async def refresh_dashboard() -> DashboardResponse:
    state = await aggregator.refresh()
    return DashboardResponse(data=state.as_dict(), source=_source())


@app.get("/dashboard/work-items")
async def upcoming_work_items(window: Optional[str] = Query(None)) -> Dict[str, Any]:
    selected = _parse_window(window)
    now = datetime.now(timezone.utc)
    items = aggregator.upcoming_work_items(selected, now=now)
    return {
        "window": selected.value,
        "days": selected.days,
        "items": [
            {
                **_work_item_dict(item),
                "dueLabel": aggregator.format_due_label(item, now=now),
                "urgency": aggregator.urgency_of(item, now=now).value,
                "submissionRate": item.submission_rate,
                "color": color_for(item.title, config.palette),
            }
            for item in items
        ],
    }


@app.get("/dashboard/activity")
async def recent_activity() -> Dict[str, Any]:
    now = datetime.now(timezone.utc)
    return {
        "items": [
            {
                "id": event.id,
                "title": event.title,
                "description": event.description,
                "occurredAt": event.occurred_at.isoformat(),
                "category": event.category.value,
                "timeAgo": aggregator.time_ago(event, now=now),
                "color": color_for(event.category.value, config.palette),
            }
            for event in aggregator.activity
        ]
    }


@app.post("/dashboard/snapshot", response_model=DashboardResponse)
async def replace_snapshot(request: SnapshotRequest) -> DashboardResponse:
    if database_provider is not None:
        raise HTTPException(
            status_code=409,
            detail="CLASSROOM_DASHBOARD_DATABASE_URL is configured; inline snapshots are disabled.",
        )
    inline_provider.set_snapshot(_convert_snapshot(request))
    state = await aggregator.refresh()
    return DashboardResponse(data=state.as_dict(), source=_source())


@app.post("/session")
async def start_session(request: SessionRequest) -> Dict[str, str]:
    profile = UserProfile.from_claims(request.claims)
    return {
        "userId": profile.user_id,
        "displayName": profile.display_first_name,
        "fullName": profile.full_name,
        "initials": profile.initials,
        "greeting": profile.greeting,
        "avatarColor": color_for(profile.initials or profile.display_first_name, config.palette),
    }


def _work_item_dict(item: WorkItem) -> Dict[str, Any]:
    return {
        "id": item.id,
        "title": item.title,
        "description": item.description,
        "dueAt": item.due_at.isoformat(),
        "submittedCount": item.submitted_count,
        "totalExpected": item.total_expected,
    }


def _convert_snapshot(request: SnapshotRequest) -> DashboardSnapshot:
    return DashboardSnapshot(
        metrics=[
            SummaryMetric(
                id=payload.id,
                label=payload.label,
                display_value=payload.display_value,
                description=payload.description,
                trend_direction=payload.trend_direction,
                trend_label=payload.trend_label,
            )
            for payload in request.metrics
        ],
        work_items=[
            WorkItem(
                id=payload.id,
                title=payload.title,
                description=payload.description,
                due_at=payload.due_at,
                submitted_count=payload.submitted_count,
                total_expected=payload.total_expected,
            )
            for payload in request.work_items
        ],
        activity=[
            ActivityEvent(
                id=payload.id,
                title=payload.title,
                description=payload.description,
                occurred_at=payload.occurred_at,
                category=payload.category,
            )
            for payload in request.activity
        ],
        announcements=[
            Announcement(
                id=payload.id,
                title=payload.title,
                content=payload.content,
                published_at=payload.published_at,
                author=payload.author,
                priority=payload.priority,
            )
            for payload in request.announcements
        ],
    )
