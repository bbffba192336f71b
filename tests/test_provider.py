"""
Tests for the data providers.

The SQL provider is exercised against a file-backed SQLite database because
its queries run on a worker thread.
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine, text

from backend.classroom_dashboard.models import (
    ActivityCategory,
    AnnouncementPriority,
    TrendDirection,
)
from backend.classroom_dashboard.provider import (
    ProviderConfig,
    ProviderError,
    SQLDataProvider,
    StaticDataProvider,
    build_provider_from_env,
)

SCHEMA = [
    """
    CREATE TABLE summary_metrics (
        id TEXT PRIMARY KEY, label TEXT, display_value TEXT, description TEXT,
        trend_direction TEXT, trend_label TEXT, position INTEGER
    )
    """,
    """
    CREATE TABLE work_items (
        id TEXT PRIMARY KEY, title TEXT, description TEXT, due_at TEXT,
        submitted_count INTEGER, total_expected INTEGER
    )
    """,
    """
    CREATE TABLE activity_events (
        id TEXT PRIMARY KEY, title TEXT, description TEXT, occurred_at TEXT, category TEXT
    )
    """,
    """
    CREATE TABLE announcements (
        id TEXT PRIMARY KEY, title TEXT, content TEXT, published_at TEXT, author TEXT, priority TEXT
    )
    """,
]


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'dashboard.db'}")
    with engine.begin() as connection:
        for statement in SCHEMA:
            connection.execute(text(statement))
        connection.execute(
            text(
                "INSERT INTO summary_metrics VALUES "
                "('grade', 'Avg. Grade', '76%', '', 'down', '-2%', 2), "
                "('students', 'Students', '12', 'Across all classes', 'up', '+3', 1), "
                "('classes', 'Classes', '6', NULL, NULL, NULL, 3)"
            )
        )
        connection.execute(
            text(
                "INSERT INTO work_items VALUES "
                "('essay', 'History Essay', '2000 words', '2024-01-13T09:00:00+00:00', 4, 25), "
                "('math', 'Problem Set #5', NULL, '2024-01-11T09:00:00+00:00', NULL, NULL)"
            )
        )
        connection.execute(
            text(
                "INSERT INTO activity_events VALUES "
                "('a1', 'Grade Update', 'Quiz 2 posted', '2024-01-10T08:00:00+00:00', 'gradeUpdate'), "
                "('a2', 'Student Added', NULL, '2024-01-09T08:00:00+00:00', 'studentUpdate')"
            )
        )
        connection.execute(
            text(
                "INSERT INTO announcements VALUES "
                "('n1', 'Assembly', 'Moved to the gym', '2024-01-09T00:00:00+00:00', 'Principal', NULL)"
            )
        )
    yield engine
    engine.dispose()


class TestStaticDataProvider:
    @pytest.mark.asyncio
    async def test_returns_current_snapshot(self, snapshot_a, snapshot_b) -> None:
        provider = StaticDataProvider(snapshot_a)
        assert await provider.fetch_dashboard_snapshot() is snapshot_a

        provider.set_snapshot(snapshot_b)
        assert await provider.fetch_dashboard_snapshot() is snapshot_b
        assert provider.fetch_count == 2

    @pytest.mark.asyncio
    async def test_armed_failure_raises_until_cleared(self, snapshot_a) -> None:
        provider = StaticDataProvider(snapshot_a)
        provider.fail_with(ProviderError("offline"))

        with pytest.raises(ProviderError, match="offline"):
            await provider.fetch_dashboard_snapshot()

        provider.clear_failure()
        assert await provider.fetch_dashboard_snapshot() is snapshot_a


class TestSQLDataProvider:
    @pytest.mark.asyncio
    async def test_loads_all_collections(self, engine) -> None:
        snapshot = await SQLDataProvider(engine).fetch_dashboard_snapshot()

        assert [metric.id for metric in snapshot.metrics] == ["students", "grade", "classes"]
        assert snapshot.metrics[0].trend_direction is TrendDirection.UP
        assert snapshot.metrics[2].trend_direction is TrendDirection.NONE
        assert snapshot.metrics[2].description == ""

        assert [item.id for item in snapshot.work_items] == ["math", "essay"]
        math = snapshot.work_items[0]
        assert math.due_at == datetime(2024, 1, 11, 9, 0, tzinfo=timezone.utc)
        assert math.submitted_count == 0
        assert math.total_expected == 0
        assert snapshot.work_items[1].submission_rate == 0.16

        assert [event.id for event in snapshot.activity] == ["a1", "a2"]
        assert snapshot.activity[1].category is ActivityCategory.STUDENT_UPDATE
        assert snapshot.announcements[0].priority is AnnouncementPriority.NORMAL

    @pytest.mark.asyncio
    async def test_activity_limit(self, engine) -> None:
        snapshot = await SQLDataProvider(engine, activity_limit=1).fetch_dashboard_snapshot()
        assert [event.id for event in snapshot.activity] == ["a1"]

    @pytest.mark.asyncio
    async def test_database_errors_become_provider_errors(self, tmp_path) -> None:
        empty = create_engine(f"sqlite:///{tmp_path / 'empty.db'}")
        with pytest.raises(ProviderError) as excinfo:
            await SQLDataProvider(empty).fetch_dashboard_snapshot()
        assert excinfo.value.__cause__ is not None
        empty.dispose()

    @pytest.mark.asyncio
    async def test_malformed_rows_become_provider_errors(self, engine) -> None:
        with engine.begin() as connection:
            connection.execute(
                text("INSERT INTO activity_events VALUES ('bad', 'Odd', NULL, '2024-01-10T00:00:00+00:00', 'party')")
            )
        with pytest.raises(ProviderError, match="Malformed"):
            await SQLDataProvider(engine).fetch_dashboard_snapshot()


class TestBuildProviderFromEnv:
    def test_no_database_url_means_no_provider(self, monkeypatch) -> None:
        monkeypatch.delenv("CLASSROOM_DASHBOARD_DATABASE_URL", raising=False)
        assert build_provider_from_env() is None

    def test_database_url_builds_sql_provider(self, tmp_path) -> None:
        provider = build_provider_from_env(ProviderConfig(database_url=f"sqlite:///{tmp_path / 'x.db'}"))
        assert isinstance(provider, SQLDataProvider)

    def test_config_reads_env(self, monkeypatch) -> None:
        monkeypatch.setenv("CLASSROOM_DASHBOARD_DATABASE_URL", "sqlite://")
        assert ProviderConfig.from_env().database_url == "sqlite://"
