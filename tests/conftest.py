"""Pytest configuration and fixtures."""

from pathlib import Path
import sys

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from health_insights.config import EngineSettings, reset_settings  # noqa: E402
from health_insights.ports import (  # noqa: E402
    InMemoryHealthRepository,
    InMemoryInsightSink,
    StaticTimezoneResolver,
)


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Drop the cached settings around every test."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def engine_settings():
    """Engine settings with defaults and no environment overrides."""
    return EngineSettings(_env_file=None)


@pytest.fixture
def empty_repository():
    """Repository holding no records."""
    return InMemoryHealthRepository()


@pytest.fixture
def utc_resolver():
    """Timezone resolver pinned to UTC."""
    return StaticTimezoneResolver("UTC")


@pytest.fixture
def insight_sink():
    """Sink that accepts every write."""
    return InMemoryInsightSink()


@pytest.fixture
def failing_sink():
    """Sink whose writes always fail."""
    return InMemoryInsightSink(fail=True)


@pytest.fixture
def sample_export():
    """JSON export with a week of sleep and caffeine logs."""
    metrics = []
    manual_logs = []
    for day in range(8, 14):
        late = day >= 11
        metrics.append(
            {
                "metric_type": "sleep",
                "value": 6.0 if late else 8.0,
                "unit": "hours",
                "recorded_at": f"2025-06-{day:02d}T08:00:00+00:00",
            }
        )
        manual_logs.append(
            {
                "log_type": "caffeine",
                "value": "120mg",
                "logged_at": f"2025-06-{day:02d}T{(16 if late else 9):02d}:00:00+00:00",
            }
        )
    return {
        "timezone": "UTC",
        "metrics": metrics,
        "manual_logs": manual_logs,
        "events": [
            {
                "title": "[auto] Sync",
                "start_time": "2025-06-12T10:00:00+00:00",
                "end_time": "2025-06-12T11:00:00+00:00",
            }
        ],
    }
