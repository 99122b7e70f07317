"""Tests for the activity analyzer."""

import pytest

from health_insights.analyzers import analyze_activity
from health_insights.models import MetricType

from helpers import find, make_context, metric, titles, weather


def _steps(values):
    return [metric(MetricType.STEPS, value, d, hour=20) for d, value in values]


class TestActivityAnalyzer:
    """Tests for analyze_activity."""

    def test_needs_five_samples(self):
        ctx = make_context(metrics=_steps([(d, 2000) for d in range(1, 5)]))
        assert analyze_activity(ctx) == []

    @pytest.mark.parametrize(
        ("steps", "title", "description"),
        [
            (3000, "Increase daily movement", "Your average is 3,000 steps. Aim for 7,000-10,000."),
            (12000, "Great activity level!", "Averaging 12,000 steps/day. Excellent movement!"),
        ],
    )
    def test_activity_level(self, steps, title, description):
        ctx = make_context(metrics=_steps([(d, steps) for d in range(1, 6)]))
        insight = find(analyze_activity(ctx), title)
        assert insight.description == description

    def test_moderate_activity_is_quiet(self):
        ctx = make_context(metrics=_steps([(d, 7000) for d in range(1, 6)]))
        assert analyze_activity(ctx) == []

    def test_rain_reduces_activity(self):
        """Dry days are compared with days above 1mm of rain."""
        days = [(1, 0, 10000), (2, 0, 10000), (3, 5, 4000), (4, 5, 4000), (5, 0.5, 7000)]
        ctx = make_context(
            metrics=_steps([(d, steps) for d, _, steps in days]),
            weather=[weather(d, precipitation_mm=rain) for d, rain, _ in days],
        )
        insight = find(analyze_activity(ctx), "Rain reduces activity")

        assert insight.confidence == 0.79
        assert insight.description == "You walk 6,000 fewer steps on rainy days."
        assert insight.related_signals == frozenset({"steps", "weather"})

    def test_rain_needs_five_weather_days(self):
        days = [(1, 0, 10000), (2, 0, 10000), (3, 5, 4000), (4, 5, 4000)]
        ctx = make_context(
            metrics=_steps([(d, steps) for d, _, steps in days] + [(5, 7000)]),
            weather=[weather(d, precipitation_mm=rain) for d, rain, _ in days],
        )
        assert "Rain reduces activity" not in titles(analyze_activity(ctx))

    def test_active_days_better_sleep(self):
        ctx = make_context(
            metrics=_steps([(d, 12000 if d <= 3 else 4000) for d in range(1, 7)])
            + [metric(MetricType.SLEEP, 8.0 if d <= 3 else 7.0, d) for d in range(1, 7)],
        )
        insight = find(analyze_activity(ctx), "Active days = better sleep")
        assert insight.description == "You sleep 1.0h more on high-step days."
