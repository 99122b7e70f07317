"""Tests for the calendar analyzer."""

from health_insights.analyzers import analyze_calendar
from health_insights.models import InsightType, MetricType

from helpers import event, find, make_context, metric, titles


def _past_filler(hour=10):
    return [event(f"Errand {d}", d, hour=hour) for d in range(2, 6)]


class TestCalendarAnalyzer:
    """Tests for analyze_calendar."""

    def test_needs_five_events(self):
        ctx = make_context(events=[event("Standup", -1, hour=7)] + _past_filler()[:3])
        assert analyze_calendar(ctx) == []

    def test_early_start_tomorrow(self):
        """The earliest timed event before 8am tomorrow is called out."""
        events = _past_filler() + [
            event("Conference", -1, all_day=True),
            event("Lunch", -1, hour=12),
            event("Standup", -1, hour=7, minute=30),
        ]
        insight = find(analyze_calendar(make_context(events=events)), "Early start tomorrow")

        assert insight.type == InsightType.PREDICTION
        assert insight.confidence == 0.92
        assert insight.description == (
            '"Standup" at 07:30. Consider going to bed early tonight.'
        )

    def test_early_start_in_local_time(self):
        """Tomorrow and the start hour are read in the user's zone."""
        events = _past_filler(hour=14) + [
            event("Standup", -1, hour=11, minute=30),
            event("Lunch", -1, hour=16),
        ]
        ctx = make_context(events=events, timezone="America/New_York")
        insight = find(analyze_calendar(ctx), "Early start tomorrow")
        assert insight.description.startswith('"Standup" at 07:30.')

    def test_no_early_start(self):
        events = _past_filler() + [event("Lunch", -1, hour=12)]
        assert "Early start tomorrow" not in titles(analyze_calendar(make_context(events=events)))

    def test_heavy_week(self):
        events = [event(f"Meeting {h}", d, hour=h) for d in range(-5, 0) for h in (9, 11, 13)]
        insight = find(analyze_calendar(make_context(events=events)), "Heavy week ahead")

        assert insight.confidence == 0.88
        assert insight.description.startswith("15 events in the next 7 days.")

    def test_busy_days_less_walking(self):
        busy = [event(f"Meeting {h}", d, hour=h) for d in (1, 2) for h in (9, 11, 13, 15)]
        calm = [event("Walk", d) for d in (3, 4)]
        steps = [(1, 4000), (2, 4000), (3, 9000), (4, 9000), (5, 6000)]
        ctx = make_context(
            events=busy + calm,
            metrics=[metric(MetricType.STEPS, n, d, hour=20) for d, n in steps],
        )
        insight = find(analyze_calendar(ctx), "Busy days = less walking")
        assert insight.description == "You walk 5,000 fewer steps on days with 4+ events."
