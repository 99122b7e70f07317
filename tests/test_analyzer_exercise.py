"""Tests for the exercise analyzer."""

from health_insights.analyzers import analyze_exercise
from health_insights.models import InsightType, MetricType

from helpers import exercise, find, make_context, metric, symptom, titles


class TestExerciseAnalyzer:
    """Tests for analyze_exercise."""

    def test_needs_three_logs(self):
        ctx = make_context(manual_logs=[exercise("run", 1), exercise("run", 2)])
        assert analyze_exercise(ctx) == []

    def test_strong_week(self):
        """Four distinct workout days in the last week are praised."""
        logs = [exercise("yoga", d) for d in range(1, 5)]
        insight = find(analyze_exercise(make_context(manual_logs=logs)), "Strong workout week!")

        assert insight.type == InsightType.RECOMMENDATION
        assert insight.confidence == 0.85
        assert insight.description == (
            "4 workout days this week. Remember to include rest for recovery."
        )

    def test_same_day_workouts_count_once(self):
        logs = [exercise("yoga", 1, hour=h) for h in (7, 12, 18)] + [exercise("run", 2)]
        ctx = make_context(manual_logs=logs)
        assert "Strong workout week!" not in titles(analyze_exercise(ctx))

    def test_workout_symptoms(self):
        """A named workout followed by symptoms on most of its days."""
        ctx = make_context(
            manual_logs=[exercise("Running", d) for d in range(1, 4)]
            + [symptom("cramps", d) for d in (1, 2, 5)],
        )
        insight = find(analyze_exercise(ctx), "Running may trigger symptoms")
        assert insight.confidence == 0.70
        assert insight.description == "You report symptoms 67% of days after running."

    def test_morning_workouts_better_sleep(self):
        ctx = make_context(
            manual_logs=[exercise("run", d, hour=7 if d <= 3 else 19) for d in range(1, 7)],
            metrics=[metric(MetricType.SLEEP, 8.0 if d <= 3 else 7.0, d) for d in range(1, 7)],
        )
        insight = find(analyze_exercise(ctx), "Morning workouts = better sleep")
        assert insight.description == (
            "You sleep 1.0h more on morning vs evening workout days."
        )

    def test_rest_days_boost_hrv(self):
        ctx = make_context(
            manual_logs=[exercise("run", d) for d in (1, 2, 3)],
            metrics=[metric(MetricType.HRV, 40 if d <= 3 else 55, d) for d in range(1, 7)],
        )
        insight = find(analyze_exercise(ctx), "Rest days boost HRV")
        assert insight.description == "Your HRV is 15ms higher on rest days. Recovery matters!"
