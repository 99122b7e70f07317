"""Tests for domain records, insights and the analysis context."""

from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError

from health_insights.models import (
    MANUAL_LOGS_ADAPTER,
    AnalyzedInsight,
    BristolStoolLog,
    CaffeineLog,
    CalendarEvent,
    CyclePhase,
    ExerciseLog,
    InsightType,
    MetricSample,
    MetricType,
    SymptomLog,
)

from helpers import at, cycle, food, make_context, metric, symptom, weather


class TestMetricSample:
    """Tests for metric sample validation."""

    def test_naive_timestamp_read_as_utc(self):
        """Naive timestamps become UTC-aware."""
        sample = MetricSample(
            metric_type="sleep", value=7.5, recorded_at=datetime(2025, 6, 1, 8, 0)
        )
        assert sample.recorded_at.tzinfo == timezone.utc
        assert sample.metric_type == MetricType.SLEEP

    def test_non_finite_value_rejected(self):
        """NaN and infinity are not valid readings."""
        with pytest.raises(ValidationError, match="finite"):
            MetricSample(metric_type="steps", value=float("nan"), recorded_at=at(1))
        with pytest.raises(ValidationError, match="finite"):
            MetricSample(metric_type="steps", value=float("inf"), recorded_at=at(1))

    def test_unknown_metric_type_rejected(self):
        """Metric types come from a closed set."""
        with pytest.raises(ValidationError):
            MetricSample(metric_type="blood_sugar", value=5.0, recorded_at=at(1))

    def test_records_are_frozen(self):
        """Records cannot be changed after construction."""
        sample = metric(MetricType.STEPS, 1000, 1)
        with pytest.raises(ValidationError):
            sample.value = 2000


class TestManualLogs:
    """Tests for the manual log union and per-variant parsing."""

    def test_discriminated_union(self):
        """Each log type validates into its own model."""
        logs = MANUAL_LOGS_ADAPTER.validate_python(
            [
                {"log_type": "symptom", "value": "headache", "logged_at": "2025-06-01T10:00:00Z"},
                {"log_type": "caffeine", "value": "250mg", "logged_at": "2025-06-01T09:00:00Z"},
                {"log_type": "bristol_stool", "value": "Type 6", "logged_at": "2025-06-01T08:00"},
            ]
        )
        assert isinstance(logs[0], SymptomLog)
        assert isinstance(logs[1], CaffeineLog)
        assert isinstance(logs[2], BristolStoolLog)
        assert logs[1].milligrams == 250
        assert logs[2].stool_type == 6

    def test_severity_range(self):
        """Severity is limited to 0..10."""
        with pytest.raises(ValidationError):
            SymptomLog(value="headache", severity=11, logged_at=at(1))

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("250mg", 250), ("80 mg espresso", 80), ("coffee", 100), ("0", 100)],
    )
    def test_caffeine_milligrams(self, value, expected):
        """Leading digits give the dose, 100 mg otherwise."""
        assert CaffeineLog(value=value, logged_at=at(1)).milligrams == expected

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("Type 2", 2), ("5", 5), ("9", 7), ("0", 1), ("soft", 4)],
    )
    def test_bristol_stool_type(self, value, expected):
        """Stool type is parsed and clamped to the 1-7 scale."""
        assert BristolStoolLog(value=value, logged_at=at(1)).stool_type == expected

    def test_exercise_intensity_score(self):
        """Volume uses sets, reps and weight when present."""
        full = ExerciseLog(
            value="squat", logged_at=at(1), metadata={"sets": 3, "reps": 10, "weight": 50}
        )
        no_weight = ExerciseLog(value="pushups", logged_at=at(1), metadata={"sets": 3, "reps": 10})
        bare = ExerciseLog(value="run", logged_at=at(1))

        assert full.intensity_score == 1500
        assert no_weight.intensity_score == 300
        assert bare.intensity_score == 50

    def test_exercise_intensity_level(self):
        """Intensity level defaults to moderate."""
        assert ExerciseLog(value="run", logged_at=at(1)).intensity_level == "moderate"
        high = ExerciseLog(value="run", logged_at=at(1), metadata={"intensity": " High "})
        assert high.intensity_level == "high"


class TestCalendarEvent:
    """Tests for calendar events."""

    def test_auto_generated_marker(self):
        """The [auto] prefix marks app-generated events, case-insensitively."""
        auto = CalendarEvent(title="[Auto] Focus time", start_time=at(1), end_time=at(1, 10))
        user = CalendarEvent(title="Dentist [auto]", start_time=at(1), end_time=at(1, 10))

        assert auto.is_auto_generated is True
        assert user.is_auto_generated is False


class TestAnalyzedInsight:
    """Tests for the insight result type."""

    def test_confidence_range(self):
        """Confidence outside 0..1 is rejected."""
        with pytest.raises(ValueError, match="Confidence must be between 0 and 1"):
            AnalyzedInsight(
                type=InsightType.CORRELATION, title="x", description="y", confidence=1.5
            )

    def test_dedup_key(self):
        """Titles are lower-cased, stripped to letters and truncated."""
        insight = AnalyzedInsight(
            type=InsightType.CORRELATION,
            title="Late caffeine hurts sleep!",
            description="",
            confidence=0.8,
        )
        assert insight.dedup_key() == "latecaffeinehurtssle"
        assert insight.dedup_key(4) == "late"

    def test_to_dict(self):
        """Serialized form has plain values and sorted signals."""
        insight = AnalyzedInsight(
            type=InsightType.PREDICTION,
            title="Heavy week ahead",
            description="15 events",
            confidence=0.88,
            related_signals=frozenset({"sleep", "calendar"}),
        )
        assert insight.to_dict() == {
            "type": "prediction",
            "title": "Heavy week ahead",
            "description": "15 events",
            "confidence": 0.88,
            "related_signals": ["calendar", "sleep"],
        }


class TestAnalysisContext:
    """Tests for context helpers."""

    def test_total_records_counts_every_domain(self):
        """Records from all domains, cycle entries included, are counted."""
        ctx = make_context(
            metrics=[metric(MetricType.SLEEP, 7, 1)],
            manual_logs=[symptom("headache", 1)],
            foods=[food(1, calories=500)],
            weather=[weather(1)],
            cycle_entries=[cycle(CyclePhase.LUTEAL, 0)],
        )
        assert ctx.total_records == 5

    def test_current_phase_is_head_entry(self):
        """The first cycle entry decides the current phase."""
        ctx = make_context(
            cycle_entries=[cycle(CyclePhase.LUTEAL, 0), cycle(CyclePhase.OVULATION, 2)]
        )
        assert ctx.current_phase == CyclePhase.LUTEAL
        assert make_context().current_phase is None

    def test_current_phase_skips_future_entries(self):
        """Entries dated after the local analysis date do not decide the phase."""
        ctx = make_context(
            cycle_entries=[
                cycle(CyclePhase.FOLLICULAR, -3, predicted=True),
                cycle(CyclePhase.LUTEAL, -1, predicted=True),
                cycle(CyclePhase.OVULATION, 0, predicted=True),
                cycle(CyclePhase.MENSTRUATION, 14),
            ]
        )
        assert ctx.current_phase == CyclePhase.OVULATION
        assert make_context(cycle_entries=[cycle(CyclePhase.LUTEAL, -2)]).current_phase is None

    def test_current_phase_uses_local_date(self):
        """Tomorrow in UTC is already today east of the date line."""
        entries = [cycle(CyclePhase.LUTEAL, -1), cycle(CyclePhase.FOLLICULAR, 0)]

        assert make_context(cycle_entries=entries).current_phase == CyclePhase.FOLLICULAR
        kiribati = make_context(timezone="Pacific/Kiritimati", cycle_entries=entries)
        assert kiribati.local_date == date(2025, 6, 16)
        assert kiribati.current_phase == CyclePhase.LUTEAL

    def test_filters(self):
        """metrics_of and logs_of select by kind."""
        ctx = make_context(
            metrics=[metric(MetricType.SLEEP, 7, 1), metric(MetricType.STEPS, 900, 1)],
            manual_logs=[symptom("headache", 1)],
        )
        assert [m.metric_type for m in ctx.metrics_of(MetricType.STEPS)] == [MetricType.STEPS]
        assert len(ctx.logs_of("symptom")) == 1
