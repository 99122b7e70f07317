"""Tests for the menstrual cycle analyzer."""

from health_insights.analyzers import analyze_cycle
from health_insights.analyzers.cycle_phase import phase_by_day
from health_insights.models import CyclePhase, MetricType

from helpers import cycle, day_key, find, make_context, metric, symptom

MENSTRUATION_DAYS = range(16, 21)
FOLLICULAR_DAYS = range(7, 16)


def _logged_cycle():
    entries = [cycle(CyclePhase.MENSTRUATION, d) for d in MENSTRUATION_DAYS]
    entries += [cycle(CyclePhase.FOLLICULAR, d) for d in FOLLICULAR_DAYS]
    return entries


class TestPhaseByDay:
    """Tests for labelling days with phases."""

    def test_logged_and_predicted(self):
        """Logged days keep their phase; later days are predicted from the period start."""
        phases = phase_by_day(make_context(cycle_entries=_logged_cycle()))

        assert phases[day_key(20)] == CyclePhase.MENSTRUATION
        assert phases[day_key(10)] == CyclePhase.FOLLICULAR
        assert phases[day_key(6)] == CyclePhase.OVULATION
        assert phases[day_key(0)] == CyclePhase.LUTEAL

    def test_future_days_unlabelled(self):
        phases = phase_by_day(make_context(cycle_entries=_logged_cycle()))
        assert day_key(-1) not in phases

    def test_predicted_input_entries_ignored(self):
        """Predictions are rebuilt from logged entries only."""
        entries = _logged_cycle() + [cycle(CyclePhase.LUTEAL, 12, predicted=True)]
        phases = phase_by_day(make_context(cycle_entries=entries))
        assert phases[day_key(12)] == CyclePhase.FOLLICULAR


class TestCycleAnalyzer:
    """Tests for analyze_cycle."""

    def test_needs_logged_entries(self):
        entries = [cycle(CyclePhase.LUTEAL, d, predicted=True) for d in range(10)]
        ctx = make_context(
            cycle_entries=entries,
            metrics=[metric(MetricType.SLEEP, 7.0, d) for d in range(10)],
        )
        assert analyze_cycle(ctx) == []

    def test_sleep_by_phase(self):
        sleep = [metric(MetricType.SLEEP, 6.0, d) for d in MENSTRUATION_DAYS]
        sleep += [metric(MetricType.SLEEP, 8.0, d) for d in FOLLICULAR_DAYS]
        ctx = make_context(cycle_entries=_logged_cycle(), metrics=sleep)

        insight = find(analyze_cycle(ctx), "Sleep dips in menstruation phase")
        assert insight.confidence == 0.74
        assert insight.description == (
            "You sleep 2.0h less during menstruation than in the follicular phase."
        )
        assert insight.related_signals == frozenset({"sleep", "menstrual_cycle"})

    def test_symptoms_by_phase(self):
        """Days without symptoms count as zero in their phase."""
        logs = [symptom("cramps", d, hour=h) for d in MENSTRUATION_DAYS for h in (9, 15)]
        ctx = make_context(cycle_entries=_logged_cycle(), manual_logs=logs)

        insight = find(analyze_cycle(ctx), "Symptoms peak in menstruation phase")
        assert insight.confidence == 0.76
        assert insight.description == (
            "You log 2.0 symptoms per day in menstruation vs 0.0 in follicular."
        )

    def test_flat_signal_is_quiet(self):
        sleep = [metric(MetricType.SLEEP, 7.5, d) for d in range(0, 21)]
        ctx = make_context(cycle_entries=_logged_cycle(), metrics=sleep)
        assert analyze_cycle(ctx) == []
