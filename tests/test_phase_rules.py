"""Tests for cycle-phase advisories."""

from health_insights.models import CyclePhase, InsightType, MetricType, Severity
from health_insights.phase_rules import (
    PhaseAdvisory,
    PhaseMetrics,
    PhaseRule,
    PhaseRuleEngine,
)

from helpers import caffeine, custom, cycle, exercise, food, make_context, metric, symptom


def _headlines(advisories):
    return [a.headline for a in advisories]


class _BrokenRuleEngine(PhaseRuleEngine):
    def _build_rules(self):
        def explode(metrics):
            raise KeyError("missing")

        broken = PhaseRule(
            name="broken",
            phase=CyclePhase.OVULATION,
            condition=explode,
            advisory=PhaseAdvisory(
                phase=CyclePhase.OVULATION,
                signal="test",
                headline="Never shown",
                text="",
                severity=Severity.INFO,
            ),
        )
        return [broken, *super()._build_rules()]


class TestPhaseMetrics:
    """Tests for window aggregates."""

    def test_empty_context(self):
        metrics = PhaseMetrics.from_context(make_context())
        assert metrics == PhaseMetrics()

    def test_aggregates(self):
        ctx = make_context(
            metrics=[
                metric(MetricType.SLEEP, 6.0, 1, quality=7),
                metric(MetricType.SLEEP, 8.0, 2, quality=9),
                metric(MetricType.RESTING_HEART_RATE, 60, 1),
                metric(MetricType.RESTING_HEART_RATE, 70, 2),
                metric(MetricType.HRV, 28, 1),
                metric(MetricType.HRV, 50, 2),
            ],
            manual_logs=[
                caffeine(1, mg=120),
                caffeine(2, mg=80),
                exercise("run", 1, intensity="high"),
                symptom("Mood", 1),
                custom("water", 1, hour=9),
                custom("water", 1, hour=15),
                custom("water", 2),
                custom("energy", 1, severity=5),
            ],
            foods=[food(1, calories=900), food(1, hour=19, calories=700)],
        )
        metrics = PhaseMetrics.from_context(ctx)

        assert metrics.sleep_duration == 7.0
        assert metrics.sleep_quality == 8.0
        assert metrics.resting_heart_rate == 65
        assert metrics.hrv == 28
        assert metrics.caffeine_intake == 200
        assert metrics.exercise_intensity == "high"
        assert metrics.symptoms == ("mood",)
        assert metrics.calorie_intake == 1600
        assert metrics.calories_burned is None
        assert metrics.hydration == 1.5
        assert metrics.energy == 5


class TestPhaseRuleEngine:
    """Tests for rule evaluation."""

    def test_no_phase(self):
        assert PhaseRuleEngine().evaluate(None, PhaseMetrics(sleep_duration=4)) == []

    def test_menstruation(self):
        metrics = PhaseMetrics(
            sleep_duration=6.0,
            exercise_intensity="high",
            symptoms=("cramps", "fatigue"),
            caffeine_intake=150,
            hydration=5,
        )
        advisories = PhaseRuleEngine().evaluate(CyclePhase.MENSTRUATION, metrics)

        assert _headlines(advisories) == [
            "Extra rest during your period",
            "Go lighter on workouts this week",
            "Period symptoms logged",
            "Caffeine may worsen cramps",
            "Stay hydrated during your period",
        ]
        assert advisories[2].text == (
            "You logged 2 symptoms during menstruation. This is normal but monitor severity."
        )

    def test_missing_inputs_do_not_fire(self):
        """Rules on absent aggregates stay silent."""
        advisories = PhaseRuleEngine().evaluate(CyclePhase.MENSTRUATION, PhaseMetrics())
        assert advisories == []

    def test_follicular(self):
        metrics = PhaseMetrics(
            energy=4, exercise_intensity="low", resting_heart_rate=80, sleep_quality=9
        )
        advisories = PhaseRuleEngine().evaluate(CyclePhase.FOLLICULAR, metrics)
        assert _headlines(advisories) == [
            "Energy lower than expected",
            "Good time for harder training",
            "Resting HR elevated",
            "Excellent sleep quality",
        ]

    def test_ovulation_window_always_fires(self):
        advisories = PhaseRuleEngine().evaluate(CyclePhase.OVULATION, PhaseMetrics())
        assert _headlines(advisories) == ["Peak fertility window"]

    def test_ovulation_deficit(self):
        metrics = PhaseMetrics(resting_heart_rate=60, calorie_intake=1500, calories_burned=2200)
        advisories = PhaseRuleEngine().evaluate(CyclePhase.OVULATION, metrics)
        assert _headlines(advisories) == [
            "Peak fertility window",
            "Resting HR is optimal",
            "Eat enough around ovulation",
        ]

    def test_luteal(self):
        metrics = PhaseMetrics(
            exercise_intensity="high",
            symptoms=("mood",),
            sleep_duration=7,
            calorie_intake=1500,
            caffeine_intake=150,
            hrv=25,
        )
        advisories = PhaseRuleEngine().evaluate(CyclePhase.LUTEAL, metrics)
        assert len(advisories) == 6

    def test_advisory_metadata(self):
        """Severity and actionability come with each evaluated advisory."""
        metrics = PhaseMetrics(resting_heart_rate=60, calorie_intake=1500, calories_burned=2200)
        advisories = PhaseRuleEngine().evaluate(CyclePhase.OVULATION, metrics)

        assert [(a.severity, a.actionable) for a in advisories] == [
            (Severity.INFO, False),
            (Severity.POSITIVE, False),
            (Severity.MODERATE, True),
        ]

    def test_raising_rule_is_skipped(self):
        advisories = _BrokenRuleEngine().evaluate(CyclePhase.OVULATION, PhaseMetrics())
        assert _headlines(advisories) == ["Peak fertility window"]


class TestPhaseInsights:
    """Tests for turning advisories into insights."""

    def test_text_then_suggestions(self):
        """The advisory text leads and the suggestions follow."""
        advisory = PhaseRuleEngine().evaluate(CyclePhase.LUTEAL, PhaseMetrics(hrv=20))[0]
        insight = advisory.to_insight()

        assert insight.title == "Lower HRV is expected"
        assert insight.type == InsightType.CORRELATION
        assert insight.confidence == 0.75
        assert insight.description == (
            "Lower HRV in luteal phase is normal. Avoid overtraining and focus on recovery. "
            "Reduce training volume • Increase rest days • Monitor stress levels"
        )
        assert insight.related_signals == frozenset({"hrv", "menstrual_cycle"})

    def test_symptom_count_reaches_insight(self):
        """The computed symptom count survives into the description."""
        metrics = PhaseMetrics(symptoms=("cramps", "headache", "bloating"))
        (advisory,) = PhaseRuleEngine().evaluate(CyclePhase.MENSTRUATION, metrics)
        insight = advisory.to_insight()

        assert insight.title == "Period symptoms logged"
        assert insight.description.startswith("You logged 3 symptoms during menstruation.")
        assert insight.description.endswith(
            "Track symptoms daily • Note any patterns • Consider pain relief if severe"
        )

    def test_suggestions_only(self):
        advisory = PhaseAdvisory(
            phase=CyclePhase.OVULATION,
            signal="calories",
            headline="Eat more",
            text="",
            severity=Severity.MODERATE,
            suggestions=("More protein", "More carbs"),
        )
        assert advisory.to_insight().description == "More protein • More carbs"

    def test_text_when_no_suggestions(self):
        advisory = PhaseRuleEngine().evaluate(
            CyclePhase.FOLLICULAR, PhaseMetrics(resting_heart_rate=80)
        )[0]
        assert advisory.to_insight().description.startswith("Your resting HR is elevated")

    def test_headline_fallback(self):
        advisory = PhaseAdvisory(
            phase=CyclePhase.LUTEAL, signal="sleep", headline="", text="t", severity=Severity.INFO
        )
        assert advisory.to_insight().title == "Luteal phase insight"

    def test_insights_for_current_phase(self):
        ctx = make_context(
            cycle_entries=[cycle(CyclePhase.LUTEAL, 0)],
            metrics=[metric(MetricType.HRV, 22, 1)],
        )
        insights = PhaseRuleEngine().insights_for(ctx)
        assert [i.title for i in insights] == ["Lower HRV is expected"]

    def test_insights_without_phase(self):
        assert PhaseRuleEngine().insights_for(make_context()) == []
