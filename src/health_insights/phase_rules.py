"""Cycle-phase advisories for the user's current phase."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from statistics import fmean

import structlog

from .aggregation import daily_series
from .models import (
    AnalysisContext,
    AnalyzedInsight,
    BristolStoolLog,
    CaffeineLog,
    CustomLog,
    CyclePhase,
    ExerciseLog,
    InsightType,
    LogType,
    MetricType,
    Severity,
)

logger = structlog.get_logger(__name__)

PHASE_INSIGHT_CONFIDENCE = 0.75
CYCLE_SIGNAL = "menstrual_cycle"


@dataclass(frozen=True)
class PhaseMetrics:
    """Window-level aggregates the phase rules look at.

    A field is None when the window holds nothing to derive it from.
    """

    sleep_duration: float | None = None
    sleep_quality: float | None = None
    exercise_intensity: str | None = None
    resting_heart_rate: float | None = None
    hrv: float | None = None
    steps: float | None = None
    calorie_intake: float | None = None
    calories_burned: float | None = None
    weight: float | None = None
    symptoms: tuple[str, ...] = ()
    caffeine_intake: float | None = None
    bristol: int | None = None
    hydration: float | None = None
    energy: float | None = None

    @classmethod
    def from_context(cls, ctx: AnalysisContext) -> PhaseMetrics:
        def mean_of(*metric_types: MetricType) -> float | None:
            values = [m.value for m in ctx.metrics_of(*metric_types)]
            return fmean(values) if values else None

        def first_of(metric_type: MetricType) -> float | None:
            samples = ctx.metrics_of(metric_type)
            return samples[0].value if samples else None

        sleep = ctx.metrics_of(MetricType.SLEEP)
        qualities = [
            float(s.metadata["quality"])
            for s in sleep
            if isinstance(s.metadata.get("quality"), int | float)
            and not isinstance(s.metadata.get("quality"), bool)
        ]
        exercise: list[ExerciseLog] = ctx.logs_of(LogType.EXERCISE)  # type: ignore[assignment]
        custom: list[CustomLog] = ctx.logs_of(LogType.CUSTOM)  # type: ignore[assignment]
        caffeine: list[CaffeineLog] = ctx.logs_of(LogType.CAFFEINE)  # type: ignore[assignment]
        bristol: list[BristolStoolLog] = ctx.logs_of(  # type: ignore[assignment]
            LogType.BRISTOL_STOOL
        )
        foods = ctx.foods
        burned = ctx.metrics_of(MetricType.CALORIES_BURNED, MetricType.ACTIVE_CALORIES)

        water = [log for log in custom if log.value.strip().lower() == "water"]
        glasses = daily_series(
            water, ctx.timezone, timestamp_field="logged_at", value=lambda _: 1.0, reduce="count"
        )
        energy = [
            log.severity
            for log in custom
            if log.value.strip().lower() == "energy" and log.severity is not None
        ]

        return cls(
            sleep_duration=fmean(s.value for s in sleep) if sleep else None,
            sleep_quality=fmean(qualities) if qualities else None,
            exercise_intensity=exercise[0].intensity_level if exercise else None,
            resting_heart_rate=mean_of(MetricType.RESTING_HEART_RATE),
            hrv=first_of(MetricType.HRV),
            steps=mean_of(MetricType.STEPS),
            calorie_intake=sum(f.calories for f in foods) if foods else None,
            calories_burned=sum(m.value for m in burned) if burned else None,
            weight=first_of(MetricType.WEIGHT),
            symptoms=tuple(log.value.lower() for log in ctx.logs_of(LogType.SYMPTOM)),
            caffeine_intake=float(sum(log.milligrams for log in caffeine)) if caffeine else None,
            bristol=bristol[0].stool_type if bristol else None,
            hydration=fmean(glasses.values()) if glasses else None,
            energy=fmean(energy) if energy else None,
        )


@dataclass(frozen=True)
class PhaseAdvisory:
    """One advisory produced by a phase rule.

    ``severity`` and ``actionable`` describe the advisory for callers of
    ``PhaseRuleEngine.evaluate``. Insights carry the headline, text and suggestions.
    """

    phase: CyclePhase
    signal: str
    headline: str
    text: str
    severity: Severity
    actionable: bool = True
    suggestions: tuple[str, ...] = ()

    def to_insight(self) -> AnalyzedInsight:
        title = self.headline or f"{self.phase.value.capitalize()} phase insight"
        parts = [self.text] if self.text else []
        if self.suggestions:
            parts.append(" • ".join(self.suggestions))
        description = " ".join(parts)
        return AnalyzedInsight(
            type=InsightType.CORRELATION,
            title=title,
            description=description,
            confidence=PHASE_INSIGHT_CONFIDENCE,
            related_signals=frozenset({self.signal, CYCLE_SIGNAL}),
        )


@dataclass
class PhaseRule:
    """A conditional check evaluated only in its phase."""

    name: str
    phase: CyclePhase
    condition: Callable[[PhaseMetrics], bool]
    advisory: PhaseAdvisory
    describe: Callable[[PhaseMetrics], str] | None = field(default=None)

    def generate(self, metrics: PhaseMetrics) -> PhaseAdvisory:
        if self.describe is None:
            return self.advisory
        return PhaseAdvisory(
            phase=self.advisory.phase,
            signal=self.advisory.signal,
            headline=self.advisory.headline,
            text=self.describe(metrics),
            severity=self.advisory.severity,
            actionable=self.advisory.actionable,
            suggestions=self.advisory.suggestions,
        )


def _below(value: float | None, limit: float) -> bool:
    return value is not None and value < limit


def _above(value: float | None, limit: float) -> bool:
    return value is not None and value > limit


class PhaseRuleEngine:
    """Evaluates the fixed advisory table for one cycle phase."""

    def __init__(self) -> None:
        self._rules = self._build_rules()

    @property
    def rules(self) -> list[PhaseRule]:
        return list(self._rules)

    def evaluate(self, phase: CyclePhase | None, metrics: PhaseMetrics) -> list[PhaseAdvisory]:
        """Advisories for ``phase``, in table order.

        A rule that raises is logged and skipped; no phase yields nothing.
        """
        if phase is None:
            return []

        advisories: list[PhaseAdvisory] = []
        for rule in self._rules:
            if rule.phase != phase:
                continue
            try:
                if rule.condition(metrics):
                    advisories.append(rule.generate(metrics))
                    logger.debug("phase_rule_matched", rule=rule.name, phase=phase.value)
            except Exception as e:
                logger.warning("phase_rule_evaluation_failed", rule=rule.name, error=str(e))
        return advisories

    def insights_for(self, ctx: AnalysisContext) -> list[AnalyzedInsight]:
        phase = ctx.current_phase
        if phase is None:
            return []
        metrics = PhaseMetrics.from_context(ctx)
        advisories = self.evaluate(phase, metrics)
        logger.debug(
            "phase_advisories_evaluated",
            phase=phase.value,
            count=len(advisories),
            actionable=sum(1 for a in advisories if a.actionable),
            severities=[a.severity.value for a in advisories],
        )
        return [advisory.to_insight() for advisory in advisories]

    def _build_rules(self) -> list[PhaseRule]:
        rules: list[PhaseRule] = []
        rules.extend(self._menstruation_rules())
        rules.extend(self._follicular_rules())
        rules.extend(self._ovulation_rules())
        rules.extend(self._luteal_rules())
        return rules

    def _menstruation_rules(self) -> list[PhaseRule]:
        phase = CyclePhase.MENSTRUATION
        return [
            PhaseRule(
                name="menstruation_short_sleep",
                phase=phase,
                condition=lambda m: _below(m.sleep_duration, 7),
                advisory=PhaseAdvisory(
                    phase=phase,
                    signal="sleep",
                    headline="Extra rest during your period",
                    text="During menstruation, you may need extra rest. "
                    "Your sleep was below 7 hours.",
                    severity=Severity.MODERATE,
                    suggestions=(
                        "Try to get 7-9 hours",
                        "Reduce caffeine intake",
                        "Take magnesium supplement",
                    ),
                ),
            ),
            PhaseRule(
                name="menstruation_high_intensity",
                phase=phase,
                condition=lambda m: m.exercise_intensity == "high",
                advisory=PhaseAdvisory(
                    phase=phase,
                    signal="exercise",
                    headline="Go lighter on workouts this week",
                    text="High intensity exercise during menstruation may increase fatigue. "
                    "Consider lighter workouts.",
                    severity=Severity.LOW,
                    suggestions=(
                        "Try low-intensity cardio",
                        "Yoga or stretching",
                        "Walking or swimming",
                    ),
                ),
            ),
            PhaseRule(
                name="menstruation_symptoms",
                phase=phase,
                condition=lambda m: len(m.symptoms) > 0,
                advisory=PhaseAdvisory(
                    phase=phase,
                    signal="symptom",
                    headline="Period symptoms logged",
                    text="",
                    severity=Severity.INFO,
                    suggestions=(
                        "Track symptoms daily",
                        "Note any patterns",
                        "Consider pain relief if severe",
                    ),
                ),
                describe=lambda m: f"You logged {len(m.symptoms)} symptoms during menstruation. "
                "This is normal but monitor severity.",
            ),
            PhaseRule(
                name="menstruation_caffeine",
                phase=phase,
                condition=lambda m: _above(m.caffeine_intake, 100),
                advisory=PhaseAdvisory(
                    phase=phase,
                    signal="caffeine",
                    headline="Caffeine may worsen cramps",
                    text="High caffeine intake during menstruation may worsen cramps "
                    "and sleep quality.",
                    severity=Severity.MODERATE,
                    suggestions=(
                        "Reduce to <100mg daily",
                        "Switch to herbal tea",
                        "Drink more water",
                    ),
                ),
            ),
            PhaseRule(
                name="menstruation_hydration",
                phase=phase,
                condition=lambda m: _below(m.hydration, 8),
                advisory=PhaseAdvisory(
                    phase=phase,
                    signal="hydration",
                    headline="Stay hydrated during your period",
                    text="During menstruation, proper hydration is crucial. "
                    "Aim for 8+ glasses of water daily.",
                    severity=Severity.MODERATE,
                    suggestions=(
                        "Increase water intake",
                        "Add electrolytes",
                        "Track fluid consumption",
                    ),
                ),
            ),
        ]

    def _follicular_rules(self) -> list[PhaseRule]:
        phase = CyclePhase.FOLLICULAR
        return [
            PhaseRule(
                name="follicular_low_energy",
                phase=phase,
                condition=lambda m: _below(m.energy, 7),
                advisory=PhaseAdvisory(
                    phase=phase,
                    signal="energy",
                    headline="Energy lower than expected",
                    text="During follicular phase, estrogen is rising and energy typically "
                    "increases. Low energy might indicate a concern.",
                    severity=Severity.LOW,
                    suggestions=(
                        "Check sleep quality",
                        "Increase cardio exercise",
                        "Review nutrition",
                    ),
                ),
            ),
            PhaseRule(
                name="follicular_low_intensity",
                phase=phase,
                condition=lambda m: m.exercise_intensity == "low",
                advisory=PhaseAdvisory(
                    phase=phase,
                    signal="exercise",
                    headline="Good time for harder training",
                    text="The follicular phase is optimal for high-intensity training. "
                    "Consider increasing workout intensity.",
                    severity=Severity.INFO,
                    suggestions=(
                        "HIIT workouts",
                        "Strength training",
                        "Challenging cardio sessions",
                    ),
                ),
            ),
            PhaseRule(
                name="follicular_elevated_hr",
                phase=phase,
                condition=lambda m: _above(m.resting_heart_rate, 75),
                advisory=PhaseAdvisory(
                    phase=phase,
                    signal="heart_rate",
                    headline="Resting HR elevated",
                    text="Your resting HR is elevated in follicular phase. "
                    "This is relatively normal due to rising estrogen.",
                    severity=Severity.INFO,
                    actionable=False,
                ),
            ),
            PhaseRule(
                name="follicular_sleep_quality",
                phase=phase,
                condition=lambda m: _above(m.sleep_quality, 8),
                advisory=PhaseAdvisory(
                    phase=phase,
                    signal="sleep",
                    headline="Excellent sleep quality",
                    text="Sleep quality is excellent in follicular phase. Take advantage of "
                    "this for recovery and social activities.",
                    severity=Severity.POSITIVE,
                    actionable=False,
                ),
            ),
        ]

    def _ovulation_rules(self) -> list[PhaseRule]:
        phase = CyclePhase.OVULATION
        return [
            PhaseRule(
                name="ovulation_window",
                phase=phase,
                condition=lambda m: True,
                advisory=PhaseAdvisory(
                    phase=phase,
                    signal="ovulation",
                    headline="Peak fertility window",
                    text="You are in your peak fertility window. This is the best time for "
                    "high-intensity exercise and demanding activities.",
                    severity=Severity.INFO,
                    actionable=False,
                    suggestions=(
                        "Schedule important meetings",
                        "Plan intense workouts",
                        "Social engagement peaks",
                    ),
                ),
            ),
            PhaseRule(
                name="ovulation_resting_hr",
                phase=phase,
                condition=lambda m: _below(m.resting_heart_rate, 75),
                advisory=PhaseAdvisory(
                    phase=phase,
                    signal="heart_rate",
                    headline="Resting HR is optimal",
                    text="Your resting heart rate is optimal during ovulation, "
                    "perfect for peak performance.",
                    severity=Severity.POSITIVE,
                    actionable=False,
                ),
            ),
            PhaseRule(
                name="ovulation_calorie_deficit",
                phase=phase,
                condition=lambda m: (
                    m.calorie_intake is not None
                    and m.calories_burned is not None
                    and m.calorie_intake < m.calories_burned
                ),
                advisory=PhaseAdvisory(
                    phase=phase,
                    signal="calories",
                    headline="Eat enough around ovulation",
                    text="Caloric needs increase slightly during ovulation. "
                    "Ensure adequate nutrition for peak performance.",
                    severity=Severity.MODERATE,
                    suggestions=(
                        "Increase protein intake",
                        "Add 200-300 extra calories",
                        "Focus on nutrient-dense foods",
                    ),
                ),
            ),
        ]

    def _luteal_rules(self) -> list[PhaseRule]:
        phase = CyclePhase.LUTEAL
        return [
            PhaseRule(
                name="luteal_high_intensity",
                phase=phase,
                condition=lambda m: m.exercise_intensity == "high",
                advisory=PhaseAdvisory(
                    phase=phase,
                    signal="exercise",
                    headline="Favor moderate workouts",
                    text="Luteal phase is for recovery. High-intensity exercise may cause "
                    "excess fatigue. Opt for moderate intensity.",
                    severity=Severity.MODERATE,
                    suggestions=(
                        "Lower intensity workouts",
                        "Yoga and stretching",
                        "Strength with longer rest",
                    ),
                ),
            ),
            PhaseRule(
                name="luteal_mood",
                phase=phase,
                condition=lambda m: "mood" in m.symptoms,
                advisory=PhaseAdvisory(
                    phase=phase,
                    signal="symptom",
                    headline="Mood changes are common now",
                    text="Mood changes are common in the luteal phase. "
                    "Self-care and rest are especially important now.",
                    severity=Severity.INFO,
                    suggestions=(
                        "Prioritize self-care",
                        "Reduce stress",
                        "Get extra sleep",
                        "Meditation or journaling",
                    ),
                ),
            ),
            PhaseRule(
                name="luteal_sleep_need",
                phase=phase,
                condition=lambda m: _below(m.sleep_duration, 8),
                advisory=PhaseAdvisory(
                    phase=phase,
                    signal="sleep",
                    headline="Sleep needs are higher",
                    text="Sleep needs increase in the luteal phase. "
                    "Aim for 8-10 hours for optimal recovery.",
                    severity=Severity.MODERATE,
                    suggestions=(
                        "Extend sleep by 1-2 hours",
                        "Sleep earlier",
                        "Improve sleep hygiene",
                    ),
                ),
            ),
            PhaseRule(
                name="luteal_low_calories",
                phase=phase,
                condition=lambda m: _below(m.calorie_intake, 2000),
                advisory=PhaseAdvisory(
                    phase=phase,
                    signal="nutrition",
                    headline="Hunger is normal this phase",
                    text="Caloric and nutrient needs increase in luteal phase. "
                    "Hunger is normal, eat more.",
                    severity=Severity.INFO,
                    suggestions=(
                        "Increase calories by 200-300",
                        "More complex carbs",
                        "Increase magnesium-rich foods",
                    ),
                ),
            ),
            PhaseRule(
                name="luteal_caffeine",
                phase=phase,
                condition=lambda m: _above(m.caffeine_intake, 100),
                advisory=PhaseAdvisory(
                    phase=phase,
                    signal="caffeine",
                    headline="Caffeine sensitivity peaks",
                    text="Caffeine sensitivity peaks in luteal phase. "
                    "High intake may disrupt sleep and mood.",
                    severity=Severity.MODERATE,
                    suggestions=(
                        "Limit to <50mg after noon",
                        "Switch to decaf",
                        "Herbal tea instead",
                    ),
                ),
            ),
            PhaseRule(
                name="luteal_low_hrv",
                phase=phase,
                condition=lambda m: _below(m.hrv, 30),
                advisory=PhaseAdvisory(
                    phase=phase,
                    signal="hrv",
                    headline="Lower HRV is expected",
                    text="Lower HRV in luteal phase is normal. "
                    "Avoid overtraining and focus on recovery.",
                    severity=Severity.INFO,
                    suggestions=(
                        "Reduce training volume",
                        "Increase rest days",
                        "Monitor stress levels",
                    ),
                ),
            ),
        ]
