"""Sleep, heart and symptom patterns across menstrual cycle phases.

Each day in the window is labelled with a phase: logged entries first, then
phases predicted from the logged menstruation dates. Signals are averaged per
phase and the lowest and highest phases compared.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from statistics import fmean

import structlog

from ..cycle import predict_cycle_phases
from ..models import AnalysisContext, AnalyzedInsight, CyclePhase
from .base import DailySignals, correlation

logger = structlog.get_logger(__name__)

MIN_PHASE_DAYS = 3


@dataclass
class PhaseProfile:
    """Per-phase daily values for one signal."""

    signal: str
    values: dict[CyclePhase, list[float]] = field(default_factory=lambda: defaultdict(list))

    def means(self) -> dict[CyclePhase, float]:
        return {
            phase: fmean(values)
            for phase, values in self.values.items()
            if len(values) >= MIN_PHASE_DAYS
        }

    def extremes(self) -> tuple[CyclePhase, float, CyclePhase, float] | None:
        """(lowest phase, its mean, highest phase, its mean) over qualifying phases."""
        means = self.means()
        if len(means) < 2:
            return None
        ordered = sorted(means.items(), key=lambda item: item[1])
        (low, low_mean), (high, high_mean) = ordered[0], ordered[-1]
        return low, low_mean, high, high_mean


def phase_by_day(ctx: AnalysisContext) -> dict[str, CyclePhase]:
    """Phase label for each day up to today that has a logged or predicted phase."""
    logged = [e for e in ctx.cycle_entries if not e.predicted]
    today = ctx.local_date
    entries = predict_cycle_phases(logged, today)
    return {e.date.isoformat(): e.phase for e in entries if e.date <= today}


def analyze_cycle(ctx: AnalysisContext) -> list[AnalyzedInsight]:
    if not any(not e.predicted for e in ctx.cycle_entries):
        return []

    signals = DailySignals(ctx)
    phases = phase_by_day(ctx)

    def profile(signal: str, values_by_date: dict[str, float]) -> PhaseProfile:
        result = PhaseProfile(signal)
        for day, value in sorted(values_by_date.items()):
            phase = phases.get(day)
            if phase is not None:
                result.values[phase].append(value)
        return result

    symptom_days = {day: signals.symptom_count(day) for day in phases}
    insights = [
        insight
        for insight in (
            _sleep(profile("sleep", signals.sleep)),
            _hrv(profile("hrv", signals.hrv)),
            _resting_hr(profile("heart_rate", signals.resting_hr)),
            _symptoms(profile("symptom", symptom_days)) if signals.symptom_logs else None,
        )
        if insight is not None
    ]
    logger.debug("cycle_analyzed", labelled_days=len(phases), insights=len(insights))
    return insights


def _sleep(profile: PhaseProfile) -> AnalyzedInsight | None:
    extremes = profile.extremes()
    if extremes is None:
        return None
    low, low_mean, high, high_mean = extremes
    if high_mean - low_mean <= 0.5:
        return None
    return correlation(
        f"Sleep dips in {low.value} phase",
        f"You sleep {high_mean - low_mean:.1f}h less during {low.value} than in the "
        f"{high.value} phase.",
        0.74,
        "sleep",
        "menstrual_cycle",
    )


def _hrv(profile: PhaseProfile) -> AnalyzedInsight | None:
    extremes = profile.extremes()
    if extremes is None:
        return None
    low, low_mean, high, high_mean = extremes
    if high_mean - low_mean <= 5:
        return None
    return correlation(
        f"HRV lowest in {low.value} phase",
        f"Your HRV averages {round(high_mean - low_mean)}ms lower in {low.value} than in the "
        f"{high.value} phase.",
        0.73,
        "hrv",
        "menstrual_cycle",
    )


def _resting_hr(profile: PhaseProfile) -> AnalyzedInsight | None:
    extremes = profile.extremes()
    if extremes is None:
        return None
    low, low_mean, high, high_mean = extremes
    if high_mean - low_mean <= 3:
        return None
    return correlation(
        f"Resting HR peaks in {high.value} phase",
        f"Resting HR is {round(high_mean - low_mean)} bpm higher in {high.value} than in the "
        f"{low.value} phase.",
        0.72,
        "heart_rate",
        "menstrual_cycle",
    )


def _symptoms(profile: PhaseProfile) -> AnalyzedInsight | None:
    extremes = profile.extremes()
    if extremes is None:
        return None
    low, low_mean, high, high_mean = extremes
    if high_mean - low_mean <= 0.5:
        return None
    return correlation(
        f"Symptoms peak in {high.value} phase",
        f"You log {high_mean:.1f} symptoms per day in {high.value} vs {low_mean:.1f} "
        f"in {low.value}.",
        0.76,
        "symptom",
        "menstrual_cycle",
    )
