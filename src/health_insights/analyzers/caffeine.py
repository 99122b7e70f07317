"""Caffeine timing and dose against heart, gut and sleep signals."""

from __future__ import annotations

from datetime import timedelta

import structlog

from ..aggregation import cohort_split, compare_cohorts, compare_values
from ..models import AnalysisContext, AnalyzedInsight
from .base import MIN_COHORT, DailySignals, correlation, recommendation

logger = structlog.get_logger(__name__)

MIN_CAFFEINE_LOGS = 3
LATE_HOUR = 14
HIGH_DOSE_MG = 200
LOW_DOSE_MG = 100
BOWEL_WINDOW_HOURS = 2


def analyze_caffeine(ctx: AnalysisContext) -> list[AnalyzedInsight]:
    signals = DailySignals(ctx)
    if len(signals.caffeine_logs) < MIN_CAFFEINE_LOGS:
        return []

    insights = [
        insight
        for insight in (
            _heart_rate(signals),
            _bowel_movements(signals),
            _hrv(signals),
            _recent_timing(signals),
        )
        if insight is not None
    ]
    logger.debug("caffeine_analyzed", logs=len(signals.caffeine_logs), insights=len(insights))
    return insights


def _heart_rate(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.heart_samples) < 5:
        return None

    late: list[float] = []
    early: list[float] = []
    for log in signals.caffeine_logs:
        day_hr = signals.mean_hr.get(signals.day(log.logged_at))
        if day_hr is None:
            continue
        if signals.hour(log.logged_at) >= LATE_HOUR:
            late.append(day_hr)
        else:
            early.append(day_hr)

    comparison = compare_values(late, early, min_samples=MIN_COHORT)
    if comparison is None or comparison.difference <= 5:
        return None
    return correlation(
        "Afternoon caffeine raises HR",
        f"Your resting HR is {round(comparison.difference)} bpm higher on days with late caffeine.",
        0.77,
        "caffeine",
        "heart_rate",
    )


def _bowel_movements(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.bristol_logs) < 5 or len(signals.caffeine_logs) < 5:
        return None

    after_caffeine = 0
    for log in signals.bristol_logs:
        caffeine_hour = signals.first_caffeine_hour.get(signals.day(log.logged_at))
        if caffeine_hour is None:
            continue
        gap = signals.hour(log.logged_at) - caffeine_hour
        if 0 < gap <= BOWEL_WINDOW_HOURS:
            after_caffeine += 1

    total = len(signals.bristol_logs)
    share = after_caffeine / total
    if share <= 0.5:
        return None
    return correlation(
        "Caffeine triggers bowel movements",
        f"{round(share * 100)}% of BMs occur within 2h of caffeine.",
        0.80,
        "caffeine",
        "bristol",
    )


def _hrv(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.hrv_samples) < 5 or len(signals.caffeine_logs) < 5:
        return None

    cohorts = cohort_split(
        signals.caffeine_mg,
        lambda mg: mg > HIGH_DOSE_MG,
        lambda mg: mg < LOW_DOSE_MG,
    )
    comparison = compare_cohorts(cohorts, signals.hrv)
    if comparison is None or -comparison.difference <= 5:
        return None
    return correlation(
        "High caffeine lowers HRV",
        f"Days with 200mg+ caffeine show {round(-comparison.difference)}ms lower HRV.",
        0.76,
        "caffeine",
        "hrv",
    )


def _recent_timing(signals: DailySignals) -> AnalyzedInsight | None:
    week_ago = signals.ctx.reference_time - timedelta(days=7)
    recent = [log for log in signals.caffeine_logs if log.logged_at >= week_ago]
    late = [log for log in recent if signals.hour(log.logged_at) >= LATE_HOUR]
    if len(late) < 3 or len(recent) < 5:
        return None

    ratio = len(late) / len(recent)
    if ratio <= 0.6:
        return None
    return recommendation(
        "Consider earlier caffeine",
        f"{round(ratio * 100)}% of your caffeine in the past week is after 2pm. "
        "This may affect sleep.",
        0.82,
        "caffeine",
        "sleep",
    )
