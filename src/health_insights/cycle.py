"""Menstrual cycle phase prediction."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, timedelta

import structlog

from .models import CycleEntry, CyclePhase

logger = structlog.get_logger(__name__)

DEFAULT_CYCLE_LENGTH = 28
PREDICTION_HORIZON_DAYS = 35
PAST_LIMIT_DAYS = 90


def phase_for_cycle_day(day_in_cycle: int) -> CyclePhase:
    """Phase for a zero-based day within the cycle."""
    if day_in_cycle < 5:
        return CyclePhase.MENSTRUATION
    if day_in_cycle < 14:
        return CyclePhase.FOLLICULAR
    if day_in_cycle < 16:
        return CyclePhase.OVULATION
    return CyclePhase.LUTEAL


def period_starts(menstruation_dates: Iterable[date]) -> list[date]:
    """First day of each run of consecutive menstruation dates, oldest first."""
    ordered = sorted(set(menstruation_dates))
    return [d for i, d in enumerate(ordered) if i == 0 or (d - ordered[i - 1]).days > 1]


def average_cycle_length(starts: Iterable[date]) -> int:
    """Mean gap between period start dates, rounded; 28 without history."""
    ordered = sorted(set(starts))
    if len(ordered) < 2:
        return DEFAULT_CYCLE_LENGTH
    total = sum((b - a).days for a, b in zip(ordered, ordered[1:]))
    return max(1, round(total / (len(ordered) - 1)))


def predict_cycle_phases(entries: Iterable[CycleEntry], today: date) -> list[CycleEntry]:
    """Fill gaps from the last period start with predicted phases.

    Logged entries are never replaced. Predictions cover at most 35 days from
    the start of the last period, limited to 90 days back and 35 days ahead of
    ``today``.

    Args:
        entries: Logged cycle entries in any order.
        today: Reference day for the prediction horizon.

    Returns:
        Logged plus predicted entries, most recent first.
    """
    logged = list(entries)
    menstruation = [e.date for e in logged if e.phase == CyclePhase.MENSTRUATION]
    if not menstruation:
        return sorted(logged, key=lambda e: e.date, reverse=True)

    starts = period_starts(menstruation)
    cycle_length = average_cycle_length(starts)
    last_period = starts[-1]
    known = {e.date for e in logged}

    predicted: list[CycleEntry] = []
    for i in range(PREDICTION_HORIZON_DAYS):
        day = last_period + timedelta(days=i)
        offset = (day - today).days
        if offset > PREDICTION_HORIZON_DAYS or offset < -PAST_LIMIT_DAYS:
            continue
        if day in known:
            continue
        predicted.append(
            CycleEntry(date=day, phase=phase_for_cycle_day(i % cycle_length), predicted=True)
        )

    logger.debug(
        "cycle_phases_predicted",
        cycle_length=cycle_length,
        logged=len(logged),
        predicted=len(predicted),
    )
    return sorted([*logged, *predicted], key=lambda e: e.date, reverse=True)
