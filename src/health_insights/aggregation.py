"""Aggregation primitives shared by every analyzer.

All day bucketing happens in the user's resolved timezone. Unknown zones fall
back to the host's local clock instead of raising.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from operator import attrgetter
from statistics import fmean
from typing import Literal, TypeVar
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")

Reducer = Literal["first", "last", "sum", "mean", "min", "max", "count"]

DAY_FORMAT = "%Y-%m-%d"


def resolve_zone(timezone: str | None) -> ZoneInfo | None:
    """Look up an IANA zone, returning None when it is missing or unknown."""
    if not timezone:
        return None
    try:
        return ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError):
        logger.debug("timezone_unresolved", timezone=timezone)
        return None


def to_local(timestamp: datetime, timezone: str | None) -> datetime:
    """Convert a timestamp into the given zone, or the host zone as fallback."""
    zone = resolve_zone(timezone)
    if zone is None:
        return timestamp.astimezone()
    return timestamp.astimezone(zone)


def date_key(timestamp: datetime, timezone: str | None) -> str:
    """Canonical ``YYYY-MM-DD`` day bucket for a timestamp."""
    return to_local(timestamp, timezone).strftime(DAY_FORMAT)


def hour_in_timezone(timestamp: datetime, timezone: str | None) -> int:
    """Hour of day (0-23) in the given zone."""
    return to_local(timestamp, timezone).hour


def weekday_in_timezone(timestamp: datetime, timezone: str | None) -> int:
    """Day of week in the given zone, Monday is 0."""
    return to_local(timestamp, timezone).weekday()


def parse_day(key: str) -> date:
    return datetime.strptime(key, DAY_FORMAT).date()


def shift_day(key: str, days: int) -> str:
    """Day key ``days`` after (or before, when negative) ``key``."""
    return (parse_day(key) + timedelta(days=days)).strftime(DAY_FORMAT)


def group_by_day(
    records: Iterable[T], timestamp_field: str, timezone: str | None
) -> dict[str, list[T]]:
    """Bucket records by the local day of one of their timestamp attributes."""
    get_timestamp = attrgetter(timestamp_field)
    grouped: dict[str, list[T]] = defaultdict(list)
    for record in records:
        grouped[date_key(get_timestamp(record), timezone)].append(record)
    return dict(grouped)


def daily_series(
    records: Iterable[T],
    timezone: str | None,
    *,
    timestamp_field: str = "recorded_at",
    value: Callable[[T], float | None] = attrgetter("value"),
    reduce: Reducer = "last",
) -> dict[str, float]:
    """Collapse records into one number per local day.

    Args:
        records: Records in repository order.
        timezone: User's IANA timezone.
        timestamp_field: Attribute holding the record's timestamp.
        value: Extracts the number to aggregate; None skips the record.
        reduce: How values on the same day combine.

    Returns:
        Mapping of day key to the reduced value.
    """
    buckets: dict[str, list[float]] = defaultdict(list)
    for record, day in zip_days(records, timestamp_field, timezone):
        number = value(record)
        if number is None:
            continue
        buckets[day].append(float(number))

    reducers: dict[str, Callable[[list[float]], float]] = {
        "first": lambda xs: xs[0],
        "last": lambda xs: xs[-1],
        "sum": sum,
        "mean": fmean,
        "min": min,
        "max": max,
        "count": lambda xs: float(len(xs)),
    }
    combine = reducers[reduce]
    return {day: combine(values) for day, values in buckets.items()}


def zip_days(
    records: Iterable[T], timestamp_field: str, timezone: str | None
) -> Iterable[tuple[T, str]]:
    get_timestamp = attrgetter(timestamp_field)
    for record in records:
        yield record, date_key(get_timestamp(record), timezone)


def moving_average(series_by_date: Mapping[str, float], window: int = 7) -> dict[str, float]:
    """Trailing average over the ``window`` most recent days up to each date.

    The first dates use a partial window; no value ever looks ahead.
    """
    ordered = sorted(series_by_date)
    averages: dict[str, float] = {}
    for i, day in enumerate(ordered):
        span = ordered[max(0, i - window + 1) : i + 1]
        averages[day] = fmean(series_by_date[d] for d in span)
    return averages


@dataclass(frozen=True)
class Cohorts:
    """Two day-sets selected by threshold rules on one signal."""

    high: list[str]
    low: list[str]


def cohort_split(
    values_by_date: Mapping[str, float],
    predicate_high: Callable[[float], bool],
    predicate_low: Callable[[float], bool],
) -> Cohorts:
    """Partition days into high and low exposure cohorts."""
    high = [day for day, v in sorted(values_by_date.items()) if predicate_high(v)]
    low = [day for day, v in sorted(values_by_date.items()) if predicate_low(v)]
    return Cohorts(high=high, low=low)


def relative_cohorts(
    values_by_date: Mapping[str, float], high: float = 1.2, low: float = 0.8
) -> Cohorts:
    """Split days whose value is strictly above ``mean*high`` or below ``mean*low``."""
    if not values_by_date:
        return Cohorts(high=[], low=[])
    reference = fmean(values_by_date.values())
    return cohort_split(
        values_by_date,
        lambda v: v > reference * high,
        lambda v: v < reference * low,
    )


def days_where(days: Iterable[str], predicate: Callable[[str], bool]) -> list[str]:
    return sorted(day for day in days if predicate(day))


@dataclass(frozen=True)
class CohortComparison:
    """Outcome values observed in each cohort."""

    high: list[float]
    low: list[float]

    @property
    def high_mean(self) -> float:
        return fmean(self.high)

    @property
    def low_mean(self) -> float:
        return fmean(self.low)

    @property
    def difference(self) -> float:
        """High-cohort mean minus low-cohort mean."""
        return self.high_mean - self.low_mean


def outcomes_for(
    days: Iterable[str], outcome_by_date: Mapping[str, float], offset_days: int = 0
) -> list[float]:
    """Outcome values for each day (shifted by ``offset_days``) that has one."""
    values = []
    for day in days:
        target = shift_day(day, offset_days) if offset_days else day
        if target in outcome_by_date:
            values.append(outcome_by_date[target])
    return values


def compare_cohorts(
    cohorts: Cohorts,
    outcome_by_date: Mapping[str, float],
    *,
    min_samples: int = 2,
    offset_days: int = 0,
) -> CohortComparison | None:
    """Pair each cohort with a downstream signal.

    Returns None when either cohort has fewer than ``min_samples`` outcomes,
    so no rule can fire on an undersized comparison.
    """
    return compare_values(
        outcomes_for(cohorts.high, outcome_by_date, offset_days),
        outcomes_for(cohorts.low, outcome_by_date, offset_days),
        min_samples=min_samples,
    )


def compare_values(
    high: Sequence[float], low: Sequence[float], *, min_samples: int = 2
) -> CohortComparison | None:
    """Comparison of two pre-collected samples, gated on ``min_samples``."""
    if len(high) < min_samples or len(low) < min_samples:
        return None
    return CohortComparison(high=list(high), low=list(low))


def longest_streak(days: Iterable[str]) -> int:
    """Length in days of the longest run of consecutive day keys."""
    ordered = sorted({parse_day(d) for d in days})
    if not ordered:
        return 0
    best = run = 1
    for prev, curr in zip(ordered, ordered[1:]):
        run = run + 1 if (curr - prev).days == 1 else 1
        best = max(best, run)
    return best
