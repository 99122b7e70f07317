"""Record builders shared by the analyzer and engine tests.

Days are given as ``days_ago`` relative to ``REFERENCE_TIME`` (Sunday
2025-06-15 12:00 UTC); negative values are in the future.
"""

from datetime import UTC, datetime, timedelta

from health_insights.models import (
    AnalysisContext,
    AnalyzedInsight,
    BristolStoolLog,
    CaffeineLog,
    CalendarEvent,
    CustomLog,
    CycleEntry,
    CyclePhase,
    ExerciseLog,
    FoodEntry,
    MedicationLogEntry,
    MetricSample,
    MetricType,
    SupplementLog,
    SymptomLog,
    WeatherRecord,
)

REFERENCE_TIME = datetime(2025, 6, 15, 12, 0, tzinfo=UTC)


def at(days_ago: int, hour: int = 9, minute: int = 0) -> datetime:
    day = REFERENCE_TIME.date() - timedelta(days=days_ago)
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=UTC)


def day_key(days_ago: int) -> str:
    return (REFERENCE_TIME.date() - timedelta(days=days_ago)).isoformat()


def metric(metric_type: MetricType, value: float, days_ago: int, hour: int = 8, **metadata):
    return MetricSample(
        metric_type=metric_type,
        value=value,
        recorded_at=at(days_ago, hour),
        metadata=metadata,
    )


def symptom(name: str, days_ago: int, hour: int = 10, severity: float | None = None):
    return SymptomLog(value=name, logged_at=at(days_ago, hour), severity=severity)


def caffeine(days_ago: int, hour: int = 9, mg: int = 100):
    return CaffeineLog(value=f"{mg}mg", logged_at=at(days_ago, hour))


def exercise(name: str, days_ago: int, hour: int = 7, **metadata):
    return ExerciseLog(value=name, logged_at=at(days_ago, hour), metadata=metadata)


def supplement(name: str, days_ago: int, hour: int = 8):
    return SupplementLog(value=name, logged_at=at(days_ago, hour))


def bristol(stool_type: int, days_ago: int, hour: int = 9):
    return BristolStoolLog(value=f"Type {stool_type}", logged_at=at(days_ago, hour))


def custom(value: str, days_ago: int, hour: int = 12, severity: float | None = None):
    return CustomLog(value=value, logged_at=at(days_ago, hour), severity=severity)


def food(days_ago: int, hour: int = 12, **fields):
    return FoodEntry(logged_at=at(days_ago, hour), **fields)


def event(title: str, days_ago: int, hour: int = 10, minute: int = 0, all_day: bool = False):
    start = at(days_ago, hour, minute)
    return CalendarEvent(
        title=title,
        start_time=start,
        end_time=start + timedelta(hours=1),
        is_all_day=all_day,
    )


def weather(days_ago: int, **fields):
    return WeatherRecord(date=REFERENCE_TIME.date() - timedelta(days=days_ago), **fields)


def medication(taken: bool, days_ago: int, hour: int = 8):
    return MedicationLogEntry(took_medication=taken, logged_at=at(days_ago, hour))


def cycle(phase: CyclePhase, days_ago: int, predicted: bool = False):
    return CycleEntry(
        date=REFERENCE_TIME.date() - timedelta(days=days_ago),
        phase=phase,
        predicted=predicted,
    )


def make_context(
    *,
    timezone: str = "UTC",
    reference_time: datetime = REFERENCE_TIME,
    metrics=(),
    manual_logs=(),
    foods=(),
    events=(),
    weather=(),
    medications=(),
    cycle_entries=(),
) -> AnalysisContext:
    return AnalysisContext(
        user_id="user-1",
        timezone=timezone,
        reference_time=reference_time,
        metrics=tuple(metrics),
        manual_logs=tuple(manual_logs),
        foods=tuple(foods),
        events=tuple(events),
        weather=tuple(weather),
        medications=tuple(medications),
        cycle_entries=tuple(cycle_entries),
    )


def titles(insights: list[AnalyzedInsight]) -> list[str]:
    return [insight.title for insight in insights]


def find(insights: list[AnalyzedInsight], title: str) -> AnalyzedInsight:
    matches = [insight for insight in insights if insight.title == title]
    assert matches, f"{title!r} not in {titles(insights)}"
    return matches[0]
