"""Injected interfaces the engine reads from and writes to.

The engine depends only on these protocols. ``InMemoryHealthRepository``
backs tests and the CLI.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from datetime import date, datetime
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import structlog
from pydantic import TypeAdapter

from .cycle import predict_cycle_phases
from .errors import PersistenceFailure
from .models import (
    MANUAL_LOGS_ADAPTER,
    AnalyzedInsight,
    CalendarEvent,
    CycleEntry,
    FoodEntry,
    ManualLogEntry,
    MedicationLogEntry,
    MetricSample,
    WeatherRecord,
)

logger = structlog.get_logger(__name__)


@runtime_checkable
class HealthDataRepository(Protocol):
    """Read-only access to one user's health records."""

    async def fetch_metrics(self, user_id: str, since: datetime) -> list[MetricSample]: ...

    async def fetch_manual_logs(self, user_id: str, since: datetime) -> list[ManualLogEntry]: ...

    async def fetch_food_entries(self, user_id: str, since: datetime) -> list[FoodEntry]: ...

    async def fetch_calendar_events(
        self, user_id: str, since: datetime
    ) -> list[CalendarEvent]: ...

    async def fetch_weather(self, user_id: str, since_date: date) -> list[WeatherRecord]: ...

    async def fetch_medication_logs(
        self, user_id: str, since: datetime
    ) -> list[MedicationLogEntry]: ...

    async def fetch_cycle_entries(self, user_id: str) -> list[CycleEntry]:
        """Cycle entries, most recent first."""
        ...


@runtime_checkable
class TimezoneResolver(Protocol):
    """Resolves the user's IANA timezone identifier."""

    def resolve_user_timezone(self) -> str: ...


@runtime_checkable
class InsightSink(Protocol):
    """Write-only destination for generated insights."""

    async def save_insights(self, user_id: str, insights: list[AnalyzedInsight]) -> bool: ...


class StaticTimezoneResolver:
    """Resolver that always answers with a fixed zone."""

    def __init__(self, timezone: str) -> None:
        self._timezone = timezone

    def resolve_user_timezone(self) -> str:
        return self._timezone


class InMemoryHealthRepository:
    """Repository over in-process lists, for tests and file-based runs."""

    def __init__(
        self,
        *,
        metrics: Iterable[MetricSample] = (),
        manual_logs: Iterable[ManualLogEntry] = (),
        foods: Iterable[FoodEntry] = (),
        events: Iterable[CalendarEvent] = (),
        weather: Iterable[WeatherRecord] = (),
        medications: Iterable[MedicationLogEntry] = (),
        cycle_entries: Iterable[CycleEntry] = (),
        predict_phases: bool = False,
        today: date | None = None,
    ) -> None:
        self.metrics = list(metrics)
        self.manual_logs = list(manual_logs)
        self.foods = list(foods)
        self.events = list(events)
        self.weather = list(weather)
        self.medications = list(medications)
        self.cycle_entries = list(cycle_entries)
        self.predict_phases = predict_phases
        self.today = today

    @classmethod
    def from_json(cls, path: Path, **kwargs: Any) -> InMemoryHealthRepository:
        """Load an export file with one top-level list per domain."""
        with path.open("r", encoding="utf-8") as f:
            payload: dict[str, Any] = json.load(f)
        return cls.from_payload(payload, **kwargs)

    @classmethod
    def from_payload(cls, payload: dict[str, Any], **kwargs: Any) -> InMemoryHealthRepository:
        """Validate raw dictionaries into records."""
        return cls(
            metrics=TypeAdapter(list[MetricSample]).validate_python(payload.get("metrics", [])),
            manual_logs=MANUAL_LOGS_ADAPTER.validate_python(payload.get("manual_logs", [])),
            foods=TypeAdapter(list[FoodEntry]).validate_python(payload.get("foods", [])),
            events=TypeAdapter(list[CalendarEvent]).validate_python(payload.get("events", [])),
            weather=TypeAdapter(list[WeatherRecord]).validate_python(payload.get("weather", [])),
            medications=TypeAdapter(list[MedicationLogEntry]).validate_python(
                payload.get("medications", [])
            ),
            cycle_entries=TypeAdapter(list[CycleEntry]).validate_python(
                payload.get("cycle_entries", [])
            ),
            **kwargs,
        )

    async def fetch_metrics(self, user_id: str, since: datetime) -> list[MetricSample]:
        return [m for m in self.metrics if m.recorded_at >= since]

    async def fetch_manual_logs(self, user_id: str, since: datetime) -> list[ManualLogEntry]:
        return [log for log in self.manual_logs if log.logged_at >= since]

    async def fetch_food_entries(self, user_id: str, since: datetime) -> list[FoodEntry]:
        return [f for f in self.foods if f.logged_at >= since]

    async def fetch_calendar_events(self, user_id: str, since: datetime) -> list[CalendarEvent]:
        return [e for e in self.events if e.start_time >= since]

    async def fetch_weather(self, user_id: str, since_date: date) -> list[WeatherRecord]:
        return [w for w in self.weather if w.date >= since_date]

    async def fetch_medication_logs(
        self, user_id: str, since: datetime
    ) -> list[MedicationLogEntry]:
        return [m for m in self.medications if m.logged_at >= since]

    async def fetch_cycle_entries(self, user_id: str) -> list[CycleEntry]:
        if self.predict_phases:
            today = self.today or date.today()
            return predict_cycle_phases(self.cycle_entries, today)
        return sorted(self.cycle_entries, key=lambda e: e.date, reverse=True)


class InMemoryInsightSink:
    """Sink that keeps saved insights per user."""

    def __init__(self, *, fail: bool = False) -> None:
        self.saved: dict[str, list[AnalyzedInsight]] = {}
        self._fail = fail

    async def save_insights(self, user_id: str, insights: list[AnalyzedInsight]) -> bool:
        if self._fail:
            raise PersistenceFailure(f"Could not save insights for {user_id}")
        self.saved[user_id] = list(insights)
        logger.debug("insights_saved", user_id=user_id, count=len(insights))
        return True
