"""Domain records, the analysis context and the insight result type.

Raw records are frozen pydantic models so payloads from any repository are
validated once at the boundary. Manual logs are a discriminated union on
``log_type``; each variant carries the parsing it needs (caffeine milligrams,
stool type, workout intensity) so analyzers never touch raw strings.
"""

from __future__ import annotations

import datetime as dt
import math
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from .aggregation import to_local
from .types import InsightPayload


class MetricType(str, Enum):
    """Device-synced metric kinds."""

    SLEEP = "sleep"
    STEPS = "steps"
    HEART_RATE = "heart_rate"
    RESTING_HEART_RATE = "resting_heart_rate"
    HRV = "hrv"
    WEIGHT = "weight"
    CALORIES_BURNED = "calories_burned"
    CALORIES_CONSUMED = "calories_consumed"
    ACTIVE_CALORIES = "active_calories"


class LogType(str, Enum):
    """Manual log kinds."""

    SYMPTOM = "symptom"
    CAFFEINE = "caffeine"
    EXERCISE = "exercise"
    SUPPLEMENT = "supplement"
    BRISTOL_STOOL = "bristol_stool"
    CUSTOM = "custom"


class InsightType(str, Enum):
    """Kind of generated insight."""

    CORRELATION = "correlation"
    PREDICTION = "prediction"
    RECOMMENDATION = "recommendation"


class CyclePhase(str, Enum):
    """Menstrual cycle phase."""

    MENSTRUATION = "menstruation"
    FOLLICULAR = "follicular"
    OVULATION = "ovulation"
    LUTEAL = "luteal"


class FlowLevel(str, Enum):
    """Menstrual flow level."""

    LIGHT = "light"
    NORMAL = "normal"
    HEAVY = "heavy"


class Severity(str, Enum):
    """Severity attached to cycle-phase advisories."""

    POSITIVE = "positive"
    INFO = "info"
    LOW = "low"
    MODERATE = "moderate"


def _ensure_aware(value: datetime) -> datetime:
    """Treat naive timestamps as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class MetricSample(_Record):
    """A single device-synced measurement."""

    metric_type: MetricType
    value: float
    unit: str = ""
    recorded_at: datetime
    source: str = "manual"
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("value")
    @classmethod
    def validate_value(cls, v: float) -> float:
        """Reject NaN and infinite readings."""
        if not math.isfinite(v):
            raise ValueError(f"Metric value must be finite, got {v}")
        return v

    @field_validator("recorded_at")
    @classmethod
    def validate_recorded_at(cls, v: datetime) -> datetime:
        return _ensure_aware(v)


class _LogBase(_Record):
    value: str
    severity: float | None = Field(default=None, ge=0, le=10)
    logged_at: datetime
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("logged_at")
    @classmethod
    def validate_logged_at(cls, v: datetime) -> datetime:
        return _ensure_aware(v)


class SymptomLog(_LogBase):
    """A reported symptom; ``value`` is the symptom name."""

    log_type: Literal["symptom"] = "symptom"


class CaffeineLog(_LogBase):
    """A caffeine intake; ``value`` holds milligrams when known."""

    log_type: Literal["caffeine"] = "caffeine"

    @property
    def milligrams(self) -> int:
        """Leading integer of the value, 100 mg when absent."""
        match = re.match(r"\s*(\d+)", self.value)
        if match is None or int(match.group(1)) == 0:
            return 100
        return int(match.group(1))


class ExerciseLog(_LogBase):
    """A workout; ``value`` is the workout name."""

    log_type: Literal["exercise"] = "exercise"

    def _number(self, key: str) -> float | None:
        raw = self.metadata.get(key)
        if isinstance(raw, bool) or raw is None:
            return None
        try:
            number = float(raw)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return None
        return number or None

    @property
    def intensity_score(self) -> float:
        """Training volume: sets x reps x weight, or a nominal load."""
        sets = self._number("sets")
        reps = self._number("reps")
        weight = self._number("weight")
        if sets and reps and weight:
            return sets * reps * weight
        if sets and reps:
            return sets * reps * 10
        return 50.0

    @property
    def intensity_level(self) -> str:
        raw = self.metadata.get("intensity")
        if isinstance(raw, str) and raw.strip():
            return raw.strip().lower()
        return "moderate"


class SupplementLog(_LogBase):
    """A supplement taken; ``value`` is the supplement name."""

    log_type: Literal["supplement"] = "supplement"


class BristolStoolLog(_LogBase):
    """A bowel movement scored on the Bristol stool scale."""

    log_type: Literal["bristol_stool"] = "bristol_stool"

    @property
    def stool_type(self) -> int:
        """Scale value 1-7 parsed from "Type N" or "N"; 4 when unreadable."""
        match = re.search(r"(\d+)", self.value)
        if match is None:
            return 4
        return min(7, max(1, int(match.group(1))))


class CustomLog(_LogBase):
    """Free-form log (water glasses, energy ratings, notes)."""

    log_type: Literal["custom"] = "custom"


ManualLogEntry = Annotated[
    SymptomLog | CaffeineLog | ExerciseLog | SupplementLog | BristolStoolLog | CustomLog,
    Field(discriminator="log_type"),
]
MANUAL_LOGS_ADAPTER: TypeAdapter[list[ManualLogEntry]] = TypeAdapter(list[ManualLogEntry])


class FoodEntry(_Record):
    """A logged meal or snack with its nutrition."""

    calories: float = 0
    protein: float = 0
    carbs: float = 0
    fat: float = 0
    sodium: float | None = None
    sugar: float | None = None
    fiber: float | None = None
    contains_dairy: bool = False
    contains_gluten: bool = False
    contains_caffeine: bool = False
    food_name: str | None = None
    meal_type: str | None = None
    logged_at: datetime

    @field_validator("logged_at")
    @classmethod
    def validate_logged_at(cls, v: datetime) -> datetime:
        return _ensure_aware(v)


class CalendarEvent(_Record):
    """A calendar entry."""

    title: str
    start_time: datetime
    end_time: datetime
    is_all_day: bool = False

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_times(cls, v: datetime) -> datetime:
        return _ensure_aware(v)

    @property
    def is_auto_generated(self) -> bool:
        """Events created by the app itself, not the user."""
        return self.title.strip().lower().startswith("[auto]")


class WeatherRecord(_Record):
    """Daily weather at the user's location."""

    date: dt.date
    temperature_high: float | None = None
    temperature_low: float | None = None
    precipitation_mm: float | None = None
    humidity_avg: float | None = None
    pressure_hpa: float | None = None
    weather_code: int | None = None


class MedicationLogEntry(_Record):
    """Whether the user took their medication at a given time."""

    took_medication: bool
    logged_at: datetime
    medication_name: str | None = None

    @field_validator("logged_at")
    @classmethod
    def validate_logged_at(cls, v: datetime) -> datetime:
        return _ensure_aware(v)


class CycleEntry(_Record):
    """A logged or predicted menstrual cycle day."""

    date: dt.date
    phase: CyclePhase
    flow: FlowLevel | None = None
    notes: str | None = None
    predicted: bool = False


@dataclass(frozen=True)
class AnalyzedInsight:
    """A single generated observation."""

    type: InsightType
    title: str
    description: str
    confidence: float
    related_signals: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be between 0 and 1, got {self.confidence}")

    def dedup_key(self, length: int = 20) -> str:
        """Lower-cased title with non-letters stripped, truncated to ``length``."""
        return re.sub(r"[^a-z]", "", self.title.lower())[:length]

    def to_dict(self) -> InsightPayload:
        """Convert to a JSON-friendly dictionary."""
        return {
            "type": self.type.value,
            "title": self.title,
            "description": self.description,
            "confidence": self.confidence,
            "related_signals": sorted(self.related_signals),
        }


@dataclass(frozen=True)
class AnalysisContext:
    """Immutable bundle of one user's records for the analysis window."""

    user_id: str
    timezone: str
    reference_time: datetime
    metrics: tuple[MetricSample, ...] = ()
    manual_logs: tuple[ManualLogEntry, ...] = ()
    foods: tuple[FoodEntry, ...] = ()
    events: tuple[CalendarEvent, ...] = ()
    weather: tuple[WeatherRecord, ...] = ()
    medications: tuple[MedicationLogEntry, ...] = ()
    cycle_entries: tuple[CycleEntry, ...] = ()

    def metrics_of(self, *metric_types: MetricType) -> list[MetricSample]:
        """Samples of the given kinds, in repository order."""
        wanted = set(metric_types)
        return [m for m in self.metrics if m.metric_type in wanted]

    def logs_of(self, log_type: LogType) -> list[ManualLogEntry]:
        return [log for log in self.manual_logs if log.log_type == log_type]

    @property
    def local_date(self) -> dt.date:
        """Analysis date in the user's zone."""
        return to_local(self.reference_time, self.timezone).date()

    @property
    def current_phase(self) -> CyclePhase | None:
        """Phase of the most recent cycle entry dated no later than the analysis date.

        Entries dated after it, such as predicted days, are skipped.
        """
        today = self.local_date
        for entry in self.cycle_entries:
            if entry.date <= today:
                return entry.phase
        return None

    @property
    def total_records(self) -> int:
        return (
            len(self.metrics)
            + len(self.manual_logs)
            + len(self.foods)
            + len(self.events)
            + len(self.weather)
            + len(self.medications)
            + len(self.cycle_entries)
        )
