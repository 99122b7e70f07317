"""Builds the immutable analysis context from the repository ports."""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timedelta

import structlog

from .aggregation import resolve_zone
from .config import EngineSettings
from .errors import DataFetchError
from .metrics import CONTEXT_FETCH_DURATION
from .models import AnalysisContext, CalendarEvent, MetricSample
from .ports import HealthDataRepository, TimezoneResolver
from .tracing import get_tracer

logger = structlog.get_logger(__name__)

DOMAINS = (
    "metrics",
    "manual_logs",
    "foods",
    "events",
    "weather",
    "medications",
    "cycle_entries",
)


class ContextBuilder:
    """Reads every domain for a trailing window and assembles the context."""

    def __init__(
        self,
        repository: HealthDataRepository,
        timezone_resolver: TimezoneResolver,
        settings: EngineSettings | None = None,
    ) -> None:
        self._repository = repository
        self._timezone_resolver = timezone_resolver
        self._settings = settings or EngineSettings()

    def resolve_timezone(self) -> str:
        """User's timezone, or the configured default when it cannot be resolved."""
        fallback = self._settings.default_timezone
        try:
            timezone = self._timezone_resolver.resolve_user_timezone()
        except Exception as e:
            logger.warning("timezone_resolution_failed", error=str(e), fallback=fallback)
            return fallback
        if resolve_zone(timezone) is None:
            logger.warning("timezone_invalid", timezone=timezone, fallback=fallback)
            return fallback
        return timezone

    async def build(self, user_id: str, reference_time: datetime) -> AnalysisContext:
        """Fetch all domains concurrently and construct the context.

        Args:
            user_id: User whose records are read.
            reference_time: Timezone-aware "now" of the analysis.

        Returns:
            The analysis context.

        Raises:
            DataFetchError: If any domain read fails.
        """
        since = reference_time - timedelta(days=self._settings.window_days)
        timezone = self.resolve_timezone()
        repo = self._repository

        start = time.perf_counter()
        with get_tracer().start_as_current_span("build_context") as span:
            span.set_attribute("insights.window_days", self._settings.window_days)
            results = await asyncio.gather(
                repo.fetch_metrics(user_id, since),
                repo.fetch_manual_logs(user_id, since),
                repo.fetch_food_entries(user_id, since),
                repo.fetch_calendar_events(user_id, since),
                repo.fetch_weather(user_id, since.date()),
                repo.fetch_medication_logs(user_id, since),
                repo.fetch_cycle_entries(user_id),
                return_exceptions=True,
            )
        CONTEXT_FETCH_DURATION.observe(time.perf_counter() - start)

        failures = {
            domain: result
            for domain, result in zip(DOMAINS, results)
            if isinstance(result, BaseException)
        }
        if failures:
            for domain, error in failures.items():
                logger.error("domain_fetch_failed", domain=domain, error=str(error))
            raise DataFetchError(failures)

        fetched = dict(zip(DOMAINS, results))
        metrics = _within_window(fetched["metrics"], since, reference_time)
        events = without_auto_events(fetched["events"])

        context = AnalysisContext(
            user_id=user_id,
            timezone=timezone,
            reference_time=reference_time,
            metrics=tuple(metrics),
            manual_logs=tuple(fetched["manual_logs"]),
            foods=tuple(fetched["foods"]),
            events=tuple(events),
            weather=tuple(fetched["weather"]),
            medications=tuple(fetched["medications"]),
            cycle_entries=tuple(fetched["cycle_entries"]),
        )
        logger.info(
            "context_built",
            timezone=timezone,
            metrics=len(context.metrics),
            manual_logs=len(context.manual_logs),
            foods=len(context.foods),
            events=len(context.events),
            auto_events_dropped=len(fetched["events"]) - len(events),
            weather=len(context.weather),
            medications=len(context.medications),
            cycle_entries=len(context.cycle_entries),
        )
        return context


def _within_window(
    samples: list[MetricSample], since: datetime, reference_time: datetime
) -> list[MetricSample]:
    # Synced daily totals may be stamped at the end of the current day.
    upper = reference_time + timedelta(days=1)
    return [m for m in samples if since <= m.recorded_at <= upper]


def without_auto_events(events: list[CalendarEvent]) -> list[CalendarEvent]:
    return [e for e in events if not e.is_auto_generated]
