"""Insight orchestration: run analyzers, merge, fall back, dedup, rank."""

from __future__ import annotations

import time
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime

import structlog

from .analyzers import ANALYZERS, Analyzer
from .config import EngineSettings
from .context import ContextBuilder
from .errors import AnalyzerFailure, DataFetchError
from .metrics import (
    ANALYZER_RUNS,
    ENGINE_DURATION,
    ENGINE_RUNS,
    FALLBACK_INSIGHTS,
    INSIGHTS_EMITTED,
    LAST_INSIGHT_COUNT,
    PERSISTENCE_FAILURES,
)
from .models import AnalysisContext, AnalyzedInsight, InsightType
from .phase_rules import PhaseRuleEngine
from .ports import HealthDataRepository, InsightSink, TimezoneResolver
from .tracing import get_tracer

logger = structlog.get_logger(__name__)

PHASE_RULES = "phase_rules"


def starter_insights(total_records: int, threshold: int) -> list[AnalyzedInsight]:
    """Generic insights for a user whose data produced nothing.

    Args:
        total_records: Records across every domain in the context.
        threshold: Record count from which an empty result is left empty.

    Returns:
        One starter insight, or an empty list once enough data exists.
    """
    if total_records == 0:
        FALLBACK_INSIGHTS.labels(kind="start_logging").inc()
        return [
            AnalyzedInsight(
                type=InsightType.RECOMMENDATION,
                title="Start logging your health",
                description=(
                    "Log symptoms, caffeine, sleep, and meals to get personalized insights."
                ),
                confidence=0.95,
                related_signals=frozenset({"manual_logs"}),
            )
        ]
    if total_records < threshold:
        FALLBACK_INSIGHTS.labels(kind="keep_logging").inc()
        return [
            AnalyzedInsight(
                type=InsightType.RECOMMENDATION,
                title="Keep logging for insights",
                description="A few more days of data will unlock pattern detection and "
                "correlations.",
                confidence=0.90,
                related_signals=frozenset({"manual_logs"}),
            )
        ]
    return []


def dedupe_insights(insights: Iterable[AnalyzedInsight], key_length: int) -> list[AnalyzedInsight]:
    """Drop insights whose normalized title was already seen; first one wins."""
    seen: set[str] = set()
    unique: list[AnalyzedInsight] = []
    for insight in insights:
        key = insight.dedup_key(key_length)
        if key in seen:
            logger.debug("insight_deduplicated", key=key)
            continue
        seen.add(key)
        unique.append(insight)
    return unique


def rank_insights(insights: Iterable[AnalyzedInsight], limit: int) -> list[AnalyzedInsight]:
    """Highest confidence first, ties kept in input order, cut to ``limit``."""
    return sorted(insights, key=lambda i: i.confidence, reverse=True)[:limit]


class InsightEngine:
    """Generates ranked health insights for one user at a time."""

    def __init__(
        self,
        repository: HealthDataRepository,
        timezone_resolver: TimezoneResolver,
        sink: InsightSink | None = None,
        settings: EngineSettings | None = None,
        analyzers: Sequence[tuple[str, Analyzer]] | None = None,
    ) -> None:
        self._settings = settings or EngineSettings()
        self._builder = ContextBuilder(repository, timezone_resolver, self._settings)
        self._sink = sink
        self._analyzers = tuple(analyzers) if analyzers is not None else ANALYZERS
        self._phase_rules = PhaseRuleEngine()

    @property
    def analyzer_names(self) -> list[str]:
        return [name for name, _ in self._analyzers]

    async def generate_insights(
        self, user_id: str, reference_time: datetime | None = None
    ) -> list[AnalyzedInsight]:
        """Build the context for ``user_id`` and analyze it.

        Args:
            user_id: User to analyze.
            reference_time: The analysis "now"; defaults to the current UTC time.

        Returns:
            Up to ``max_insights`` insights, highest confidence first.

        Raises:
            DataFetchError: If reading any data domain failed.
        """
        now = reference_time or datetime.now(UTC)
        start = time.perf_counter()
        with get_tracer().start_as_current_span("generate_insights") as span:
            try:
                context = await self._builder.build(user_id, now)
            except DataFetchError as e:
                ENGINE_RUNS.labels(status="fetch_error").inc()
                span.record_exception(e)
                logger.error("insight_generation_failed", domains=e.domains)
                raise

            insights = self.analyze(context)
            span.set_attribute("insights.count", len(insights))
            span.set_attribute("insights.records", context.total_records)

        ENGINE_RUNS.labels(status="success").inc()
        ENGINE_DURATION.observe(time.perf_counter() - start)
        LAST_INSIGHT_COUNT.set(len(insights))
        logger.info(
            "insights_generated",
            count=len(insights),
            records=context.total_records,
            duration_ms=round((time.perf_counter() - start) * 1000, 1),
        )
        return insights

    def analyze(self, context: AnalysisContext) -> list[AnalyzedInsight]:
        """Run every analyzer and the phase rules over an existing context.

        An analyzer that raises contributes nothing and never stops the others.
        """
        candidates: list[AnalyzedInsight] = []
        for name, analyzer in self._analyzers:
            produced = self._run_isolated(name, analyzer, context)
            candidates.extend(produced)

        candidates.extend(self._run_isolated(PHASE_RULES, self._phase_rules.insights_for, context))

        if not candidates:
            candidates = starter_insights(context.total_records, self._settings.starter_threshold)

        unique = dedupe_insights(candidates, self._settings.dedup_key_length)
        ranked = rank_insights(unique, self._settings.max_insights)
        logger.debug(
            "insights_ranked",
            candidates=len(candidates),
            unique=len(unique),
            returned=len(ranked),
        )
        return ranked

    def _run_isolated(
        self, name: str, analyzer: Analyzer, context: AnalysisContext
    ) -> list[AnalyzedInsight]:
        try:
            produced = list(analyzer(context))
        except Exception as e:
            failure = AnalyzerFailure(name, e)
            ANALYZER_RUNS.labels(analyzer=name, status="error").inc()
            logger.warning(
                "analyzer_failed",
                analyzer=name,
                error=str(failure),
                error_type=type(e).__name__,
            )
            return []

        ANALYZER_RUNS.labels(analyzer=name, status="success").inc()
        if produced:
            INSIGHTS_EMITTED.labels(analyzer=name).inc(len(produced))
        return produced

    async def save_insights(self, user_id: str, insights: list[AnalyzedInsight]) -> bool:
        """Hand insights to the configured sink.

        Returns:
            True if the sink accepted them, False when there is no sink or it failed.
        """
        if self._sink is None:
            logger.warning("insight_sink_not_configured")
            return False
        try:
            saved = await self._sink.save_insights(user_id, insights)
        except Exception as e:
            PERSISTENCE_FAILURES.inc()
            logger.error("insight_save_failed", error=str(e), count=len(insights))
            return False
        return bool(saved)
