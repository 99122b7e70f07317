"""Prometheus metrics definitions for the insight engine."""

from prometheus_client import Counter, Gauge, Histogram, Info

# -- Service info --
SERVICE_INFO = Info("health_insights", "Health insight engine info")

# -- Engine runs --
ENGINE_RUNS = Counter(
    "health_insights_engine_runs_total",
    "Total insight engine invocations",
    ["status"],
)
ENGINE_DURATION = Histogram(
    "health_insights_engine_duration_seconds",
    "End-to-end insight generation latency",
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)
CONTEXT_FETCH_DURATION = Histogram(
    "health_insights_context_fetch_duration_seconds",
    "Latency of the batched repository read",
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)
LAST_INSIGHT_COUNT = Gauge(
    "health_insights_last_insight_count",
    "Number of insights returned by the most recent run",
)

# -- Analyzers --
ANALYZER_RUNS = Counter(
    "health_insights_analyzer_runs_total",
    "Analyzer evaluations",
    ["analyzer", "status"],
)
INSIGHTS_EMITTED = Counter(
    "health_insights_insights_emitted_total",
    "Candidate insights produced before dedup",
    ["analyzer"],
)
FALLBACK_INSIGHTS = Counter(
    "health_insights_fallback_insights_total",
    "Starter insights substituted when no analyzer fired",
    ["kind"],
)

# -- Persistence --
PERSISTENCE_FAILURES = Counter(
    "health_insights_persistence_failures_total",
    "Insight sink writes that failed",
)
