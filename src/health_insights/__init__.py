"""Correlation insight engine for personal health telemetry.

Reads a user's recent health records (device metrics, manual logs, food,
calendar, weather, medication and cycle entries), runs a set of independent
domain analyzers over them and returns a short ranked list of insights.

Modules:
    config: Configuration management using pydantic-settings
    context: Concurrent repository reads into an immutable analysis context
    analyzers: The twelve domain analyzers and their registry
    phase_rules: Cycle-phase advisory table
    engine: Orchestration, fallback, dedup and ranking

Example:
    Analyze a JSON export::

        $ health-insights analyze --input export.json --timezone Europe/Berlin
"""

__version__ = "0.1.0"

from .config import Settings, get_settings
from .engine import InsightEngine
from .errors import DataFetchError, InsightEngineError
from .models import AnalysisContext, AnalyzedInsight

__all__ = [
    "AnalysisContext",
    "AnalyzedInsight",
    "DataFetchError",
    "InsightEngine",
    "InsightEngineError",
    "Settings",
    "get_settings",
    "__version__",
]
