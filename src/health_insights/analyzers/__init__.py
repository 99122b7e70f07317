"""Domain analyzers.

Every analyzer is a pure function from an analysis context to a list of
candidate insights. The registry order is the order the engine runs them in,
which also decides which of two same-titled insights survives deduplication.
"""

from .activity import analyze_activity
from .base import Analyzer, DailySignals
from .caffeine import analyze_caffeine
from .calendar import analyze_calendar
from .cycle_phase import analyze_cycle
from .digestion import analyze_digestion
from .exercise import analyze_exercise
from .hrv import analyze_hrv
from .medication import analyze_medication
from .nutrition import analyze_nutrition
from .sleep import analyze_sleep
from .symptom import analyze_symptoms
from .weight import analyze_weight

ANALYZERS: tuple[tuple[str, Analyzer], ...] = (
    ("sleep", analyze_sleep),
    ("caffeine", analyze_caffeine),
    ("nutrition", analyze_nutrition),
    ("exercise", analyze_exercise),
    ("activity", analyze_activity),
    ("hrv", analyze_hrv),
    ("symptom", analyze_symptoms),
    ("digestion", analyze_digestion),
    ("weight", analyze_weight),
    ("calendar", analyze_calendar),
    ("medication", analyze_medication),
    ("cycle", analyze_cycle),
)

__all__ = [
    "ANALYZERS",
    "Analyzer",
    "DailySignals",
    "analyze_activity",
    "analyze_caffeine",
    "analyze_calendar",
    "analyze_cycle",
    "analyze_digestion",
    "analyze_exercise",
    "analyze_hrv",
    "analyze_medication",
    "analyze_nutrition",
    "analyze_sleep",
    "analyze_symptoms",
    "analyze_weight",
]
