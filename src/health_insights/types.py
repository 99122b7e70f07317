"""Shared typed dictionaries."""

from __future__ import annotations

from typing import TypedDict


class InsightPayload(TypedDict):
    """Serialized insight handed to sinks and printed by the CLI."""

    type: str
    title: str
    description: str
    confidence: float
    related_signals: list[str]
