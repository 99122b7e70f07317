"""CLI for running the insight engine over an exported JSON file."""

import argparse
import asyncio
import json
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from . import __version__
from .config import get_settings
from .engine import InsightEngine
from .errors import DataFetchError
from .logging import setup_logging
from .metrics import SERVICE_INFO
from .models import AnalyzedInsight
from .ports import InMemoryHealthRepository, StaticTimezoneResolver
from .tracing import setup_tracing


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are read as UTC."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _load_payload(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        payload = json.load(f)
    if not isinstance(payload, dict):
        raise ValueError("export must be a JSON object with one list per domain")
    return payload


def format_insights(insights: list[AnalyzedInsight]) -> str:
    """Human-readable numbered list of insights."""
    if not insights:
        return "No insights found"
    lines = [f"Found {len(insights)} insights:\n"]
    for position, insight in enumerate(insights, start=1):
        lines.append(
            f"{position:>2}. [{insight.confidence:.2f}] {insight.title} ({insight.type.value})"
        )
        lines.append(f"    {insight.description}")
        lines.append(f"    signals: {', '.join(sorted(insight.related_signals))}")
    return "\n".join(lines)


async def _analyze(
    input_path: Path,
    user_id: str,
    timezone: str | None,
    at: datetime | None,
    limit: int | None,
    format_json: bool,
) -> int:
    settings = get_settings()
    setup_logging(settings.app)
    setup_tracing(settings.tracing)
    SERVICE_INFO.info({"version": __version__})

    reference_time = at or datetime.now(UTC)
    try:
        payload = _load_payload(input_path)
        repository = InMemoryHealthRepository.from_payload(
            payload, predict_phases=True, today=reference_time.date()
        )
    except (OSError, ValueError, ValidationError) as e:
        print(f"Error: cannot read {input_path}: {e}", file=sys.stderr)
        return 1

    zone = timezone or payload.get("timezone") or settings.engine.default_timezone
    engine_settings = settings.engine
    if limit is not None:
        engine_settings = engine_settings.model_copy(update={"max_insights": limit})

    engine = InsightEngine(
        repository,
        StaticTimezoneResolver(str(zone)),
        settings=engine_settings,
    )
    try:
        insights = await engine.generate_insights(user_id, reference_time)
    except DataFetchError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if format_json:
        print(json.dumps([insight.to_dict() for insight in insights], indent=2))
    else:
        print(format_insights(insights))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="health-insights",
        description="Generate ranked health insights from exported records",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser("analyze", help="Analyze a JSON export")
    analyze.add_argument(
        "--input",
        type=Path,
        required=True,
        help="JSON export with metrics, manual_logs, foods, events, weather, "
        "medications and cycle_entries lists",
    )
    analyze.add_argument(
        "--user-id",
        default="local",
        help="User identifier passed to the repository (default: local)",
    )
    analyze.add_argument(
        "--timezone",
        help="IANA timezone (default: the export's timezone, then INSIGHTS_DEFAULT_TIMEZONE)",
    )
    analyze.add_argument(
        "--at",
        type=parse_timestamp,
        help="Analysis time as ISO-8601 (default: now)",
    )
    analyze.add_argument(
        "--limit",
        type=int,
        help="Maximum insights to return (default: INSIGHTS_MAX_INSIGHTS)",
    )
    analyze.add_argument(
        "--json",
        action="store_true",
        dest="format_json",
        help="Output as JSON",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.

    Usage:
        health-insights analyze --input export.json [--timezone Europe/Berlin] [--json]
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.limit is not None and args.limit < 1:
        print("Error: --limit must be at least 1", file=sys.stderr)
        sys.exit(1)

    exit_code = asyncio.run(
        _analyze(
            args.input,
            args.user_id,
            args.timezone,
            args.at,
            args.limit,
            args.format_json,
        )
    )
    sys.exit(exit_code)
