"""Print today's summary or a weekly report for a CSV/JSON event log."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from interval_engine.adapters import csv_adapter, json_adapter
from interval_engine.date_utils import get_local_day_key, get_week_start_day_key, is_aware, match_clock
from interval_engine.events import default_engine_settings, group_events_by_module
from interval_engine.schema import ModuleType
from interval_engine.summary import calculate_today_summary
from interval_engine.weekly import calculate_weekly_report

log = logging.getLogger("run_report")


def _load_events(path: Path, day_anchor_minutes: int):
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return csv_adapter.parse(str(path), day_anchor_minutes)
    if suffix == ".json":
        return json_adapter.parse(str(path), day_anchor_minutes)
    raise ValueError("Unsupported input format, expected .csv or .json")


def _resolve_now(value, events) -> datetime:
    """Evaluation time in the same naive/aware form as the loaded events."""

    if value:
        now = datetime.fromisoformat(value.replace("Z", "+00:00"))
    elif events and is_aware(events[0].timestamp):
        now = datetime.now(timezone.utc)
    else:
        now = datetime.now()
    return match_clock(now, events[0].timestamp) if events else now


def main() -> None:
    parser = argparse.ArgumentParser(description="Compute interval-engine summaries from an event log")
    parser.add_argument("--data", required=True, help="Path to CSV/JSON events file")
    parser.add_argument("--now", help="ISO timestamp to evaluate at (default: current time); read in the log's zone when it has no offset")
    parser.add_argument("--anchor", type=int, default=None, help="Day anchor in minutes past midnight")
    parser.add_argument("--enable", nargs="*", default=[], help="Extra module types to enable")
    parser.add_argument("--weekly", action="store_true", help="Print the weekly report instead")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = default_engine_settings()
    anchor = settings.day_anchor_minutes if args.anchor is None else args.anchor
    enabled = {ModuleType(name.upper()) for name in args.enable}
    modules = [
        replace(setting, enabled=True) if setting.module_type in enabled else setting for setting in settings.modules
    ]

    events = _load_events(Path(args.data), anchor)
    now = _resolve_now(args.now, events)
    log.info("Loaded %s events from %s", len(events), args.data)

    if args.weekly:
        week_start = get_week_start_day_key(get_local_day_key(now, anchor))
        report = calculate_weekly_report(modules, events, week_start)
    else:
        report = calculate_today_summary(modules, group_events_by_module(events), now, anchor)

    print(json.dumps(report.to_dict(), indent=2))


if __name__ == "__main__":
    main()
