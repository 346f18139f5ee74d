"""Demo script for interval-engine."""

import json
import sys
from dataclasses import replace
from datetime import datetime
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from interval_engine.adapters.csv_adapter import parse
from interval_engine.events import default_engine_settings, group_events_by_module
from interval_engine.summary import calculate_today_summary
from interval_engine.weekly import calculate_weekly_report


def main() -> None:
    settings = default_engine_settings()
    modules = [replace(setting, enabled=True) for setting in settings.modules]
    events = parse("examples/sample_events.csv", settings.day_anchor_minutes)

    now = datetime.fromisoformat("2025-03-03T10:45:00")
    today = calculate_today_summary(modules, group_events_by_module(events), now, settings.day_anchor_minutes)
    weekly = calculate_weekly_report(modules, events, "2025-03-03")
    print("Today:", json.dumps(today.to_dict(), indent=2))
    print("Weekly:", json.dumps(weekly.to_dict(), indent=2))


if __name__ == "__main__":
    main()
