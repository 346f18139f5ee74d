"""CSV adapter for exported event logs."""

from __future__ import annotations

import csv
import json

from pydantic import ValidationError

from interval_engine.constants import DEFAULT_DAY_ANCHOR_MINUTES
from interval_engine.date_utils import is_aware
from interval_engine.schema import IntervalEvent
from interval_engine.validation import EventRecord

_REQUIRED_FIELDS = {"id", "userId", "moduleType", "eventType", "timestamp"}


def _parse_row(row: dict, row_number: int, day_anchor_minutes: int) -> IntervalEvent:
    missing = sorted(field for field in _REQUIRED_FIELDS if not row.get(field))
    if missing:
        raise ValueError(f"Row {row_number}: missing required fields {missing}")

    cleaned = {key: value.strip() for key, value in row.items() if key and value not in (None, "")}
    if "payload" in cleaned:
        try:
            cleaned["payload"] = json.loads(cleaned["payload"])
        except json.JSONDecodeError as exc:
            raise ValueError(f"Row {row_number}: malformed payload") from exc

    try:
        record = EventRecord.model_validate(cleaned)
    except ValidationError as exc:
        fields = sorted({".".join(str(part) for part in err["loc"]) for err in exc.errors()})
        raise ValueError(f"Row {row_number}: invalid fields {fields}") from exc

    return record.to_event(day_anchor_minutes)


def parse(file_path: str, day_anchor_minutes: int = DEFAULT_DAY_ANCHOR_MINUTES) -> list[IntervalEvent]:
    """Parse CSV file into events; ``payload`` is a JSON-encoded column."""

    with open(file_path, newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        if not reader.fieldnames:
            return []

        events: list[IntervalEvent] = []
        for row_number, row in enumerate(reader, start=2):
            event = _parse_row(row, row_number, day_anchor_minutes)
            if events and is_aware(event.timestamp) != is_aware(events[0].timestamp):
                raise ValueError(f"Row {row_number}: timestamp offset does not match row 2")
            events.append(event)
        return events
