"""JSON adapter for exported event logs."""

from __future__ import annotations

import json

from pydantic import ValidationError

from interval_engine.constants import DEFAULT_DAY_ANCHOR_MINUTES
from interval_engine.date_utils import is_aware
from interval_engine.schema import IntervalEvent
from interval_engine.validation import EventRecord


def _parse_item(item: dict, index: int, day_anchor_minutes: int) -> IntervalEvent:
    if not isinstance(item, dict):
        raise ValueError(f"Item {index}: expected an object")

    try:
        record = EventRecord.model_validate(item)
    except ValidationError as exc:
        fields = sorted({".".join(str(part) for part in err["loc"]) for err in exc.errors()})
        raise ValueError(f"Item {index}: invalid fields {fields}") from exc

    return record.to_event(day_anchor_minutes)


def parse(file_path: str, day_anchor_minutes: int = DEFAULT_DAY_ANCHOR_MINUTES) -> list[IntervalEvent]:
    """Parse a JSON list of events.

    ``day_anchor_minutes`` is only used for items that carry no ``localDayKey``.
    """

    with open(file_path, encoding="utf-8") as handle:
        payload = json.load(handle)

    if not isinstance(payload, list):
        raise ValueError("JSON payload must be a list of objects")

    events = [_parse_item(item, i, day_anchor_minutes) for i, item in enumerate(payload, start=1)]
    for index, event in enumerate(events, start=1):
        if is_aware(event.timestamp) != is_aware(events[0].timestamp):
            raise ValueError(f"Item {index}: timestamp offset does not match item 1")
    return events
