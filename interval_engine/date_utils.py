"""Day-key and calendar helpers under a non-midnight day anchor."""

from __future__ import annotations

from datetime import date, datetime, timedelta

_ONE_MINUTE = timedelta(minutes=1)


def parse_day_key(day_key: str) -> date:
    """Parse a ``YYYY-MM-DD`` day key."""

    try:
        parsed = datetime.strptime(day_key, "%Y-%m-%d").date()
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Malformed day key {day_key!r}") from exc
    if parsed.isoformat() != day_key:
        raise ValueError(f"Malformed day key {day_key!r}")
    return parsed


def parse_time_to_minutes(time_str: str) -> int:
    hours, minutes = (int(part) for part in time_str.split(":"))
    return hours * 60 + minutes


def minutes_to_time_string(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def get_local_day_key(timestamp: datetime, day_anchor_minutes: int) -> str:
    """Return the day key a timestamp belongs to.

    The day starts at ``day_anchor_minutes`` past local midnight, so anything
    strictly before the anchor is attributed to the previous calendar day. The
    timestamp's own wall clock is used; aware datetimes keep their offset.
    """

    minutes_of_day = timestamp.hour * 60 + timestamp.minute
    day = timestamp.date()
    if minutes_of_day < day_anchor_minutes:
        day -= timedelta(days=1)
    return day.isoformat()


def get_day_key_for_now(now: datetime, day_anchor_minutes: int) -> str:
    return get_local_day_key(now, day_anchor_minutes)


def get_day_range(day_key: str, day_anchor_minutes: int) -> tuple[datetime, datetime]:
    """Half-open ``[start, end)`` wall-clock window covered by a day key."""

    start = datetime.combine(parse_day_key(day_key), datetime.min.time()) + timedelta(minutes=day_anchor_minutes)
    return start, start + timedelta(days=1)


def get_elapsed_minutes(start: datetime, end: datetime) -> int:
    """Whole minutes from ``start`` to ``end``, floor-truncated."""

    return (end - start) // _ONE_MINUTE


def add_minutes(value: datetime, minutes: int) -> datetime:
    return value + timedelta(minutes=minutes)


def is_aware(value: datetime) -> bool:
    return value.tzinfo is not None and value.utcoffset() is not None


def ensure_comparable(first: datetime, second: datetime) -> None:
    """Raise ``ValueError`` when only one of two timestamps carries an offset."""

    if is_aware(first) != is_aware(second):
        raise ValueError("Cannot compare timestamps with and without a UTC offset")


def match_clock(value: datetime, reference: datetime) -> datetime:
    """Return ``value`` in the same naive/aware form as ``reference``.

    A naive value is read as wall clock in the reference's zone; an aware value
    keeps its wall clock and loses its offset.
    """

    if is_aware(reference) and not is_aware(value):
        return value.replace(tzinfo=reference.tzinfo)
    if not is_aware(reference) and is_aware(value):
        return value.replace(tzinfo=None)
    return value


def get_week_start_day_key(day_key: str) -> str:
    """Monday on or before the given day key."""

    day = parse_day_key(day_key)
    return (day - timedelta(days=day.weekday())).isoformat()


def get_week_day_keys(week_start_day_key: str) -> list[str]:
    start = parse_day_key(week_start_day_key)
    return [(start + timedelta(days=offset)).isoformat() for offset in range(7)]
