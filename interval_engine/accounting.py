"""Distance ledger rules shared by the daily calculator and the weekly report.

Every rule here works on an arbitrary window of events (one day key, or a
whole week) so that the per-day and per-week figures come from the same code.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np

from interval_engine.date_utils import get_elapsed_minutes
from interval_engine.payloads import parse_session_end
from interval_engine.schema import ActionKind, IntervalEvent


@dataclass(frozen=True)
class WindowTally:
    """Earned/lost ledger for one window of events."""

    earned_min: int = 0
    lost_min: int = 0
    action_count: int = 0
    session_end_count: int = 0
    session_durations: tuple[int, ...] = ()

    @property
    def net_min(self) -> int:
        return max(0, self.earned_min - self.lost_min)

    @property
    def focus_total_min(self) -> int:
        return sum(self.session_durations)


def sorted_actions(events: Iterable[IntervalEvent], kind: ActionKind) -> list[IntervalEvent]:
    return sorted((e for e in events if e.is_action(kind)), key=lambda e: e.timestamp)


def earned_minutes(events: Iterable[IntervalEvent]) -> int:
    """Every DELAY event banks its reported minutes."""

    return sum(e.delay_minutes or 0 for e in events if e.is_delay)


def action_gaps(actions: list[IntervalEvent]) -> np.ndarray:
    """Whole-minute gaps between consecutive actions (sorted ascending)."""

    gaps = [get_elapsed_minutes(prev.timestamp, curr.timestamp) for prev, curr in zip(actions, actions[1:])]
    return np.asarray(gaps, dtype=int)


def lost_minutes(actions: list[IntervalEvent], target_interval_min: int) -> int:
    """Acting before the target forfeits the shortfall; on or after costs nothing."""

    gaps = action_gaps(actions)
    return int(np.maximum(target_interval_min - gaps, 0).sum())


def session_minutes(events: Iterable[IntervalEvent]) -> list[int]:
    """``actualMinutes`` of every SESSION_END whose payload validates."""

    minutes = []
    for event in events:
        if not event.is_action(ActionKind.SESSION_END):
            continue
        payload = parse_session_end(event)
        if payload is not None:
            minutes.append(payload.actual_minutes)
    return minutes


def rounded_mean(values) -> Optional[int]:
    """Mean rounded half-up, or ``None`` for an empty sample."""

    if len(values) == 0:
        return None
    return int(np.floor(np.mean(values) + 0.5))


def tally_interval_window(events: list[IntervalEvent], target_interval_min: int) -> WindowTally:
    actions = sorted_actions(events, ActionKind.CONSUME_OR_OPEN)
    return WindowTally(
        earned_min=earned_minutes(events),
        lost_min=lost_minutes(actions, target_interval_min),
        action_count=len(actions),
    )


def tally_session_window(events: list[IntervalEvent]) -> WindowTally:
    ends = [e for e in events if e.is_action(ActionKind.SESSION_END)]
    return WindowTally(
        earned_min=earned_minutes(events),
        lost_min=0,
        session_durations=tuple(session_minutes(ends)),
        session_end_count=len(ends),
    )
