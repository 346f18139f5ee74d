"""Today summary across all enabled modules."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Mapping, Optional

from interval_engine.calculator import calculate_module_state
from interval_engine.constants import (
    FLOATING_DELAY_OPTIONS,
    FLOATING_SUGGESTION_MAX,
    FLOATING_SUGGESTION_MIN,
    LEVEL_THRESHOLDS,
)
from interval_engine.date_utils import get_local_day_key
from interval_engine.schema import (
    FloatingSuggestion,
    IntegratedSummary,
    IntervalEvent,
    ModuleSetting,
    ModuleState,
    ModuleStatus,
    ModuleType,
    TodaySummary,
    is_interval_module,
)

log = logging.getLogger(__name__)


def calculate_level(total_earned_min: int) -> int:
    """Return the index of the highest ladder rung reached.

    Level ``n`` means ``LEVEL_THRESHOLDS[n]`` has been reached, which is the
    numbering ``calculate_next_level_remaining`` expects.
    """

    level = 0
    for index, threshold in enumerate(LEVEL_THRESHOLDS):
        if total_earned_min >= threshold:
            level = index
    return level


def calculate_next_level_remaining(current_level: int, total_earned_min: int) -> int:
    next_level = current_level + 1
    if next_level >= len(LEVEL_THRESHOLDS):
        return 0
    return max(0, LEVEL_THRESHOLDS[next_level] - total_earned_min)


def calculate_floating_suggestion(module_states: list[ModuleState]) -> Optional[FloatingSuggestion]:
    """Pick the interval countdown closest to expiry inside the nudge window."""

    closest: Optional[ModuleState] = None
    for state in module_states:
        if not is_interval_module(state.module_type) or state.status != ModuleStatus.COUNTDOWN:
            continue
        if state.remaining_min is None:
            continue
        if not FLOATING_SUGGESTION_MIN <= state.remaining_min <= FLOATING_SUGGESTION_MAX:
            continue
        if closest is None or state.remaining_min < closest.remaining_min:
            closest = state

    if closest is None:
        return None
    return FloatingSuggestion(
        module_type=closest.module_type,
        remaining_min=closest.remaining_min,
        options=FLOATING_DELAY_OPTIONS,
    )


def calculate_today_summary(
    settings: list[ModuleSetting],
    events_by_module: Mapping[ModuleType, list[IntervalEvent]],
    now: datetime,
    day_anchor_minutes: int,
    level: Optional[int] = None,
    total_earned_min: Optional[int] = None,
) -> TodaySummary:
    """Compute every enabled module's state plus the integrated ledger."""

    day_key = get_local_day_key(now, day_anchor_minutes)
    module_states = [
        calculate_module_state(
            setting.module_type,
            setting,
            events_by_module.get(setting.module_type, []),
            now,
            day_anchor_minutes,
        )
        for setting in settings
        if setting.enabled
    ]

    next_level_remaining = None
    if level is not None and total_earned_min is not None:
        next_level_remaining = calculate_next_level_remaining(level, total_earned_min)

    integrated = IntegratedSummary(
        earned_min=sum(state.today_earned_min for state in module_states),
        lost_min=sum(state.today_lost_min for state in module_states),
        net_min=sum(state.today_net_min for state in module_states),
        level=level,
        next_level_remaining_min=next_level_remaining,
    )
    log.debug("[summary] day=%s modules=%s net=%s", day_key, len(module_states), integrated.net_min)

    return TodaySummary(
        day_key=day_key,
        integrated=integrated,
        modules=tuple(module_states),
        floating_suggestion=calculate_floating_suggestion(module_states),
    )


def find_module_state(summary: TodaySummary, module_type: ModuleType) -> Optional[ModuleState]:
    """Return the module's state, or ``None`` when it is not configured and enabled."""

    for state in summary.modules:
        if state.module_type == module_type:
            return state
    return None
