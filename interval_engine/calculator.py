"""Per-module status calculator."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from interval_engine.accounting import sorted_actions, tally_interval_window, tally_session_window
from interval_engine.constants import (
    DEFAULT_GAP_THRESHOLD_MIN,
    DEFAULT_PLANNED_MIN,
    DEFAULT_SESSION_MIN,
    GAP_MULTIPLIER,
    LONG_SESSION_THRESHOLD_MIN,
)
from interval_engine.date_utils import add_minutes, get_elapsed_minutes, get_local_day_key
from interval_engine.payloads import parse_session_start
from interval_engine.schema import (
    ActionKind,
    CtaKey,
    CtaPrimary,
    FocusSessionInfo,
    IntervalEvent,
    ModuleSetting,
    ModuleState,
    ModuleStatus,
    ModuleType,
    TriggerContext,
    is_session_module,
)

log = logging.getLogger(__name__)

_INTERVAL_CTA = {
    ModuleStatus.NO_BASELINE: CtaPrimary(CtaKey.LOG_ACTION, True),
    ModuleStatus.GAP_DETECTED: CtaPrimary(CtaKey.RECOVER, True),
    ModuleStatus.COUNTDOWN: CtaPrimary(CtaKey.URGE, True),
    ModuleStatus.READY: CtaPrimary(CtaKey.LOG_ACTION, True),
    ModuleStatus.DISABLED: CtaPrimary(CtaKey.LOG_ACTION, False),
    ModuleStatus.SETUP_REQUIRED: CtaPrimary(CtaKey.LOG_ACTION, False),
}


def calculate_gap_threshold(target_interval_min: int) -> int:
    """Minutes of silence after which a countdown is treated as a fresh restart."""

    return max(DEFAULT_GAP_THRESHOLD_MIN, target_interval_min * GAP_MULTIPLIER)


def calculate_early_lost_minutes(target_time: datetime, now: datetime) -> int:
    """Minutes that would be forfeited by acting at ``now`` instead of ``target_time``."""

    if now >= target_time:
        return 0
    return _ceil_minutes(target_time, now)


def _ceil_minutes(later: datetime, earlier: datetime) -> int:
    return -get_elapsed_minutes(later, earlier)


def _today_events(events: list[IntervalEvent], now: datetime, day_anchor_minutes: int) -> list[IntervalEvent]:
    today_key = get_local_day_key(now, day_anchor_minutes)
    return [e for e in events if e.local_day_key == today_key]


def _disabled_state(module_type: ModuleType) -> ModuleState:
    return ModuleState(
        module_type=module_type,
        status=ModuleStatus.DISABLED,
        cta_primary=_INTERVAL_CTA[ModuleStatus.DISABLED],
    )


def calculate_module_state(
    module_type: ModuleType,
    setting: Optional[ModuleSetting],
    events: list[IntervalEvent],
    now: datetime,
    day_anchor_minutes: int,
) -> ModuleState:
    """Derive the current status of one module from its full event history."""

    if setting is None or not setting.enabled:
        return _disabled_state(module_type)
    if is_session_module(module_type):
        return _focus_module_state(module_type, setting, events, now, day_anchor_minutes)
    return _interval_module_state(module_type, setting, events, now, day_anchor_minutes)


def _interval_module_state(
    module_type: ModuleType,
    setting: ModuleSetting,
    events: list[IntervalEvent],
    now: datetime,
    day_anchor_minutes: int,
) -> ModuleState:
    target = setting.target_interval_min
    tally = tally_interval_window(_today_events(events, now, day_anchor_minutes), target)
    common = {
        "module_type": module_type,
        "target_interval_min": target,
        "today_earned_min": tally.earned_min,
        "today_lost_min": tally.lost_min,
        "today_net_min": tally.net_min,
        "today_action_count": tally.action_count,
        "daily_goal_count": setting.config.daily_goal_count if setting.config else None,
    }

    actions = sorted_actions(events, ActionKind.CONSUME_OR_OPEN)
    if not actions:
        status = ModuleStatus.NO_BASELINE
        return ModuleState(status=status, cta_primary=_INTERVAL_CTA[status], **common)

    last_action_time = actions[-1].timestamp
    actual_interval_min = get_elapsed_minutes(last_action_time, now)

    if actual_interval_min > calculate_gap_threshold(target):
        status = ModuleStatus.GAP_DETECTED
        return ModuleState(
            status=status,
            cta_primary=_INTERVAL_CTA[status],
            last_action_time=last_action_time,
            actual_interval_min=actual_interval_min,
            **common,
        )

    target_time = add_minutes(last_action_time, target)
    remaining_min = max(0, _ceil_minutes(target_time, now))
    status = ModuleStatus.COUNTDOWN if remaining_min > 0 else ModuleStatus.READY
    return ModuleState(
        status=status,
        cta_primary=_INTERVAL_CTA[status],
        last_action_time=last_action_time,
        target_time=target_time,
        remaining_min=remaining_min,
        actual_interval_min=actual_interval_min,
        **common,
    )


def _active_session_start(events: list[IntervalEvent]) -> Optional[IntervalEvent]:
    starts = sorted_actions(events, ActionKind.SESSION_START)
    if not starts:
        return None
    latest = starts[-1]
    for event in events:
        if event.is_action(ActionKind.SESSION_END) and event.timestamp > latest.timestamp:
            return None
    return latest


def _focus_session(start: IntervalEvent, events: list[IntervalEvent], now: datetime) -> FocusSessionInfo:
    payload = parse_session_start(start)
    planned = payload.planned_minutes if payload is not None else DEFAULT_PLANNED_MIN
    extended = sum(
        e.delay_minutes or 0
        for e in events
        if e.is_delay and e.trigger_context == TriggerContext.FOCUS_EXTEND and e.timestamp > start.timestamp
    )
    elapsed = get_elapsed_minutes(start.timestamp, now)
    return FocusSessionInfo(
        session_start_time=start.timestamp,
        planned_minutes=planned,
        elapsed_minutes=elapsed,
        remaining_minutes=max(0, planned + extended - elapsed),
        extended_minutes=extended,
    )


def _focus_module_state(
    module_type: ModuleType,
    setting: ModuleSetting,
    events: list[IntervalEvent],
    now: datetime,
    day_anchor_minutes: int,
) -> ModuleState:
    default_session_min = DEFAULT_SESSION_MIN
    if setting.config and setting.config.default_session_min:
        default_session_min = setting.config.default_session_min

    tally = tally_session_window(_today_events(events, now, day_anchor_minutes))
    common = {
        "module_type": module_type,
        "today_earned_min": tally.earned_min,
        "today_lost_min": 0,
        "today_net_min": tally.earned_min,
        "today_focus_total_min": tally.focus_total_min,
        "default_session_min": default_session_min,
    }

    start = _active_session_start(events)
    if start is None:
        return ModuleState(
            status=ModuleStatus.FOCUS_IDLE,
            cta_primary=CtaPrimary(CtaKey.START_SESSION, True),
            **common,
        )

    session = _focus_session(start, events, now)
    if session.elapsed_minutes > LONG_SESSION_THRESHOLD_MIN:
        log.debug("[focus] session started %s has run %s min", start.timestamp, session.elapsed_minutes)
        cta = CtaPrimary(CtaKey.END_SESSION, True)
    else:
        cta = CtaPrimary(CtaKey.URGE_INTERRUPT, True)
    return ModuleState(status=ModuleStatus.FOCUS_RUNNING, cta_primary=cta, focus_session=session, **common)
