"""Pure helpers for building events and applying settings changes."""

from __future__ import annotations

import uuid
from collections import defaultdict
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Optional

from interval_engine.accounting import sorted_actions
from interval_engine.constants import DEFAULT_MODULE_SETTINGS, DUPLICATE_ACTION_WINDOW_SECONDS
from interval_engine.date_utils import ensure_comparable, get_elapsed_minutes, get_local_day_key
from interval_engine.schema import (
    ActionKind,
    AdjustmentKind,
    EngineSettings,
    EventType,
    IntervalEvent,
    ModuleConfig,
    ModuleSetting,
    ModuleType,
    SessionEndReason,
    is_session_module,
)
from interval_engine.validation import (
    ActionEventInput,
    AdjustmentEventInput,
    DelayEventInput,
    UpdateUserSettingsInput,
    ensure_module_enabled,
    validate_timestamp_not_too_far_in_future,
)


def _new_id() -> str:
    return str(uuid.uuid4())


def group_events_by_module(events: list[IntervalEvent]) -> dict[ModuleType, list[IntervalEvent]]:
    grouped: dict[ModuleType, list[IntervalEvent]] = defaultdict(list)
    for event in events:
        grouped[event.module_type].append(event)
    return dict(grouped)


def is_duplicate_action(events: list[IntervalEvent], module_type: ModuleType, at: datetime) -> bool:
    """True if a CONSUME_OR_OPEN for the module was logged within the duplicate window."""

    window_start = at - timedelta(seconds=DUPLICATE_ACTION_WINDOW_SECONDS)
    for event in events:
        if event.module_type != module_type or not event.is_action(ActionKind.CONSUME_OR_OPEN):
            continue
        ensure_comparable(event.timestamp, at)
        if event.timestamp >= window_start:
            return True
    return False


def enrich_session_end_payload(events: list[IntervalEvent], now: datetime, payload: Optional[dict] = None) -> dict:
    """Fill ``actualMinutes``/``endReason`` for the session being closed.

    Non-null values already present in ``payload`` win. Nothing is filled when no
    session is open.
    """

    enriched = dict(payload or {})
    starts = sorted_actions(events, ActionKind.SESSION_START)
    if not starts:
        return enriched
    last_start = starts[-1]
    if any(e.is_action(ActionKind.SESSION_END) and e.timestamp > last_start.timestamp for e in events):
        return enriched
    if enriched.get("actualMinutes") is None:
        enriched["actualMinutes"] = get_elapsed_minutes(last_start.timestamp, now)
    if enriched.get("endReason") is None:
        enriched["endReason"] = SessionEndReason.USER_END.value
    return enriched


def build_action_event(
    user_id: str,
    data: ActionEventInput,
    settings: EngineSettings,
    history: list[IntervalEvent],
    now: datetime,
) -> IntervalEvent:
    """Create an ACTION event, stamping its day key from the current anchor."""

    ensure_module_enabled(settings, data.module_type)
    validate_timestamp_not_too_far_in_future(data.timestamp, now)
    at = data.timestamp or now

    if data.action_kind == ActionKind.CONSUME_OR_OPEN and is_duplicate_action(history, data.module_type, at):
        raise ValueError(f"Duplicate action within {DUPLICATE_ACTION_WINDOW_SECONDS} seconds")

    payload = dict(data.payload or {})
    if data.action_kind == ActionKind.SESSION_END and is_session_module(data.module_type):
        module_history = [e for e in history if e.module_type == data.module_type]
        payload = enrich_session_end_payload(module_history, at, payload)

    return IntervalEvent(
        id=_new_id(),
        user_id=user_id,
        module_type=data.module_type,
        event_type=EventType.ACTION,
        timestamp=at,
        local_day_key=get_local_day_key(at, settings.day_anchor_minutes),
        action_kind=data.action_kind,
        reason_label=data.reason_label,
        payload=payload,
    )


def build_delay_event(user_id: str, data: DelayEventInput, settings: EngineSettings, now: datetime) -> IntervalEvent:
    ensure_module_enabled(settings, data.module_type)
    validate_timestamp_not_too_far_in_future(data.timestamp, now)
    at = data.timestamp or now
    return IntervalEvent(
        id=_new_id(),
        user_id=user_id,
        module_type=data.module_type,
        event_type=EventType.DELAY,
        timestamp=at,
        local_day_key=get_local_day_key(at, settings.day_anchor_minutes),
        delay_minutes=data.delay_minutes,
        trigger_context=data.trigger_context,
    )


def build_adjustment_events(
    user_id: str,
    data: AdjustmentEventInput,
    settings: EngineSettings,
    now: datetime,
) -> list[IntervalEvent]:
    """Create an ADJUSTMENT event; a baseline reset also logs a fresh action."""

    ensure_module_enabled(settings, data.module_type)
    day_key = get_local_day_key(now, settings.day_anchor_minutes)
    payload = {**(data.payload or {}), "adjustmentKind": data.adjustment_kind.value}
    created = [
        IntervalEvent(
            id=_new_id(),
            user_id=user_id,
            module_type=data.module_type,
            event_type=EventType.ADJUSTMENT,
            timestamp=now,
            local_day_key=day_key,
            payload=payload,
        )
    ]
    if data.adjustment_kind == AdjustmentKind.RESET_BASELINE:
        created.append(
            IntervalEvent(
                id=_new_id(),
                user_id=user_id,
                module_type=data.module_type,
                event_type=EventType.ACTION,
                timestamp=now,
                local_day_key=day_key,
                action_kind=ActionKind.CONSUME_OR_OPEN,
            )
        )
    return created


def default_module_setting(module_type: ModuleType) -> ModuleSetting:
    enabled, target, config = DEFAULT_MODULE_SETTINGS[module_type.value]
    return ModuleSetting(
        module_type=module_type,
        enabled=enabled,
        target_interval_min=target,
        config=ModuleConfig(**config) if config else None,
    )


def default_engine_settings() -> EngineSettings:
    return EngineSettings(modules=tuple(default_module_setting(module_type) for module_type in ModuleType))


def apply_settings_update(settings: EngineSettings, update: UpdateUserSettingsInput) -> EngineSettings:
    """Merge a validated settings update; unspecified fields keep their value.

    Changing ``day_anchor_minutes`` only affects events created afterwards.
    """

    modules = {setting.module_type: setting for setting in settings.modules}
    for change in update.modules or []:
        current = modules.get(change.module_type) or default_module_setting(change.module_type)
        config = current.config
        if change.config is not None:
            base = config or ModuleConfig()
            config = ModuleConfig(
                daily_goal_count=change.config.daily_goal_count or base.daily_goal_count,
                default_session_min=change.config.default_session_min or base.default_session_min,
            )
        modules[change.module_type] = replace(
            current,
            enabled=current.enabled if change.enabled is None else change.enabled,
            target_interval_min=change.target_interval_min or current.target_interval_min,
            config=config,
        )

    ordered = tuple(modules[module_type] for module_type in ModuleType if module_type in modules)
    anchor = settings.day_anchor_minutes if update.day_anchor_minutes is None else update.day_anchor_minutes
    return EngineSettings(day_anchor_minutes=anchor, modules=ordered)
