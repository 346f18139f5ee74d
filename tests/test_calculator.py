import logging
from datetime import datetime, timedelta

from interval_engine.calculator import (
    calculate_early_lost_minutes,
    calculate_gap_threshold,
    calculate_module_state,
)
from interval_engine.date_utils import get_local_day_key
from interval_engine.schema import (
    ActionKind,
    CtaKey,
    EventType,
    IntervalEvent,
    ModuleConfig,
    ModuleSetting,
    ModuleStatus,
    ModuleType,
    TriggerContext,
)

ANCHOR = 240
T0 = datetime.fromisoformat("2025-03-03T10:00:00")


def action(ts, kind=ActionKind.CONSUME_OR_OPEN, module=ModuleType.SMOKE, payload=None):
    return IntervalEvent(
        id=f"a-{ts.isoformat()}",
        user_id="u1",
        module_type=module,
        event_type=EventType.ACTION,
        timestamp=ts,
        local_day_key=get_local_day_key(ts, ANCHOR),
        action_kind=kind,
        payload=payload,
    )


def delay(ts, minutes, context=TriggerContext.MANUAL, module=ModuleType.SMOKE):
    return IntervalEvent(
        id=f"d-{ts.isoformat()}",
        user_id="u1",
        module_type=module,
        event_type=EventType.DELAY,
        timestamp=ts,
        local_day_key=get_local_day_key(ts, ANCHOR),
        delay_minutes=minutes,
        trigger_context=context,
    )


SMOKE = ModuleSetting(ModuleType.SMOKE, True, 60)
FOCUS = ModuleSetting(ModuleType.FOCUS, True, 25, ModuleConfig(default_session_min=15))


def test_gap_threshold():
    assert calculate_gap_threshold(30) == 480
    assert calculate_gap_threshold(60) == 600


def test_early_lost_minutes():
    assert calculate_early_lost_minutes(T0, T0) == 0
    assert calculate_early_lost_minutes(T0, T0 + timedelta(minutes=5)) == 0
    assert calculate_early_lost_minutes(T0, T0 - timedelta(minutes=4, seconds=10)) == 5


def test_early_action_loses_shortfall():
    now = T0 + timedelta(minutes=40)
    state = calculate_module_state(ModuleType.SMOKE, SMOKE, [action(T0), action(now)], now, ANCHOR)
    assert state.today_lost_min == 20
    assert state.today_earned_min == 0
    assert state.today_net_min == 0
    assert state.today_action_count == 2
    assert state.status == ModuleStatus.COUNTDOWN
    assert state.remaining_min == 60


def test_on_time_action_costs_nothing():
    events = [action(T0), action(T0 + timedelta(minutes=60)), action(T0 + timedelta(minutes=150))]
    state = calculate_module_state(ModuleType.SMOKE, SMOKE, events, T0 + timedelta(minutes=151), ANCHOR)
    assert state.today_lost_min == 0


def test_no_events_means_no_baseline():
    state = calculate_module_state(ModuleType.SMOKE, SMOKE, [], T0, ANCHOR)
    assert state.status == ModuleStatus.NO_BASELINE
    assert state.cta_primary.key == CtaKey.LOG_ACTION
    assert state.cta_primary.enabled is True
    assert state.last_action_time is None
    assert state.remaining_min is None


def test_delays_without_actions_still_earn():
    events = [delay(T0, 5), delay(T0 + timedelta(minutes=10), 3)]
    state = calculate_module_state(ModuleType.SMOKE, SMOKE, events, T0 + timedelta(minutes=20), ANCHOR)
    assert state.status == ModuleStatus.NO_BASELINE
    assert state.today_earned_min == 8
    assert state.today_net_min == 8


def test_disabled_or_missing_setting():
    for setting in (None, ModuleSetting(ModuleType.SMOKE, False, 60)):
        state = calculate_module_state(ModuleType.SMOKE, setting, [action(T0)], T0, ANCHOR)
        assert state.status == ModuleStatus.DISABLED
        assert state.cta_primary.key == CtaKey.LOG_ACTION
        assert state.cta_primary.enabled is False
        assert state.today_action_count == 0


def test_ready_after_nine_hours_is_not_gapped():
    now = T0 + timedelta(hours=9)
    state = calculate_module_state(ModuleType.SMOKE, SMOKE, [action(T0)], now, ANCHOR)
    assert state.actual_interval_min == 540
    assert state.status == ModuleStatus.READY
    assert state.remaining_min == 0
    assert state.cta_primary.key == CtaKey.LOG_ACTION


def test_gap_detected_after_eleven_hours():
    now = T0 + timedelta(hours=11)
    state = calculate_module_state(ModuleType.SMOKE, SMOKE, [action(T0)], now, ANCHOR)
    assert state.status == ModuleStatus.GAP_DETECTED
    assert state.cta_primary.key == CtaKey.RECOVER
    assert state.actual_interval_min == 660
    assert state.last_action_time == T0
    assert state.target_time is None


def test_gap_threshold_equality_is_not_gapped():
    now = T0 + timedelta(minutes=600)
    state = calculate_module_state(ModuleType.SMOKE, SMOKE, [action(T0)], now, ANCHOR)
    assert state.status == ModuleStatus.READY
    state = calculate_module_state(ModuleType.SMOKE, SMOKE, [action(T0)], now + timedelta(minutes=1), ANCHOR)
    assert state.status == ModuleStatus.GAP_DETECTED


def test_remaining_minutes_round_up():
    now = T0 + timedelta(seconds=30)
    state = calculate_module_state(ModuleType.SMOKE, SMOKE, [action(T0)], now, ANCHOR)
    assert state.status == ModuleStatus.COUNTDOWN
    assert state.cta_primary.key == CtaKey.URGE
    assert state.remaining_min == 60
    assert state.target_time == T0 + timedelta(minutes=60)
    assert state.actual_interval_min == 0


def test_latest_action_is_baseline_regardless_of_order():
    events = [action(T0 + timedelta(minutes=30)), action(T0)]
    now = T0 + timedelta(minutes=50)
    state = calculate_module_state(ModuleType.SMOKE, SMOKE, events, now, ANCHOR)
    assert state.last_action_time == T0 + timedelta(minutes=30)
    assert state.remaining_min == 40
    assert state.today_lost_min == 30


def test_only_todays_events_are_accounted():
    yesterday = T0 - timedelta(hours=7)
    events = [action(yesterday), delay(yesterday, 10), action(T0 - timedelta(minutes=5)), action(T0)]
    state = calculate_module_state(ModuleType.SMOKE, SMOKE, events, T0, ANCHOR)
    assert state.today_action_count == 2
    assert state.today_earned_min == 0
    assert state.today_lost_min == 55


def test_net_never_negative():
    events = [delay(T0 - timedelta(minutes=1), 3), action(T0 - timedelta(minutes=10)), action(T0)]
    state = calculate_module_state(ModuleType.SMOKE, SMOKE, events, T0, ANCHOR)
    assert state.today_earned_min == 3
    assert state.today_lost_min == 50
    assert state.today_net_min == 0


def test_focus_running_with_extension():
    start = action(T0, ActionKind.SESSION_START, ModuleType.FOCUS, {"plannedMinutes": 10})
    extend = delay(T0 + timedelta(minutes=8), 5, TriggerContext.FOCUS_EXTEND, ModuleType.FOCUS)
    now = T0 + timedelta(minutes=12)
    state = calculate_module_state(ModuleType.FOCUS, FOCUS, [start, extend], now, ANCHOR)
    assert state.status == ModuleStatus.FOCUS_RUNNING
    assert state.cta_primary.key == CtaKey.URGE_INTERRUPT
    assert state.focus_session.elapsed_minutes == 12
    assert state.focus_session.extended_minutes == 5
    assert state.focus_session.remaining_minutes == 3
    assert state.focus_session.planned_minutes == 10
    assert state.today_earned_min == 5
    assert state.today_lost_min == 0
    assert state.today_net_min == 5
    assert state.default_session_min == 15


def test_focus_idle_after_session_end():
    events = [
        action(T0, ActionKind.SESSION_START, ModuleType.FOCUS, {"plannedMinutes": 25}),
        action(T0 + timedelta(minutes=20), ActionKind.SESSION_END, ModuleType.FOCUS, {"actualMinutes": 20, "endReason": "USER_END"}),
    ]
    state = calculate_module_state(ModuleType.FOCUS, FOCUS, events, T0 + timedelta(minutes=30), ANCHOR)
    assert state.status == ModuleStatus.FOCUS_IDLE
    assert state.cta_primary.key == CtaKey.START_SESSION
    assert state.focus_session is None
    assert state.today_focus_total_min == 20


def test_focus_defaults_without_config():
    setting = ModuleSetting(ModuleType.FOCUS, True, 25)
    state = calculate_module_state(ModuleType.FOCUS, setting, [], T0, ANCHOR)
    assert state.status == ModuleStatus.FOCUS_IDLE
    assert state.default_session_min == 10


def test_focus_long_session_offers_end():
    start = action(T0, ActionKind.SESSION_START, ModuleType.FOCUS, {"plannedMinutes": 10})
    state = calculate_module_state(ModuleType.FOCUS, FOCUS, [start], T0 + timedelta(minutes=361), ANCHOR)
    assert state.cta_primary.key == CtaKey.END_SESSION
    assert state.focus_session.remaining_minutes == 0
    state = calculate_module_state(ModuleType.FOCUS, FOCUS, [start], T0 + timedelta(minutes=360), ANCHOR)
    assert state.cta_primary.key == CtaKey.URGE_INTERRUPT


def test_focus_invalid_start_payload_defaults_planned():
    start = action(T0, ActionKind.SESSION_START, ModuleType.FOCUS, {"plannedMinutes": 0})
    state = calculate_module_state(ModuleType.FOCUS, FOCUS, [start], T0 + timedelta(minutes=4), ANCHOR)
    assert state.focus_session.planned_minutes == 10
    assert state.focus_session.remaining_minutes == 6


def test_focus_malformed_end_payload_counts_zero_and_logs(caplog):
    events = [
        action(T0, ActionKind.SESSION_START, ModuleType.FOCUS, {"plannedMinutes": 10}),
        action(T0 + timedelta(minutes=10), ActionKind.SESSION_END, ModuleType.FOCUS, {"actualMinutes": "ten"}),
        action(T0 + timedelta(minutes=20), ActionKind.SESSION_START, ModuleType.FOCUS, {"plannedMinutes": 10}),
        action(T0 + timedelta(minutes=35), ActionKind.SESSION_END, ModuleType.FOCUS, {"actualMinutes": 15, "endReason": "AUTO"}),
    ]
    with caplog.at_level(logging.WARNING, logger="interval_engine.payloads"):
        state = calculate_module_state(ModuleType.FOCUS, FOCUS, events, T0 + timedelta(minutes=40), ANCHOR)
    assert state.today_focus_total_min == 15
    assert any("session end" in record.getMessage() for record in caplog.records)


def test_focus_never_reports_coaching():
    start = action(T0, ActionKind.SESSION_START, ModuleType.FOCUS, {"plannedMinutes": 10})
    for minutes in (0, 5, 10, 30, 400):
        state = calculate_module_state(ModuleType.FOCUS, FOCUS, [start], T0 + timedelta(minutes=minutes), ANCHOR)
        assert state.status in (ModuleStatus.FOCUS_IDLE, ModuleStatus.FOCUS_RUNNING)


def test_state_to_dict_uses_wire_names():
    now = T0 + timedelta(minutes=10)
    payload = calculate_module_state(ModuleType.SMOKE, SMOKE, [action(T0)], now, ANCHOR).to_dict()
    assert payload["moduleType"] == "SMOKE"
    assert payload["status"] == "COUNTDOWN"
    assert payload["ctaPrimary"] == {"key": "URGE", "enabled": True}
    assert payload["remainingMin"] == 50
    assert payload["lastActionTime"] == "2025-03-03T10:00:00"
    assert "focusSession" not in payload
