"""Weekly report across enabled modules."""

from __future__ import annotations

import logging
from collections import defaultdict

from interval_engine.accounting import (
    WindowTally,
    action_gaps,
    rounded_mean,
    sorted_actions,
    tally_interval_window,
    tally_session_window,
)
from interval_engine.date_utils import get_week_day_keys
from interval_engine.schema import (
    ActionKind,
    IntegratedSummary,
    IntervalEvent,
    ModuleSetting,
    WeeklyModuleReport,
    WeeklyReport,
    is_interval_module,
    is_session_module,
)

log = logging.getLogger(__name__)


def _by_day(events: list[IntervalEvent]) -> dict[str, list[IntervalEvent]]:
    days: dict[str, list[IntervalEvent]] = defaultdict(list)
    for event in events:
        days[event.local_day_key].append(event)
    return days


def _interval_report(setting: ModuleSetting, events: list[IntervalEvent]) -> WeeklyModuleReport:
    # Lost minutes are tallied one day key at a time so the week equals the sum of its days.
    daily = [tally_interval_window(day_events, setting.target_interval_min) for day_events in _by_day(events).values()]
    earned = sum(tally.earned_min for tally in daily)
    lost = sum(tally.lost_min for tally in daily)
    actions = sorted_actions(events, ActionKind.CONSUME_OR_OPEN)

    return WeeklyModuleReport(
        module_type=setting.module_type,
        earned_min=earned,
        lost_min=lost,
        net_min=WindowTally(earned_min=earned, lost_min=lost).net_min,
        action_count=len(actions),
        focus_total_min=0,
        avg_interval_min=rounded_mean(action_gaps(actions)),
    )


def _session_report(setting: ModuleSetting, events: list[IntervalEvent]) -> WeeklyModuleReport:
    tally = tally_session_window(events)
    return WeeklyModuleReport(
        module_type=setting.module_type,
        earned_min=tally.earned_min,
        lost_min=0,
        net_min=tally.earned_min,
        action_count=tally.session_end_count,
        focus_total_min=tally.focus_total_min,
        avg_session_min=rounded_mean(tally.session_durations),
    )


def calculate_weekly_report(
    settings: list[ModuleSetting],
    all_events: list[IntervalEvent],
    week_start_day_key: str,
) -> WeeklyReport:
    """Aggregate the seven day keys starting at ``week_start_day_key``."""

    week_keys = set(get_week_day_keys(week_start_day_key))
    week_events = [e for e in all_events if e.local_day_key in week_keys]

    reports = []
    for setting in settings:
        if not setting.enabled:
            continue
        module_events = [e for e in week_events if e.module_type == setting.module_type]
        if is_interval_module(setting.module_type):
            reports.append(_interval_report(setting, module_events))
        elif is_session_module(setting.module_type):
            reports.append(_session_report(setting, module_events))

    log.debug("[weekly] week=%s events=%s modules=%s", week_start_day_key, len(week_events), len(reports))
    return WeeklyReport(
        week_start_day_key=week_start_day_key,
        integrated=IntegratedSummary(
            earned_min=sum(report.earned_min for report in reports),
            lost_min=sum(report.lost_min for report in reports),
            net_min=sum(report.net_min for report in reports),
        ),
        modules=tuple(reports),
    )
