"""Core data schema for interval and session habit events."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from interval_engine.constants import DEFAULT_DAY_ANCHOR_MINUTES


class ModuleType(str, Enum):
    SMOKE = "SMOKE"
    SNS = "SNS"
    CAFFEINE = "CAFFEINE"
    FOCUS = "FOCUS"


class EventType(str, Enum):
    ACTION = "ACTION"
    DELAY = "DELAY"
    ADJUSTMENT = "ADJUSTMENT"


class ActionKind(str, Enum):
    CONSUME_OR_OPEN = "CONSUME_OR_OPEN"
    SESSION_START = "SESSION_START"
    SESSION_END = "SESSION_END"


class ReasonLabel(str, Enum):
    BREAK = "BREAK"
    BORED = "BORED"
    STRESS = "STRESS"
    HABIT = "HABIT"
    AVOID = "AVOID"
    LINK = "LINK"
    OTHER = "OTHER"


class TriggerContext(str, Enum):
    EARLY_URGE = "EARLY_URGE"
    FLOATING_CARD = "FLOATING_CARD"
    FOCUS_EXTEND = "FOCUS_EXTEND"
    MANUAL = "MANUAL"


class AdjustmentKind(str, Enum):
    RESET_BASELINE = "RESET_BASELINE"
    APPROXIMATE_LOG = "APPROXIMATE_LOG"


class SessionEndReason(str, Enum):
    USER_END = "USER_END"
    URGE = "URGE"
    AUTO = "AUTO"


class ModuleStatus(str, Enum):
    DISABLED = "DISABLED"
    SETUP_REQUIRED = "SETUP_REQUIRED"
    NO_BASELINE = "NO_BASELINE"
    COUNTDOWN = "COUNTDOWN"
    READY = "READY"
    GAP_DETECTED = "GAP_DETECTED"
    FOCUS_IDLE = "FOCUS_IDLE"
    FOCUS_RUNNING = "FOCUS_RUNNING"
    # Declared for the UI overlay; the calculator never produces it.
    FOCUS_COACHING = "FOCUS_COACHING"


class CtaKey(str, Enum):
    LOG_ACTION = "LOG_ACTION"
    URGE = "URGE"
    RECOVER = "RECOVER"
    START_SESSION = "START_SESSION"
    END_SESSION = "END_SESSION"
    URGE_INTERRUPT = "URGE_INTERRUPT"


INTERVAL_MODULES = frozenset({ModuleType.SMOKE, ModuleType.SNS, ModuleType.CAFFEINE})
SESSION_MODULES = frozenset({ModuleType.FOCUS})


def is_interval_module(module_type: ModuleType) -> bool:
    return module_type in INTERVAL_MODULES


def is_session_module(module_type: ModuleType) -> bool:
    return module_type in SESSION_MODULES


@dataclass(frozen=True)
class IntervalEvent:
    """Immutable event record.

    ``local_day_key`` is stamped once, when the event is created, from the day
    anchor in effect at that moment. Changing the anchor later does not move
    historical events to other days.
    """

    id: str
    user_id: str
    module_type: ModuleType
    event_type: EventType
    timestamp: datetime
    local_day_key: str
    action_kind: Optional[ActionKind] = None
    delay_minutes: Optional[int] = None
    reason_label: Optional[ReasonLabel] = None
    trigger_context: Optional[TriggerContext] = None
    payload: Optional[dict] = None

    def is_action(self, kind: ActionKind) -> bool:
        return self.event_type == EventType.ACTION and self.action_kind == kind

    @property
    def is_delay(self) -> bool:
        return self.event_type == EventType.DELAY


@dataclass(frozen=True)
class ModuleConfig:
    daily_goal_count: Optional[int] = None
    default_session_min: Optional[int] = None


@dataclass(frozen=True)
class ModuleSetting:
    module_type: ModuleType
    enabled: bool
    target_interval_min: int
    config: Optional[ModuleConfig] = None


@dataclass(frozen=True)
class EngineSettings:
    """Per-user engine configuration passed explicitly into every call."""

    day_anchor_minutes: int = DEFAULT_DAY_ANCHOR_MINUTES
    modules: tuple[ModuleSetting, ...] = ()

    def setting_for(self, module_type: ModuleType) -> Optional[ModuleSetting]:
        for setting in self.modules:
            if setting.module_type == module_type:
                return setting
        return None

    def enabled_modules(self) -> list[ModuleSetting]:
        return [setting for setting in self.modules if setting.enabled]


def _wire(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_wire(item) for item in value]
    return value


def _compact(pairs: dict[str, Any]) -> dict[str, Any]:
    return {key: _wire(value) for key, value in pairs.items() if value is not None}


@dataclass(frozen=True)
class CtaPrimary:
    key: CtaKey
    enabled: bool

    def to_dict(self) -> dict:
        return _compact({"key": self.key, "enabled": self.enabled})


@dataclass(frozen=True)
class FocusSessionInfo:
    session_start_time: datetime
    planned_minutes: int
    elapsed_minutes: int
    remaining_minutes: int
    extended_minutes: int

    def to_dict(self) -> dict:
        return _compact(
            {
                "sessionStartTime": self.session_start_time,
                "plannedMinutes": self.planned_minutes,
                "elapsedMinutes": self.elapsed_minutes,
                "remainingMinutes": self.remaining_minutes,
                "extendedMinutes": self.extended_minutes,
            }
        )


@dataclass(frozen=True)
class ModuleState:
    """Derived status of one module; recomputed on every read, never stored."""

    module_type: ModuleType
    status: ModuleStatus
    cta_primary: CtaPrimary
    last_action_time: Optional[datetime] = None
    target_interval_min: Optional[int] = None
    target_time: Optional[datetime] = None
    remaining_min: Optional[int] = None
    actual_interval_min: Optional[int] = None
    today_earned_min: int = 0
    today_lost_min: int = 0
    today_net_min: int = 0
    today_action_count: int = 0
    today_focus_total_min: int = 0
    focus_session: Optional[FocusSessionInfo] = None
    daily_goal_count: Optional[int] = None
    default_session_min: Optional[int] = None

    def to_dict(self) -> dict:
        return _compact(
            {
                "moduleType": self.module_type,
                "status": self.status,
                "lastActionTime": self.last_action_time,
                "targetIntervalMin": self.target_interval_min,
                "targetTime": self.target_time,
                "remainingMin": self.remaining_min,
                "actualIntervalMin": self.actual_interval_min,
                "todayEarnedMin": self.today_earned_min,
                "todayLostMin": self.today_lost_min,
                "todayNetMin": self.today_net_min,
                "ctaPrimary": self.cta_primary,
                "focusSession": self.focus_session,
                "todayActionCount": self.today_action_count,
                "todayFocusTotalMin": self.today_focus_total_min,
                "dailyGoalCount": self.daily_goal_count,
                "defaultSessionMin": self.default_session_min,
            }
        )


@dataclass(frozen=True)
class IntegratedSummary:
    earned_min: int = 0
    lost_min: int = 0
    net_min: int = 0
    level: Optional[int] = None
    next_level_remaining_min: Optional[int] = None

    def to_dict(self) -> dict:
        return _compact(
            {
                "earnedMin": self.earned_min,
                "lostMin": self.lost_min,
                "netMin": self.net_min,
                "level": self.level,
                "nextLevelRemainingMin": self.next_level_remaining_min,
            }
        )


@dataclass(frozen=True)
class FloatingSuggestion:
    module_type: ModuleType
    remaining_min: int
    options: tuple[int, ...]

    def to_dict(self) -> dict:
        return _compact(
            {
                "moduleType": self.module_type,
                "remainingMin": self.remaining_min,
                "options": self.options,
            }
        )


@dataclass(frozen=True)
class TodaySummary:
    day_key: str
    integrated: IntegratedSummary
    modules: tuple[ModuleState, ...] = field(default_factory=tuple)
    floating_suggestion: Optional[FloatingSuggestion] = None

    def to_dict(self) -> dict:
        return _compact(
            {
                "dayKey": self.day_key,
                "integrated": self.integrated,
                "modules": self.modules,
                "floatingSuggestion": self.floating_suggestion,
            }
        )


@dataclass(frozen=True)
class WeeklyModuleReport:
    module_type: ModuleType
    earned_min: int = 0
    lost_min: int = 0
    net_min: int = 0
    action_count: int = 0
    focus_total_min: int = 0
    avg_interval_min: Optional[int] = None
    avg_session_min: Optional[int] = None

    def to_dict(self) -> dict:
        return _compact(
            {
                "moduleType": self.module_type,
                "earnedMin": self.earned_min,
                "lostMin": self.lost_min,
                "netMin": self.net_min,
                "avgIntervalMin": self.avg_interval_min,
                "actionCount": self.action_count,
                "focusTotalMin": self.focus_total_min,
                "avgSessionMin": self.avg_session_min,
            }
        )


@dataclass(frozen=True)
class WeeklyReport:
    week_start_day_key: str
    integrated: IntegratedSummary
    modules: tuple[WeeklyModuleReport, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return _compact(
            {
                "weekStartDayKey": self.week_start_day_key,
                "integrated": self.integrated,
                "modules": self.modules,
            }
        )
