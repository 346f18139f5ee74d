"""Ingress validation for new events and settings updates.

The calculator assumes well-typed input; these schemas are what callers run
before anything is stored.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from interval_engine.constants import ALLOWED_DELAY_MINUTES, MAX_FUTURE_MINUTES, MAX_TARGET_INTERVAL_MIN
from interval_engine.date_utils import ensure_comparable, get_local_day_key
from interval_engine.schema import (
    ActionKind,
    AdjustmentKind,
    EngineSettings,
    EventType,
    IntervalEvent,
    ModuleSetting,
    ModuleType,
    ReasonLabel,
    TriggerContext,
)


class ModuleNotEnabledError(ValueError):
    """Raised when an event targets a module that is missing or disabled."""

    def __init__(self, module_type: ModuleType):
        super().__init__(f"Module {module_type.value} is not enabled")
        self.module_type = module_type


class _Input(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ActionEventInput(_Input):
    module_type: ModuleType = Field(alias="moduleType")
    timestamp: Optional[datetime] = None
    reason_label: Optional[ReasonLabel] = Field(default=None, alias="reasonLabel")
    action_kind: ActionKind = Field(default=ActionKind.CONSUME_OR_OPEN, alias="actionKind")
    payload: Optional[dict[str, Any]] = None


class DelayEventInput(_Input):
    module_type: ModuleType = Field(alias="moduleType")
    delay_minutes: int = Field(alias="delayMinutes")
    trigger_context: TriggerContext = Field(alias="triggerContext")
    timestamp: Optional[datetime] = None

    @field_validator("delay_minutes", mode="before")
    @classmethod
    def _allowed_delay(cls, value: Union[int, str]) -> int:
        if isinstance(value, bool):
            raise ValueError("delayMinutes must be a number")
        if isinstance(value, str) and value.strip().isdigit():
            value = int(value.strip())
        if value not in ALLOWED_DELAY_MINUTES:
            raise ValueError(f"delayMinutes must be one of {list(ALLOWED_DELAY_MINUTES)}")
        return value


class AdjustmentEventInput(_Input):
    module_type: ModuleType = Field(alias="moduleType")
    adjustment_kind: AdjustmentKind = Field(alias="adjustmentKind")
    payload: Optional[dict[str, Any]] = None


class ModuleConfigInput(_Input):
    daily_goal_count: Optional[int] = Field(default=None, alias="dailyGoalCount", gt=0)
    default_session_min: Optional[int] = Field(default=None, alias="defaultSessionMin", gt=0)


class UpdateModuleSettingsInput(_Input):
    module_type: ModuleType = Field(alias="moduleType")
    enabled: Optional[bool] = None
    target_interval_min: Optional[int] = Field(default=None, alias="targetIntervalMin", ge=1, le=MAX_TARGET_INTERVAL_MIN)
    config: Optional[ModuleConfigInput] = None


class UpdateUserSettingsInput(_Input):
    day_anchor_minutes: Optional[int] = Field(default=None, alias="dayAnchorMinutes", ge=0, le=1439)
    modules: Optional[list[UpdateModuleSettingsInput]] = None


def validate_timestamp_not_too_far_in_future(
    timestamp: Optional[datetime],
    now: datetime,
    max_future_minutes: int = MAX_FUTURE_MINUTES,
) -> None:
    """Reject client timestamps more than ``max_future_minutes`` ahead of ``now``."""

    if timestamp is None:
        return
    ensure_comparable(timestamp, now)
    if timestamp - now > timedelta(minutes=max_future_minutes):
        raise ValueError(f"Timestamp cannot be more than {max_future_minutes} minutes in the future")


def ensure_module_enabled(settings: EngineSettings, module_type: ModuleType) -> ModuleSetting:
    setting = settings.setting_for(module_type)
    if setting is None or not setting.enabled:
        raise ModuleNotEnabledError(module_type)
    return setting


class EventRecord(_Input):
    """Stored/exported event shape as it arrives from files or the database."""

    id: str = Field(min_length=1)
    user_id: str = Field(alias="userId")
    module_type: ModuleType = Field(alias="moduleType")
    event_type: EventType = Field(alias="eventType")
    timestamp: datetime
    local_day_key: Optional[str] = Field(default=None, alias="localDayKey", pattern=r"^\d{4}-\d{2}-\d{2}$")
    action_kind: Optional[ActionKind] = Field(default=None, alias="actionKind")
    delay_minutes: Optional[int] = Field(default=None, alias="delayMinutes", gt=0)
    reason_label: Optional[ReasonLabel] = Field(default=None, alias="reasonLabel")
    trigger_context: Optional[TriggerContext] = Field(default=None, alias="triggerContext")
    payload: Optional[dict[str, Any]] = None

    def to_event(self, day_anchor_minutes: int) -> IntervalEvent:
        """Build the event; a missing day key is stamped from ``day_anchor_minutes``."""

        return IntervalEvent(
            id=self.id,
            user_id=self.user_id,
            module_type=self.module_type,
            event_type=self.event_type,
            timestamp=self.timestamp,
            local_day_key=self.local_day_key or get_local_day_key(self.timestamp, day_anchor_minutes),
            action_kind=self.action_kind,
            delay_minutes=self.delay_minutes,
            reason_label=self.reason_label,
            trigger_context=self.trigger_context,
            payload=self.payload,
        )
