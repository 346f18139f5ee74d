"""Schemas for the structured payloads carried by focus session events."""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import BaseModel, Field, StrictInt, ValidationError

from interval_engine.schema import IntervalEvent, SessionEndReason

log = logging.getLogger(__name__)


class SessionStartPayload(BaseModel):
    planned_minutes: StrictInt = Field(alias="plannedMinutes", gt=0)


class SessionEndPayload(BaseModel):
    actual_minutes: StrictInt = Field(alias="actualMinutes", ge=0)
    end_reason: SessionEndReason = Field(alias="endReason")


def parse_session_start(event: IntervalEvent) -> Optional[SessionStartPayload]:
    try:
        return SessionStartPayload.model_validate(event.payload or {})
    except ValidationError as exc:
        log.warning("[payload] session start %s has invalid payload: %s", event.id, exc.errors())
        return None


def parse_session_end(event: IntervalEvent) -> Optional[SessionEndPayload]:
    """Validate a SESSION_END payload; malformed payloads yield ``None``.

    A malformed payload is tolerated (it simply counts as zero focus minutes)
    but is logged so bad data stays visible.
    """

    try:
        return SessionEndPayload.model_validate(event.payload or {})
    except ValidationError as exc:
        log.warning("[payload] session end %s has invalid payload: %s", event.id, exc.errors())
        return None
