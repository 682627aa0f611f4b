from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

EventType = Literal["event", "task", "reminder"]


class SyncPhase(str, Enum):
    IDLE = "idle"
    BOOTSTRAPPING = "bootstrapping"
    AUTHENTICATING = "authenticating"
    FETCHING = "fetching"
    READY = "ready"
    ERROR = "error"
    RETRYING = "retrying"


class EventTime(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    timestamp: datetime
    time_zone: str


class ReminderOverride(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    method: str
    minutes: int = Field(ge=0)


class EventReminders(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    use_default: bool = False
    overrides: tuple[ReminderOverride, ...] = ()


class CalendarEvent(BaseModel):
    """A provider event or task normalized for the calendar widget.

    ``start`` is not checked against ``end``; malformed provider ranges are
    kept as delivered.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    summary: str
    start: EventTime
    end: EventTime
    location: str | None = None
    event_type: EventType = "event"
    status: str | None = None
    reminders: EventReminders | None = None
    all_day: bool = False

    @field_validator("id", "summary")
    @classmethod
    def validate_non_empty_text(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("calendar event id and summary must not be empty")
        return text

    @property
    def start_date(self) -> date:
        return self.start.timestamp.date()


class CalendarDay(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: date
    events: tuple[CalendarEvent, ...] = ()
    is_current_month: bool
    is_today: bool


class SyncState(BaseModel):
    model_config = ConfigDict(frozen=True)

    phase: SyncPhase
    events: tuple[CalendarEvent, ...] = ()
    error: str | None = None
    displayed_month: date
