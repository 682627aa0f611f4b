"""Month-grid and current-week derivations over synchronized events.

Events bind to days by the calendar date of their start timestamp. The
normalizer has already converted every timestamp into the reference zone, so
no timezone arithmetic happens here.
"""

from __future__ import annotations

from calendar import SUNDAY
from datetime import date, timedelta
from typing import Iterable

from .models import CalendarDay, CalendarEvent

GRID_DAY_COUNT = 42


def first_of_month(value: date) -> date:
    return value.replace(day=1)


def shift_month(month: date, delta: int) -> date:
    index = month.year * 12 + (month.month - 1) + delta
    year, month_index = divmod(index, 12)
    return date(year, month_index + 1, 1)


def week_start_for(value: date, week_start: int = SUNDAY) -> date:
    offset = (value.weekday() - week_start) % 7
    return value - timedelta(days=offset)


def _events_by_start_date(events: Iterable[CalendarEvent]) -> dict[date, list[CalendarEvent]]:
    grouped: dict[date, list[CalendarEvent]] = {}
    for event in events:
        grouped.setdefault(event.start_date, []).append(event)
    return grouped


def build_month_grid(
    displayed_month: date,
    events: Iterable[CalendarEvent],
    today: date,
    *,
    week_start: int = SUNDAY,
) -> list[CalendarDay]:
    anchor = week_start_for(first_of_month(displayed_month), week_start)
    grouped = _events_by_start_date(events)

    days: list[CalendarDay] = []
    for offset in range(GRID_DAY_COUNT):
        current = anchor + timedelta(days=offset)
        days.append(
            CalendarDay(
                date=current,
                events=tuple(grouped.get(current, ())),
                is_current_month=(current.year, current.month)
                == (displayed_month.year, displayed_month.month),
                is_today=current == today,
            )
        )
    return days


def current_week_events(
    events: Iterable[CalendarEvent],
    today: date,
    *,
    week_start: int = SUNDAY,
) -> list[CalendarEvent]:
    first_day = week_start_for(today, week_start)
    last_day = first_day + timedelta(days=6)
    return [event for event in events if first_day <= event.start_date <= last_day]
