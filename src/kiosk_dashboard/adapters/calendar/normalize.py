from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timezone, tzinfo
from typing import Any, Iterable, Mapping

from ...domain.models import CalendarEvent, EventReminders, EventTime, EventType, ReminderOverride

PLACEHOLDER_SUMMARIES: dict[str, str] = {
    "event": "Untitled Event",
    "task": "Untitled Task",
    "reminder": "Untitled Reminder",
}


@dataclass(slots=True)
class _ResolvedTime:
    value: datetime
    all_day: bool


def _zone_name(zone: tzinfo) -> str:
    key = getattr(zone, "key", None)
    if isinstance(key, str) and key:
        return key
    return zone.tzname(None) or "UTC"


def _parse_timestamp(value: Any, reference_timezone: tzinfo) -> datetime | None:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=reference_timezone)
    try:
        return parsed.astimezone(reference_timezone)
    except OverflowError:
        return None


def _parse_all_day(value: Any, reference_timezone: tzinfo) -> datetime | None:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        parsed = date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None
    return datetime.combine(parsed, time.min, tzinfo=reference_timezone)


def _resolve_time(raw: Any, *, now: datetime, reference_timezone: tzinfo) -> _ResolvedTime:
    if not isinstance(raw, Mapping):
        return _ResolvedTime(value=now, all_day=False)

    timestamp = _parse_timestamp(raw.get("dateTime"), reference_timezone)
    if timestamp is not None:
        return _ResolvedTime(value=timestamp, all_day=False)

    all_day = _parse_all_day(raw.get("date"), reference_timezone)
    if all_day is not None:
        return _ResolvedTime(value=all_day, all_day=True)

    return _ResolvedTime(value=now, all_day=False)


def _optional_text(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    text = value.strip()
    return text or None


def _normalize_reminders(raw: Any) -> EventReminders | None:
    if not isinstance(raw, Mapping):
        return None

    overrides: list[ReminderOverride] = []
    raw_overrides = raw.get("overrides")
    if isinstance(raw_overrides, list):
        for item in raw_overrides:
            if not isinstance(item, Mapping):
                continue
            method = _optional_text(item.get("method"))
            try:
                minutes = int(item.get("minutes"))
            except (TypeError, ValueError, OverflowError):
                continue
            if method is None or minutes < 0:
                continue
            overrides.append(ReminderOverride(method=method, minutes=minutes))

    return EventReminders(use_default=bool(raw.get("useDefault", False)), overrides=tuple(overrides))


def normalize_item(
    raw: Any,
    *,
    index: int = 0,
    event_type: EventType = "event",
    now: datetime,
    reference_timezone: tzinfo = timezone.utc,
) -> CalendarEvent:
    item: Mapping[str, Any] = raw if isinstance(raw, Mapping) else {}
    zone_name = _zone_name(reference_timezone)
    reference_now = now.astimezone(reference_timezone)

    start = _resolve_time(item.get("start"), now=reference_now, reference_timezone=reference_timezone)
    end = _resolve_time(item.get("end"), now=reference_now, reference_timezone=reference_timezone)

    raw_id = item.get("id")
    event_id = str(raw_id).strip() if raw_id is not None else ""

    return CalendarEvent(
        id=event_id or f"{event_type}-{index}",
        summary=_optional_text(item.get("summary")) or PLACEHOLDER_SUMMARIES[event_type],
        start=EventTime(timestamp=start.value, time_zone=zone_name),
        end=EventTime(timestamp=end.value, time_zone=zone_name),
        location=_optional_text(item.get("location")),
        event_type=event_type,
        status=_optional_text(item.get("status")),
        reminders=_normalize_reminders(item.get("reminders")),
        all_day=start.all_day,
    )


def normalize(
    raw_items: Iterable[Any] | None,
    *,
    event_type: EventType = "event",
    now: datetime | None = None,
    reference_timezone: tzinfo = timezone.utc,
) -> list[CalendarEvent]:
    """Map raw provider records onto ``CalendarEvent``.

    Never raises for malformed records. Missing titles get a placeholder and
    unreadable times fall back to ``now``.

    Every timestamp is expressed in ``reference_timezone`` whatever zone the
    provider reported.
    """
    reference_now = now or datetime.now(timezone.utc)
    if reference_now.tzinfo is None:
        reference_now = reference_now.replace(tzinfo=timezone.utc)

    return [
        normalize_item(
            raw,
            index=index,
            event_type=event_type,
            now=reference_now,
            reference_timezone=reference_timezone,
        )
        for index, raw in enumerate(raw_items or ())
    ]
