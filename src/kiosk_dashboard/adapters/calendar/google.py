"""Google Calendar and Google Tasks list calls.

Both calls return raw, event-shaped records for the normalizer. Task items
are reshaped so a task's ``title`` becomes ``summary`` and its ``due`` date
becomes an all-day ``start``/``end``.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

from .base import FetchError
from .session import SessionHandle

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_RESULTS = 10
DEFAULT_TASK_LIST = "@default"


def _http_error_reason(exc: Exception) -> str:
    reason = getattr(exc, "reason", None)
    if isinstance(reason, str) and reason.strip():
        return reason.strip()
    return str(exc) or exc.__class__.__name__


def _start_of_utc_day(now: datetime) -> datetime:
    # Due dates are stored as midnight UTC, so today's tasks sit before ``now``.
    return now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)


def _task_as_event_item(task: dict[str, Any]) -> dict[str, Any]:
    item: dict[str, Any] = {
        "id": task.get("id"),
        "summary": task.get("title"),
        "status": task.get("status"),
    }
    due = task.get("due")
    if isinstance(due, str) and due.strip():
        # Tasks only carry a due date; the time portion is always midnight UTC.
        item["start"] = {"date": due.strip()[:10]}
        item["end"] = {"date": due.strip()[:10]}
    return item


class GoogleCalendarSource:
    def __init__(
        self,
        *,
        max_results: int = DEFAULT_MAX_RESULTS,
        task_list: str = DEFAULT_TASK_LIST,
    ) -> None:
        self._max_results = max_results
        self._task_list = task_list

    async def list_events(self, session: SessionHandle, now: datetime) -> list[dict[str, Any]]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._list_events_sync, session, now)

    async def list_tasks(self, session: SessionHandle, now: datetime) -> list[dict[str, Any]]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._list_tasks_sync, session, now)

    def _list_events_sync(self, session: SessionHandle, now: datetime) -> list[dict[str, Any]]:
        try:
            result = (
                session.calendar_service.events()
                .list(
                    calendarId=session.config.calendar_id,
                    timeMin=now.isoformat(),
                    maxResults=self._max_results,
                    singleEvents=True,
                    orderBy="startTime",
                )
                .execute()
            )
        except session.http_error as exc:
            LOGGER.warning("Calendar events request failed", exc_info=True)
            raise FetchError(f"Calendar error: {_http_error_reason(exc)}") from exc
        except Exception as exc:
            LOGGER.warning("Calendar events request failed", exc_info=True)
            raise FetchError(f"Unable to load calendar events: {exc}") from exc

        if not isinstance(result, dict) or not isinstance(result.get("items"), list):
            raise FetchError("Unable to load calendar events: no events returned from calendar API")

        items = [item for item in result["items"] if isinstance(item, dict)]
        LOGGER.debug("Calendar events request returned %s items", len(items))
        return items

    def _list_tasks_sync(self, session: SessionHandle, now: datetime) -> list[dict[str, Any]]:
        if session.tasks_service is None:
            raise FetchError("Task list is not available for this session")

        try:
            result = (
                session.tasks_service.tasks()
                .list(
                    tasklist=self._task_list,
                    dueMin=_start_of_utc_day(now).isoformat(),
                    showCompleted=False,
                    maxResults=self._max_results,
                )
                .execute()
            )
        except session.http_error as exc:
            raise FetchError(f"Task list error: {_http_error_reason(exc)}") from exc
        except Exception as exc:
            raise FetchError(f"Unable to load tasks: {exc}") from exc

        # The Tasks API omits "items" entirely when the list is empty.
        raw_items = result.get("items") if isinstance(result, dict) else None
        if raw_items is None:
            return []
        if not isinstance(raw_items, list):
            raise FetchError("Unable to load tasks: unexpected task list response")
        return [_task_as_event_item(task) for task in raw_items if isinstance(task, dict)]
