from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from .session import SessionHandle


class CalendarSyncError(RuntimeError):
    """Raised when a calendar sync stage cannot be completed."""

    retryable = True


class ConfigError(CalendarSyncError):
    """Raised when required calendar configuration is missing."""

    retryable = False


class LibraryLoadError(CalendarSyncError):
    """Raised when the calendar client library cannot be loaded."""


class AuthError(CalendarSyncError):
    """Raised when the calendar session cannot be signed in."""


class FetchError(CalendarSyncError):
    """Raised when events cannot be listed from the calendar provider."""


class CalendarSource(Protocol):
    async def list_events(self, session: SessionHandle, now: datetime) -> list[dict[str, Any]]:
        """Return raw provider event records starting at or after ``now``."""

    async def list_tasks(self, session: SessionHandle, now: datetime) -> list[dict[str, Any]]:
        """Return raw task records reshaped as provider event records."""
