"""Calendar sync engine.

Drives one sync cycle at a time through bootstrap, sign-in, fetch and
normalization, and keeps the last successfully synchronized event set for the
dashboard to read.

## Phases

    idle -> bootstrapping -> authenticating -> fetching -> ready
                 |                 |               |
                 +-------> error <-+---------------+
                             |
                             +-> retrying -> bootstrapping

- ``start()`` leaves ``idle`` and runs the first cycle.
- ``retry()`` and ``tick()`` re-run the whole pipeline from ``error``.
- ``tick()`` from ``ready`` goes straight to ``fetching`` while the session
  is signed in, and back to ``authenticating`` when it is not.
- Configuration errors are never retried by ``tick()``.

A failed cycle keeps the previous events. After ``stop()`` nothing mutates the
engine state, even when an outstanding provider call completes later.
"""

from __future__ import annotations

import asyncio
import logging
from calendar import SUNDAY
from datetime import date, datetime, timezone, tzinfo
from typing import Callable

from .adapters.calendar.base import (
    AuthError,
    CalendarSource,
    CalendarSyncError,
    FetchError,
    LibraryLoadError,
)
from .adapters.calendar.bootstrap import ClientLibraryBootstrapper
from .adapters.calendar.normalize import normalize
from .adapters.calendar.session import SessionAuthenticator, SessionConfig, SessionHandle, validate_session_config
from .domain.grid import build_month_grid, current_week_events, first_of_month, shift_month
from .domain.models import CalendarDay, CalendarEvent, SyncPhase, SyncState

LOGGER = logging.getLogger(__name__)

_STAGE_ERRORS: dict[SyncPhase, tuple[type[CalendarSyncError], str]] = {
    SyncPhase.BOOTSTRAPPING: (LibraryLoadError, "Unable to load calendar client library"),
    SyncPhase.AUTHENTICATING: (AuthError, "Failed to initialize calendar"),
    SyncPhase.FETCHING: (FetchError, "Unable to load calendar events"),
}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CalendarSyncEngine:
    def __init__(
        self,
        config: SessionConfig,
        *,
        bootstrapper: ClientLibraryBootstrapper,
        authenticator: SessionAuthenticator,
        source: CalendarSource,
        include_tasks: bool = True,
        reference_timezone: tzinfo = timezone.utc,
        week_start: int = SUNDAY,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._config = config
        self._bootstrapper = bootstrapper
        self._authenticator = authenticator
        self._source = source
        self._include_tasks = include_tasks
        self._reference_timezone = reference_timezone
        self._week_start = week_start
        self._clock = clock

        self._phase = SyncPhase.IDLE
        self._events: tuple[CalendarEvent, ...] = ()
        self._error: str | None = None
        self._error_retryable = True
        self._displayed_month = first_of_month(self.today())
        self._session: SessionHandle | None = None
        self._in_flight = False
        self._closed = False
        self._start_task: asyncio.Task[bool] | None = None

    @property
    def phase(self) -> SyncPhase:
        return self._phase

    @property
    def events(self) -> tuple[CalendarEvent, ...]:
        return self._events

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def displayed_month(self) -> date:
        return self._displayed_month

    @property
    def is_syncing(self) -> bool:
        return self._in_flight

    @property
    def is_stopped(self) -> bool:
        return self._closed

    @property
    def state(self) -> SyncState:
        return SyncState(
            phase=self._phase,
            events=self._events,
            error=self._error,
            displayed_month=self._displayed_month,
        )

    def today(self) -> date:
        return self._clock().astimezone(self._reference_timezone).date()

    def start(self) -> asyncio.Task[bool]:
        """Run the first sync cycle in the background and return its task."""
        if self._start_task is None:
            loop = asyncio.get_running_loop()
            self._start_task = loop.create_task(self._run_cycle(SyncPhase.BOOTSTRAPPING))
        return self._start_task

    def stop(self) -> None:
        self._closed = True
        if self._start_task is not None and not self._start_task.done():
            self._start_task.cancel()
        LOGGER.info("Calendar sync engine stopped")

    async def retry(self) -> bool:
        """Re-run the full pipeline.

        Returns False without doing anything when a cycle is already running,
        the engine is stopped, or it has not reached ``ready`` or ``error`` yet.
        """
        if self._closed or self._in_flight:
            return False
        if self._phase not in (SyncPhase.READY, SyncPhase.ERROR):
            return False

        if self._phase is SyncPhase.ERROR:
            self._transition(SyncPhase.RETRYING)
        await self._run_cycle(SyncPhase.BOOTSTRAPPING)
        return True

    async def tick(self) -> None:
        if self._closed:
            return
        if self._in_flight:
            LOGGER.debug("Calendar sync tick skipped, a cycle is still running")
            return

        if self._phase is SyncPhase.READY:
            if self._session is not None and self._session.is_signed_in():
                await self._run_cycle(SyncPhase.FETCHING)
            else:
                LOGGER.info("Calendar session signed out, signing in again")
                await self._run_cycle(SyncPhase.AUTHENTICATING)
            return

        if self._phase is SyncPhase.ERROR:
            if not self._error_retryable:
                LOGGER.debug("Calendar sync tick skipped, configuration must be fixed first")
                return
            self._transition(SyncPhase.RETRYING)
            await self._run_cycle(SyncPhase.BOOTSTRAPPING)

    def prev_month(self) -> date:
        if not self._closed:
            self._displayed_month = shift_month(self._displayed_month, -1)
        return self._displayed_month

    def next_month(self) -> date:
        if not self._closed:
            self._displayed_month = shift_month(self._displayed_month, 1)
        return self._displayed_month

    def month_grid(self, today: date | None = None) -> list[CalendarDay]:
        return build_month_grid(
            self._displayed_month,
            self._events,
            today or self.today(),
            week_start=self._week_start,
        )

    def week_events(self, today: date | None = None) -> list[CalendarEvent]:
        return current_week_events(self._events, today or self.today(), week_start=self._week_start)

    async def _run_cycle(self, entry: SyncPhase) -> bool:
        self._in_flight = True
        stage = entry
        try:
            if stage is SyncPhase.BOOTSTRAPPING:
                self._transition(SyncPhase.BOOTSTRAPPING)
                validate_session_config(self._config)
                await self._bootstrapper.ensure_library_loaded()
                stage = SyncPhase.AUTHENTICATING

            if stage is SyncPhase.AUTHENTICATING:
                self._transition(SyncPhase.AUTHENTICATING)
                session = await self._authenticator.init_session(self._config)
                if self._closed:
                    return False
                self._session = session
                stage = SyncPhase.FETCHING

            self._transition(SyncPhase.FETCHING)
            events = await self._fetch(self._session)
        except CalendarSyncError as exc:
            self._fail(exc, stage)
            return False
        except Exception as exc:
            LOGGER.exception("Unexpected calendar sync failure while %s", stage.value)
            error_cls, prefix = _STAGE_ERRORS[stage]
            wrapped = error_cls(f"{prefix}: {exc}")
            wrapped.__cause__ = exc
            self._fail(wrapped, stage)
            return False
        finally:
            self._in_flight = False

        return self._publish(events)

    async def _fetch(self, session: SessionHandle | None) -> list[CalendarEvent]:
        if session is None:
            raise FetchError("Unable to load calendar events: calendar session is not initialized")

        now = self._clock()
        raw_events = await self._source.list_events(session, now)
        events = normalize(
            raw_events,
            event_type="event",
            now=now,
            reference_timezone=self._reference_timezone,
        )

        if self._include_tasks:
            try:
                raw_tasks = await self._source.list_tasks(session, now)
            except CalendarSyncError as exc:
                LOGGER.warning("Tasks unavailable, showing calendar events only: %s", exc)
            except Exception:  # pragma: no cover - defensive fallback
                LOGGER.exception("Tasks unavailable, showing calendar events only")
            else:
                events.extend(
                    normalize(
                        raw_tasks,
                        event_type="task",
                        now=now,
                        reference_timezone=self._reference_timezone,
                    )
                )
        return events

    def _publish(self, events: list[CalendarEvent]) -> bool:
        if self._closed:
            return False
        self._events = tuple(events)
        self._error = None
        self._error_retryable = True
        self._transition(SyncPhase.READY)
        LOGGER.info("Calendar sync published %s events", len(self._events))
        return True

    def _fail(self, exc: CalendarSyncError, stage: SyncPhase) -> None:
        if self._closed:
            return
        self._error = str(exc)
        self._error_retryable = exc.retryable
        LOGGER.warning("Calendar sync failed while %s: %s", stage.value, exc, exc_info=exc)
        self._transition(SyncPhase.ERROR)

    def _transition(self, phase: SyncPhase) -> None:
        if self._closed or phase is self._phase:
            return
        LOGGER.info("Calendar sync phase %s -> %s", self._phase.value, phase.value)
        self._phase = phase
