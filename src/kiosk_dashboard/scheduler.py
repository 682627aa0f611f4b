from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from .adapters.calendar import DEFAULT_BOOTSTRAPPER, GoogleCalendarSource, SessionAuthenticator
from .engine import CalendarSyncEngine
from .settings import AppSettings

LOGGER = logging.getLogger(__name__)

CALENDAR_SYNC_JOB_ID = "calendar_sync_job"


def build_sync_engine(settings: AppSettings) -> CalendarSyncEngine:
    calendar_settings = settings.yaml.calendar
    authenticator = SessionAuthenticator(
        bootstrapper=DEFAULT_BOOTSTRAPPER,
        token_path=settings.token_path,
        client_secret=settings.env.google_client_secret,
    )
    source = GoogleCalendarSource(
        max_results=calendar_settings.max_results,
        task_list=calendar_settings.task_list,
    )
    return CalendarSyncEngine(
        settings.session_config(),
        bootstrapper=DEFAULT_BOOTSTRAPPER,
        authenticator=authenticator,
        source=source,
        include_tasks=calendar_settings.include_tasks,
        reference_timezone=settings.reference_timezone,
        week_start=calendar_settings.week_start_weekday,
    )


async def run_calendar_sync_job(engine: CalendarSyncEngine) -> None:
    try:
        await engine.tick()
    except Exception:  # pragma: no cover - defensive fallback
        LOGGER.exception("Calendar sync job failed")


def build_scheduler(settings: AppSettings, engine: CalendarSyncEngine) -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler(timezone=settings.timezone)
    scheduler.add_job(
        run_calendar_sync_job,
        "interval",
        kwargs={"engine": engine},
        minutes=settings.yaml.refresh.interval_minutes,
        jitter=settings.yaml.refresh.jitter_seconds or None,
        id=CALENDAR_SYNC_JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=120,
    )
    return scheduler
