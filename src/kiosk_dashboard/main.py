from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .engine import CalendarSyncEngine
from .scheduler import build_scheduler, build_sync_engine
from .settings import AppSettings, load_settings


def _get_settings(request: Request) -> AppSettings:
    return request.app.state.settings


def _get_engine(request: Request) -> CalendarSyncEngine:
    return request.app.state.calendar_engine


def _build_calendar_state_context(engine: CalendarSyncEngine) -> dict[str, Any]:
    state = engine.state
    return {
        "phase": state.phase.value,
        "error": state.error,
        "displayed_month": state.displayed_month.isoformat(),
        "event_count": len(state.events),
        "events": [event.model_dump(mode="json") for event in state.events],
    }


def _build_calendar_grid_context(engine: CalendarSyncEngine) -> dict[str, Any]:
    today = engine.today()
    days = engine.month_grid(today)
    week_events = engine.week_events(today)
    return {
        "today": today.isoformat(),
        "displayed_month": engine.displayed_month.isoformat(),
        "grid": [
            {
                "date": day.date.isoformat(),
                "is_current_month": day.is_current_month,
                "is_today": day.is_today,
                "event_ids": [event.id for event in day.events],
            }
            for day in days
        ],
        "week_events": [event.model_dump(mode="json") for event in week_events],
    }


@asynccontextmanager
async def lifespan(application: FastAPI):
    settings = load_settings()
    engine = build_sync_engine(settings)
    engine.start()
    scheduler = build_scheduler(settings, engine)
    scheduler.start()

    application.state.settings = settings
    application.state.calendar_engine = engine
    application.state.scheduler = scheduler
    application.state.started_at_utc = datetime.now(timezone.utc)

    try:
        yield
    finally:
        if scheduler.running:
            scheduler.shutdown(wait=False)
        engine.stop()


app = FastAPI(title="Kiosk Dashboard", version="0.1.0", lifespan=lifespan)


@app.get("/health", response_class=JSONResponse)
async def health(request: Request) -> JSONResponse:
    settings = _get_settings(request)
    engine = _get_engine(request)
    return JSONResponse(
        {
            "status": "ok",
            "service": "kiosk-dashboard",
            "environment": settings.env.dashboard_env,
            "timezone": settings.env.dashboard_timezone,
            "scheduler_running": request.app.state.scheduler.running,
            "calendar_phase": engine.phase.value,
            "calendar_error": engine.error,
            "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        }
    )


@app.get("/api/calendar", response_class=JSONResponse)
async def calendar_view(request: Request) -> JSONResponse:
    engine = _get_engine(request)
    return JSONResponse(
        {
            **_build_calendar_state_context(engine),
            **_build_calendar_grid_context(engine),
        }
    )


@app.post("/api/calendar/retry", response_class=JSONResponse)
async def calendar_retry(request: Request) -> JSONResponse:
    engine = _get_engine(request)
    accepted = await engine.retry()
    return JSONResponse(
        {
            "accepted": accepted,
            **_build_calendar_state_context(engine),
        },
        status_code=200 if accepted else 409,
    )


@app.post("/api/calendar/month/prev", response_class=JSONResponse)
async def calendar_prev_month(request: Request) -> JSONResponse:
    engine = _get_engine(request)
    engine.prev_month()
    return JSONResponse(_build_calendar_grid_context(engine))


@app.post("/api/calendar/month/next", response_class=JSONResponse)
async def calendar_next_month(request: Request) -> JSONResponse:
    engine = _get_engine(request)
    engine.next_month()
    return JSONResponse(_build_calendar_grid_context(engine))
