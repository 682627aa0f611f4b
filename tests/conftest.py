"""Shared fixtures for calendar engine tests.

No test talks to Google: the client library, the session and the provider
source are replaced with in-memory fakes.
"""

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from google.auth.exceptions import RefreshError

from kiosk_dashboard.adapters.calendar.bootstrap import ClientLibrary
from kiosk_dashboard.adapters.calendar.session import (
    CALENDAR_READONLY_SCOPE,
    SessionConfig,
    SessionHandle,
)
from kiosk_dashboard.engine import CalendarSyncEngine

FIXED_NOW = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)

VALID_CONFIG = SessionConfig(
    api_key="test-api-key",
    client_id="test-client-id.apps.googleusercontent.com",
    calendar_id="family@example.com",
    scopes=(CALENDAR_READONLY_SCOPE,),
)


class FakeHttpError(Exception):
    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


def make_raw_event(
    event_id: str = "evt-1",
    summary: str | None = "Team Meeting",
    start: str = "2024-03-10T14:00:00Z",
    end: str = "2024-03-10T15:00:00Z",
    **extra,
) -> dict:
    item = {
        "id": event_id,
        "start": {"dateTime": start, "timeZone": "America/New_York"},
        "end": {"dateTime": end, "timeZone": "America/New_York"},
        **extra,
    }
    if summary is not None:
        item["summary"] = summary
    return item


def make_credentials(valid: bool = True, refresh_token: str | None = None) -> SimpleNamespace:
    return SimpleNamespace(
        valid=valid,
        expired=not valid,
        refresh_token=refresh_token,
        refresh=MagicMock(),
        to_json=MagicMock(return_value='{"token": "abc"}'),
    )


def make_session(config: SessionConfig = VALID_CONFIG, **credential_kwargs) -> SessionHandle:
    return SessionHandle(
        config=config,
        credentials=make_credentials(**credential_kwargs),
        calendar_service=MagicMock(),
        tasks_service=MagicMock(),
        http_error=FakeHttpError,
    )


@pytest.fixture
def fake_library() -> ClientLibrary:
    return ClientLibrary(
        build=MagicMock(name="build"),
        credentials_cls=MagicMock(name="Credentials"),
        installed_app_flow=MagicMock(name="InstalledAppFlow"),
        auth_request=MagicMock(name="Request"),
        http_error=FakeHttpError,
        refresh_error=RefreshError,
    )


@pytest.fixture
def bootstrapper(fake_library):
    mock = AsyncMock()
    mock.ensure_library_loaded = AsyncMock(return_value=fake_library)
    return mock


@pytest.fixture
def session() -> SessionHandle:
    return make_session()


@pytest.fixture
def authenticator(session):
    mock = AsyncMock()
    mock.init_session = AsyncMock(return_value=session)
    return mock


@pytest.fixture
def source():
    mock = AsyncMock()
    mock.list_events = AsyncMock(
        return_value=[
            make_raw_event("evt-1", "Dentist", "2024-03-10T09:00:00Z", "2024-03-10T10:00:00Z"),
            make_raw_event("evt-2", "Book club", "2024-03-20T18:00:00Z", "2024-03-20T20:00:00Z"),
        ]
    )
    mock.list_tasks = AsyncMock(
        return_value=[{"id": "task-1", "summary": "Pay rent", "start": {"date": "2024-03-12"}}]
    )
    return mock


@pytest.fixture
def make_engine(bootstrapper, authenticator, source):
    def _make(config: SessionConfig = VALID_CONFIG, **kwargs) -> CalendarSyncEngine:
        kwargs.setdefault("clock", lambda: FIXED_NOW)
        return CalendarSyncEngine(
            config,
            bootstrapper=bootstrapper,
            authenticator=authenticator,
            source=source,
            **kwargs,
        )

    return _make
