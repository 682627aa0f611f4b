from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable

from .base import LibraryLoadError

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ClientLibrary:
    """Handles to the Google client stack used by the calendar session."""

    build: Callable[..., Any]
    credentials_cls: Any
    installed_app_flow: Any
    auth_request: Callable[[], Any]
    http_error: type[Exception]
    refresh_error: type[Exception]


def import_google_client_library() -> ClientLibrary:
    from google.auth.exceptions import RefreshError
    from google.auth.transport.requests import Request
    from google.oauth2.credentials import Credentials
    from google_auth_oauthlib.flow import InstalledAppFlow
    from googleapiclient.discovery import build
    from googleapiclient.errors import HttpError

    return ClientLibrary(
        build=build,
        credentials_cls=Credentials,
        installed_app_flow=InstalledAppFlow,
        auth_request=Request,
        http_error=HttpError,
        refresh_error=RefreshError,
    )


class ClientLibraryBootstrapper:
    """Loads the calendar client library once and shares it across callers.

    Concurrent ``ensure_library_loaded`` calls made while a load is running
    await the same load. A failed load is not remembered, so the next sync
    cycle attempts it again.
    """

    def __init__(self, loader: Callable[[], ClientLibrary] = import_google_client_library) -> None:
        self._loader = loader
        self._library: ClientLibrary | None = None
        self._lock = asyncio.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._library is not None

    async def ensure_library_loaded(self) -> ClientLibrary:
        if self._library is not None:
            return self._library

        async with self._lock:
            if self._library is not None:
                return self._library

            loop = asyncio.get_running_loop()
            try:
                library = await loop.run_in_executor(None, self._loader)
            except Exception as exc:
                LOGGER.warning("Calendar client library failed to load", exc_info=True)
                raise LibraryLoadError("Unable to load calendar client library") from exc

            self._library = library
            LOGGER.info("Calendar client library loaded")
            return library


DEFAULT_BOOTSTRAPPER = ClientLibraryBootstrapper()
