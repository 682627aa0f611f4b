from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .base import AuthError, ConfigError
from .bootstrap import DEFAULT_BOOTSTRAPPER, ClientLibrary, ClientLibraryBootstrapper

LOGGER = logging.getLogger(__name__)

CALENDAR_READONLY_SCOPE = "https://www.googleapis.com/auth/calendar.readonly"
TASKS_READONLY_SCOPE = "https://www.googleapis.com/auth/tasks.readonly"
GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"

REQUIRED_CONFIG_FIELDS = ("api_key", "client_id", "calendar_id", "scopes")


@dataclass(frozen=True, slots=True)
class SessionConfig:
    api_key: str = ""
    client_id: str = ""
    calendar_id: str = ""
    scopes: tuple[str, ...] = (CALENDAR_READONLY_SCOPE,)


def validate_session_config(config: SessionConfig) -> None:
    for field_name in REQUIRED_CONFIG_FIELDS:
        value = getattr(config, field_name)
        if isinstance(value, str):
            missing = not value.strip()
        else:
            missing = not any(isinstance(scope, str) and scope.strip() for scope in value or ())
        if missing:
            raise ConfigError(f"Missing calendar configuration: {field_name}")


@dataclass(slots=True)
class SessionHandle:
    """Authorized access to the calendar provider, reused across sync cycles."""

    config: SessionConfig
    credentials: Any
    calendar_service: Any
    tasks_service: Any | None = None
    http_error: type[Exception] = field(default=Exception)

    def is_signed_in(self) -> bool:
        # An expired token counts as signed out until a sign-in refreshes it.
        return self.credentials is not None and bool(getattr(self.credentials, "valid", False))


class SessionAuthenticator:
    def __init__(
        self,
        *,
        bootstrapper: ClientLibraryBootstrapper = DEFAULT_BOOTSTRAPPER,
        token_path: Path | None = None,
        client_secret: str = "",
    ) -> None:
        self._bootstrapper = bootstrapper
        self._token_path = Path(token_path) if token_path is not None else None
        self._client_secret = client_secret
        self._handle: SessionHandle | None = None

    @property
    def handle(self) -> SessionHandle | None:
        return self._handle

    async def init_session(self, config: SessionConfig) -> SessionHandle:
        validate_session_config(config)

        current = self._handle
        if current is not None and current.config == config and current.is_signed_in():
            return current

        library = await self._bootstrapper.ensure_library_loaded()
        loop = asyncio.get_running_loop()

        try:
            credentials = await loop.run_in_executor(None, self._sign_in, library, config)
        except AuthError:
            raise
        except Exception as exc:
            LOGGER.warning("Calendar sign-in failed", exc_info=True)
            raise AuthError(f"Calendar sign-in failed: {exc}") from exc

        try:
            calendar_service = await loop.run_in_executor(
                None, self._build_calendar_service, library, config, credentials
            )
        except Exception as exc:
            LOGGER.warning("Calendar client could not be initialized", exc_info=True)
            raise AuthError(f"Failed to initialize calendar: {exc}") from exc

        tasks_service = None
        if TASKS_READONLY_SCOPE in config.scopes:
            try:
                tasks_service = await loop.run_in_executor(
                    None, self._build_tasks_service, library, credentials
                )
            except Exception:
                LOGGER.warning("Tasks client unavailable, continuing without tasks", exc_info=True)

        self._handle = SessionHandle(
            config=config,
            credentials=credentials,
            calendar_service=calendar_service,
            tasks_service=tasks_service,
            http_error=library.http_error,
        )
        LOGGER.info("Calendar session ready for calendar '%s'", config.calendar_id)
        return self._handle

    def _client_config(self, config: SessionConfig) -> dict[str, Any]:
        return {
            "installed": {
                "client_id": config.client_id,
                "client_secret": self._client_secret,
                "auth_uri": GOOGLE_AUTH_URI,
                "token_uri": GOOGLE_TOKEN_URI,
                "redirect_uris": ["http://localhost"],
            }
        }

    def _load_stored_credentials(self, library: ClientLibrary, scopes: list[str]) -> Any | None:
        if self._token_path is None or not self._token_path.is_file():
            return None
        try:
            return library.credentials_cls.from_authorized_user_file(str(self._token_path), scopes)
        except (OSError, ValueError):
            LOGGER.warning("Stored calendar token at %s is unreadable", self._token_path, exc_info=True)
            return None

    def _store_credentials(self, credentials: Any) -> None:
        if self._token_path is None:
            return
        try:
            self._token_path.parent.mkdir(parents=True, exist_ok=True)
            self._token_path.write_text(credentials.to_json(), encoding="utf-8")
        except OSError:
            LOGGER.warning("Unable to persist calendar token to %s", self._token_path, exc_info=True)

    def _sign_in(self, library: ClientLibrary, config: SessionConfig) -> Any:
        scopes = list(config.scopes)
        credentials = self._load_stored_credentials(library, scopes)
        if credentials is not None and credentials.valid:
            return credentials

        if credentials is not None and credentials.expired and credentials.refresh_token:
            try:
                credentials.refresh(library.auth_request())
            except library.refresh_error:
                LOGGER.warning("Calendar token refresh was refused", exc_info=True)
            else:
                self._store_credentials(credentials)
                LOGGER.info("Calendar token refreshed")
                return credentials

        LOGGER.info("No signed-in calendar session, starting interactive sign-in")
        flow = library.installed_app_flow.from_client_config(self._client_config(config), scopes=scopes)
        credentials = flow.run_local_server(port=0)
        if credentials is None:
            raise AuthError("Calendar sign-in was rejected")
        self._store_credentials(credentials)
        return credentials

    @staticmethod
    def _build_calendar_service(library: ClientLibrary, config: SessionConfig, credentials: Any) -> Any:
        return library.build(
            "calendar",
            "v3",
            credentials=credentials,
            developerKey=config.api_key,
            cache_discovery=False,
        )

    @staticmethod
    def _build_tasks_service(library: ClientLibrary, credentials: Any) -> Any:
        return library.build("tasks", "v1", credentials=credentials, cache_discovery=False)
