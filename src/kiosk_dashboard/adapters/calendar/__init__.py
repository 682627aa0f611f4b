from .base import (
    AuthError,
    CalendarSource,
    CalendarSyncError,
    ConfigError,
    FetchError,
    LibraryLoadError,
)
from .bootstrap import DEFAULT_BOOTSTRAPPER, ClientLibrary, ClientLibraryBootstrapper
from .google import GoogleCalendarSource
from .normalize import normalize
from .session import SessionAuthenticator, SessionConfig, SessionHandle, validate_session_config

__all__ = [
    "AuthError",
    "CalendarSource",
    "CalendarSyncError",
    "ClientLibrary",
    "ClientLibraryBootstrapper",
    "ConfigError",
    "DEFAULT_BOOTSTRAPPER",
    "FetchError",
    "GoogleCalendarSource",
    "LibraryLoadError",
    "SessionAuthenticator",
    "SessionConfig",
    "SessionHandle",
    "normalize",
    "validate_session_config",
]
