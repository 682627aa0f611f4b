from __future__ import annotations

from calendar import MONDAY, SUNDAY
from functools import lru_cache
from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .adapters.calendar.session import CALENDAR_READONLY_SCOPE, TASKS_READONLY_SCOPE, SessionConfig

PROJECT_ROOT = Path(__file__).resolve().parents[2]

WEEK_START_WEEKDAYS = {"sunday": SUNDAY, "monday": MONDAY}


class RefreshSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    interval_minutes: int = Field(default=5, ge=1, le=60)
    jitter_seconds: int = Field(default=0, ge=0, le=300)


class CalendarSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    max_results: int = Field(default=10, ge=1, le=250)
    scopes: list[str] = Field(default_factory=lambda: [CALENDAR_READONLY_SCOPE, TASKS_READONLY_SCOPE])
    include_tasks: bool = True
    task_list: str = "@default"
    week_start: Literal["sunday", "monday"] = "sunday"
    reference_timezone: str = "UTC"

    @field_validator("scopes")
    @classmethod
    def validate_scopes(cls, values: list[str]) -> list[str]:
        normalized: list[str] = []
        for raw_scope in values:
            if not isinstance(raw_scope, str):
                raise ValueError("calendar.scopes entries must be strings")
            scope = raw_scope.strip()
            if scope:
                normalized.append(scope)
        return list(dict.fromkeys(normalized))

    @field_validator("task_list")
    @classmethod
    def validate_task_list(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("calendar.task_list must not be empty")
        return text

    @field_validator("reference_timezone")
    @classmethod
    def validate_reference_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except ZoneInfoNotFoundError as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @property
    def week_start_weekday(self) -> int:
        return WEEK_START_WEEKDAYS[self.week_start]


class DashboardYamlSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    refresh: RefreshSettings = Field(default_factory=RefreshSettings)
    calendar: CalendarSettings = Field(default_factory=CalendarSettings)


class EnvSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    dashboard_env: Literal["dev", "test", "prod"] = "dev"
    dashboard_timezone: str = "Europe/Berlin"
    dashboard_config_path: Path = Path("config/dashboard.yaml")

    # Missing credentials are reported by the calendar engine, not at startup.
    google_api_key: str = ""
    google_client_id: str = ""
    google_client_secret: str = ""
    google_calendar_id: str = ""
    google_token_path: Path = Path("data/google_calendar_token.json")

    @field_validator("dashboard_timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except ZoneInfoNotFoundError as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value


class AppSettings(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    env: EnvSettings
    yaml: DashboardYamlSettings
    project_root: Path
    config_path: Path
    token_path: Path
    timezone: ZoneInfo
    reference_timezone: ZoneInfo

    def session_config(self) -> SessionConfig:
        return SessionConfig(
            api_key=self.env.google_api_key.strip(),
            client_id=self.env.google_client_id.strip(),
            calendar_id=self.env.google_calendar_id.strip(),
            scopes=tuple(self.yaml.calendar.scopes),
        )


def _resolve_project_path(path: Path) -> Path:
    if path.is_absolute():
        return path
    return (PROJECT_ROOT / path).resolve()


def _load_yaml_settings(path: Path) -> DashboardYamlSettings:
    if not path.exists():
        raise FileNotFoundError(f"Dashboard config file not found: {path}")

    raw_config = yaml.safe_load(path.read_text(encoding="utf-8"))
    if raw_config is None:
        raw_config = {}
    if not isinstance(raw_config, dict):
        raise ValueError("Dashboard config must be a YAML mapping/object at the top level")
    return DashboardYamlSettings.model_validate(raw_config)


@lru_cache(maxsize=1)
def load_settings() -> AppSettings:
    env = EnvSettings()
    config_path = _resolve_project_path(env.dashboard_config_path)
    yaml_settings = _load_yaml_settings(config_path)
    return AppSettings(
        env=env,
        yaml=yaml_settings,
        project_root=PROJECT_ROOT,
        config_path=config_path,
        token_path=_resolve_project_path(env.google_token_path),
        timezone=ZoneInfo(env.dashboard_timezone),
        reference_timezone=ZoneInfo(yaml_settings.calendar.reference_timezone),
    )
