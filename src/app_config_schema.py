"""Dataclass schema objects used by runtime configuration loading."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

DEFAULT_CONFIG_FILE = "config.toml"


class AppConfigurationError(Exception):
    """Raised when application configuration fails."""


@dataclass(frozen=True)
class UIServerSettings:
    """Websocket UI server settings from `[ui_server]`."""
    enabled: bool = True
    host: str = "127.0.0.1"
    port: int = 8765
    index_file: str = ""


@dataclass(frozen=True)
class ApiServerSettings:
    """REST task API settings from `[api_server]`."""
    enabled: bool = True
    host: str = "127.0.0.1"
    port: int = 8766


@dataclass(frozen=True)
class TimerSettings:
    """Runtime loop cadence from `[timer]`."""
    tick_interval_seconds: float = 1.0
    task_refresh_seconds: float = 30.0


@dataclass(frozen=True)
class TaskSettings:
    """Task store and queue policy from `[tasks]`.

    An empty `store_url` keeps tasks in process; otherwise the runtime talks
    to a remote task API at that base URL.
    """
    store_url: str = ""
    request_timeout_seconds: float = 5.0
    default_duration_minutes: int = 25
    auto_break: bool = True
    break_duration_minutes: int = 5


@dataclass(frozen=True)
class SessionSettings:
    """Session cache location and snapshot expiry from `[session]`."""
    cache_file: str = ""
    stale_after_seconds: int = 600


@dataclass(frozen=True)
class NotificationSettings:
    """Initial notification preferences from `[notifications]`."""
    enabled: bool = False
    mode: str = "local"
    push_timeout_seconds: float = 5.0
    vapid_public_key: str = ""
    vapid_subject: str = ""


@dataclass(frozen=True)
class AppConfig:
    """Complete typed runtime configuration loaded from `config.toml`."""
    ui_server: UIServerSettings
    api_server: ApiServerSettings
    timer: TimerSettings
    tasks: TaskSettings
    session: SessionSettings
    notifications: NotificationSettings
    source_file: str


@dataclass(frozen=True)
class SecretConfig:
    """Environment-provided secrets kept out of `config.toml`."""
    vapid_private_key: Optional[str] = None
