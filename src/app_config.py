"""Loads `config.toml` into the typed application configuration."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for older runtimes
    import tomli as tomllib  # type: ignore

from app_config_parser import parse_app_config
from app_config_schema import (
    DEFAULT_CONFIG_FILE,
    ApiServerSettings,
    AppConfig,
    AppConfigurationError,
    NotificationSettings,
    SecretConfig,
    SessionSettings,
    TaskSettings,
    TimerSettings,
    UIServerSettings,
)

__all__ = [
    "ApiServerSettings",
    "AppConfig",
    "AppConfigurationError",
    "DEFAULT_CONFIG_FILE",
    "NotificationSettings",
    "SecretConfig",
    "SessionSettings",
    "TaskSettings",
    "TimerSettings",
    "UIServerSettings",
    "load_app_config",
    "load_secret_config",
    "resolve_config_path",
]


def resolve_config_path(config_path: str | None = None) -> Path:
    """Explicit path, then `APP_CONFIG_FILE`, then `./config.toml`."""
    env_path = os.getenv("APP_CONFIG_FILE")
    raw = config_path or env_path or DEFAULT_CONFIG_FILE
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = (Path.cwd() / path).resolve()
    return path


def load_app_config(config_path: str | None = None) -> AppConfig:
    path = resolve_config_path(config_path)
    if not path.exists():
        raise AppConfigurationError(f"Config file not found: {path}")
    if not path.is_file():
        raise AppConfigurationError(f"Config path is not a file: {path}")

    try:
        with open(path, "rb") as fh:
            raw = tomllib.load(fh)
    except Exception as error:
        raise AppConfigurationError(f"Failed to parse config TOML: {error}") from error

    if not isinstance(raw, Mapping):
        raise AppConfigurationError("Root config TOML object must be a table.")

    return parse_app_config(raw, base_dir=path.parent, source_file=str(path))


def load_secret_config(
    *,
    environ: Mapping[str, str] | None = None,
) -> SecretConfig:
    env = environ if environ is not None else os.environ
    vapid_private_key = env.get("VAPID_PRIVATE_KEY", "").strip() or None
    return SecretConfig(vapid_private_key=vapid_private_key)
