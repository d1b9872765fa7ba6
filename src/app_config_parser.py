"""Typed parser for config.toml sections into immutable app settings."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

from app_config_schema import (
    ApiServerSettings,
    AppConfig,
    AppConfigurationError,
    NotificationSettings,
    SessionSettings,
    TaskSettings,
    TimerSettings,
    UIServerSettings,
)

_ALLOWED_NOTIFICATION_MODES = {"local", "push"}


def parse_app_config(
    raw: Mapping[str, Any],
    *,
    base_dir: Path,
    source_file: str,
) -> AppConfig:
    """Parse raw TOML mappings into strongly typed application settings."""
    return AppConfig(
        ui_server=_parse_ui_server_settings(_section(raw, "ui_server"), base_dir=base_dir),
        api_server=_parse_api_server_settings(_section(raw, "api_server")),
        timer=_parse_timer_settings(_section(raw, "timer")),
        tasks=_parse_task_settings(_section(raw, "tasks")),
        session=_parse_session_settings(_section(raw, "session"), base_dir=base_dir),
        notifications=_parse_notification_settings(_section(raw, "notifications")),
        source_file=source_file,
    )


def _parse_ui_server_settings(
    section: Mapping[str, Any],
    *,
    base_dir: Path,
) -> UIServerSettings:
    index_file = _as_str(section.get("index_file", ""), "ui_server.index_file")
    return UIServerSettings(
        enabled=_as_bool(section.get("enabled", True), "ui_server.enabled"),
        host=_as_str(section.get("host", "127.0.0.1"), "ui_server.host"),
        port=_as_int(section.get("port", 8765), "ui_server.port"),
        index_file=_resolve_path(base_dir, index_file) if index_file else "",
    )


def _parse_api_server_settings(section: Mapping[str, Any]) -> ApiServerSettings:
    return ApiServerSettings(
        enabled=_as_bool(section.get("enabled", True), "api_server.enabled"),
        host=_as_str(section.get("host", "127.0.0.1"), "api_server.host"),
        port=_as_int(section.get("port", 8766), "api_server.port"),
    )


def _parse_timer_settings(section: Mapping[str, Any]) -> TimerSettings:
    return TimerSettings(
        tick_interval_seconds=_as_positive_float(
            section.get("tick_interval_seconds", 1.0),
            "timer.tick_interval_seconds",
        ),
        task_refresh_seconds=_as_float(
            section.get("task_refresh_seconds", 30.0),
            "timer.task_refresh_seconds",
        ),
    )


def _parse_task_settings(section: Mapping[str, Any]) -> TaskSettings:
    store_url = _as_str(section.get("store_url", ""), "tasks.store_url")
    if store_url and not store_url.startswith(("http://", "https://")):
        raise AppConfigurationError("tasks.store_url must be an http(s) URL.")
    return TaskSettings(
        store_url=store_url,
        request_timeout_seconds=_as_positive_float(
            section.get("request_timeout_seconds", 5.0),
            "tasks.request_timeout_seconds",
        ),
        default_duration_minutes=_as_positive_int(
            section.get("default_duration_minutes", 25),
            "tasks.default_duration_minutes",
        ),
        auto_break=_as_bool(section.get("auto_break", True), "tasks.auto_break"),
        break_duration_minutes=_as_positive_int(
            section.get("break_duration_minutes", 5),
            "tasks.break_duration_minutes",
        ),
    )


def _parse_session_settings(
    section: Mapping[str, Any],
    *,
    base_dir: Path,
) -> SessionSettings:
    cache_file = _as_str(section.get("cache_file", ""), "session.cache_file")
    return SessionSettings(
        cache_file=_resolve_path(base_dir, cache_file) if cache_file else "",
        stale_after_seconds=_as_positive_int(
            section.get("stale_after_seconds", 600),
            "session.stale_after_seconds",
        ),
    )


def _parse_notification_settings(section: Mapping[str, Any]) -> NotificationSettings:
    _forbid_secret_fields(section, "notifications", ("vapid_private_key",))
    mode = _as_str(section.get("mode", "local"), "notifications.mode").lower()
    if mode not in _ALLOWED_NOTIFICATION_MODES:
        allowed = ", ".join(sorted(_ALLOWED_NOTIFICATION_MODES))
        raise AppConfigurationError(f"notifications.mode must be one of: {allowed}.")
    subject = _as_str(section.get("vapid_subject", ""), "notifications.vapid_subject")
    if subject and not subject.startswith(("mailto:", "https://")):
        raise AppConfigurationError(
            "notifications.vapid_subject must be a mailto: or https:// URL."
        )
    return NotificationSettings(
        enabled=_as_bool(section.get("enabled", False), "notifications.enabled"),
        mode=mode,
        push_timeout_seconds=_as_positive_float(
            section.get("push_timeout_seconds", 5.0),
            "notifications.push_timeout_seconds",
        ),
        vapid_public_key=_as_str(
            section.get("vapid_public_key", ""),
            "notifications.vapid_public_key",
        ),
        vapid_subject=subject,
    )


def _section(root: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    raw = root.get(name, {})
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise AppConfigurationError(f"[{name}] must be a table.")
    return raw


def _as_str(value: Any, field: str) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    raise AppConfigurationError(f"{field} must be a string.")


def _as_bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off"):
            return False
    raise AppConfigurationError(f"{field} must be a boolean.")


def _as_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise AppConfigurationError(f"{field} must be an integer.")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError as error:
            raise AppConfigurationError(f"{field} must be an integer.") from error
    raise AppConfigurationError(f"{field} must be an integer.")


def _as_positive_int(value: Any, field: str) -> int:
    number = _as_int(value, field)
    if number <= 0:
        raise AppConfigurationError(f"{field} must be greater than zero.")
    return number


def _as_float(value: Any, field: str) -> float:
    if isinstance(value, bool):
        raise AppConfigurationError(f"{field} must be a float.")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError as error:
            raise AppConfigurationError(f"{field} must be a float.") from error
    raise AppConfigurationError(f"{field} must be a float.")


def _as_positive_float(value: Any, field: str) -> float:
    number = _as_float(value, field)
    if number <= 0:
        raise AppConfigurationError(f"{field} must be greater than zero.")
    return number


def _resolve_path(base_dir: Path, raw: str) -> str:
    if not raw:
        return ""
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = (base_dir / path).resolve()
    return str(path)


def _forbid_secret_fields(
    section: Mapping[str, Any],
    section_name: str,
    fields: tuple[str, ...],
) -> None:
    present = [field for field in fields if field in section]
    if present:
        joined = ", ".join(f"{section_name}.{field}" for field in present)
        raise AppConfigurationError(
            f"Secret values must not be stored in config.toml: {joined}. "
            "Move them to environment variables."
        )
