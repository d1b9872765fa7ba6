"""Best-effort fan-out of timer notify effects to the selected channel."""

from __future__ import annotations

import concurrent.futures
import logging
import threading
from dataclasses import dataclass, replace
from typing import Literal, Optional

from pomodoro.engine import NotifyEffect

from .channels import NotificationChannel
from .messages import NotificationMessage, build_message, diagnostic_message

NotificationMode = Literal["local", "push"]
PermissionState = Literal["default", "granted", "denied"]

MODE_LOCAL = "local"
MODE_PUSH = "push"
NOTIFICATION_MODES: frozenset[str] = frozenset({MODE_LOCAL, MODE_PUSH})
PERMISSION_STATES: frozenset[str] = frozenset({"default", "granted", "denied"})


@dataclass(frozen=True)
class NotificationPreferences:
    enabled: bool = False
    mode: NotificationMode = MODE_LOCAL
    permission: PermissionState = "default"

    @property
    def can_deliver(self) -> bool:
        if not self.enabled:
            return False
        if self.mode == MODE_LOCAL:
            return self.permission == "granted"
        return True


class NotificationDispatcher:
    """Delivers notifications on a worker thread; delivery errors never escape."""

    def __init__(
        self,
        channels: dict[str, NotificationChannel],
        *,
        preferences: Optional[NotificationPreferences] = None,
        executor: Optional[concurrent.futures.Executor] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._channels = dict(channels)
        self._preferences = preferences or NotificationPreferences()
        self._lock = threading.Lock()
        self._owns_executor = executor is None
        self._executor = executor or concurrent.futures.ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix="notifications",
        )
        self._logger = logger or logging.getLogger("notifications")

    @property
    def preferences(self) -> NotificationPreferences:
        with self._lock:
            return self._preferences

    def update_preferences(
        self,
        *,
        enabled: Optional[bool] = None,
        mode: Optional[str] = None,
        permission: Optional[str] = None,
    ) -> NotificationPreferences:
        if mode is not None and mode not in NOTIFICATION_MODES:
            raise ValueError(f"Unsupported notification mode: {mode}")
        if permission is not None and permission not in PERMISSION_STATES:
            raise ValueError(f"Unsupported permission state: {permission}")

        changes = {}
        if enabled is not None:
            changes["enabled"] = bool(enabled)
        if mode is not None:
            changes["mode"] = mode
        if permission is not None:
            changes["permission"] = permission

        with self._lock:
            self._preferences = replace(self._preferences, **changes)
            preferences = self._preferences
        self._logger.info(
            "Notification preferences: enabled=%s mode=%s permission=%s",
            preferences.enabled,
            preferences.mode,
            preferences.permission,
        )
        return preferences

    def notify(self, effect: NotifyEffect) -> Optional[concurrent.futures.Future]:
        try:
            message = build_message(effect)
        except ValueError as error:
            self._logger.warning("Dropping notification: %s", error)
            return None
        return self.send(message)

    def send_test_notification(self) -> Optional[concurrent.futures.Future]:
        return self.send(diagnostic_message(), force=True)

    def send(
        self,
        message: NotificationMessage,
        *,
        force: bool = False,
    ) -> Optional[concurrent.futures.Future]:
        """Queue `message` for delivery when the preferences allow it."""
        preferences = self.preferences
        if not force and not preferences.can_deliver:
            self._logger.debug("Notification suppressed: %s", message.title)
            return None

        channel = self._channels.get(preferences.mode)
        if channel is None:
            self._logger.warning("No notification channel for mode=%s", preferences.mode)
            return None

        try:
            return self._executor.submit(self._deliver, channel, message)
        except RuntimeError as error:
            # Executor already shut down.
            self._logger.debug("Notification dropped during shutdown: %s", error)
            return None

    def shutdown(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)
        for channel in self._channels.values():
            close = getattr(channel, "close", None)
            if close is not None:
                try:
                    close()
                except Exception as error:
                    self._logger.debug("Failed to close notification channel: %s", error)

    def _deliver(self, channel: NotificationChannel, message: NotificationMessage) -> None:
        try:
            channel.send(message)
        except Exception as error:
            self._logger.warning(
                "Notification delivery failed (%s): %s",
                message.title,
                error,
                exc_info=True,
            )
