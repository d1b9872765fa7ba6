"""Routes websocket UI commands to the timer, the task store, and preferences."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from contracts.ui_protocol import (
    COMMAND_ADD_TASK,
    COMMAND_CLEAR_TASKS,
    COMMAND_DELETE_TASK,
    COMMAND_NOTIFICATIONS,
    COMMAND_PAUSE,
    COMMAND_REFRESH,
    COMMAND_REORDER,
    COMMAND_RESET,
    COMMAND_SKIP,
    COMMAND_START,
    COMMAND_TOGGLE,
    COMMAND_UPDATE_TASK,
    COMMAND_VISIBILITY,
)
from notifications import NotificationDispatcher
from pomodoro import TaskTimer
from pomodoro.constants import ACTION_CLEAR, ACTION_PAUSE, ACTION_START
from task_queue import QueueReorderError, TaskStoreAdapter
from tasks.errors import TaskValidationError
from tasks.validation import parse_update_payload

from .effects import EffectProcessor
from .ui import RuntimeUIPublisher

StoreJobRunner = Callable[[str, Callable[[], Any], Callable[[Any], None]], None]

REFRESH_JOB = "refresh tasks"

_TIMER_COMMANDS = {
    COMMAND_START: "start",
    COMMAND_PAUSE: "pause",
    COMMAND_SKIP: "skip",
    COMMAND_RESET: "reset",
}


class CommandError(ValueError):
    """Raised when a command payload is missing or has malformed fields."""


def _require_int(payload: dict[str, Any], field: str) -> int:
    value = payload.get(field)
    if isinstance(value, bool) or not isinstance(value, int):
        raise CommandError(f"{field} must be an integer")
    return value


def _optional_int(payload: dict[str, Any], field: str) -> Optional[int]:
    if payload.get(field) is None:
        return None
    return _require_int(payload, field)


def _require_id_list(payload: dict[str, Any], field: str) -> list[int]:
    value = payload.get(field)
    if not isinstance(value, list) or not all(
        isinstance(item, int) and not isinstance(item, bool) for item in value
    ):
        raise CommandError(f"{field} must be a list of task ids")
    return value


class RuntimeCommandDispatcher:
    """Applies one decoded `{"command": ...}` payload on the runtime thread.

    Store mutations are handed to `run_store_job` so network I/O never blocks
    the countdown; their follow-up (queue sync, timer adjustment) runs when
    the job completes.
    """
    def __init__(
        self,
        *,
        logger: logging.Logger,
        timer: TaskTimer,
        adapter: TaskStoreAdapter,
        effects: EffectProcessor,
        ui: RuntimeUIPublisher,
        dispatcher: Optional[NotificationDispatcher],
        run_store_job: StoreJobRunner,
        sync_queue: Callable[..., None],
        reconcile_now: Callable[[], None],
    ):
        self._logger = logger
        self._timer = timer
        self._adapter = adapter
        self._effects = effects
        self._ui = ui
        self._dispatcher = dispatcher
        self._run_store_job = run_store_job
        self._sync_queue = sync_queue
        self._reconcile_now = reconcile_now

    def handle(self, payload: dict[str, Any]) -> None:
        command = payload.get("command")
        try:
            self._route(command, payload)
        except (CommandError, TaskValidationError, QueueReorderError) as error:
            self._logger.info("Rejected %s command: %s", command, error)
            errors = getattr(error, "errors", None)
            self._ui.publish_error(str(error), errors=errors)

    def _route(self, command: Any, payload: dict[str, Any]) -> None:
        if command in _TIMER_COMMANDS:
            self._apply_timer_action(_TIMER_COMMANDS[command])
            return

        if command == COMMAND_TOGGLE:
            running = self._timer.snapshot().state.is_running
            self._apply_timer_action(ACTION_PAUSE if running else ACTION_START)
            return

        if command == COMMAND_VISIBILITY:
            if payload.get("visible", True):
                self._reconcile_now()
            return

        if command == COMMAND_ADD_TASK:
            name = payload.get("name")
            duration = _optional_int(payload, "duration")
            self._run_store_job(
                "add task",
                lambda: self._adapter.create_task(name, duration),
                lambda _queue: self._sync_queue(),
            )
            return

        if command == COMMAND_UPDATE_TASK:
            task_id = _require_int(payload, "id")
            fields = parse_update_payload(
                {key: payload[key] for key in ("name", "duration") if key in payload}
            )
            if not fields:
                raise CommandError("update_task needs a name or duration")
            self._run_store_job(
                "update task",
                lambda: self._adapter.update_task(task_id, **fields),
                lambda _queue: self._sync_queue(),
            )
            return

        if command == COMMAND_DELETE_TASK:
            task_id = _require_int(payload, "id")
            self._run_store_job(
                "delete task",
                lambda: self._adapter.delete_task(task_id),
                lambda _queue: self._sync_queue(),
            )
            return

        if command == COMMAND_REORDER:
            self._adapter.reorder(_require_id_list(payload, "ids"))
            self._sync_queue(reordered=True)
            return

        if command == COMMAND_CLEAR_TASKS:
            self._run_store_job(
                "clear tasks",
                self._adapter.clear_tasks,
                lambda _removed: self._after_clear(),
            )
            return

        if command == COMMAND_NOTIFICATIONS:
            self._update_notifications(payload)
            return

        if command == COMMAND_REFRESH:
            self._run_store_job(
                REFRESH_JOB,
                self._adapter.refresh,
                lambda _queue: self._sync_queue(),
            )
            return

        raise CommandError(f"Unknown command: {command!r}")

    def _apply_timer_action(self, action: str) -> None:
        result = self._timer.apply(action)
        self._effects.handle_result(result)

    def _after_clear(self) -> None:
        self._apply_timer_action(ACTION_CLEAR)
        self._sync_queue()

    def _update_notifications(self, payload: dict[str, Any]) -> None:
        if self._dispatcher is None:
            raise CommandError("Notifications are disabled")

        enabled = payload.get("enabled")
        if enabled is not None and not isinstance(enabled, bool):
            raise CommandError("enabled must be a boolean")
        try:
            self._dispatcher.update_preferences(
                enabled=enabled,
                mode=payload.get("mode"),
                permission=payload.get("permission"),
            )
        except ValueError as error:
            raise CommandError(str(error)) from error
