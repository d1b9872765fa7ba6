"""Web UI websocket event and command constants."""

from __future__ import annotations

# Websocket event types
EVENT_HELLO = "hello"
EVENT_TIMER = "timer"
EVENT_QUEUE = "queue"
EVENT_NOTIFICATION = "notification"
EVENT_ERROR = "error"

# Client commands
COMMAND_START = "start"
COMMAND_PAUSE = "pause"
COMMAND_TOGGLE = "toggle"
COMMAND_SKIP = "skip"
COMMAND_RESET = "reset"
COMMAND_VISIBILITY = "visibility"
COMMAND_ADD_TASK = "add_task"
COMMAND_UPDATE_TASK = "update_task"
COMMAND_DELETE_TASK = "delete_task"
COMMAND_REORDER = "reorder"
COMMAND_CLEAR_TASKS = "clear_tasks"
COMMAND_NOTIFICATIONS = "notifications"
COMMAND_REFRESH = "refresh"

COMMANDS: frozenset[str] = frozenset(
    {
        COMMAND_START,
        COMMAND_PAUSE,
        COMMAND_TOGGLE,
        COMMAND_SKIP,
        COMMAND_RESET,
        COMMAND_VISIBILITY,
        COMMAND_ADD_TASK,
        COMMAND_UPDATE_TASK,
        COMMAND_DELETE_TASK,
        COMMAND_REORDER,
        COMMAND_CLEAR_TASKS,
        COMMAND_NOTIFICATIONS,
        COMMAND_REFRESH,
    }
)

STICKY_EVENT_TYPES: frozenset[str] = frozenset(
    {
        EVENT_QUEUE,
        EVENT_TIMER,
        EVENT_ERROR,
    }
)

STICKY_EVENT_ORDER: tuple[str, ...] = (
    EVENT_QUEUE,
    EVENT_TIMER,
    EVENT_ERROR,
)
