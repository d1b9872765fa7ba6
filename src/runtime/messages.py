"""Status and rejection texts shown alongside timer updates."""

from __future__ import annotations

from pomodoro import TimerSnapshot
from pomodoro.constants import (
    ACTION_PAUSE,
    ACTION_RESET,
    ACTION_SKIP,
    ACTION_START,
    PHASE_PAUSED,
    PHASE_RUNNING,
    REASON_ALREADY_RUNNING,
    REASON_EMPTY_QUEUE,
    REASON_NOT_ACTIVE,
    REASON_NOT_RUNNING,
)


def format_duration(seconds: int) -> str:
    """Format a duration in seconds as `MM:SS`."""
    minutes, remainder = divmod(max(0, int(seconds)), 60)
    return f"{minutes:02d}:{remainder:02d}"


def timer_status_message(snapshot: TimerSnapshot) -> str:
    task_name = snapshot.current_task.display_name if snapshot.current_task else None
    remaining = format_duration(snapshot.remaining_seconds)
    if snapshot.phase == PHASE_RUNNING:
        return f"{task_name} running ({remaining} left)"
    if snapshot.phase == PHASE_PAUSED:
        return f"{task_name} paused ({remaining} left)"
    if task_name:
        return f"Ready: {task_name}"
    return "Add a task to get started"


def rejection_text(action: str, reason: str) -> str:
    if reason == REASON_EMPTY_QUEUE:
        return "There are no tasks in the queue."
    if reason == REASON_ALREADY_RUNNING and action == ACTION_START:
        return "The timer is already running."
    if reason == REASON_NOT_RUNNING and action == ACTION_PAUSE:
        return "The timer is not running."
    if reason == REASON_NOT_ACTIVE and action == ACTION_SKIP:
        return "Start the timer before skipping a task."
    if action == ACTION_RESET:
        return "There is no task to reset."
    return "That timer action is not possible right now."
