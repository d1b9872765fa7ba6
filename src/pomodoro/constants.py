"""State, action, reason, and notification constants used by the task timer."""

from __future__ import annotations

PHASE_IDLE = "idle"
PHASE_RUNNING = "running"
PHASE_PAUSED = "paused"

ACTIVE_PHASES: frozenset[str] = frozenset({PHASE_RUNNING, PHASE_PAUSED})

ACTION_START = "start"
ACTION_PAUSE = "pause"
ACTION_SKIP = "skip"
ACTION_RESET = "reset"
ACTION_CLEAR = "clear"
ACTION_RECONCILE = "reconcile"
ACTION_REMOVE_TASK = "remove_task"
ACTION_SYNC_QUEUE = "sync_queue"
ACTION_RESTORE = "restore"

ACTION_SYNC = "sync"
ACTION_TICK = "tick"
ACTION_COMPLETED = "completed"

REASON_STARTED = "started"
REASON_RESUMED = "resumed"
REASON_PAUSED = "paused"
REASON_SKIPPED = "skipped"
REASON_RESET = "reset"
REASON_CLEARED = "cleared"
REASON_TICK = "tick"
REASON_COMPLETED = "completed"
REASON_QUEUE_FINISHED = "queue_finished"
REASON_REMOVED = "removed"
REASON_SYNCED = "synced"
REASON_RESTORED = "restored"
REASON_NOT_RUNNING = "not_running"
REASON_ALREADY_RUNNING = "already_running"
REASON_NOT_ACTIVE = "not_active"
REASON_EMPTY_QUEUE = "empty_queue"
REASON_UNKNOWN_TASK = "unknown_task"
REASON_INVALID_STATE = "invalid_state"
REASON_UNSUPPORTED_ACTION = "unsupported_action"
REASON_STARTUP = "startup"

NOTIFY_START = "start"
NOTIFY_COMPLETE = "complete"
NOTIFY_SKIP = "skip"
