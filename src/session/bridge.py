"""Snapshot and restore of timer state through the session cache."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from pomodoro.engine import TimerState
from tasks.models import Task, tasks_from_json, tasks_to_json

from .cache import SessionCacheLike

TIMER_STATE_CACHE_KEY = "pomodoro_timer_state"
DEFAULT_STALE_AFTER_SECONDS = 600


@dataclass(frozen=True)
class RestoredSession:
    timer: TimerState
    tasks: tuple[Task, ...]
    written_at_ms: int


def _wall_clock_ms() -> int:
    return int(time.time() * 1000)


def _as_non_negative_int(raw: Any, field: str) -> int:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise ValueError(f"{field} must be a number")
    return max(0, int(raw))


class SessionPersistenceBridge:
    """Writes a paused copy of the timer so a restart can pick it up again.

    Snapshots are always stored with `isRunning` false, so restoring never
    resumes a countdown. Snapshots older than `stale_after_seconds` and
    malformed ones are ignored.
    """

    def __init__(
        self,
        cache: SessionCacheLike,
        *,
        stale_after_seconds: int = DEFAULT_STALE_AFTER_SECONDS,
        logger: Optional[logging.Logger] = None,
        now_fn: Optional[Callable[[], int]] = None,
    ):
        self._cache = cache
        self._stale_after_ms = int(stale_after_seconds) * 1000
        self._logger = logger or logging.getLogger("session")
        self._now_ms = now_fn or _wall_clock_ms

    def save(self, state: TimerState, queue: Sequence[Task]) -> None:
        if not state.has_started_timer:
            self.clear()
            return

        snapshot = {
            "currentTaskIndex": state.current_task_index,
            "timeRemaining": state.time_remaining_seconds,
            "hasStartedTimer": True,
            "isRunning": False,
            "completedCount": state.completed_count,
            "countedTaskIds": list(state.counted_task_ids),
            "timestamp": self._now_ms(),
            "tasks": tasks_to_json(queue),
        }
        try:
            self._cache.set(TIMER_STATE_CACHE_KEY, snapshot)
        except Exception as error:
            self._logger.warning("Failed to persist timer state: %s", error)

    def clear(self) -> None:
        try:
            self._cache.set(TIMER_STATE_CACHE_KEY, None)
        except Exception as error:
            self._logger.warning("Failed to clear timer state: %s", error)

    def load(self) -> Optional[RestoredSession]:
        try:
            raw = self._cache.get(TIMER_STATE_CACHE_KEY)
        except Exception as error:
            self._logger.warning("Failed to read timer state: %s", error)
            return None
        if raw is None:
            return None

        try:
            restored = self._parse(raw)
        except (TypeError, ValueError) as error:
            self._logger.warning("Ignoring malformed timer snapshot: %s", error)
            return None

        age_ms = self._now_ms() - restored.written_at_ms
        if age_ms > self._stale_after_ms:
            self._logger.info("Discarding stale timer snapshot (age=%ss)", age_ms // 1000)
            return None

        self._logger.info(
            "Restored timer snapshot: index=%s remaining=%ss tasks=%d",
            restored.timer.current_task_index,
            restored.timer.time_remaining_seconds,
            len(restored.tasks),
        )
        return restored

    @staticmethod
    def _parse(raw: Any) -> RestoredSession:
        if not isinstance(raw, dict):
            raise ValueError("snapshot must be an object")

        timestamp = raw.get("timestamp")
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            raise ValueError("snapshot timestamp is missing")

        counted = raw.get("countedTaskIds", [])
        if not isinstance(counted, list) or not all(
            isinstance(item, int) and not isinstance(item, bool) for item in counted
        ):
            raise ValueError("countedTaskIds must be a list of integers")

        timer = TimerState(
            current_task_index=_as_non_negative_int(
                raw.get("currentTaskIndex", 0), "currentTaskIndex"
            ),
            is_running=False,
            has_started_timer=bool(raw.get("hasStartedTimer", False)),
            time_remaining_seconds=_as_non_negative_int(
                raw.get("timeRemaining", 0), "timeRemaining"
            ),
            deadline_ms=None,
            completed_count=_as_non_negative_int(
                raw.get("completedCount", 0), "completedCount"
            ),
            counted_task_ids=tuple(counted),
        )
        return RestoredSession(
            timer=timer,
            tasks=tasks_from_json(raw.get("tasks", [])),
            written_at_ms=int(timestamp),
        )
