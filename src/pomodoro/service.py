"""Thread-safe owner of the task timer state and the queue it runs against."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Literal, Optional, Sequence

from tasks.models import Task

from .constants import (
    ACTION_CLEAR,
    ACTION_PAUSE,
    ACTION_RECONCILE,
    ACTION_REMOVE_TASK,
    ACTION_RESET,
    ACTION_RESTORE,
    ACTION_SKIP,
    ACTION_START,
    ACTION_SYNC_QUEUE,
    ACTIVE_PHASES,
    NOTIFY_COMPLETE,
    REASON_UNSUPPORTED_ACTION,
)
from .engine import (
    Clear,
    NotifyEffect,
    Pause,
    Reconcile,
    RemoveTask,
    Reset,
    Restore,
    Skip,
    Start,
    SyncQueue,
    TimerEffect,
    TimerEvent,
    TimerPhase,
    TimerState,
    transition,
)

TimerAction = Literal["start", "pause", "skip", "reset", "clear"]

_ACTION_EVENTS: dict[str, TimerEvent] = {
    ACTION_START: Start(),
    ACTION_PAUSE: Pause(),
    ACTION_SKIP: Skip(),
    ACTION_RESET: Reset(),
    ACTION_CLEAR: Clear(),
}


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class TimerSnapshot:
    """Immutable view of the timer exposed to the runtime and UI publishers."""
    state: TimerState
    current_task: Optional[Task]
    queue_length: int

    @property
    def phase(self) -> TimerPhase:
        return self.state.phase

    @property
    def remaining_seconds(self) -> int:
        if self.state.has_started_timer:
            return self.state.time_remaining_seconds
        # Idle timers preview the full length of the task that would start next.
        if self.current_task is not None:
            return self.current_task.duration_seconds
        return 0

    @property
    def duration_seconds(self) -> int:
        return self.current_task.duration_seconds if self.current_task else 0

    @property
    def is_active(self) -> bool:
        return self.phase in ACTIVE_PHASES


@dataclass(frozen=True)
class TimerActionResult:
    """Result envelope returned after applying a timer action."""
    action: str
    accepted: bool
    reason: str
    snapshot: TimerSnapshot
    effects: tuple[TimerEffect, ...] = ()

    @property
    def notifications(self) -> tuple[NotifyEffect, ...]:
        return tuple(effect for effect in self.effects if isinstance(effect, NotifyEffect))


@dataclass(frozen=True)
class TimerTick:
    """Reconcile payload emitted while the countdown is running."""
    snapshot: TimerSnapshot
    reason: str
    effects: tuple[TimerEffect, ...] = ()
    completed: bool = False


class TaskTimer:
    """Applies timer events under a lock using wall-clock epoch milliseconds."""

    def __init__(
        self,
        *,
        logger: Optional[logging.Logger] = None,
        now_fn: Optional[Callable[[], int]] = None,
    ):
        self._logger = logger or logging.getLogger("pomodoro")
        self._now_ms = now_fn or wall_clock_ms
        self._lock = threading.Lock()
        self._state = TimerState()
        self._queue: tuple[Task, ...] = ()

    @property
    def queue(self) -> tuple[Task, ...]:
        with self._lock:
            return self._queue

    def snapshot(self) -> TimerSnapshot:
        with self._lock:
            return self._snapshot_locked()

    def apply(self, action: TimerAction) -> TimerActionResult:
        event = _ACTION_EVENTS.get(action)
        with self._lock:
            if event is None:
                return TimerActionResult(
                    action=action,
                    accepted=False,
                    reason=REASON_UNSUPPORTED_ACTION,
                    snapshot=self._snapshot_locked(),
                )
            return self._apply_locked(action, event, self._queue)

    def reconcile(self) -> Optional[TimerTick]:
        """Recompute remaining time from the deadline; None when nothing changed."""
        with self._lock:
            if not self._state.is_running:
                return None
            before = self._state
            result = self._apply_locked(ACTION_RECONCILE, Reconcile(), self._queue)
            if self._state == before:
                return None
            return TimerTick(
                snapshot=result.snapshot,
                reason=result.reason,
                effects=result.effects,
                completed=any(
                    effect.kind == NOTIFY_COMPLETE for effect in result.notifications
                ),
            )

    def set_queue(self, queue: Sequence[Task]) -> TimerActionResult:
        """Replace the queue, treating ids missing from it as deleted tasks.

        Removals run through the same bookkeeping as `remove_task`, so a task
        deleted elsewhere shifts the current index and uncounts itself.
        """
        new_queue = tuple(queue)
        kept_ids = {task.id for task in new_queue}
        with self._lock:
            effects: list[TimerEffect] = []
            for task in self._queue:
                if task.id in kept_ids:
                    continue
                removal = self._apply_locked(
                    ACTION_REMOVE_TASK,
                    RemoveTask(task.id),
                    self._queue,
                )
                effects.extend(removal.effects)
                self._queue = tuple(item for item in self._queue if item.id != task.id)

            self._queue = new_queue
            result = self._apply_locked(ACTION_SYNC_QUEUE, SyncQueue(), self._queue)
            if not effects:
                return result
            return TimerActionResult(
                action=result.action,
                accepted=result.accepted,
                reason=result.reason,
                snapshot=result.snapshot,
                effects=tuple(effects) + result.effects,
            )

    def remove_task(self, task_id: int) -> TimerActionResult:
        """Adjust the timer for a deleted task, then drop it from the queue."""
        with self._lock:
            result = self._apply_locked(
                ACTION_REMOVE_TASK,
                RemoveTask(task_id),
                self._queue,
            )
            if result.accepted:
                self._queue = tuple(task for task in self._queue if task.id != task_id)
                result = TimerActionResult(
                    action=result.action,
                    accepted=result.accepted,
                    reason=result.reason,
                    snapshot=self._snapshot_locked(),
                    effects=result.effects,
                )
            return result

    def restore(self, snapshot: TimerState) -> TimerActionResult:
        with self._lock:
            return self._apply_locked(ACTION_RESTORE, Restore(snapshot), self._queue)

    def _apply_locked(
        self,
        action: str,
        event: TimerEvent,
        queue: tuple[Task, ...],
    ) -> TimerActionResult:
        before = self._state
        outcome = transition(before, event, queue, self._now_ms())
        self._state = outcome.state

        if outcome.accepted and action != ACTION_RECONCILE:
            self._logger.info(
                "Timer %s: reason=%s phase=%s index=%s remaining=%ss",
                action,
                outcome.reason,
                outcome.state.phase,
                outcome.state.current_task_index,
                outcome.state.time_remaining_seconds,
            )
        elif not outcome.accepted:
            self._logger.debug("Timer %s rejected: %s", action, outcome.reason)

        for effect in outcome.notifications:
            self._logger.info(
                "Timer notification: kind=%s task=%s next=%s",
                effect.kind,
                effect.task_name,
                effect.next_task_name,
            )

        return TimerActionResult(
            action=action,
            accepted=outcome.accepted,
            reason=outcome.reason,
            snapshot=self._snapshot_locked(),
            effects=outcome.effects,
        )

    def _snapshot_locked(self) -> TimerSnapshot:
        index = self._state.current_task_index
        current = self._queue[index] if 0 <= index < len(self._queue) else None
        return TimerSnapshot(
            state=self._state,
            current_task=current,
            queue_length=len(self._queue),
        )
