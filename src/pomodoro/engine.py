"""Pure task-queue timer transitions.

`transition(state, event, queue, now_ms)` is the only place timer state
changes. It never reads the clock and never performs I/O: callers pass the
wall-clock time in epoch milliseconds and execute the returned effects
(notification and persistence intents) themselves.

Remaining time is always derived from the absolute deadline, never from a
count of ticks, so a late or repeated reconcile lands on the same state as a
timer that ticked every second.
"""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass
from typing import Callable, Literal, Optional, Sequence, Union

from tasks.models import Task

from .constants import (
    NOTIFY_COMPLETE,
    NOTIFY_SKIP,
    NOTIFY_START,
    PHASE_IDLE,
    PHASE_PAUSED,
    PHASE_RUNNING,
    REASON_ALREADY_RUNNING,
    REASON_CLEARED,
    REASON_COMPLETED,
    REASON_EMPTY_QUEUE,
    REASON_INVALID_STATE,
    REASON_NOT_ACTIVE,
    REASON_NOT_RUNNING,
    REASON_PAUSED,
    REASON_QUEUE_FINISHED,
    REASON_REMOVED,
    REASON_RESET,
    REASON_RESTORED,
    REASON_RESUMED,
    REASON_SKIPPED,
    REASON_STARTED,
    REASON_SYNCED,
    REASON_TICK,
    REASON_UNKNOWN_TASK,
    REASON_UNSUPPORTED_ACTION,
)

TimerPhase = Literal["idle", "running", "paused"]
NotificationKind = Literal["start", "complete", "skip"]


@dataclass(frozen=True)
class TimerState:
    """Timer state owned by the engine; `deadline_ms` is set only while running."""
    current_task_index: int = 0
    is_running: bool = False
    has_started_timer: bool = False
    time_remaining_seconds: int = 0
    deadline_ms: Optional[int] = None
    completed_count: int = 0
    counted_task_ids: tuple[int, ...] = ()

    @property
    def phase(self) -> TimerPhase:
        if self.is_running:
            return PHASE_RUNNING
        if self.has_started_timer:
            return PHASE_PAUSED
        return PHASE_IDLE


# Events


@dataclass(frozen=True)
class Start:
    pass


@dataclass(frozen=True)
class Pause:
    pass


@dataclass(frozen=True)
class Reconcile:
    pass


@dataclass(frozen=True)
class Skip:
    pass


@dataclass(frozen=True)
class Reset:
    pass


@dataclass(frozen=True)
class Clear:
    pass


@dataclass(frozen=True)
class RemoveTask:
    """Evaluated against the queue as it was before the task was removed."""
    task_id: int


@dataclass(frozen=True)
class SyncQueue:
    """Evaluated against the new effective queue."""
    pass


@dataclass(frozen=True)
class Restore:
    snapshot: TimerState


TimerEvent = Union[Start, Pause, Reconcile, Skip, Reset, Clear, RemoveTask, SyncQueue, Restore]


# Effects


@dataclass(frozen=True)
class NotifyEffect:
    """Request to tell the user a task started, completed, or was skipped."""
    kind: NotificationKind
    task_name: str
    next_task_name: Optional[str] = None


@dataclass(frozen=True)
class PersistEffect:
    """Request to snapshot the new state to the session cache."""
    state: TimerState


TimerEffect = Union[NotifyEffect, PersistEffect]


@dataclass(frozen=True)
class Transition:
    state: TimerState
    effects: tuple[TimerEffect, ...]
    accepted: bool
    reason: str

    @property
    def notifications(self) -> tuple[NotifyEffect, ...]:
        return tuple(effect for effect in self.effects if isinstance(effect, NotifyEffect))

    @property
    def completed(self) -> bool:
        return any(effect.kind == NOTIFY_COMPLETE for effect in self.notifications)


def transition(
    state: TimerState,
    event: TimerEvent,
    queue: Sequence[Task],
    now_ms: int,
) -> Transition:
    """Apply one event and return the new state plus the effects to execute."""
    handler = _HANDLERS.get(type(event))
    if handler is None:
        return Transition(state, (), False, REASON_UNSUPPORTED_ACTION)

    effects: list[TimerEffect] = []
    next_state, accepted, reason = handler(state, event, tuple(queue), int(now_ms), effects)
    if next_state != state:
        effects.append(PersistEffect(next_state))
    return Transition(next_state, tuple(effects), accepted, reason)


def remaining_seconds(deadline_ms: int, now_ms: int) -> int:
    """Whole seconds left until `deadline_ms`, rounded up and never negative."""
    return max(0, int(math.ceil((deadline_ms - now_ms) / 1000)))


def _idle(state: TimerState) -> TimerState:
    return TimerState(
        completed_count=state.completed_count,
        counted_task_ids=state.counted_task_ids,
    )


def _clamp_index(index: int, queue: tuple[Task, ...]) -> int:
    if index < 0:
        return 0
    return min(index, len(queue) - 1)


def _reconcile(
    state: TimerState,
    queue: tuple[Task, ...],
    now_ms: int,
    effects: list[TimerEffect],
) -> TimerState:
    if not state.is_running or state.deadline_ms is None:
        return state

    # Every completion advances the index or goes idle, so the queue length
    # bounds how many expired deadlines one reconcile can consume.
    for _ in range(len(queue) + 1):
        left = remaining_seconds(state.deadline_ms, now_ms)
        if left > 0:
            return dataclasses.replace(state, time_remaining_seconds=left)
        state = _complete(state, queue, effects)
        if not state.is_running or state.deadline_ms is None:
            return state
    return _idle(state)


def _complete(
    state: TimerState,
    queue: tuple[Task, ...],
    effects: list[TimerEffect],
) -> TimerState:
    index = state.current_task_index
    if not 0 <= index < len(queue):
        return _idle(state)

    finished = queue[index]
    completed_count = state.completed_count
    counted = state.counted_task_ids
    if not finished.is_interval:
        completed_count += 1
        counted = counted + (finished.id,)

    upcoming = queue[index + 1] if index + 1 < len(queue) else None
    effects.append(
        NotifyEffect(
            NOTIFY_COMPLETE,
            finished.display_name,
            upcoming.display_name if upcoming is not None else None,
        )
    )

    if upcoming is None:
        return TimerState(completed_count=completed_count, counted_task_ids=counted)

    # Chain from the expired deadline so missed ticks never stretch the queue.
    deadline_ms = (state.deadline_ms or 0) + upcoming.duration_seconds * 1000
    effects.append(NotifyEffect(NOTIFY_START, upcoming.display_name))
    return dataclasses.replace(
        state,
        current_task_index=index + 1,
        time_remaining_seconds=upcoming.duration_seconds,
        deadline_ms=deadline_ms,
        is_running=True,
        completed_count=completed_count,
        counted_task_ids=counted,
    )


def _finished_reason(state: TimerState, effects: list[TimerEffect], default: str) -> str:
    if not state.has_started_timer and any(
        isinstance(effect, NotifyEffect) and effect.kind == NOTIFY_COMPLETE
        for effect in effects
    ):
        return REASON_QUEUE_FINISHED
    return default


def _on_start(state, event, queue, now_ms, effects):
    if not queue:
        return state, False, REASON_EMPTY_QUEUE
    if state.is_running:
        return state, False, REASON_ALREADY_RUNNING

    index = _clamp_index(state.current_task_index, queue)
    task = queue[index]
    if state.has_started_timer:
        remaining = state.time_remaining_seconds
        reason = REASON_RESUMED
    else:
        remaining = task.duration_seconds
        reason = REASON_STARTED

    remaining = max(0, int(remaining))
    state = dataclasses.replace(
        state,
        current_task_index=index,
        has_started_timer=True,
        is_running=True,
        time_remaining_seconds=remaining,
        deadline_ms=now_ms + remaining * 1000,
    )
    effects.append(NotifyEffect(NOTIFY_START, task.display_name))

    # A zero-length task completes right away instead of waiting on a tick.
    state = _reconcile(state, queue, now_ms, effects)
    return state, True, _finished_reason(state, effects, reason)


def _on_pause(state, event, queue, now_ms, effects):
    if not state.is_running:
        return state, False, REASON_NOT_RUNNING

    state = _reconcile(state, queue, now_ms, effects)
    if not state.is_running or state.deadline_ms is None:
        return state, True, _finished_reason(state, effects, REASON_COMPLETED)

    state = dataclasses.replace(
        state,
        time_remaining_seconds=remaining_seconds(state.deadline_ms, now_ms),
        deadline_ms=None,
        is_running=False,
    )
    return state, True, REASON_PAUSED


def _on_reconcile(state, event, queue, now_ms, effects):
    if not state.is_running:
        return state, False, REASON_NOT_RUNNING

    state = _reconcile(state, queue, now_ms, effects)
    if any(isinstance(effect, NotifyEffect) for effect in effects):
        return state, True, _finished_reason(state, effects, REASON_COMPLETED)
    return state, True, REASON_TICK


def _on_skip(state, event, queue, now_ms, effects):
    if not queue or not state.has_started_timer:
        return state, False, REASON_NOT_ACTIVE

    state = _reconcile(state, queue, now_ms, effects)
    if not state.has_started_timer:
        return state, True, REASON_QUEUE_FINISHED

    index = _clamp_index(state.current_task_index, queue)
    skipped = queue[index]
    if index + 1 >= len(queue):
        return _idle(state), True, REASON_QUEUE_FINISHED

    upcoming = queue[index + 1]
    state = dataclasses.replace(
        state,
        current_task_index=index + 1,
        time_remaining_seconds=upcoming.duration_seconds,
        deadline_ms=None,
        is_running=False,
    )
    effects.append(NotifyEffect(NOTIFY_SKIP, skipped.display_name, upcoming.display_name))
    return state, True, REASON_SKIPPED


def _on_reset(state, event, queue, now_ms, effects):
    if not queue:
        return state, False, REASON_EMPTY_QUEUE

    state = _reconcile(state, queue, now_ms, effects)
    index = _clamp_index(state.current_task_index, queue)
    state = dataclasses.replace(
        state,
        current_task_index=index,
        time_remaining_seconds=queue[index].duration_seconds,
        deadline_ms=None,
        is_running=False,
    )
    return state, True, REASON_RESET


def _on_clear(state, event, queue, now_ms, effects):
    return TimerState(), True, REASON_CLEARED


def _on_remove_task(state, event, queue, now_ms, effects):
    position = next(
        (i for i, task in enumerate(queue) if task.id == event.task_id),
        None,
    )
    if position is None:
        return state, False, REASON_UNKNOWN_TASK

    state = _reconcile(state, queue, now_ms, effects)
    removed = queue[position]
    remaining_queue = queue[:position] + queue[position + 1:]
    current = state.current_task_index

    counted = state.counted_task_ids
    completed_count = state.completed_count
    if position < current and not removed.is_interval and removed.id in counted:
        completed_count = max(0, completed_count - 1)
        drop_at = counted.index(removed.id)
        counted = counted[:drop_at] + counted[drop_at + 1:]
    state = dataclasses.replace(
        state,
        completed_count=completed_count,
        counted_task_ids=counted,
    )

    if not remaining_queue:
        return _idle(state), True, REASON_REMOVED

    if position < current:
        return (
            dataclasses.replace(state, current_task_index=current - 1),
            True,
            REASON_REMOVED,
        )

    if position == current:
        index = _clamp_index(position, remaining_queue)
        state = dataclasses.replace(
            state,
            current_task_index=index,
            is_running=False,
            deadline_ms=None,
            time_remaining_seconds=(
                remaining_queue[index].duration_seconds if state.has_started_timer else 0
            ),
        )
    return state, True, REASON_REMOVED


def _on_sync_queue(state, event, queue, now_ms, effects):
    if not queue:
        if state.has_started_timer or state.current_task_index != 0:
            return _idle(state), True, REASON_SYNCED
        return state, True, REASON_SYNCED

    if 0 <= state.current_task_index < len(queue):
        return state, True, REASON_SYNCED

    index = _clamp_index(state.current_task_index, queue)
    state = dataclasses.replace(
        state,
        current_task_index=index,
        is_running=False,
        deadline_ms=None,
        time_remaining_seconds=(
            queue[index].duration_seconds if state.has_started_timer else 0
        ),
    )
    return state, True, REASON_SYNCED


def _on_restore(state, event, queue, now_ms, effects):
    if not queue:
        return state, False, REASON_EMPTY_QUEUE
    if state.has_started_timer:
        return state, False, REASON_INVALID_STATE

    snapshot = event.snapshot
    state = TimerState(
        current_task_index=_clamp_index(int(snapshot.current_task_index), queue),
        is_running=False,
        has_started_timer=bool(snapshot.has_started_timer),
        time_remaining_seconds=max(0, int(snapshot.time_remaining_seconds)),
        deadline_ms=None,
        completed_count=max(0, int(snapshot.completed_count)),
        counted_task_ids=tuple(snapshot.counted_task_ids),
    )
    return state, True, REASON_RESTORED


_Handler = Callable[
    [TimerState, TimerEvent, tuple[Task, ...], int, list[TimerEffect]],
    tuple[TimerState, bool, str],
]

_HANDLERS: dict[type, _Handler] = {
    Start: _on_start,
    Pause: _on_pause,
    Reconcile: _on_reconcile,
    Skip: _on_skip,
    Reset: _on_reset,
    Clear: _on_clear,
    RemoveTask: _on_remove_task,
    SyncQueue: _on_sync_queue,
    Restore: _on_restore,
}
