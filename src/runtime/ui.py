from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence

from contracts.ui_protocol import EVENT_ERROR, EVENT_QUEUE, EVENT_TIMER
from pomodoro import TimerSnapshot
from tasks.models import Task

from .messages import timer_status_message


class UIServerLike(Protocol):
    def publish(self, event_type: str, **payload: Any) -> None:
        ...


class RuntimeUIPublisher:
    def __init__(self, ui_server: Optional[UIServerLike]):
        self._ui_server = ui_server

    def publish(self, event_type: str, **payload: Any) -> None:
        if self._ui_server:
            self._ui_server.publish(event_type, **payload)

    def publish_timer_update(
        self,
        snapshot: TimerSnapshot,
        *,
        action: str,
        accepted: Optional[bool] = None,
        reason: str = "",
        message: Optional[str] = None,
    ) -> None:
        state = snapshot.state
        payload: dict[str, Any] = {
            "action": action,
            "phase": snapshot.phase,
            "current_task_index": state.current_task_index,
            "current_task": (
                snapshot.current_task.to_dict() if snapshot.current_task else None
            ),
            "queue_length": snapshot.queue_length,
            "duration_seconds": snapshot.duration_seconds,
            "remaining_seconds": snapshot.remaining_seconds,
            "completed_count": state.completed_count,
            "has_started_timer": state.has_started_timer,
            "message": message or timer_status_message(snapshot),
        }
        if accepted is not None:
            payload["accepted"] = accepted
        if reason:
            payload["reason"] = reason
        self.publish(EVENT_TIMER, **payload)

    def publish_queue(self, tasks: Sequence[Task], *, reordered: bool = False) -> None:
        self.publish(
            EVENT_QUEUE,
            tasks=[task.to_dict() for task in tasks],
            reordered=reordered,
        )

    def publish_error(self, message: str, *, errors: Optional[list[str]] = None) -> None:
        payload: dict[str, Any] = {"message": message}
        if errors:
            payload["errors"] = errors
        self.publish(EVENT_ERROR, **payload)
