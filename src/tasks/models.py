"""Task records shared by the store, the queue reconciler, and the timer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

BREAK_DISPLAY_NAME = "Break"


@dataclass(frozen=True)
class Task:
    """Immutable task record; `duration` is in minutes."""
    id: int
    name: str
    duration: int
    is_interval: bool = False
    parent_task_id: Optional[int] = None

    @property
    def display_name(self) -> str:
        return BREAK_DISPLAY_NAME if self.is_interval else self.name

    @property
    def duration_seconds(self) -> int:
        # Missing or non-positive durations count as zero so the timer
        # completes the task instead of waiting on it.
        try:
            minutes = int(self.duration or 0)
        except (TypeError, ValueError):
            minutes = 0
        return max(0, minutes) * 60

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "duration": self.duration,
            "isInterval": self.is_interval,
            "parentTaskId": self.parent_task_id,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Task":
        """Build a task from its camelCase JSON form; raises ValueError on bad input."""
        if not isinstance(raw, Mapping):
            raise ValueError("task record must be an object")

        task_id = raw.get("id")
        if isinstance(task_id, bool) or not isinstance(task_id, int):
            raise ValueError(f"task id must be an integer, got: {task_id!r}")

        name = raw.get("name")
        if not isinstance(name, str):
            raise ValueError("task name must be a string")

        duration = raw.get("duration", 0)
        if isinstance(duration, bool) or not isinstance(duration, int):
            raise ValueError("task duration must be an integer")

        parent = raw.get("parentTaskId")
        if parent is not None and (isinstance(parent, bool) or not isinstance(parent, int)):
            raise ValueError("parentTaskId must be an integer or null")

        return cls(
            id=task_id,
            name=name,
            duration=duration,
            is_interval=bool(raw.get("isInterval", False)),
            parent_task_id=parent,
        )


def tasks_from_json(raw: Any) -> tuple[Task, ...]:
    """Parse a JSON list of task records, raising ValueError on the first bad entry."""
    if not isinstance(raw, list):
        raise ValueError("task list must be an array")
    return tuple(Task.from_dict(item) for item in raw)


def tasks_to_json(tasks) -> list[dict[str, Any]]:
    return [task.to_dict() for task in tasks]
