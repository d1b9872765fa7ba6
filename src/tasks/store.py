"""Thread-safe in-memory task store backing the REST API."""

from __future__ import annotations

import dataclasses
import logging
import threading
from typing import Any, Optional, Protocol

from .errors import TaskNotFoundError
from .models import BREAK_DISPLAY_NAME, Task
from .validation import (
    DEFAULT_TASK_DURATION_MINUTES,
    normalize_field,
    validate_duration,
    validate_name,
)

DEFAULT_BREAK_DURATION_MINUTES = 5


class TaskStoreLike(Protocol):
    """Task persistence contract consumed by the task store adapter."""
    def list(self) -> list[Task]:
        ...

    def create(
        self,
        name: str,
        duration: int = DEFAULT_TASK_DURATION_MINUTES,
        *,
        is_interval: bool = False,
        parent_task_id: Optional[int] = None,
    ) -> Task:
        ...

    def update(self, task_id: int, **fields: Any) -> Task:
        ...

    def delete(self, task_id: int) -> None:
        ...

    def clear(self) -> int:
        ...


class InMemoryTaskStore:
    """Insertion-ordered task map with monotonically increasing ids."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger("tasks.store")
        self._lock = threading.Lock()
        self._tasks: dict[int, Task] = {}
        self._next_id = 1

    def list(self) -> list[Task]:
        with self._lock:
            return list(self._tasks.values())

    def get(self, task_id: int) -> Optional[Task]:
        with self._lock:
            return self._tasks.get(task_id)

    def create(
        self,
        name: str,
        duration: int = DEFAULT_TASK_DURATION_MINUTES,
        *,
        is_interval: bool = False,
        parent_task_id: Optional[int] = None,
    ) -> Task:
        clean_name = validate_name(name)
        clean_duration = validate_duration(duration)
        with self._lock:
            task = Task(
                id=self._next_id,
                name=clean_name,
                duration=clean_duration,
                is_interval=bool(is_interval),
                parent_task_id=parent_task_id,
            )
            self._next_id += 1
            self._tasks[task.id] = task

        self._logger.info(
            "Task created: id=%s name=%s duration=%smin interval=%s",
            task.id,
            task.name,
            task.duration,
            task.is_interval,
        )
        return task

    def update(self, task_id: int, **fields: Any) -> Task:
        changes = {key: normalize_field(key, value) for key, value in fields.items()}
        with self._lock:
            existing = self._tasks.get(task_id)
            if existing is None:
                raise TaskNotFoundError(task_id)
            updated = dataclasses.replace(existing, **changes)
            self._tasks[task_id] = updated

        self._logger.info("Task updated: id=%s fields=%s", task_id, sorted(changes))
        return updated

    def delete(self, task_id: int) -> None:
        with self._lock:
            if self._tasks.pop(task_id, None) is None:
                raise TaskNotFoundError(task_id)
        self._logger.info("Task deleted: id=%s", task_id)

    def clear(self) -> int:
        with self._lock:
            removed = len(self._tasks)
            self._tasks.clear()
        self._logger.info("Task store cleared: removed=%s", removed)
        return removed


def create_with_break(
    store: TaskStoreLike,
    name: str,
    duration: int = DEFAULT_TASK_DURATION_MINUTES,
    *,
    is_interval: bool = False,
    parent_task_id: Optional[int] = None,
    auto_break: bool = True,
    break_duration: int = DEFAULT_BREAK_DURATION_MINUTES,
) -> list[Task]:
    """Create a task and, unless it is itself a break, the break that follows it."""
    task = store.create(
        name,
        duration,
        is_interval=is_interval,
        parent_task_id=parent_task_id,
    )
    if not auto_break or task.is_interval:
        return [task]

    pause = store.create(
        BREAK_DISPLAY_NAME,
        break_duration,
        is_interval=True,
        parent_task_id=task.id,
    )
    return [task, pause]
