"""Task store access that keeps the reconciled queue in step with mutations."""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from tasks.errors import TaskStoreUnavailableError
from tasks.models import Task
from tasks.store import DEFAULT_BREAK_DURATION_MINUTES, TaskStoreLike, create_with_break
from tasks.validation import DEFAULT_TASK_DURATION_MINUTES

from .reconciler import LocalCacheReconciler


class TaskStoreAdapter:
    """Fetches and mutates tasks, mirroring successful writes into the queue.

    Validation and not-found errors propagate to the caller so they can be
    shown to the user. A refresh that cannot reach the store keeps the last
    known queue.

    With `store_pairs_breaks` the store creates breaks on its own (a remote
    task API does), so a create is followed by a refresh instead of a second
    insert.
    """

    def __init__(
        self,
        store: TaskStoreLike,
        reconciler: LocalCacheReconciler,
        *,
        auto_break: bool = True,
        break_duration_minutes: int = DEFAULT_BREAK_DURATION_MINUTES,
        default_duration_minutes: int = DEFAULT_TASK_DURATION_MINUTES,
        store_pairs_breaks: bool = False,
        logger: Optional[logging.Logger] = None,
    ):
        self._store = store
        self._reconciler = reconciler
        self._auto_break = auto_break
        self._break_duration = break_duration_minutes
        self._default_duration = default_duration_minutes
        self._store_pairs_breaks = store_pairs_breaks
        self._logger = logger or logging.getLogger("tasks")

    @property
    def queue(self) -> tuple[Task, ...]:
        return self._reconciler.effective_queue

    def refresh(self) -> tuple[Task, ...]:
        try:
            fetched = self._store.list()
        except TaskStoreUnavailableError as error:
            self._logger.warning("Task refresh failed; keeping last known queue: %s", error)
            return self._reconciler.effective_queue
        return self._reconciler.apply_server_fetch(fetched)

    def create_task(self, name: str, duration: Optional[int] = None) -> tuple[Task, ...]:
        minutes = duration if duration else self._default_duration
        created = create_with_break(
            self._store,
            name,
            minutes,
            auto_break=self._auto_break and not self._store_pairs_breaks,
            break_duration=self._break_duration,
        )
        self._logger.info(
            "Queued task id=%s name=%s duration=%smin",
            created[0].id,
            created[0].name,
            created[0].duration,
        )
        self._reconciler.mirror_created(created)
        if self._store_pairs_breaks:
            return self.refresh()
        return self._reconciler.effective_queue

    def update_task(self, task_id: int, **fields: Any) -> tuple[Task, ...]:
        updated = self._store.update(task_id, **fields)
        return self._reconciler.mirror_updated(updated)

    def delete_task(self, task_id: int) -> tuple[Task, ...]:
        self._store.delete(task_id)
        return self._reconciler.mirror_removed(task_id)

    def clear_tasks(self) -> int:
        removed = self._store.clear()
        self._reconciler.clear()
        self._logger.info("Cleared %d task(s)", removed)
        return removed

    def reorder(self, task_ids: Sequence[int]) -> tuple[Task, ...]:
        return self._reconciler.reorder(task_ids)
