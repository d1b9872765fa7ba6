"""Merges server, session-cached, and locally reordered task views into one queue."""

from __future__ import annotations

import logging
import threading
from typing import Iterable, Optional, Sequence

from session.cache import SessionCacheLike
from tasks.models import Task, tasks_from_json, tasks_to_json

TASKS_CACHE_KEY = "pomodoro_tasks"


class QueueReorderError(ValueError):
    """Raised when a reorder request is not a permutation of the current queue."""


class LocalCacheReconciler:
    """Produces the effective task queue.

    Precedence is: reorder override, then the last server fetch when it is
    non-empty, then the session-cached list. The server cannot persist an
    order, so the override stays authoritative until a fetch returns a list
    equal to it.
    """

    def __init__(
        self,
        cache: Optional[SessionCacheLike] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._cache = cache
        self._logger = logger or logging.getLogger("task_queue")
        self._lock = threading.RLock()
        self._server_tasks: tuple[Task, ...] = ()
        self._cached_tasks: tuple[Task, ...] = ()
        self._override: Optional[tuple[Task, ...]] = None

    @property
    def server_tasks(self) -> tuple[Task, ...]:
        with self._lock:
            return self._server_tasks

    @property
    def cached_tasks(self) -> tuple[Task, ...]:
        with self._lock:
            return self._cached_tasks

    @property
    def reorder_override(self) -> Optional[tuple[Task, ...]]:
        with self._lock:
            return self._override

    @property
    def effective_queue(self) -> tuple[Task, ...]:
        with self._lock:
            return self._effective_locked()

    def load_cached(self) -> tuple[Task, ...]:
        """Seed the cached view from the session cache; failures count as a miss."""
        if self._cache is None:
            return self.cached_tasks
        try:
            raw = self._cache.get(TASKS_CACHE_KEY)
        except Exception as error:
            self._logger.warning("Failed to load cached tasks: %s", error)
            return self.cached_tasks
        if raw is None:
            return self.cached_tasks
        try:
            loaded = tasks_from_json(raw)
        except ValueError as error:
            self._logger.warning("Ignoring malformed cached tasks: %s", error)
            return self.cached_tasks

        with self._lock:
            self._cached_tasks = loaded
        self._logger.info("Loaded %d cached task(s)", len(loaded))
        return loaded

    def seed_cached(self, tasks: Sequence[Task]) -> None:
        """Use `tasks` as the cached view when nothing better is known yet."""
        with self._lock:
            if not self._cached_tasks and tasks:
                self._cached_tasks = tuple(tasks)

    def apply_server_fetch(self, tasks: Sequence[Task]) -> tuple[Task, ...]:
        fetched = tuple(tasks)
        with self._lock:
            self._server_tasks = fetched
            if self._override is not None and self._override == fetched:
                self._logger.info("Server task order caught up; dropping reorder override")
                self._override = None
            if fetched:
                self._cached_tasks = fetched
            effective = self._effective_locked()

        if fetched:
            self._write_through(fetched)
        return effective

    def reorder(self, task_ids: Sequence[int]) -> tuple[Task, ...]:
        requested = list(task_ids)
        with self._lock:
            current = self._effective_locked()
            by_id = {task.id: task for task in current}
            if len(requested) != len(current) or set(requested) != set(by_id):
                raise QueueReorderError(
                    "Reorder must list every queued task id exactly once."
                )
            self._override = tuple(by_id[task_id] for task_id in requested)
            override = self._override

        self._write_through(override)
        self._logger.info("Queue reordered locally: ids=%s", requested)
        return override

    def mirror_created(self, tasks: Iterable[Task]) -> tuple[Task, ...]:
        created = tuple(tasks)
        with self._lock:
            # An empty server view means no fetch has succeeded yet; the
            # cached view stays effective until one does.
            if self._server_tasks:
                self._server_tasks = self._server_tasks + created
            self._cached_tasks = self._cached_tasks + created
            if self._override is not None:
                self._override = self._override + created
            effective = self._effective_locked()
        self._write_through(effective)
        return effective

    def mirror_updated(self, task: Task) -> tuple[Task, ...]:
        def swap(view: tuple[Task, ...]) -> tuple[Task, ...]:
            return tuple(task if existing.id == task.id else existing for existing in view)

        with self._lock:
            self._server_tasks = swap(self._server_tasks)
            self._cached_tasks = swap(self._cached_tasks)
            if self._override is not None:
                self._override = swap(self._override)
            effective = self._effective_locked()
        self._write_through(effective)
        return effective

    def mirror_removed(self, task_id: int) -> tuple[Task, ...]:
        def drop(view: tuple[Task, ...]) -> tuple[Task, ...]:
            return tuple(existing for existing in view if existing.id != task_id)

        with self._lock:
            self._server_tasks = drop(self._server_tasks)
            self._cached_tasks = drop(self._cached_tasks)
            if self._override is not None:
                self._override = drop(self._override)
            effective = self._effective_locked()
        self._write_through(effective)
        return effective

    def clear(self) -> None:
        with self._lock:
            self._server_tasks = ()
            self._cached_tasks = ()
            self._override = None
        self._write_through(())

    def _effective_locked(self) -> tuple[Task, ...]:
        if self._override is not None:
            return self._override
        if self._server_tasks:
            return self._server_tasks
        return self._cached_tasks

    def _write_through(self, tasks: Sequence[Task]) -> None:
        if self._cache is None:
            return
        try:
            self._cache.set(TASKS_CACHE_KEY, tasks_to_json(tasks) if tasks else None)
        except Exception as error:
            self._logger.warning("Failed to cache tasks: %s", error)
