"""Runtime orchestration loop for UI commands, timer ticks, and store jobs."""

from __future__ import annotations

import concurrent.futures
import logging
import threading
import time
from dataclasses import dataclass, field
from queue import Empty, Queue
from typing import Any, Callable, Optional

from notifications import NotificationDispatcher
from pomodoro import PersistEffect, TaskTimer
from pomodoro.constants import ACTION_SYNC, REASON_STARTUP, REASON_SYNCED
from session import SessionPersistenceBridge
from task_queue import LocalCacheReconciler, TaskStoreAdapter
from tasks.errors import (
    TaskNotFoundError,
    TaskStoreUnavailableError,
    TaskValidationError,
)
from contracts.ui_protocol import COMMAND_REFRESH

from .commands import REFRESH_JOB, RuntimeCommandDispatcher
from .effects import EffectDependencies, EffectProcessor
from .ui import RuntimeUIPublisher, UIServerLike

_POLL_INTERVAL_SECONDS = 0.25
_STOP = object()


@dataclass(frozen=True)
class RuntimeBootstrap:
    """Dependency bundle required to construct the runtime engine."""
    logger: logging.Logger
    timer: TaskTimer
    adapter: TaskStoreAdapter
    reconciler: LocalCacheReconciler
    session: SessionPersistenceBridge
    dispatcher: Optional[NotificationDispatcher]
    ui_server: Optional[UIServerLike]
    tick_interval_seconds: float = 1.0
    task_refresh_seconds: float = 30.0
    clock: Callable[[], float] = time.monotonic


@dataclass(frozen=True)
class PendingStoreJob:
    description: str
    future: concurrent.futures.Future
    on_success: Callable[[Any], None]


@dataclass
class RuntimeResources:
    """Mutable runtime resources created for the event loop lifecycle."""
    command_queue: Queue[Any]
    store_executor: concurrent.futures.ThreadPoolExecutor
    pending_jobs: list[PendingStoreJob] = field(default_factory=list)
    next_tick_at: Optional[float] = None
    next_refresh_at: Optional[float] = None


class RuntimeEngine:
    """Single-threaded owner of the timer.

    UI threads only enqueue commands; every timer transition, effect, and
    queue sync happens on the thread that calls `run()`.
    """
    def __init__(self, bootstrap: RuntimeBootstrap):
        self._bootstrap = bootstrap
        self._logger = bootstrap.logger
        self._timer = bootstrap.timer
        self._adapter = bootstrap.adapter
        self._clock = bootstrap.clock
        self._stop_requested = threading.Event()

        self._ui = RuntimeUIPublisher(bootstrap.ui_server)
        self._effects = EffectProcessor(
            EffectDependencies(
                session=bootstrap.session,
                dispatcher=bootstrap.dispatcher,
                ui=self._ui,
                logger=self._logger,
                current_queue=lambda: self._timer.queue,
            )
        )
        self._commands = RuntimeCommandDispatcher(
            logger=self._logger,
            timer=self._timer,
            adapter=self._adapter,
            effects=self._effects,
            ui=self._ui,
            dispatcher=bootstrap.dispatcher,
            run_store_job=self._submit_store_job,
            sync_queue=self._sync_queue,
            reconcile_now=self._reconcile_now,
        )
        self._resources = RuntimeResources(
            command_queue=Queue(),
            store_executor=concurrent.futures.ThreadPoolExecutor(
                max_workers=1,
                thread_name_prefix="task-store",
            ),
        )

    @property
    def next_tick_at(self) -> Optional[float]:
        return self._resources.next_tick_at

    def submit(self, command: dict[str, Any]) -> None:
        """Queue a decoded UI command; safe to call from any thread."""
        self._resources.command_queue.put(command)

    def request_refresh(self) -> None:
        self.submit({"command": COMMAND_REFRESH})

    def request_stop(self) -> None:
        self._stop_requested.set()
        self._resources.command_queue.put(_STOP)

    def startup(self) -> None:
        """Restore the cached queue and timer snapshot, then fetch from the store."""
        bootstrap = self._bootstrap
        bootstrap.reconciler.load_cached()
        restored = bootstrap.session.load()
        if restored is not None:
            bootstrap.reconciler.seed_cached(restored.tasks)

        self._timer.set_queue(self._adapter.queue)
        if restored is not None:
            result = self._timer.restore(restored.timer)
            if not result.accepted:
                self._logger.info("Timer snapshot not restored: %s", result.reason)

        self._ui.publish_queue(self._timer.queue)
        self._ui.publish_timer_update(
            self._timer.snapshot(),
            action=ACTION_SYNC,
            accepted=True,
            reason=REASON_STARTUP,
        )
        self._reschedule_tick()
        self.request_refresh()

    def run(self) -> int:
        self.startup()
        self._logger.info("Runtime loop started")
        try:
            while not self._stop_requested.is_set():
                self.run_once(self._poll_timeout())
            return 0
        except KeyboardInterrupt:
            self._logger.info("Shutdown requested by keyboard interrupt.")
            return 0
        except Exception as error:
            self._logger.error("Unexpected error: %s", error, exc_info=True)
            return 1
        finally:
            self._shutdown()

    def run_once(self, timeout: float = 0.0) -> None:
        """One loop iteration: finished store jobs, queued commands, then timers."""
        self._finalize_store_jobs()
        self._drain_commands(timeout)
        self._maybe_tick()
        self._maybe_refresh()

    def wait_for_store_jobs(self, timeout: float = 5.0) -> None:
        pending = [job.future for job in self._resources.pending_jobs]
        if pending:
            concurrent.futures.wait(pending, timeout=timeout)
        self._finalize_store_jobs()

    def _poll_timeout(self) -> float:
        deadlines = [
            at
            for at in (self._resources.next_tick_at, self._resources.next_refresh_at)
            if at is not None
        ]
        if not deadlines:
            return _POLL_INTERVAL_SECONDS
        return max(0.0, min(_POLL_INTERVAL_SECONDS, min(deadlines) - self._clock()))

    def _drain_commands(self, timeout: float) -> None:
        queue = self._resources.command_queue
        try:
            item = queue.get(timeout=timeout) if timeout > 0 else queue.get_nowait()
        except Empty:
            return

        while True:
            if item is _STOP:
                return
            self._handle_command(item)
            try:
                item = queue.get_nowait()
            except Empty:
                return

    def _handle_command(self, command: dict[str, Any]) -> None:
        try:
            self._commands.handle(command)
        except Exception as error:
            self._logger.error("Command %s failed: %s", command.get("command"), error, exc_info=True)
            self._ui.publish_error(f"Command failed: {error}")
        self._reschedule_tick()

    def _submit_store_job(
        self,
        description: str,
        job: Callable[[], Any],
        on_success: Callable[[Any], None],
    ) -> None:
        try:
            future = self._resources.store_executor.submit(job)
        except RuntimeError as error:
            self._logger.warning("Store job %s dropped: %s", description, error)
            return
        self._resources.pending_jobs.append(PendingStoreJob(description, future, on_success))

    def _finalize_store_jobs(self) -> None:
        pending = self._resources.pending_jobs
        if not pending:
            return

        finished = [job for job in pending if job.future.done()]
        self._resources.pending_jobs = [job for job in pending if not job.future.done()]
        for job in finished:
            self._finalize_store_job(job)
        if finished:
            self._reschedule_tick()

    def _finalize_store_job(self, job: PendingStoreJob) -> None:
        try:
            value = job.future.result()
        except TaskValidationError as error:
            self._logger.info("%s rejected: %s", job.description, error)
            self._ui.publish_error(str(error), errors=error.errors)
            return
        except TaskNotFoundError as error:
            self._logger.info("%s failed: %s", job.description, error)
            self._ui.publish_error(str(error))
            self.request_refresh()
            return
        except TaskStoreUnavailableError as error:
            self._logger.warning("%s failed; task store unavailable: %s", job.description, error)
            self._ui.publish_error("Task store is unavailable")
            return
        except concurrent.futures.CancelledError:
            return
        except Exception as error:
            self._logger.error("Store job %s failed: %s", job.description, error, exc_info=True)
            self._ui.publish_error(f"{job.description} failed")
            return

        try:
            job.on_success(value)
        except Exception as error:
            self._logger.error(
                "Follow-up for %s failed: %s", job.description, error, exc_info=True
            )

    def _sync_queue(self, *, reordered: bool = False) -> None:
        """Point the timer at the adapter's current effective queue and publish it."""
        result = self._timer.set_queue(self._adapter.queue)
        self._effects.execute(result.effects)
        if not any(isinstance(effect, PersistEffect) for effect in result.effects):
            # The state is unchanged but the stored task list must follow the queue.
            self._bootstrap.session.save(result.snapshot.state, self._timer.queue)

        self._ui.publish_queue(self._timer.queue, reordered=reordered)
        self._ui.publish_timer_update(
            result.snapshot,
            action=ACTION_SYNC,
            accepted=True,
            reason=REASON_SYNCED,
        )
        self._reschedule_tick()

    def _reconcile_now(self) -> None:
        tick = self._timer.reconcile()
        if tick is not None:
            self._effects.handle_tick(tick)
        self._reschedule_tick()

    def _maybe_tick(self) -> None:
        next_tick_at = self._resources.next_tick_at
        if next_tick_at is None or self._clock() < next_tick_at:
            return
        self._resources.next_tick_at = None
        self._reconcile_now()

    def _reschedule_tick(self) -> None:
        """Keep a tick scheduled only while the timer is running."""
        if not self._timer.snapshot().state.is_running:
            self._resources.next_tick_at = None
            return
        if self._resources.next_tick_at is None:
            self._resources.next_tick_at = (
                self._clock() + self._bootstrap.tick_interval_seconds
            )

    def _maybe_refresh(self) -> None:
        interval = self._bootstrap.task_refresh_seconds
        if interval <= 0:
            return
        now = self._clock()
        next_refresh_at = self._resources.next_refresh_at
        if next_refresh_at is None:
            self._resources.next_refresh_at = now + interval
            return
        if now < next_refresh_at:
            return
        self._resources.next_refresh_at = now + interval
        if any(job.description == REFRESH_JOB for job in self._resources.pending_jobs):
            return
        self.request_refresh()

    def _shutdown(self) -> None:
        self._logger.info("Stopping task store worker...")
        self._resources.store_executor.shutdown(wait=False, cancel_futures=True)

        dispatcher = self._bootstrap.dispatcher
        if dispatcher is not None:
            dispatcher.shutdown()

        snapshot = self._timer.snapshot()
        if snapshot.state.has_started_timer:
            self._bootstrap.session.save(snapshot.state, self._timer.queue)
