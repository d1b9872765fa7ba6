"""Executes timer effects and publishes the resulting timer state."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from notifications import NotificationDispatcher
from pomodoro import NotifyEffect, PersistEffect, TimerActionResult, TimerEffect, TimerTick
from pomodoro.constants import ACTION_COMPLETED, ACTION_TICK
from session import SessionPersistenceBridge
from tasks.models import Task

from .messages import rejection_text
from .ui import RuntimeUIPublisher


@dataclass(frozen=True)
class EffectDependencies:
    """Collaborators that carry out persist and notify intents."""
    session: SessionPersistenceBridge
    dispatcher: Optional[NotificationDispatcher]
    ui: RuntimeUIPublisher
    logger: logging.Logger
    current_queue: Callable[[], Sequence[Task]]


class EffectProcessor:
    """Runs effects in order; a failing effect is logged and never stops the rest."""
    def __init__(self, dependencies: EffectDependencies):
        self._dependencies = dependencies

    def handle_result(self, result: TimerActionResult) -> None:
        deps = self._dependencies
        self.execute(result.effects)
        deps.ui.publish_timer_update(
            result.snapshot,
            action=result.action,
            accepted=result.accepted,
            reason=result.reason,
            message=None if result.accepted else rejection_text(result.action, result.reason),
        )

    def handle_tick(self, tick: TimerTick) -> None:
        deps = self._dependencies
        self.execute(tick.effects)
        deps.ui.publish_timer_update(
            tick.snapshot,
            action=ACTION_COMPLETED if tick.completed else ACTION_TICK,
            accepted=True,
            reason=tick.reason,
        )

    def execute(self, effects: Sequence[TimerEffect]) -> None:
        deps = self._dependencies
        for effect in effects:
            try:
                if isinstance(effect, PersistEffect):
                    deps.session.save(effect.state, deps.current_queue())
                elif isinstance(effect, NotifyEffect):
                    if deps.dispatcher is not None:
                        deps.dispatcher.notify(effect)
                else:
                    deps.logger.warning("Ignoring unknown effect: %s", type(effect).__name__)
            except Exception as error:
                deps.logger.error("Effect %s failed: %s", type(effect).__name__, error, exc_info=True)
