from .engine import (
    NotifyEffect,
    PersistEffect,
    TimerEffect,
    TimerPhase,
    TimerState,
    Transition,
    remaining_seconds,
    transition,
)
from .service import (
    TaskTimer,
    TimerAction,
    TimerActionResult,
    TimerSnapshot,
    TimerTick,
    wall_clock_ms,
)

__all__ = [
    "NotifyEffect",
    "PersistEffect",
    "TaskTimer",
    "TimerAction",
    "TimerActionResult",
    "TimerEffect",
    "TimerPhase",
    "TimerSnapshot",
    "TimerState",
    "TimerTick",
    "Transition",
    "remaining_seconds",
    "transition",
    "wall_clock_ms",
]
