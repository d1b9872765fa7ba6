import unittest

from pomodoro import TimerState
from session import (
    TIMER_STATE_CACHE_KEY,
    MemorySessionCache,
    SessionPersistenceBridge,
)
from tasks import Task

A = Task(id=1, name="A", duration=25)
B = Task(id=2, name="B", duration=10)

STARTED = TimerState(
    current_task_index=1,
    is_running=True,
    has_started_timer=True,
    time_remaining_seconds=300,
    deadline_ms=999_999,
    completed_count=1,
    counted_task_ids=(1,),
)


class _Clock:
    def __init__(self, now_ms: int):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms


class _BrokenCache:
    def get(self, key):
        raise OSError("unreadable")

    def set(self, key, value):
        raise OSError("read-only")


class SessionPersistenceBridgeTests(unittest.TestCase):
    def setUp(self) -> None:
        self.cache = MemorySessionCache()
        self.clock = _Clock(1_700_000_000_000)
        self.bridge = SessionPersistenceBridge(self.cache, now_fn=self.clock)

    def test_save_writes_paused_snapshot(self) -> None:
        self.bridge.save(STARTED, (A, B))
        raw = self.cache.get(TIMER_STATE_CACHE_KEY)

        self.assertEqual(
            {
                "currentTaskIndex": 1,
                "timeRemaining": 300,
                "hasStartedTimer": True,
                "isRunning": False,
                "completedCount": 1,
                "countedTaskIds": [1],
                "timestamp": 1_700_000_000_000,
                "tasks": [A.to_dict(), B.to_dict()],
            },
            raw,
        )

    def test_load_restores_paused_state_and_tasks(self) -> None:
        self.bridge.save(STARTED, (A, B))
        self.clock.now_ms += 60_000

        restored = self.bridge.load()

        self.assertIsNotNone(restored)
        self.assertFalse(restored.timer.is_running)
        self.assertIsNone(restored.timer.deadline_ms)
        self.assertEqual(300, restored.timer.time_remaining_seconds)
        self.assertEqual((1,), restored.timer.counted_task_ids)
        self.assertEqual((A, B), restored.tasks)

    def test_snapshot_at_expiry_boundary_is_still_loaded(self) -> None:
        self.bridge.save(STARTED, (A,))
        self.clock.now_ms += 600_000

        self.assertIsNotNone(self.bridge.load())

    def test_stale_snapshot_is_discarded(self) -> None:
        self.bridge.save(STARTED, (A,))
        self.clock.now_ms += 601_000

        self.assertIsNone(self.bridge.load())

    def test_custom_expiry(self) -> None:
        bridge = SessionPersistenceBridge(
            self.cache,
            stale_after_seconds=30,
            now_fn=self.clock,
        )
        bridge.save(STARTED, (A,))
        self.clock.now_ms += 31_000

        self.assertIsNone(bridge.load())

    def test_saving_idle_state_clears_snapshot(self) -> None:
        self.bridge.save(STARTED, (A,))
        self.bridge.save(TimerState(completed_count=2), (A,))

        self.assertIsNone(self.cache.get(TIMER_STATE_CACHE_KEY))
        self.assertIsNone(self.bridge.load())

    def test_malformed_snapshots_are_ignored(self) -> None:
        for raw in (
            "garbage",
            {"currentTaskIndex": 0},
            {"timestamp": 1_700_000_000_000, "countedTaskIds": "1"},
            {"timestamp": 1_700_000_000_000, "tasks": [{"id": "x"}]},
        ):
            with self.subTest(raw=raw):
                self.cache.set(TIMER_STATE_CACHE_KEY, raw)
                self.assertIsNone(self.bridge.load())

    def test_cache_errors_are_swallowed(self) -> None:
        bridge = SessionPersistenceBridge(_BrokenCache(), now_fn=self.clock)

        bridge.save(STARTED, (A,))
        bridge.clear()
        self.assertIsNone(bridge.load())


if __name__ == "__main__":
    unittest.main()
