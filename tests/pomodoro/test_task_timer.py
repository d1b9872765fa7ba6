import unittest

from pomodoro import PersistEffect, TaskTimer, TimerState
from tasks.models import Task

TASK_A = Task(id=1, name="A", duration=25)
BREAK_A = Task(id=2, name="A", duration=5, is_interval=True, parent_task_id=1)
TASK_B = Task(id=3, name="B", duration=10)


class _FakeClock:
    def __init__(self, now_ms: int = 0):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, seconds: float) -> None:
        self.now_ms += int(seconds * 1000)


def _timer(*tasks: Task) -> tuple[TaskTimer, _FakeClock]:
    clock = _FakeClock(1_000_000)
    timer = TaskTimer(now_fn=clock)
    timer.set_queue(tasks)
    return timer, clock


class TaskTimerTests(unittest.TestCase):
    def test_idle_snapshot_previews_current_task(self) -> None:
        timer, _clock = _timer(TASK_A, BREAK_A)
        snapshot = timer.snapshot()

        self.assertEqual("idle", snapshot.phase)
        self.assertEqual(TASK_A, snapshot.current_task)
        self.assertEqual(1_500, snapshot.remaining_seconds)
        self.assertEqual(2, snapshot.queue_length)
        self.assertFalse(snapshot.is_active)

    def test_empty_queue_snapshot_has_no_task(self) -> None:
        timer, _clock = _timer()
        snapshot = timer.snapshot()

        self.assertIsNone(snapshot.current_task)
        self.assertEqual(0, snapshot.remaining_seconds)
        self.assertEqual(0, snapshot.duration_seconds)

    def test_apply_unknown_action_is_rejected(self) -> None:
        timer, _clock = _timer(TASK_A)
        result = timer.apply("rewind")  # type: ignore[arg-type]

        self.assertFalse(result.accepted)
        self.assertEqual("unsupported_action", result.reason)

    def test_reconcile_returns_none_when_not_running(self) -> None:
        timer, _clock = _timer(TASK_A)
        self.assertIsNone(timer.reconcile())

    def test_reconcile_returns_none_within_same_second(self) -> None:
        timer, clock = _timer(TASK_A)
        timer.apply("start")
        clock.advance(0.4)

        self.assertIsNone(timer.reconcile())

    def test_reconcile_reports_countdown_and_completion(self) -> None:
        timer, clock = _timer(TASK_A, BREAK_A)
        timer.apply("start")

        clock.advance(25 * 60 - 1)
        tick = timer.reconcile()
        self.assertIsNotNone(tick)
        self.assertEqual(1, tick.snapshot.remaining_seconds)
        self.assertFalse(tick.completed)

        clock.advance(1)
        tick = timer.reconcile()
        self.assertTrue(tick.completed)
        self.assertEqual(BREAK_A, tick.snapshot.current_task)
        self.assertEqual(300, tick.snapshot.remaining_seconds)
        self.assertEqual(1, tick.snapshot.state.completed_count)

    def test_pause_and_resume_keep_remaining_time(self) -> None:
        timer, clock = _timer(TASK_A)
        timer.apply("start")
        clock.advance(100)
        paused = timer.apply("pause")
        self.assertEqual(1_400, paused.snapshot.remaining_seconds)

        clock.advance(3_600)
        self.assertIsNone(timer.reconcile())
        resumed = timer.apply("start")
        self.assertEqual("resumed", resumed.reason)
        self.assertEqual(1_400, resumed.snapshot.remaining_seconds)

    def test_remove_task_drops_it_from_queue(self) -> None:
        timer, _clock = _timer(TASK_A, BREAK_A, TASK_B)
        timer.apply("start")

        result = timer.remove_task(TASK_A.id)

        self.assertTrue(result.accepted)
        self.assertEqual((BREAK_A, TASK_B), timer.queue)
        self.assertEqual(BREAK_A, result.snapshot.current_task)
        self.assertEqual("paused", result.snapshot.phase)

    def test_remove_unknown_task_keeps_queue(self) -> None:
        timer, _clock = _timer(TASK_A)
        result = timer.remove_task(404)

        self.assertFalse(result.accepted)
        self.assertEqual((TASK_A,), timer.queue)

    def test_set_queue_emits_persist_only_when_state_changes(self) -> None:
        timer, _clock = _timer(TASK_A, TASK_B)
        unchanged = timer.set_queue((TASK_A, TASK_B))
        self.assertEqual((), unchanged.effects)

        timer.apply("start")
        emptied = timer.set_queue(())
        self.assertEqual("idle", emptied.snapshot.phase)
        self.assertTrue(any(isinstance(effect, PersistEffect) for effect in emptied.effects))

    def test_set_queue_without_earlier_task_keeps_current_task_running(self) -> None:
        first = Task(id=11, name="First", duration=1)
        second = Task(id=12, name="Second", duration=1)
        third = Task(id=13, name="Third", duration=1)
        timer, clock = _timer(first, second, third)
        timer.apply("start")
        clock.advance(70)
        timer.reconcile()
        self.assertEqual(second, timer.snapshot().current_task)
        self.assertEqual(1, timer.snapshot().state.completed_count)

        result = timer.set_queue((second, third))

        self.assertEqual(second, result.snapshot.current_task)
        self.assertEqual("running", result.snapshot.phase)
        self.assertEqual(50, result.snapshot.remaining_seconds)
        self.assertEqual(0, result.snapshot.state.completed_count)
        self.assertEqual((), result.snapshot.state.counted_task_ids)
        self.assertTrue(any(isinstance(effect, PersistEffect) for effect in result.effects))

    def test_set_queue_without_current_task_pauses_on_next(self) -> None:
        timer, _clock = _timer(TASK_A, BREAK_A, TASK_B)
        timer.apply("start")

        result = timer.set_queue((BREAK_A, TASK_B))

        self.assertEqual(BREAK_A, result.snapshot.current_task)
        self.assertEqual("paused", result.snapshot.phase)
        self.assertEqual(300, result.snapshot.remaining_seconds)

    def test_restore_snapshot_comes_back_paused(self) -> None:
        timer, _clock = _timer(TASK_A, BREAK_A)
        result = timer.restore(
            TimerState(
                current_task_index=1,
                is_running=False,
                has_started_timer=True,
                time_remaining_seconds=42,
                completed_count=1,
                counted_task_ids=(1,),
            )
        )

        self.assertTrue(result.accepted)
        self.assertEqual("paused", result.snapshot.phase)
        self.assertEqual(42, result.snapshot.remaining_seconds)
        self.assertEqual(BREAK_A, result.snapshot.current_task)


if __name__ == "__main__":
    unittest.main()
