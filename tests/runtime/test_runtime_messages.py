import unittest

from pomodoro import TimerSnapshot, TimerState
from runtime.messages import format_duration, rejection_text, timer_status_message
from tasks import Task

TASK = Task(id=1, name="Write", duration=25)


class RuntimeMessagesTests(unittest.TestCase):
    def test_format_duration(self) -> None:
        self.assertEqual("25:00", format_duration(1_500))
        self.assertEqual("00:01", format_duration(1))
        self.assertEqual("00:00", format_duration(-5))

    def test_status_message_per_phase(self) -> None:
        running = TimerSnapshot(
            TimerState(is_running=True, has_started_timer=True, time_remaining_seconds=61),
            TASK,
            1,
        )
        paused = TimerSnapshot(
            TimerState(has_started_timer=True, time_remaining_seconds=61),
            TASK,
            1,
        )

        self.assertEqual("Write running (01:01 left)", timer_status_message(running))
        self.assertEqual("Write paused (01:01 left)", timer_status_message(paused))
        self.assertEqual("Ready: Write", timer_status_message(TimerSnapshot(TimerState(), TASK, 1)))
        self.assertEqual(
            "Add a task to get started",
            timer_status_message(TimerSnapshot(TimerState(), None, 0)),
        )

    def test_rejection_text(self) -> None:
        self.assertEqual("There are no tasks in the queue.", rejection_text("start", "empty_queue"))
        self.assertEqual("The timer is not running.", rejection_text("pause", "not_running"))
        self.assertEqual(
            "That timer action is not possible right now.",
            rejection_text("start", "unsupported_action"),
        )


if __name__ == "__main__":
    unittest.main()
