import unittest

from notifications import build_message
from notifications.messages import diagnostic_message
from pomodoro import NotifyEffect


class NotificationMessageTests(unittest.TestCase):
    def test_start_message(self) -> None:
        message = build_message(NotifyEffect("start", "Write report"))

        self.assertEqual("Started: Write report", message.title)
        self.assertEqual("Timer is now running", message.body)
        self.assertEqual("task-timer-start", message.tag)

    def test_completion_names_next_task(self) -> None:
        message = build_message(NotifyEffect("complete", "Write report", "Break"))

        self.assertEqual("Task Completed: Write report", message.title)
        self.assertEqual("Next up: Break", message.body)
        self.assertEqual("task-timer", message.tag)

    def test_completion_of_last_task(self) -> None:
        message = build_message(NotifyEffect("complete", "Break"))

        self.assertEqual("All tasks completed!", message.body)

    def test_skip_message(self) -> None:
        message = build_message(NotifyEffect("skip", "Write report", "Break"))

        self.assertEqual("Skipped: Write report", message.title)
        self.assertEqual("task-timer-skip", message.tag)

    def test_unknown_kind_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            build_message(NotifyEffect("snooze", "x"))  # type: ignore[arg-type]

    def test_payload_shape(self) -> None:
        payload = diagnostic_message().to_payload()

        self.assertEqual({"title", "body", "url", "tag"}, set(payload))
        self.assertEqual("/", payload["url"])
        self.assertEqual("task-timer-test", payload["tag"])


if __name__ == "__main__":
    unittest.main()
