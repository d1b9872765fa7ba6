"""User-facing notification texts built from timer notify effects."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pomodoro.constants import NOTIFY_COMPLETE, NOTIFY_SKIP, NOTIFY_START
from pomodoro.engine import NotifyEffect

TAG_COMPLETE = "task-timer"
TAG_START = "task-timer-start"
TAG_SKIP = "task-timer-skip"
TAG_TEST = "task-timer-test"


@dataclass(frozen=True)
class NotificationMessage:
    title: str
    body: str
    tag: str
    url: str = "/"

    def to_payload(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "body": self.body,
            "url": self.url,
            "tag": self.tag,
        }


def build_message(effect: NotifyEffect) -> NotificationMessage:
    """Map a start/complete/skip intent to the text shown to the user."""
    if effect.kind == NOTIFY_START:
        return NotificationMessage(
            title=f"Started: {effect.task_name}",
            body="Timer is now running",
            tag=TAG_START,
        )
    if effect.kind == NOTIFY_COMPLETE:
        body = (
            f"Next up: {effect.next_task_name}"
            if effect.next_task_name
            else "All tasks completed!"
        )
        return NotificationMessage(
            title=f"Task Completed: {effect.task_name}",
            body=body,
            tag=TAG_COMPLETE,
        )
    if effect.kind == NOTIFY_SKIP:
        return NotificationMessage(
            title=f"Skipped: {effect.task_name}",
            body=f"Next up: {effect.next_task_name}",
            tag=TAG_SKIP,
        )
    raise ValueError(f"Unsupported notification kind: {effect.kind}")


def diagnostic_message() -> NotificationMessage:
    return NotificationMessage(
        title="Test notification",
        body="Notifications are working",
        tag=TAG_TEST,
    )
