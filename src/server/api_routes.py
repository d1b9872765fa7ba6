"""Request routing for the REST task API, independent of the HTTP transport."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from notifications import (
    NotificationDispatcher,
    PushSubscription,
    PushSubscriptionRegistry,
    SubscriptionValidationError,
)
from tasks.errors import TaskNotFoundError, TaskValidationError
from tasks.store import DEFAULT_BREAK_DURATION_MINUTES, TaskStoreLike, create_with_break
from tasks.validation import (
    DEFAULT_TASK_DURATION_MINUTES,
    parse_create_payload,
    parse_update_payload,
)

from .config import API_PREFIX, HEALTHZ_PATH

TASKS_PATH = f"{API_PREFIX}/tasks"
SUBSCRIPTIONS_PATH = f"{API_PREFIX}/subscriptions"
TEST_NOTIFICATION_PATH = f"{API_PREFIX}/notifications/test"
VAPID_PUBLIC_KEY_PATH = f"{API_PREFIX}/vapid-public-key"

JSON_CONTENT_TYPE = "application/json"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"


class _BadRequest(Exception):
    pass


@dataclass(frozen=True)
class ApiResponse:
    status: int
    body: Any = None
    content_type: str = JSON_CONTENT_TYPE

    def encode(self) -> bytes:
        if self.body is None:
            return b""
        if isinstance(self.body, bytes):
            return self.body
        return json.dumps(self.body).encode("utf-8")


def _message(status: int, message: str, **extra: Any) -> ApiResponse:
    return ApiResponse(status, {"message": message, **extra})


class TaskApiRoutes:
    """Maps `(method, path, body)` to task store and subscription operations."""

    def __init__(
        self,
        store: TaskStoreLike,
        subscriptions: PushSubscriptionRegistry,
        *,
        dispatcher: Optional[NotificationDispatcher] = None,
        auto_break: bool = True,
        break_duration_minutes: int = DEFAULT_BREAK_DURATION_MINUTES,
        default_duration_minutes: int = DEFAULT_TASK_DURATION_MINUTES,
        vapid_public_key: str = "",
        on_change: Optional[Callable[[], None]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._store = store
        self._subscriptions = subscriptions
        self._dispatcher = dispatcher
        self._auto_break = auto_break
        self._break_duration = break_duration_minutes
        self._default_duration = default_duration_minutes
        self._vapid_public_key = vapid_public_key
        self._on_change = on_change
        self._logger = logger or logging.getLogger("api_server")

    def handle(self, method: str, path: str, body: bytes = b"") -> ApiResponse:
        method = method.upper()
        path = path.rstrip("/") or "/"
        try:
            return self._route(method, path, body)
        except _BadRequest as error:
            return _message(400, str(error))
        except TaskValidationError as error:
            return _message(400, str(error), errors=error.errors)
        except TaskNotFoundError:
            return _message(404, "Task not found")
        except Exception as error:
            self._logger.error("Unhandled API error for %s %s: %s", method, path, error, exc_info=True)
            return _message(500, "Internal server error")

    def _route(self, method: str, path: str, body: bytes) -> ApiResponse:
        if path == HEALTHZ_PATH:
            if method != "GET":
                return _message(405, "Method not allowed")
            return ApiResponse(200, b"ok\n", TEXT_CONTENT_TYPE)

        if path == TASKS_PATH:
            if method == "GET":
                return ApiResponse(200, [task.to_dict() for task in self._store.list()])
            if method == "POST":
                return self._create_task(body)
            return _message(405, "Method not allowed")

        if path.startswith(TASKS_PATH + "/"):
            task_id = self._parse_task_id(path[len(TASKS_PATH) + 1:])
            if method == "PATCH":
                return self._update_task(task_id, body)
            if method == "DELETE":
                self._store.delete(task_id)
                self._changed()
                return ApiResponse(204)
            return _message(405, "Method not allowed")

        if path == SUBSCRIPTIONS_PATH:
            if method == "POST":
                return self._subscribe(body)
            if method == "DELETE":
                return self._unsubscribe(body)
            return _message(405, "Method not allowed")

        if path == VAPID_PUBLIC_KEY_PATH:
            if method != "GET":
                return _message(405, "Method not allowed")
            if not self._vapid_public_key:
                return _message(503, "VAPID public key not configured")
            return ApiResponse(200, {"publicKey": self._vapid_public_key})

        if path == TEST_NOTIFICATION_PATH:
            if method != "POST":
                return _message(405, "Method not allowed")
            if self._dispatcher is None:
                return _message(503, "Notifications are disabled")
            self._dispatcher.send_test_notification()
            return _message(202, "Test notification queued")

        return _message(404, "Not found")

    def _create_task(self, body: bytes) -> ApiResponse:
        fields = parse_create_payload(
            self._decode(body),
            default_duration=self._default_duration,
        )
        created = create_with_break(
            self._store,
            fields["name"],
            fields["duration"],
            is_interval=fields["is_interval"],
            parent_task_id=fields["parent_task_id"],
            auto_break=self._auto_break,
            break_duration=self._break_duration,
        )
        self._changed()
        return ApiResponse(201, created[0].to_dict())

    def _update_task(self, task_id: int, body: bytes) -> ApiResponse:
        fields = parse_update_payload(self._decode(body))
        task = self._store.update(task_id, **fields)
        self._changed()
        return ApiResponse(200, task.to_dict())

    def _subscribe(self, body: bytes) -> ApiResponse:
        try:
            subscription = PushSubscription.from_dict(self._decode(body))
        except SubscriptionValidationError as error:
            return _message(400, "Invalid subscription", errors=[str(error)])
        self._subscriptions.add(subscription)
        return ApiResponse(201, subscription.to_dict())

    def _unsubscribe(self, body: bytes) -> ApiResponse:
        payload = self._decode(body)
        endpoint = payload.get("endpoint") if isinstance(payload, dict) else None
        if not isinstance(endpoint, str) or not endpoint:
            return _message(400, "endpoint is required")
        if not self._subscriptions.remove(endpoint):
            return _message(404, "Subscription not found")
        return ApiResponse(204)

    @staticmethod
    def _parse_task_id(raw: str) -> int:
        try:
            return int(raw)
        except ValueError:
            raise _BadRequest("Invalid task ID") from None

    @staticmethod
    def _decode(body: bytes) -> Any:
        if not body:
            return None
        try:
            return json.loads(body)
        except (UnicodeDecodeError, ValueError):
            raise _BadRequest("Request body must be valid JSON") from None

    def _changed(self) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change()
        except Exception as error:
            self._logger.warning("Task change listener failed: %s", error)
