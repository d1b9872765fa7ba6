import json
import unittest
from concurrent.futures import Future

from notifications import PushSubscriptionRegistry
from server.api_routes import TaskApiRoutes
from tasks import InMemoryTaskStore

_SUBSCRIPTION = {
    "endpoint": "https://push.test/abc",
    "keys": {"p256dh": "key", "auth": "secret"},
}


class _DispatcherStub:
    def __init__(self):
        self.test_sends = 0

    def send_test_notification(self):
        self.test_sends += 1
        return Future()


def _json(payload) -> bytes:
    return json.dumps(payload).encode("utf-8")


class TaskApiRoutesTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = InMemoryTaskStore()
        self.subscriptions = PushSubscriptionRegistry()
        self.dispatcher = _DispatcherStub()
        self.changes = 0

        def on_change() -> None:
            self.changes += 1

        self.routes = TaskApiRoutes(
            self.store,
            self.subscriptions,
            dispatcher=self.dispatcher,
            on_change=on_change,
        )

    def test_healthz(self) -> None:
        response = self.routes.handle("GET", "/healthz")

        self.assertEqual(200, response.status)
        self.assertEqual(b"ok\n", response.encode())
        self.assertTrue(response.content_type.startswith("text/plain"))

    def test_create_task_returns_main_task_and_adds_break(self) -> None:
        response = self.routes.handle("POST", "/api/tasks", _json({"name": "Write"}))

        self.assertEqual(201, response.status)
        self.assertEqual(
            {"id": 1, "name": "Write", "duration": 25, "isInterval": False, "parentTaskId": None},
            response.body,
        )
        listed = self.routes.handle("GET", "/api/tasks").body
        self.assertEqual(["Write", "Break"], [task["name"] for task in listed])
        self.assertEqual(1, listed[1]["parentTaskId"])
        self.assertEqual(1, self.changes)

    def test_create_interval_task_adds_no_break(self) -> None:
        self.routes.handle(
            "POST",
            "/api/tasks",
            _json({"name": "Walk", "duration": 10, "isInterval": True}),
        )

        self.assertEqual(1, len(self.store.list()))

    def test_create_task_validation_error(self) -> None:
        response = self.routes.handle("POST", "/api/tasks", _json({"name": "", "duration": -1}))

        self.assertEqual(400, response.status)
        self.assertEqual("Invalid task data", response.body["message"])
        self.assertEqual(2, len(response.body["errors"]))
        self.assertEqual(0, self.changes)

    def test_invalid_json_body(self) -> None:
        response = self.routes.handle("POST", "/api/tasks", b"{nope")

        self.assertEqual(400, response.status)
        self.assertEqual("Request body must be valid JSON", response.body["message"])

    def test_update_task(self) -> None:
        task = self.store.create("Draft", 25)
        response = self.routes.handle(
            "PATCH",
            f"/api/tasks/{task.id}",
            _json({"name": "Final", "duration": 40}),
        )

        self.assertEqual(200, response.status)
        self.assertEqual("Final", response.body["name"])
        self.assertEqual(40, response.body["duration"])

    def test_update_missing_task_is_404(self) -> None:
        response = self.routes.handle("PATCH", "/api/tasks/99", _json({"name": "x"}))

        self.assertEqual(404, response.status)
        self.assertEqual({"message": "Task not found"}, response.body)

    def test_delete_task(self) -> None:
        task = self.store.create("Draft", 25)
        response = self.routes.handle("DELETE", f"/api/tasks/{task.id}/")

        self.assertEqual(204, response.status)
        self.assertEqual(b"", response.encode())
        self.assertEqual([], self.store.list())
        self.assertEqual(1, self.changes)

    def test_invalid_task_id(self) -> None:
        response = self.routes.handle("DELETE", "/api/tasks/abc")

        self.assertEqual(400, response.status)
        self.assertEqual("Invalid task ID", response.body["message"])

    def test_wrong_method_and_unknown_route(self) -> None:
        self.assertEqual(405, self.routes.handle("PUT", "/api/tasks").status)
        self.assertEqual(405, self.routes.handle("GET", "/api/tasks/1").status)
        self.assertEqual(404, self.routes.handle("GET", "/api/unknown").status)

    def test_subscribe_and_unsubscribe(self) -> None:
        created = self.routes.handle("POST", "/api/subscriptions", _json(_SUBSCRIPTION))
        self.assertEqual(201, created.status)
        self.assertEqual(1, len(self.subscriptions))

        removed = self.routes.handle(
            "DELETE",
            "/api/subscriptions",
            _json({"endpoint": _SUBSCRIPTION["endpoint"]}),
        )
        self.assertEqual(204, removed.status)

        missing = self.routes.handle(
            "DELETE",
            "/api/subscriptions",
            _json({"endpoint": _SUBSCRIPTION["endpoint"]}),
        )
        self.assertEqual(404, missing.status)
        self.assertEqual("Subscription not found", missing.body["message"])

    def test_invalid_subscription(self) -> None:
        response = self.routes.handle(
            "POST",
            "/api/subscriptions",
            _json({"endpoint": "not-a-url", "keys": {}}),
        )

        self.assertEqual(400, response.status)
        self.assertEqual(0, len(self.subscriptions))

    def test_test_notification(self) -> None:
        response = self.routes.handle("POST", "/api/notifications/test")

        self.assertEqual(202, response.status)
        self.assertEqual(1, self.dispatcher.test_sends)

    def test_vapid_public_key(self) -> None:
        routes = TaskApiRoutes(self.store, self.subscriptions, vapid_public_key="BPublicKey")

        response = routes.handle("GET", "/api/vapid-public-key")
        self.assertEqual(200, response.status)
        self.assertEqual({"publicKey": "BPublicKey"}, response.body)
        self.assertEqual(405, routes.handle("POST", "/api/vapid-public-key").status)

    def test_vapid_public_key_not_configured(self) -> None:
        response = self.routes.handle("GET", "/api/vapid-public-key")

        self.assertEqual(503, response.status)
        self.assertEqual("VAPID public key not configured", response.body["message"])

    def test_test_notification_without_dispatcher(self) -> None:
        routes = TaskApiRoutes(self.store, self.subscriptions)

        self.assertEqual(503, routes.handle("POST", "/api/notifications/test").status)

    def test_unexpected_errors_become_500(self) -> None:
        class _BrokenStore(InMemoryTaskStore):
            def list(self):
                raise RuntimeError("boom")

        routes = TaskApiRoutes(_BrokenStore(), self.subscriptions)
        response = routes.handle("GET", "/api/tasks")

        self.assertEqual(500, response.status)
        self.assertEqual("Internal server error", response.body["message"])

    def test_change_listener_errors_do_not_fail_request(self) -> None:
        def explode() -> None:
            raise RuntimeError("listener down")

        routes = TaskApiRoutes(self.store, self.subscriptions, on_change=explode)
        response = routes.handle("POST", "/api/tasks", _json({"name": "Write"}))

        self.assertEqual(201, response.status)


if __name__ == "__main__":
    unittest.main()
