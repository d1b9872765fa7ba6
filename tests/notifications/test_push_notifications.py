import base64
import os
import unittest
from urllib.parse import urlsplit

import requests
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from notifications import (
    NotificationMessage,
    PushNotificationChannel,
    PushSubscription,
    PushSubscriptionRegistry,
    SubscriptionValidationError,
    VapidCredentials,
)


def _subscription(endpoint: str) -> PushSubscription:
    return PushSubscription.from_dict(
        {"endpoint": endpoint, "keys": {"p256dh": "key", "auth": "secret"}}
    )


class PushSubscriptionTests(unittest.TestCase):
    def test_from_dict_round_trips_browser_shape(self) -> None:
        raw = {"endpoint": "https://push.test/abc", "keys": {"p256dh": "p", "auth": "a"}}

        self.assertEqual(raw, PushSubscription.from_dict(raw).to_dict())

    def test_from_dict_rejects_bad_payloads(self) -> None:
        cases = (
            None,
            {"keys": {"p256dh": "p", "auth": "a"}},
            {"endpoint": "ftp://push.test/x", "keys": {"p256dh": "p", "auth": "a"}},
            {"endpoint": "https://push.test/x"},
            {"endpoint": "https://push.test/x", "keys": {"p256dh": "p"}},
        )
        for raw in cases:
            with self.subTest(raw=raw):
                with self.assertRaises(SubscriptionValidationError):
                    PushSubscription.from_dict(raw)

    def test_registry_replaces_by_endpoint(self) -> None:
        registry = PushSubscriptionRegistry()

        self.assertTrue(registry.add(_subscription("https://push.test/a")))
        self.assertFalse(registry.add(_subscription("https://push.test/a")))
        self.assertEqual(1, len(registry))
        self.assertTrue(registry.remove("https://push.test/a"))
        self.assertFalse(registry.remove("https://push.test/a"))


class _RecordingSession:
    """Stands in for the push service; records what pywebpush sends."""

    def __init__(self, statuses=None, unreachable_hosts=()):
        self.statuses = statuses or {}
        self.unreachable_hosts = set(unreachable_hosts)
        self.sent: list[tuple[str, bytes, dict[str, str]]] = []
        self.closed = False

    def post(self, url, data=None, headers=None, timeout=None, **kwargs):
        parts = urlsplit(url)
        if parts.hostname in self.unreachable_hosts:
            raise requests.ConnectionError("unreachable")
        self.sent.append((url, data, {key.lower(): value for key, value in (headers or {}).items()}))
        response = requests.Response()
        response.status_code = self.statuses.get(parts.path, 201)
        response.url = url
        response._content = b""
        return response

    def close(self) -> None:
        self.closed = True


def _b64(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _public_point(key: ec.EllipticCurvePrivateKey) -> bytes:
    return key.public_key().public_bytes(
        serialization.Encoding.X962,
        serialization.PublicFormat.UncompressedPoint,
    )


def _vapid() -> VapidCredentials:
    key = ec.generate_private_key(ec.SECP256R1())
    return VapidCredentials(
        public_key=_b64(_public_point(key)),
        private_key=_b64(key.private_numbers().private_value.to_bytes(32, "big")),
        subject="mailto:ops@example.com",
    )


def _browser_subscription(endpoint: str) -> PushSubscription:
    key = ec.generate_private_key(ec.SECP256R1())
    return PushSubscription(
        endpoint=endpoint,
        p256dh=_b64(_public_point(key)),
        auth=_b64(os.urandom(16)),
    )


class PushNotificationChannelTests(unittest.TestCase):
    def _channel(self, registry, session, vapid=None) -> PushNotificationChannel:
        channel = PushNotificationChannel(
            registry,
            vapid if vapid is not None else _vapid(),
            session=session,
        )
        self.addCleanup(channel.close)
        return channel

    def test_sends_signed_encrypted_push_to_every_endpoint(self) -> None:
        registry = PushSubscriptionRegistry()
        registry.add(_browser_subscription("https://fcm.googleapis.com/fcm/send/a"))
        registry.add(_browser_subscription("https://updates.push.services.mozilla.com/wpush/v2/b"))
        session = _RecordingSession()

        message = NotificationMessage("Started: A", "Timer is now running", "task-timer-start")
        self._channel(registry, session).send(message)

        self.assertEqual(
            [
                "https://fcm.googleapis.com/fcm/send/a",
                "https://updates.push.services.mozilla.com/wpush/v2/b",
            ],
            [url for url, _, _ in session.sent],
        )
        for _url, body, headers in session.sent:
            self.assertTrue(headers["authorization"].startswith("vapid "))
            self.assertEqual("aes128gcm", headers["content-encoding"])
            self.assertEqual("60", str(headers["ttl"]))
            self.assertNotIn(b"Started: A", body)

    def test_gone_endpoints_are_unsubscribed(self) -> None:
        registry = PushSubscriptionRegistry()
        for name in ("gone", "missing", "flaky", "ok"):
            registry.add(_browser_subscription(f"https://push.test/{name}"))
        session = _RecordingSession(statuses={"/gone": 410, "/missing": 404, "/flaky": 500})

        self._channel(registry, session).send(NotificationMessage("t", "b", "x"))

        self.assertEqual(
            ["https://push.test/flaky", "https://push.test/ok"],
            [sub.endpoint for sub in registry.all()],
        )

    def test_network_errors_do_not_stop_delivery(self) -> None:
        registry = PushSubscriptionRegistry()
        registry.add(_browser_subscription("https://down.test/a"))
        registry.add(_browser_subscription("https://push.test/b"))
        session = _RecordingSession(unreachable_hosts={"down.test"})

        self._channel(registry, session).send(NotificationMessage("t", "b", "x"))

        self.assertEqual(["https://push.test/b"], [url for url, _, _ in session.sent])
        self.assertEqual(2, len(registry))

    def test_nothing_is_sent_without_vapid_keys(self) -> None:
        registry = PushSubscriptionRegistry()
        registry.add(_browser_subscription("https://push.test/a"))
        session = _RecordingSession()
        channel = PushNotificationChannel(registry, None, session=session)

        with self.assertLogs("notifications", level="WARNING"):
            channel.send(NotificationMessage("t", "b", "x"))

        self.assertFalse(channel.configured)
        self.assertEqual([], session.sent)

    def test_close_closes_session(self) -> None:
        session = _RecordingSession()
        PushNotificationChannel(PushSubscriptionRegistry(), _vapid(), session=session).close()

        self.assertTrue(session.closed)


if __name__ == "__main__":
    unittest.main()
