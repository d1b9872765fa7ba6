"""In-memory registry of push subscription endpoints."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import urlsplit


class SubscriptionValidationError(ValueError):
    """Raised when a push subscription payload is malformed."""


@dataclass(frozen=True)
class PushSubscription:
    endpoint: str
    p256dh: str
    auth: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "endpoint": self.endpoint,
            "keys": {"p256dh": self.p256dh, "auth": self.auth},
        }

    @classmethod
    def from_dict(cls, raw: Any) -> "PushSubscription":
        if not isinstance(raw, dict):
            raise SubscriptionValidationError("Subscription must be a JSON object.")

        endpoint = raw.get("endpoint")
        if not isinstance(endpoint, str) or not endpoint.strip():
            raise SubscriptionValidationError("endpoint is required.")
        parts = urlsplit(endpoint.strip())
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise SubscriptionValidationError("endpoint must be an http(s) URL.")

        keys = raw.get("keys")
        if not isinstance(keys, dict):
            raise SubscriptionValidationError("keys must be an object.")
        p256dh = keys.get("p256dh")
        auth = keys.get("auth")
        if not isinstance(p256dh, str) or not p256dh:
            raise SubscriptionValidationError("keys.p256dh is required.")
        if not isinstance(auth, str) or not auth:
            raise SubscriptionValidationError("keys.auth is required.")

        return cls(endpoint=endpoint.strip(), p256dh=p256dh, auth=auth)


class PushSubscriptionRegistry:
    """Thread-safe subscription set keyed by endpoint; re-subscribing replaces."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger("notifications")
        self._lock = threading.Lock()
        self._subscriptions: dict[str, PushSubscription] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def add(self, subscription: PushSubscription) -> bool:
        """Store `subscription`; returns True when the endpoint was new."""
        with self._lock:
            created = subscription.endpoint not in self._subscriptions
            self._subscriptions[subscription.endpoint] = subscription
        self._logger.info(
            "Push subscription %s: %s",
            "added" if created else "replaced",
            subscription.endpoint,
        )
        return created

    def remove(self, endpoint: str) -> bool:
        with self._lock:
            removed = self._subscriptions.pop(endpoint, None) is not None
        if removed:
            self._logger.info("Push subscription removed: %s", endpoint)
        return removed

    def all(self) -> list[PushSubscription]:
        with self._lock:
            return list(self._subscriptions.values())
