"""Delivery channels for notification messages."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

import requests
from pywebpush import WebPushException, webpush

from contracts.ui_protocol import EVENT_NOTIFICATION

from .messages import NotificationMessage
from .subscriptions import PushSubscription, PushSubscriptionRegistry

_GONE_STATUS_CODES = frozenset({404, 410})


class NotificationChannel(Protocol):
    def send(self, message: NotificationMessage) -> None:
        ...


class EventPublisherLike(Protocol):
    def publish(self, event_type: str, **payload: Any) -> None:
        ...


class LocalNotificationChannel:
    """Shows notifications in connected pages through the websocket UI."""

    def __init__(self, publisher: Optional[EventPublisherLike]):
        self._publisher = publisher

    def send(self, message: NotificationMessage) -> None:
        if self._publisher is None:
            return
        self._publisher.publish(EVENT_NOTIFICATION, **message.to_payload())


@dataclass(frozen=True)
class VapidCredentials:
    """Application server identity used to sign Web Push requests."""
    public_key: str
    private_key: str
    subject: str


class PushNotificationChannel:
    """Sends the message as an encrypted Web Push to every subscription.

    Requests are signed with the VAPID key pair and encrypted with the
    subscription keys by `pywebpush`. Endpoints answering 404 or 410 are
    gone and get unsubscribed. Other failures are logged per endpoint and
    do not stop delivery to the rest.
    """

    def __init__(
        self,
        registry: PushSubscriptionRegistry,
        vapid: Optional[VapidCredentials],
        *,
        timeout_seconds: float = 5.0,
        ttl_seconds: int = 60,
        logger: Optional[logging.Logger] = None,
        session: Optional[requests.Session] = None,
    ):
        self._registry = registry
        self._vapid = vapid
        self._timeout_seconds = timeout_seconds
        self._ttl_seconds = ttl_seconds
        self._logger = logger or logging.getLogger("notifications")
        self._session = session or requests.Session()

    @property
    def configured(self) -> bool:
        return self._vapid is not None

    def close(self) -> None:
        self._session.close()

    def send(self, message: NotificationMessage) -> None:
        if self._vapid is None:
            self._logger.warning("Push notification skipped; VAPID keys are not configured")
            return

        subscriptions = self._registry.all()
        if not subscriptions:
            self._logger.debug("No push subscriptions registered")
            return

        data = json.dumps(message.to_payload())
        for subscription in subscriptions:
            self._push(subscription, data, self._vapid)

    def _push(
        self,
        subscription: PushSubscription,
        data: str,
        vapid: VapidCredentials,
    ) -> None:
        try:
            webpush(
                subscription_info=subscription.to_dict(),
                data=data,
                vapid_private_key=vapid.private_key,
                vapid_claims={"sub": vapid.subject},
                ttl=self._ttl_seconds,
                timeout=self._timeout_seconds,
                requests_session=self._session,
            )
        except WebPushException as error:
            status = error.response.status_code if error.response is not None else None
            if status in _GONE_STATUS_CODES:
                self._logger.info(
                    "Push endpoint gone (%s); unsubscribing %s",
                    status,
                    subscription.endpoint,
                )
                self._registry.remove(subscription.endpoint)
            else:
                self._logger.warning(
                    "Push endpoint %s rejected the message (%s): %s",
                    subscription.endpoint,
                    status,
                    error,
                )
        except requests.RequestException as error:
            self._logger.warning(
                "Push delivery to %s failed: %s",
                subscription.endpoint,
                error,
            )
        else:
            self._logger.debug("Push delivered to %s", subscription.endpoint)
