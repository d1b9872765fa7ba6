"""Start, completion, and skip notifications for the task timer."""

from .channels import (
    LocalNotificationChannel,
    NotificationChannel,
    PushNotificationChannel,
    VapidCredentials,
)
from .dispatcher import (
    MODE_LOCAL,
    MODE_PUSH,
    NotificationDispatcher,
    NotificationPreferences,
)
from .messages import NotificationMessage, build_message
from .subscriptions import (
    PushSubscription,
    PushSubscriptionRegistry,
    SubscriptionValidationError,
)

__all__ = [
    "LocalNotificationChannel",
    "MODE_LOCAL",
    "MODE_PUSH",
    "NotificationChannel",
    "NotificationDispatcher",
    "NotificationMessage",
    "NotificationPreferences",
    "PushNotificationChannel",
    "PushSubscription",
    "PushSubscriptionRegistry",
    "SubscriptionValidationError",
    "VapidCredentials",
    "build_message",
]
