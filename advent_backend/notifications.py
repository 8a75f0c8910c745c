"""
Push notification helpers.

`build_notification` turns an incoming push payload into the notification
that is shown to the user, `resolve_click` decides which app window a
notification click lands on, and the `PushSender` implementations deliver
notifications through Firebase Cloud Messaging.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, Sequence
from urllib.parse import urlparse

import firebase_admin
from firebase_admin import credentials, exceptions as firebase_exceptions, messaging

from advent_backend.errors import BackendError

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Advent Calendar"
DEFAULT_BODY = "New tile available!"
DEFAULT_TAG = "advent-calendar"
OPEN_ACTION = "open"
OPEN_ACTION_TITLE = "Open Calendar"
FIREBASE_APP_NAME = "advent-push"


@dataclass
class NotificationSpec:
    title: str
    body: str
    icon: str
    badge: str
    tag: str
    data: dict = field(default_factory=dict)
    require_interaction: bool = False
    actions: list[dict] = field(
        default_factory=lambda: [{"action": OPEN_ACTION, "title": OPEN_ACTION_TITLE}]
    )


@dataclass
class ClientWindow:
    url: str
    focused: bool = False


@dataclass
class ClickTarget:
    url: str
    window: Optional[ClientWindow] = None

    @property
    def opens_new_window(self) -> bool:
        return self.window is None


def build_notification(payload: dict[str, Any], *, icon: str = "/icon-192x192.png") -> NotificationSpec:
    notification = payload.get("notification") or {}
    data = payload.get("data") or {}
    return NotificationSpec(
        title=notification.get("title") or DEFAULT_TITLE,
        body=notification.get("body") or DEFAULT_BODY,
        icon=icon,
        badge=icon,
        tag=data.get("type") or DEFAULT_TAG,
        data=dict(data),
    )


def _same_path(url: str, app_url: str) -> bool:
    return (urlparse(url).path or "/") == (urlparse(app_url).path or "/")


def resolve_click(
    action: Optional[str], windows: Sequence[ClientWindow], app_url: str = "/"
) -> ClickTarget:
    """
    Every action, including the default click, targets the app. An open window
    already showing the app is reused, preferring the focused one.
    """
    if action not in (None, "", OPEN_ACTION):
        logger.debug("Unknown notification action %r, opening app", action)

    candidates = [w for w in windows if _same_path(w.url, app_url)]
    candidates.sort(key=lambda w: not w.focused)
    if candidates:
        return ClickTarget(url=app_url, window=candidates[0])
    return ClickTarget(url=app_url)


class PushSender(Protocol):
    def send(self, token: str, spec: NotificationSpec) -> str:
        ...


@dataclass
class InMemoryPushSender:
    """Records sent notifications for tests/dev."""

    sent: list[tuple[str, NotificationSpec]] = field(default_factory=list)

    def send(self, token: str, spec: NotificationSpec) -> str:
        self.sent.append((token, spec))
        return f"in-memory-{len(self.sent)}"

    def reset(self) -> None:
        self.sent.clear()


def to_fcm_message(token: str, spec: NotificationSpec) -> messaging.Message:
    return messaging.Message(
        token=token,
        notification=messaging.Notification(title=spec.title, body=spec.body),
        # FCM data payloads only carry string values.
        data={str(k): str(v) for k, v in spec.data.items()},
        webpush=messaging.WebpushConfig(
            notification=messaging.WebpushNotification(
                title=spec.title,
                body=spec.body,
                icon=spec.icon,
                badge=spec.badge,
                tag=spec.tag,
                require_interaction=spec.require_interaction,
                actions=[
                    messaging.WebpushNotificationAction(a["action"], a["title"])
                    for a in spec.actions
                ],
            ),
        ),
    )


class FirebasePushSender:
    """Sends web-push notifications through the Firebase Admin SDK."""

    def __init__(self, credentials_path: str):
        try:
            self.app = firebase_admin.get_app(FIREBASE_APP_NAME)
        except ValueError:
            self.app = firebase_admin.initialize_app(
                credentials.Certificate(credentials_path), name=FIREBASE_APP_NAME
            )

    def send(self, token: str, spec: NotificationSpec) -> str:
        try:
            message_id = messaging.send(to_fcm_message(token, spec), app=self.app)
        except firebase_exceptions.FirebaseError as exc:
            raise BackendError("push", str(exc)) from exc
        logger.info("Sent notification %s (tag=%s)", message_id, spec.tag)
        return message_id
