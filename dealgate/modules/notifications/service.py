"""Notification/e-mail collaborator used by the NDA lifecycle.

Calls are fire-and-forget: the Celery implementation only enqueues work, and
callers wrap every call so a broker outage never fails the triggering request.
"""

import uuid
from typing import Any, Protocol

import structlog

from dealgate.models.enums import NotificationType

logger = structlog.get_logger()


class Notifier(Protocol):
    def notify(
        self,
        user_id: uuid.UUID,
        type: NotificationType,
        title: str,
        message: str,
        link: str | None = None,
    ) -> None: ...

    def send_email(self, to: str, template: str, variables: dict[str, Any]) -> None: ...


class CeleryNotifier:
    """Enqueues deliver_notification / deliver_email on the Redis broker."""

    def notify(
        self,
        user_id: uuid.UUID,
        type: NotificationType,
        title: str,
        message: str,
        link: str | None = None,
    ) -> None:
        from dealgate.modules.notifications.tasks import deliver_notification

        deliver_notification.delay(str(user_id), type.value, title, message, link)
        logger.debug("notification_enqueued", user_id=str(user_id), type=type.value)

    def send_email(self, to: str, template: str, variables: dict[str, Any]) -> None:
        from dealgate.modules.notifications.tasks import deliver_email

        deliver_email.delay(to, template, variables)
        logger.debug("email_enqueued", template=template)


def get_notifier() -> Notifier:
    return CeleryNotifier()
