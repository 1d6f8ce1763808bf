"""
Host notification service backends
"""

from typing import Optional

from plyer import notification as plyer_notification

from .config import NotificationChannel
from .errors import NotificationDisplayFailure
from .logging_utils import get_logger

logger = get_logger(__name__)


class Notifier:
    """Interface of the host notification service.

    ``show`` never raises: backends report display problems by raising
    NotificationDisplayFailure from ``_display``, which is logged here.
    """

    def __init__(self):
        self.channel: Optional[NotificationChannel] = None

    def initialize(self, channel: NotificationChannel) -> None:
        self.channel = channel
        logger.info(f"Notification channel '{channel.channel_id}' ready ({type(self).__name__})")

    def show(self, notification_id: int, title: str, body: str,
             channel: Optional[NotificationChannel] = None) -> bool:
        channel = channel or self.channel or NotificationChannel()
        try:
            self._display(notification_id, title, body, channel)
        except NotificationDisplayFailure as e:
            logger.warning(f"Notification {notification_id} on '{channel.channel_id}' not displayed: {e}")
            return False
        return True

    def _display(self, notification_id: int, title: str, body: str,
                 channel: NotificationChannel) -> None:
        raise NotImplementedError


class PlyerNotifier(Notifier):
    """Desktop notifications through plyer"""

    def _display(self, notification_id: int, title: str, body: str,
                 channel: NotificationChannel) -> None:
        try:
            plyer_notification.notify(
                title=title,
                message=body,
                app_name=channel.app_name,
                ticker=channel.ticker,
                timeout=channel.timeout_s
            )
        except Exception as e:  # plyer raises NotImplementedError or backend errors
            raise NotificationDisplayFailure(str(e) or type(e).__name__) from e


class LogNotifier(Notifier):
    """Writes notifications to the log, for hosts without a desktop"""

    def _display(self, notification_id: int, title: str, body: str,
                 channel: NotificationChannel) -> None:
        logger.warning(
            f"[{channel.channel_name}] {title}: {body}",
            extra={
                "event_type": "notification",
                "notification_id": notification_id,
                "channel_id": channel.channel_id,
                "importance": channel.importance,
                "priority": channel.priority
            }
        )


def build_notifier(backend: str) -> Notifier:
    if backend == "log":
        return LogNotifier()
    return PlyerNotifier()
