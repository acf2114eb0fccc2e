"""User-visible notifications.

Notifications go to the desktop through ``org.freedesktop.Notifications``
on the D-Bus session bus and are mirrored to web clients on the event bus.
"""

import asyncio
import logging

from dbus_next import BusType, Message, MessageType, Variant
from dbus_next.aio import MessageBus

from .web.events import EventBus

logger = logging.getLogger(__name__)

NOTIFICATIONS_SERVICE = "org.freedesktop.Notifications"
NOTIFICATIONS_PATH = "/org/freedesktop/Notifications"
NOTIFICATIONS_INTERFACE = "org.freedesktop.Notifications"

URGENCY_NORMAL = 1
URGENCY_CRITICAL = 2

APP_NAME = "Bluetooth Switch"
APP_ICON = "bluetooth-active-symbolic"


class NotificationError(Exception):
    """A notification could not be delivered."""


class DesktopNotifier:
    """Sends freedesktop notifications, connecting to the session bus lazily."""

    EXPIRE_DEFAULT = -1
    BUS_RETRY_INITIAL = 5.0  # seconds
    BUS_RETRY_MAX = 300.0

    def __init__(self, event_bus: EventBus | None = None, enabled: bool = True):
        self._event_bus = event_bus
        self._enabled = enabled
        self._bus: MessageBus | None = None
        self._retry_delay = self.BUS_RETRY_INITIAL
        self._retry_at = 0.0

    async def _get_bus(self) -> MessageBus:
        if not self._enabled:
            raise NotificationError("Desktop notifications disabled")
        if self._bus is not None and self._bus.connected:
            return self._bus
        now = asyncio.get_running_loop().time()
        if now < self._retry_at:
            raise NotificationError("Session bus unavailable")
        try:
            self._bus = await MessageBus(bus_type=BusType.SESSION).connect()
        except Exception as e:
            # Headless sessions have no session bus; it may appear later.
            self._bus = None
            self._retry_at = now + self._retry_delay
            logger.warning(
                "D-Bus session bus unavailable, retrying in %.0fs: %s", self._retry_delay, e
            )
            self._retry_delay = min(self._retry_delay * 2, self.BUS_RETRY_MAX)
            raise NotificationError(str(e)) from e
        self._retry_delay = self.BUS_RETRY_INITIAL
        logger.debug("Connected to D-Bus session bus for notifications")
        return self._bus

    async def _send(self, summary: str, body: str, urgency: int) -> int:
        bus = await self._get_bus()
        message = Message(
            destination=NOTIFICATIONS_SERVICE,
            path=NOTIFICATIONS_PATH,
            interface=NOTIFICATIONS_INTERFACE,
            member="Notify",
            signature="susssasa{sv}i",
            body=[
                APP_NAME,
                0,
                APP_ICON,
                summary,
                body,
                [],
                {"urgency": Variant("y", urgency)},
                self.EXPIRE_DEFAULT,
            ],
        )
        try:
            reply = await bus.call(message)
        except Exception as e:
            raise NotificationError(str(e)) from e
        if reply is None or reply.message_type == MessageType.ERROR:
            detail = reply.body[0] if reply is not None and reply.body else "no reply"
            error_name = reply.error_name if reply is not None else "NoReply"
            raise NotificationError(f"{error_name}: {detail}")
        return reply.body[0]

    async def notify(self, message: str) -> None:
        """Informational notification; delivery failures are only logged."""
        logger.info("Notification: %s", message)
        self._mirror("info", APP_NAME, message)
        try:
            await self._send(message, "", URGENCY_NORMAL)
        except NotificationError as e:
            logger.debug("Desktop notification not shown: %s", e)

    async def notify_error(self, title: str, message: str) -> None:
        """Error notification with a title.

        Raises NotificationError when it cannot be shown, so callers can
        fall back to :meth:`notify`.
        """
        await self._send(title, message, URGENCY_CRITICAL)
        logger.warning("Error notification: %s: %s", title, message)
        self._mirror("error", title, message)

    async def close(self) -> None:
        if self._bus is not None:
            self._bus.disconnect()
            self._bus = None

    def _mirror(self, level: str, title: str, message: str) -> None:
        if self._event_bus is not None:
            self._event_bus.emit(
                "notification", {"level": level, "title": title, "message": message}
            )


async def notify_error(notifier, title: str, message: str) -> None:
    """Show an error notification, falling back to a plain one."""
    try:
        await notifier.notify_error(title, message)
    except NotificationError:
        await notifier.notify(f"{title}: {message}")
