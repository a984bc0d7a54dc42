"""Operator session: connection status, mutation gate and notifications.

Screens receive the session explicitly instead of reading global state.
"""

from collections import deque
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from itertools import count

from policy_console.errors import ConsoleBusyError, ConsoleError, NotConnectedError
from policy_console.logging.audit import get_audit_logger

DISCONNECTED = "disconnected"
CONNECTING = "connecting"
CONNECTED = "connected"

# Oldest notifications drop off once the history is full
MAX_NOTIFICATIONS = 50


@dataclass
class Notification:
    id: int
    message: str
    level: str  # "success" | "error" | "warning"


class ConsoleSession:

    def __init__(self, connection_status: str = DISCONNECTED):
        self.connection_status = connection_status
        self.saving = False
        self.notifications: deque[Notification] = deque(maxlen=MAX_NOTIFICATIONS)
        self._ids = count(1)

    @property
    def connected(self) -> bool:
        return self.connection_status == CONNECTED

    @property
    def controls_disabled(self) -> bool:
        return not self.connected or self.saving

    async def connect(self, probe: Callable[[], Awaitable[object]]) -> bool:
        """Run ``probe`` against the management API and record the outcome."""
        self.connection_status = CONNECTING
        try:
            await probe()
        except ConsoleError as e:
            self.connection_status = DISCONNECTED
            get_audit_logger().warning("Connection check failed", extra={"audit_data": {"error": e.message}})
            return False
        self.connection_status = CONNECTED
        get_audit_logger().info("Connected to management API")
        return True

    def disconnect(self) -> None:
        self.connection_status = DISCONNECTED

    @asynccontextmanager
    async def mutation(self):
        """Hold the saving flag for one mutating round trip."""
        if not self.connected:
            raise NotConnectedError("Not connected to the management API")
        if self.saving:
            raise ConsoleBusyError("Another change is still being saved")
        self.saving = True
        try:
            yield
        finally:
            self.saving = False

    def notify(self, message: str, level: str = "success") -> Notification:
        notification = Notification(id=next(self._ids), message=message, level=level)
        self.notifications.append(notification)
        return notification

    def dismiss(self, notification_id: int) -> bool:
        before = len(self.notifications)
        self.notifications = deque(
            (n for n in self.notifications if n.id != notification_id), maxlen=MAX_NOTIFICATIONS
        )
        return len(self.notifications) != before

    def latest(self) -> Notification | None:
        return self.notifications[-1] if self.notifications else None
