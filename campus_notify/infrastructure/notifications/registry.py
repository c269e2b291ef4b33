"""Registry of live notification push channels, one per user."""

from __future__ import annotations

import logging
import threading

from .connection import PushConnection

logger = logging.getLogger(__name__)


class NotificationConnectionRegistry:
    """Track the push channel currently used to reach each user.

    A user has at most one registered channel. Registering a new one
    supersedes the previous binding without closing the old socket; the old
    handler notices its own disconnect and its :meth:`unregister` becomes a
    no-op because it no longer owns the slot.
    """

    def __init__(self) -> None:
        self._connections: dict[int, PushConnection] = {}
        self._lock = threading.Lock()

    def register(self, user_id: int, connection: PushConnection) -> PushConnection | None:
        """Bind ``connection`` to ``user_id`` and return the superseded one, if any."""

        with self._lock:
            previous = self._connections.get(user_id)
            self._connections[user_id] = connection

        if previous is not None and previous is not connection:
            logger.info("Push channel for user %s superseded by a newer one", user_id)
            return previous
        return None

    def unregister(self, user_id: int, connection: PushConnection) -> bool:
        """Remove the binding only while ``connection`` still owns it."""

        with self._lock:
            if self._connections.get(user_id) is not connection:
                return False
            del self._connections[user_id]
        return True

    def lookup(self, user_id: int) -> PushConnection | None:
        """Return the user's channel when it is open, otherwise ``None``."""

        with self._lock:
            connection = self._connections.get(user_id)
        if connection is None or not connection.is_open:
            return None
        return connection

    def is_connected(self, user_id: int) -> bool:
        return self.lookup(user_id) is not None

    def connected_user_count(self) -> int:
        with self._lock:
            connections = list(self._connections.values())
        return sum(1 for connection in connections if connection.is_open)

    async def close_all(self) -> None:
        """Close and forget every registered channel (application shutdown)."""

        with self._lock:
            connections = list(self._connections.values())
            self._connections.clear()
        for connection in connections:
            await connection.close(code=1001)


notification_registry = NotificationConnectionRegistry()


__all__ = ["NotificationConnectionRegistry", "notification_registry"]
