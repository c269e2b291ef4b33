"""Server side wrapper around one notification websocket."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from campus_notify.domain.entities import ConnectionState

logger = logging.getLogger(__name__)


class PushConnection:
    """A single push channel bound to ``user_id``.

    Outbound frames (pushes and request responses alike) go through one FIFO
    outbox drained by a single writer task, so frames reach the client in
    the order :meth:`push` was called. :meth:`push` may be called from any
    thread.
    """

    def __init__(self, user_id: int, websocket: WebSocket) -> None:
        self.user_id = user_id
        self.websocket = websocket
        self.state = ConnectionState.CONNECTING
        self._outbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._writer: asyncio.Task[None] | None = None

    @property
    def is_open(self) -> bool:
        return self.state is ConnectionState.OPEN

    async def open(self) -> None:
        """Accept the handshake and start delivering queued frames."""

        if self.state is not ConnectionState.CONNECTING:
            raise RuntimeError(f"Cannot open a connection in state {self.state.value}")
        await self.websocket.accept()
        self._loop = asyncio.get_running_loop()
        self.state = ConnectionState.OPEN
        self._writer = self._loop.create_task(self._drain())

    def push(self, message: dict[str, Any]) -> bool:
        """Queue ``message`` for delivery; return ``False`` when not ``OPEN``."""

        if not self.is_open or self._loop is None:
            return False

        # Loop and worker-thread callers share one path: outbox order == call order.
        try:
            self._loop.call_soon_threadsafe(self._outbox.put_nowait, message)
        except RuntimeError:
            logger.info("Event loop for user %s is gone; dropping push", self.user_id)
            return False
        return True

    async def send(self, message: dict[str, Any]) -> bool:
        return self.push(message)

    async def close(self, code: int = 1000) -> None:
        """Move to ``CLOSED`` and release the socket. Safe to call twice."""

        self.state = ConnectionState.CLOSED
        writer, self._writer = self._writer, None
        if writer is not None and writer is not asyncio.current_task():
            writer.cancel()
            try:
                await writer
            except asyncio.CancelledError:
                pass

        if (
            self.websocket.application_state == WebSocketState.CONNECTED
            and self.websocket.client_state == WebSocketState.CONNECTED
        ):
            try:
                await self.websocket.close(code=code)
            except RuntimeError as exc:
                logger.debug("Websocket for user %s already closed: %s", self.user_id, exc)

    async def _drain(self) -> None:
        while self.is_open:
            message = await self._outbox.get()
            try:
                await self.websocket.send_json(message)
            except Exception as exc:  # socket went away underneath us
                logger.info(
                    "Push channel for user %s failed while sending: %s", self.user_id, exc
                )
                self.state = ConnectionState.CLOSED
                return

    def __repr__(self) -> str:
        return f"PushConnection(user_id={self.user_id!r}, state={self.state.value!r})"


__all__ = ["PushConnection"]
