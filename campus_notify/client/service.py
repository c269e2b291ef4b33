"""Session scoped controller that keeps a user's notifications live."""

from __future__ import annotations

import asyncio
import json
import logging
import urllib.parse
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import httpx
import websockets
from websockets.exceptions import WebSocketException

from campus_notify.config import Settings, get_settings
from campus_notify.domain.entities import ConnectionState, Notification
from campus_notify.infrastructure.notifications import protocol

from .alerts import Alert
from .cache import DEFAULT_CAPACITY, NotificationCache
from .reconnect import ReconnectionPolicy

logger = logging.getLogger(__name__)

DEFAULT_KEEPALIVE_INTERVAL = 30.0
HTTP_TIMEOUT_SECONDS = 10.0

_TRANSPORT_ERRORS = (OSError, asyncio.TimeoutError, WebSocketException)


@dataclass(frozen=True)
class ClientState:
    """What a UI needs to render the notification bell."""

    connection: ConnectionState
    notifications: tuple[Notification, ...]
    unread_count: int

    @property
    def is_connected(self) -> bool:
        return self.connection is ConnectionState.OPEN


StateListener = Callable[[ClientState], None]
Connector = Callable[[str], Any]
Sleeper = Callable[[float], Awaitable[None]]


class NotificationClient:
    """Own one user's push channel, reconnect policy and notification cache.

    Construct one per signed-in session and call :meth:`aclose` (or leave the
    ``async with`` block) on logout. UI layers observe it through
    :meth:`subscribe` and :meth:`get_state`.

    ``connect`` must return an async context manager yielding a socket with
    ``send``, ``close`` and async iteration over incoming text frames;
    :func:`websockets.connect` is used by default.
    """

    def __init__(
        self,
        ws_url: str,
        token: str,
        *,
        api_base_url: str | None = None,
        policy: ReconnectionPolicy | None = None,
        cache: NotificationCache | None = None,
        page_size: int = DEFAULT_CAPACITY,
        keepalive_interval: float = DEFAULT_KEEPALIVE_INTERVAL,
        http_client: httpx.AsyncClient | None = None,
        connect: Connector | None = None,
        sleep: Sleeper = asyncio.sleep,
        on_alert: Callable[[Alert], None] | None = None,
    ) -> None:
        self.policy = policy or ReconnectionPolicy()
        self.cache = cache or NotificationCache(capacity=page_size, on_alert=on_alert)
        self.page_size = page_size
        self.keepalive_interval = keepalive_interval
        self._ws_url = _with_token(ws_url, token)
        self._connect = connect or websockets.connect
        self._sleep = sleep
        self._owns_http = http_client is None and api_base_url is not None
        if http_client is None and api_base_url is not None:
            http_client = httpx.AsyncClient(
                base_url=api_base_url,
                headers={"Authorization": f"Bearer {token}"},
                timeout=HTTP_TIMEOUT_SECONDS,
            )
        self._http = http_client
        self._socket: Any | None = None
        self._runner: asyncio.Task[None] | None = None
        self._listeners: list[StateListener] = []
        self.cache.subscribe(lambda _state: self._publish())

    @classmethod
    def from_settings(
        cls, token: str, settings: Settings | None = None, **kwargs: Any
    ) -> "NotificationClient":
        settings = settings or get_settings()
        kwargs.setdefault("api_base_url", settings.api_base_url)
        kwargs.setdefault("policy", ReconnectionPolicy.from_settings(settings))
        kwargs.setdefault("page_size", settings.notification_page_size)
        kwargs.setdefault("keepalive_interval", settings.keepalive_interval)
        return cls(settings.push_channel_url, token, **kwargs)

    async def __aenter__(self) -> "NotificationClient":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    @property
    def state(self) -> ConnectionState:
        return self.policy.state

    def get_state(self) -> ClientState:
        cache_state = self.cache.get_state()
        return ClientState(
            connection=self.policy.state,
            notifications=cache_state.notifications,
            unread_count=cache_state.unread_count,
        )

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def start(self) -> None:
        """Begin connecting in the background. No-op while already running."""

        if self._runner is not None and not self._runner.done():
            return
        if not self.policy.should_run:
            raise RuntimeError("Client was disconnected; call retry() to reconnect")
        self._runner = asyncio.create_task(self._run())

    async def retry(self) -> None:
        """Manual reconnect, e.g. after the client gave up."""

        await self._cancel_runner()
        self.policy.reset()
        self._publish()
        await self.start()

    async def disconnect(self) -> None:
        """Close the channel on purpose; pending reconnects are cancelled."""

        self.policy.disconnect()
        await self._cancel_runner()
        self._publish()

    async def aclose(self) -> None:
        await self.disconnect()
        if self._owns_http and self._http is not None:
            await self._http.aclose()

    async def wait_stopped(self) -> None:
        """Wait until the connect loop exits (gave up or disconnected)."""

        runner = self._runner
        if runner is not None:
            await asyncio.shield(runner)

    async def refresh(self) -> bool:
        """Ask the server for the newest page; ``False`` when not connected."""

        request_id = self.cache.begin_fetch()
        return await self._send(
            protocol.get_notifications_request(
                limit=self.page_size, offset=0, request_id=request_id
            )
        )

    async def mark_as_read(self, notification_id: int) -> bool:
        """Mark one notification read locally first, then tell the server.

        The socket message is sent when the channel is open and the REST
        write is always attempted so the change survives a dropped channel.
        Failures are logged; the local state is kept either way.
        """

        changed = self.cache.mark_as_read(notification_id)
        await self._send(protocol.mark_read_request(notification_id))
        await self._persist(f"/notifications/{notification_id}/read")
        return changed

    async def mark_all_as_read(self) -> int:
        flipped = self.cache.mark_all_as_read()
        await self._persist("/notifications/read-all")
        return flipped

    async def _run(self) -> None:
        while self.policy.should_run:
            self.policy.begin_connect()
            self._publish()
            try:
                async with self._connect(self._ws_url) as socket:
                    await self._serve(socket)
            except _TRANSPORT_ERRORS as exc:
                logger.info("Notification channel unavailable: %s", exc)

            delay = self.policy.connection_lost()
            self._publish()
            if delay is None:
                return
            logger.info(
                "Reconnecting notification channel in %.1fs (attempt %s of %s)",
                delay,
                self.policy.attempt,
                self.policy.max_attempts,
            )
            await self._sleep(delay)

    async def _serve(self, socket: Any) -> None:
        self._socket = socket
        self.policy.opened()
        self._publish()
        keepalive = asyncio.create_task(self._keepalive())
        try:
            await self.refresh()
            async for raw in socket:
                self._handle_frame(raw)
        finally:
            self._socket = None
            keepalive.cancel()
            try:
                await keepalive
            except asyncio.CancelledError:
                pass

    async def _keepalive(self) -> None:
        while True:
            await asyncio.sleep(self.keepalive_interval)
            if not await self._send(protocol.ping_request()):
                return

    def _handle_frame(self, raw: str | bytes) -> None:
        try:
            message = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring non-JSON frame on the notification channel")
            return
        if not isinstance(message, dict):
            logger.warning("Ignoring non-object frame on the notification channel")
            return

        message_type = message.get("type")
        try:
            if message_type == protocol.NOTIFICATION:
                notification = protocol.parse_notification(message.get("notification") or {})
                self.cache.apply_incoming_notification(notification)
            elif message_type == protocol.NOTIFICATIONS:
                notifications = [
                    protocol.parse_notification(item)
                    for item in message.get("notifications") or []
                ]
                self.cache.apply_full_list(notifications, request_id=message.get("request_id"))
            elif message_type == protocol.UNREAD_COUNT:
                self.cache.apply_unread_count(protocol.parse_unread_count(message))
            elif message_type == protocol.ERROR:
                logger.warning("Notification server reported: %s", message.get("message"))
            elif message_type != protocol.PONG:
                logger.debug("Ignoring unknown frame type %r", message_type)
        except protocol.ProtocolError as exc:
            logger.warning("Malformed %s frame from server: %s", message_type, exc)

    async def _send(self, message: dict[str, Any]) -> bool:
        socket = self._socket
        if socket is None:
            return False
        try:
            await socket.send(json.dumps(message))
        except _TRANSPORT_ERRORS as exc:
            logger.info("Could not send %s frame: %s", message.get("type"), exc)
            return False
        return True

    async def _persist(self, path: str) -> bool:
        if self._http is None:
            logger.debug("No API client configured; skipping durable write to %s", path)
            return False
        try:
            response = await self._http.put(path)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Durable read-state write to %s failed: %s", path, exc)
            return False
        return True

    async def _cancel_runner(self) -> None:
        runner, self._runner = self._runner, None
        if runner is None or runner.done():
            return
        runner.cancel()
        try:
            await runner
        except asyncio.CancelledError:
            pass

    def _publish(self) -> None:
        state = self.get_state()
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Notification client listener failed")


def _with_token(url: str, token: str) -> str:
    parts = urllib.parse.urlsplit(url)
    query = urllib.parse.parse_qsl(parts.query, keep_blank_values=True)
    query = [(key, value) for key, value in query if key != "token"]
    query.append(("token", token))
    return urllib.parse.urlunsplit(parts._replace(query=urllib.parse.urlencode(query)))


__all__ = ["ClientState", "NotificationClient"]
