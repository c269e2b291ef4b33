"""Tests for the session scoped notification client."""

from __future__ import annotations

import asyncio
import json
import logging

import httpx
import pytest

from campus_notify.client import NotificationClient, ReconnectionPolicy
from campus_notify.config import Settings
from campus_notify.domain.entities import ConnectionState, Notification, NotificationType
from campus_notify.infrastructure.notifications.protocol import (
    notification_message,
    notifications_message,
    unread_count_message,
)

WS_URL = "ws://push.test/notifications/ws"


class FakeSocket:
    """Scriptable stand-in for a ``websockets`` client connection."""

    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.closed = False
        self._incoming: asyncio.Queue[str | None] = asyncio.Queue()

    async def __aenter__(self) -> "FakeSocket":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.closed = True

    async def send(self, text: str) -> None:
        self.sent.append(json.loads(text))

    async def close(self) -> None:
        self.closed = True

    def feed(self, message: dict) -> None:
        self._incoming.put_nowait(json.dumps(message))

    def drop(self) -> None:
        self._incoming.put_nowait(None)

    def __aiter__(self) -> "FakeSocket":
        return self

    async def __anext__(self) -> str:
        frame = await self._incoming.get()
        if frame is None:
            raise StopAsyncIteration
        return frame


class FakeConnector:
    """Hands out scripted sockets; refuses once the script runs out."""

    def __init__(self, *outcomes) -> None:
        self.outcomes = list(outcomes)
        self.urls: list[str] = []

    def __call__(self, url: str):
        self.urls.append(url)
        outcome = self.outcomes.pop(0) if self.outcomes else OSError("connection refused")
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class RecordingSleep:
    def __init__(self, *, block: bool = False) -> None:
        self.delays: list[float] = []
        self.block = block

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        if self.block:
            await asyncio.Event().wait()


async def wait_until(predicate, timeout: float = 2.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


def make_notification(notification_id: int, *, read: bool = False, type_=NotificationType.GENERIC):
    return Notification(
        id=notification_id,
        user_id=1,
        type=type_,
        title=f"Aviso {notification_id}",
        message="Mensaje",
        read=read,
    )


def make_client(connector, sleep=None, **kwargs) -> NotificationClient:
    return NotificationClient(
        WS_URL,
        "token-123",
        connect=connector,
        sleep=sleep or RecordingSleep(),
        **kwargs,
    )


def recording_http(requests: list, status_code: int = 200) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append((request.method, request.url.path))
        return httpx.Response(status_code, json={})

    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://api.test")


@pytest.mark.anyio
async def test_open_channel_backfills_newest_page():
    socket = FakeSocket()
    connector = FakeConnector(socket)
    client = make_client(connector, page_size=10)
    try:
        await client.start()
        await wait_until(lambda: socket.sent)

        assert connector.urls == [f"{WS_URL}?token=token-123"]
        assert client.state is ConnectionState.OPEN
        request = socket.sent[0]
        assert request == {
            "type": "get_notifications",
            "limit": 10,
            "offset": 0,
            "request_id": request["request_id"],
        }

        socket.feed(
            notifications_message(
                [make_notification(2), make_notification(1, read=True)],
                request_id=request["request_id"],
            )
        )
        await wait_until(lambda: client.get_state().notifications)

        state = client.get_state()
        assert [item.id for item in state.notifications] == [2, 1]
        assert state.unread_count == 1
        assert state.is_connected is True
    finally:
        await client.aclose()


@pytest.mark.anyio
async def test_pushed_notification_updates_cache_and_raises_alert():
    socket = FakeSocket()
    alerts = []
    client = make_client(FakeConnector(socket), on_alert=alerts.append)
    try:
        await client.start()
        await wait_until(lambda: socket.sent)

        socket.feed(notification_message(make_notification(7, type_=NotificationType.LEVEL_UP)))
        await wait_until(lambda: alerts)

        assert alerts[0].icon == "⬆️"
        assert client.get_state().unread_count == 1
    finally:
        await client.aclose()


@pytest.mark.anyio
async def test_gives_up_after_five_failed_retries():
    connector = FakeConnector()
    sleep = RecordingSleep()
    client = make_client(connector, sleep)

    await client.start()
    await client.wait_stopped()

    assert len(connector.urls) == 6
    assert sleep.delays == [1.0, 2.0, 4.0, 8.0, 16.0]
    assert client.state is ConnectionState.GIVEN_UP
    await client.aclose()


@pytest.mark.anyio
async def test_reconnects_after_a_drop_and_resets_attempts():
    first, second = FakeSocket(), FakeSocket()
    connector = FakeConnector(first, OSError("network down"), second)
    sleep = RecordingSleep()
    client = make_client(connector, sleep)
    try:
        await client.start()
        await wait_until(lambda: first.sent)
        first.drop()

        await wait_until(lambda: second.sent)

        assert sleep.delays == [1.0, 2.0]
        assert client.state is ConnectionState.OPEN
        assert client.policy.attempt == 0
        assert second.sent[0]["type"] == "get_notifications"
    finally:
        await client.aclose()


@pytest.mark.anyio
async def test_disconnect_cancels_a_pending_reconnect():
    connector = FakeConnector()
    sleep = RecordingSleep(block=True)
    client = make_client(connector, sleep)

    await client.start()
    await wait_until(lambda: sleep.delays)
    await client.disconnect()

    assert client.state is ConnectionState.CLOSED
    assert len(connector.urls) == 1
    with pytest.raises(RuntimeError):
        await client.start()
    await client.aclose()


@pytest.mark.anyio
async def test_retry_after_giving_up_connects_again():
    socket = FakeSocket()
    connector = FakeConnector(OSError("offline"), socket)
    client = make_client(connector, policy=ReconnectionPolicy(max_attempts=0))
    try:
        await client.start()
        await client.wait_stopped()
        assert client.state is ConnectionState.GIVEN_UP

        await client.retry()
        await wait_until(lambda: socket.sent)

        assert client.state is ConnectionState.OPEN
    finally:
        await client.aclose()


@pytest.mark.anyio
async def test_mark_as_read_is_optimistic_and_persisted():
    socket = FakeSocket()
    requests: list = []
    client = make_client(FakeConnector(socket), http_client=recording_http(requests))
    try:
        await client.start()
        await wait_until(lambda: socket.sent)
        socket.feed(
            notifications_message(
                [make_notification(5), make_notification(4)],
                request_id=socket.sent[0]["request_id"],
            )
        )
        await wait_until(lambda: client.get_state().unread_count == 2)

        assert await client.mark_as_read(5) is True
        assert await client.mark_as_read(5) is False

        assert client.get_state().unread_count == 1
        assert {"type": "mark_read", "notification_id": 5} in socket.sent
        assert requests == [("PUT", "/notifications/5/read")] * 2
    finally:
        await client.aclose()


@pytest.mark.anyio
async def test_failed_persist_keeps_local_state(caplog):
    requests: list = []
    client = make_client(FakeConnector(), http_client=recording_http(requests, 500))
    client.cache.apply_full_list([make_notification(3)])

    with caplog.at_level(logging.WARNING, logger="campus_notify.client.service"):
        changed = await client.mark_as_read(3)

    assert changed is True
    assert client.get_state().unread_count == 0
    assert requests == [("PUT", "/notifications/3/read")]
    assert "failed" in caplog.text
    await client.aclose()


@pytest.mark.anyio
async def test_mark_all_as_read_persists_through_rest():
    requests: list = []
    client = make_client(FakeConnector(), http_client=recording_http(requests))
    client.cache.apply_full_list([make_notification(1), make_notification(2)])

    flipped = await client.mark_all_as_read()

    assert flipped == 2
    assert client.get_state().unread_count == 0
    assert requests == [("PUT", "/notifications/read-all")]
    await client.aclose()


@pytest.mark.anyio
async def test_subscribers_observe_connection_changes():
    socket = FakeSocket()
    client = make_client(FakeConnector(socket))
    seen = []
    client.subscribe(lambda state: seen.append(state.connection))
    try:
        await client.start()
        await wait_until(lambda: socket.sent)
    finally:
        await client.aclose()

    assert seen[:2] == [ConnectionState.CONNECTING, ConnectionState.OPEN]
    assert seen[-1] is ConnectionState.CLOSED


@pytest.mark.anyio
async def test_from_settings_builds_authenticated_urls():
    settings = Settings(
        push_channel_url="ws://push.test/notifications/ws?lang=es",
        api_base_url="http://api.test",
        notification_page_size=15,
        reconnect_max_attempts=2,
    )
    socket = FakeSocket()
    connector = FakeConnector(socket)
    client = NotificationClient.from_settings("abc", settings, connect=connector)
    try:
        await client.start()
        await wait_until(lambda: socket.sent)

        assert connector.urls == ["ws://push.test/notifications/ws?lang=es&token=abc"]
        assert socket.sent[0]["limit"] == 15
        assert client.policy.max_attempts == 2
    finally:
        await client.aclose()


@pytest.mark.anyio
async def test_keepalive_pings_only_while_open():
    socket = FakeSocket()
    client = make_client(FakeConnector(socket), keepalive_interval=0.02)
    try:
        await client.start()
        await wait_until(lambda: socket.sent.count({"type": "ping"}) >= 2)

        socket.drop()
        await client.wait_stopped()
        pings = socket.sent.count({"type": "ping"})
        await asyncio.sleep(0.1)

        assert socket.sent.count({"type": "ping"}) == pings
        assert client.state is ConnectionState.GIVEN_UP
    finally:
        await client.aclose()


@pytest.mark.anyio
async def test_server_unread_total_is_applied():
    socket = FakeSocket()
    client = make_client(FakeConnector(socket))
    try:
        await client.start()
        await wait_until(lambda: socket.sent)
        socket.feed(
            notifications_message(
                [make_notification(1)], request_id=socket.sent[0]["request_id"]
            )
        )
        socket.feed(unread_count_message(12))
        await wait_until(lambda: client.get_state().unread_count == 12)

        socket.feed({"type": "unread_count", "count": -3})
        socket.feed(unread_count_message(11))
        await wait_until(lambda: client.get_state().unread_count == 11)

        assert [item.id for item in client.get_state().notifications] == [1]
    finally:
        await client.aclose()
