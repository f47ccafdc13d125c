"""Tests for the /realtime socket handler's connection cleanup, with a fake socket."""

import asyncio
import json
import logging
from typing import Any

import pytest
from fastapi import WebSocketDisconnect

from src.cc_common.enums import Role
from src.cc_gateway.auth.jwt_handler import create_access_token
from src.cc_realtime.api import gateway
from src.cc_realtime.bus.event_bus import EventBus


class ClosedForEventsSocket:
    """Accepts control replies but fails every forwarded bus event, like a half-closed socket."""

    def __init__(self) -> None:
        self.inbox: asyncio.Queue[str | None] = asyncio.Queue()
        self.sent: list[dict[str, Any]] = []
        self.send_failures = 0

    async def accept(self) -> None:
        return None

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        return None

    async def receive_text(self) -> str:
        raw = await self.inbox.get()
        if raw is None:
            raise WebSocketDisconnect(code=1000)
        return raw

    async def send_json(self, message: dict[str, Any]) -> None:
        if message["event"] in (gateway.SUBSCRIBED, gateway.PONG):
            self.sent.append(message)
            return
        self.send_failures += 1
        raise RuntimeError("Cannot call 'send' once a close message has been sent")


@pytest.fixture
def bus(monkeypatch: pytest.MonkeyPatch) -> EventBus:
    local = EventBus()
    monkeypatch.setattr(gateway, "get_event_bus", lambda: local)
    return local


async def _until(predicate: Any) -> None:
    for _ in range(200):
        if predicate():
            return
        await asyncio.sleep(0.01)
    raise AssertionError("condition not reached")


async def test_failed_event_writer_still_releases_connection(
    bus: EventBus, caplog: pytest.LogCaptureFixture
) -> None:
    socket = ClosedForEventsSocket()
    token = create_access_token("p1", Role.PLAYER, "c1")
    socket.inbox.put_nowait(json.dumps({"event": "subscribe:player", "data": {"playerId": "p1"}}))
    handler = asyncio.create_task(gateway.realtime_socket(socket, token=token))  # type: ignore[arg-type]

    await _until(lambda: bus.subscriber_count("player:p1") == 1)
    await bus.publish("player:p1", "credit:status-changed", {"kind": "ledger"})
    await _until(lambda: socket.send_failures == 1)

    with caplog.at_level(logging.ERROR, logger=gateway.__name__):
        socket.inbox.put_nowait(None)
        await handler

    assert bus.connection_count == 0
    assert bus.subscriber_count("player:p1") == 0
    assert "event writer failed" in caplog.text


async def test_client_disconnect_releases_connection(bus: EventBus) -> None:
    socket = ClosedForEventsSocket()
    token = create_access_token("p1", Role.PLAYER, "c1")
    socket.inbox.put_nowait(json.dumps({"event": "ping"}))
    handler = asyncio.create_task(gateway.realtime_socket(socket, token=token))  # type: ignore[arg-type]

    await _until(lambda: socket.sent != [])
    assert bus.connection_count == 1
    socket.inbox.put_nowait(None)
    await handler

    assert socket.sent[0]["event"] == "pong"
    assert bus.connection_count == 0
