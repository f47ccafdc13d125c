"""Self-healing realtime connection used by ClientSyncAdapter.

The server forgets a socket's subscriptions when it drops, so every
(re)connect sends the whole active subscription set again before any event
is read. Reconnects back off exponentially (tenacity) within a bounded
attempt budget; exhausting it raises RealtimeUnavailableError.
"""

import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any, Protocol

from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential
from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from config.settings import settings
from src.cc_common.errors import AppError, ConnectionLostError, RealtimeUnavailableError

logger = logging.getLogger(__name__)


class RealtimeTransport(Protocol):
    async def send(self, message: dict[str, Any]) -> None: ...

    async def receive(self) -> dict[str, Any]: ...

    async def close(self) -> None: ...


TransportFactory = Callable[[], Awaitable[RealtimeTransport]]


class WebSocketTransport:
    """JSON messages over a websockets client connection."""

    def __init__(self, ws: ClientConnection) -> None:
        self._ws = ws

    @classmethod
    async def open(cls, url: str) -> "WebSocketTransport":
        try:
            ws = await connect(url)
        except (OSError, WebSocketException) as exc:
            raise ConnectionLostError(f"Realtime connect failed: {exc}") from exc
        return cls(ws)

    async def send(self, message: dict[str, Any]) -> None:
        try:
            await self._ws.send(json.dumps(message))
        except ConnectionClosed as exc:
            raise ConnectionLostError(f"Realtime socket closed: {exc}") from exc

    async def receive(self) -> dict[str, Any]:
        try:
            raw = await self._ws.recv()
        except ConnectionClosed as exc:
            raise ConnectionLostError(f"Realtime socket closed: {exc}") from exc
        return json.loads(raw)

    async def close(self) -> None:
        await self._ws.close()


def websocket_factory(base_url: str, token: str) -> TransportFactory:
    """Factory for ws(s)://host/realtime?token=... connections."""
    url = f"{base_url.rstrip('/')}/realtime?token={token}"

    async def _open() -> RealtimeTransport:
        return await WebSocketTransport.open(url)

    return _open


class RealtimeConnection:
    def __init__(
        self,
        factory: TransportFactory,
        *,
        max_attempts: int = settings.SYNC_MAX_RECONNECT_ATTEMPTS,
        backoff_min: float = 0.5,
        backoff_max: float = 30.0,
        on_connected: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        self._factory = factory
        self._max_attempts = max_attempts
        self._backoff_min = backoff_min
        self._backoff_max = backoff_max
        self.on_connected = on_connected
        self._transport: RealtimeTransport | None = None
        # Insertion-ordered; key is the serialised subscribe message
        self._subscriptions: dict[str, dict[str, Any]] = {}
        self.connect_count = 0

    @property
    def connected(self) -> bool:
        return self._transport is not None

    @property
    def subscriptions(self) -> list[dict[str, Any]]:
        return list(self._subscriptions.values())

    async def subscribe(self, event: str, data: dict[str, Any]) -> None:
        """Remember a subscription and send it now if connected."""
        message = {"event": event, "data": data}
        self._subscriptions[json.dumps(message, sort_keys=True)] = message
        if self._transport is not None:
            await self._send_or_drop(message)

    async def unsubscribe(self, event: str, data: dict[str, Any]) -> None:
        subscribe_event = event.replace("unsubscribe:", "subscribe:", 1)
        key = json.dumps({"event": subscribe_event, "data": data}, sort_keys=True)
        self._subscriptions.pop(key, None)
        if self._transport is not None:
            await self._send_or_drop({"event": event, "data": data})

    async def connect(self) -> None:
        """Open a transport and re-issue every subscription, retrying with backoff."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=self._backoff_min, max=self._backoff_max),
            retry=retry_if_exception_type(ConnectionLostError),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    transport = await self._factory()
                    try:
                        for message in self._subscriptions.values():
                            await transport.send(message)
                    except ConnectionLostError:
                        await transport.close()
                        raise
        except ConnectionLostError as exc:
            logger.error("Realtime unavailable after %d attempts: %s", self._max_attempts, exc)
            raise RealtimeUnavailableError(self._max_attempts) from exc

        self._transport = transport
        self.connect_count += 1
        logger.info(
            "Realtime connected (#%d), %d subscriptions restored",
            self.connect_count,
            len(self._subscriptions),
        )
        if self.on_connected is not None:
            try:
                await self.on_connected()
            except AppError as exc:
                # The socket is live; the next resync fetches what this refresh missed
                logger.warning("Refresh after realtime connect failed: %s", exc.message)

    async def events(self) -> AsyncIterator[dict[str, Any]]:
        """Yield server messages forever, reconnecting on loss.

        Raises RealtimeUnavailableError once a reconnect exhausts its budget.
        """
        while True:
            if self._transport is None:
                await self.connect()
            assert self._transport is not None
            try:
                message = await self._transport.receive()
            except ConnectionLostError as exc:
                logger.warning("Realtime connection lost: %s", exc.message)
                await self._drop()
                continue
            yield message

    async def close(self) -> None:
        await self._drop()

    async def _send_or_drop(self, message: dict[str, Any]) -> None:
        assert self._transport is not None
        try:
            await self._transport.send(message)
        except ConnectionLostError:
            # The message is remembered and goes out again on reconnect
            await self._drop()

    async def _drop(self) -> None:
        transport, self._transport = self._transport, None
        if transport is not None:
            try:
                await transport.close()
            except (ConnectionLostError, OSError, WebSocketException) as exc:
                logger.debug("Ignoring error while closing realtime transport: %s", exc)
