"""In-process publish/subscribe bus keyed by topic.

Each connection owns one bounded FIFO queue; publish() fans an envelope out
to every connection subscribed to its topic without awaiting in between, so
delivery order within a topic is publish order. Subscriptions belong to the
connection and die with it.
"""

import asyncio
import logging
from collections import defaultdict
from dataclasses import replace
from typing import Protocol

from config.settings import settings
from src.cc_common.datetime_utils import utc_now
from src.cc_common.errors import ConnectionLostError
from src.cc_common.id_generator import generate_id
from src.cc_realtime.domain.models import EventEnvelope, validate_event_type, validate_topic

logger = logging.getLogger(__name__)


class EventRelay(Protocol):
    """Cross-process transport. The relay hands every envelope back via deliver()."""

    async def publish(self, envelope: EventEnvelope) -> EventEnvelope:
        """Assign the topic's next seq and publish atomically; return the sequenced envelope."""
        ...


class Connection:
    """One subscriber connection (one socket)."""

    def __init__(self, connection_id: str, queue_size: int) -> None:
        self.id = connection_id
        self.topics: set[str] = set()
        self._queue: asyncio.Queue[EventEnvelope | None] = asyncio.Queue(maxsize=queue_size)
        self.closed = False

    def push(self, envelope: EventEnvelope) -> bool:
        if self.closed:
            return False
        try:
            self._queue.put_nowait(envelope)
        except asyncio.QueueFull:
            return False
        return True

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        # Drop undelivered events; the subscriber heals by re-fetching after reconnect
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(None)

    async def next_event(self) -> EventEnvelope:
        """Next envelope in delivery order. Raises ConnectionLostError once closed."""
        item = await self._queue.get()
        if item is None:
            raise ConnectionLostError(f"Connection {self.id} closed")
        return item

    def pending(self) -> list[EventEnvelope]:
        """Drain whatever is queued right now without waiting."""
        items: list[EventEnvelope] = []
        while not self._queue.empty():
            item = self._queue.get_nowait()
            if item is None:
                self._queue.put_nowait(None)
                break
            items.append(item)
        return items


class EventBus:
    def __init__(self, queue_size: int = 256, relay: EventRelay | None = None) -> None:
        self._queue_size = queue_size
        self._relay = relay
        self._connections: dict[str, Connection] = {}
        self._subscribers: dict[str, set[str]] = defaultdict(set)
        self._sequences: dict[str, int] = defaultdict(int)

    def set_relay(self, relay: EventRelay | None) -> None:
        self._relay = relay

    # --- connections ---

    def connect(self) -> Connection:
        conn = Connection(generate_id("conn"), self._queue_size)
        self._connections[conn.id] = conn
        logger.debug("Realtime connection %s opened", conn.id)
        return conn

    def disconnect(self, conn: Connection) -> None:
        for topic in conn.topics:
            subscribers = self._subscribers.get(topic)
            if subscribers is not None:
                subscribers.discard(conn.id)
                if not subscribers:
                    del self._subscribers[topic]
        conn.topics.clear()
        conn.close()
        self._connections.pop(conn.id, None)
        logger.debug("Realtime connection %s closed", conn.id)

    def subscribe(self, conn: Connection, topic: str) -> None:
        validate_topic(topic)
        if conn.id not in self._connections:
            raise ConnectionLostError(f"Connection {conn.id} is not connected")
        conn.topics.add(topic)
        self._subscribers[topic].add(conn.id)

    def unsubscribe(self, conn: Connection, topic: str) -> None:
        conn.topics.discard(topic)
        subscribers = self._subscribers.get(topic)
        if subscribers is not None:
            subscribers.discard(conn.id)
            if not subscribers:
                del self._subscribers[topic]

    def drop_all(self) -> int:
        """Disconnect every local connection so its client reconnects and re-fetches."""
        connections = list(self._connections.values())
        for conn in connections:
            self.disconnect(conn)
        if connections:
            logger.warning("Dropped %d realtime connections", len(connections))
        return len(connections)

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, ()))

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    # --- publishing ---

    async def publish(
        self, topic: str, event_type: str, payload: dict[str, object]
    ) -> EventEnvelope:
        """Publish one event on a topic. Call only after the state change committed."""
        validate_topic(topic)
        validate_event_type(event_type)
        envelope = EventEnvelope(
            event_id=generate_id("evt"),
            event=event_type,
            topic=topic,
            seq=0,
            published_at=utc_now().isoformat(),
            payload=dict(payload),
        )
        if self._relay is not None:
            return await self._relay.publish(envelope)
        self._sequences[topic] += 1
        envelope = replace(envelope, seq=self._sequences[topic])
        self.deliver(envelope)
        return envelope

    def deliver(self, envelope: EventEnvelope) -> int:
        """Fan an envelope out to local subscribers. Returns the number reached."""
        delivered = 0
        for conn_id in list(self._subscribers.get(envelope.topic, ())):
            conn = self._connections.get(conn_id)
            if conn is None:
                continue
            if conn.push(envelope):
                delivered += 1
            else:
                logger.warning(
                    "Realtime connection %s overflowed on %s, dropping it", conn_id, envelope.topic
                )
                self.disconnect(conn)
        logger.debug(
            "Event %s seq=%d on %s delivered to %d", envelope.event, envelope.seq,
            envelope.topic, delivered,
        )
        return delivered


event_bus = EventBus(queue_size=settings.REALTIME_QUEUE_SIZE)


def get_event_bus() -> EventBus:
    return event_bus
