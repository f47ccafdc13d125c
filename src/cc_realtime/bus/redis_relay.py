"""Redis pub/sub relay so several API processes share one logical bus.

Publishing goes to a single Redis channel; every process (the publisher
included) receives it back and delivers to its local connections. A Lua
script takes the topic's next sequence number (INCR) and publishes in one
atomic step, so seq order on the channel is publish order across processes.

Channel messages are "<seq> <envelope json>".

If the subscription drops, the listener resubscribes with exponential
backoff. Events published while it was away never reached this process, so
after recovery on_recovered runs; the bus uses it to drop local connections,
whose clients then reconnect and re-fetch.
"""

import asyncio
import json
import logging
from collections.abc import Callable
from dataclasses import replace
from typing import Any

import redis.asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from tenacity import AsyncRetrying, before_sleep_log, retry_if_exception_type, wait_exponential

from config.settings import settings
from src.cc_realtime.domain.models import EventEnvelope

logger = logging.getLogger(__name__)

_REDIS_LOST = (RedisConnectionError, RedisTimeoutError)

_PUBLISH_SCRIPT = """
local seq = redis.call('INCR', KEYS[1])
redis.call('PUBLISH', ARGV[1], seq .. ' ' .. ARGV[2])
return seq
"""


class RedisRelay:
    def __init__(
        self,
        redis: aioredis.Redis,
        channel: str,
        *,
        backoff_min: float = 0.5,
        backoff_max: float = settings.REALTIME_RELAY_BACKOFF_MAX,
    ) -> None:
        self._redis = redis
        self._channel = channel
        self._backoff_min = backoff_min
        self._backoff_max = backoff_max
        self._publish_script = redis.register_script(_PUBLISH_SCRIPT)
        self._pubsub: Any = None
        self._task: asyncio.Task[None] | None = None
        self.reconnect_count = 0

    def _seq_key(self, topic: str) -> str:
        return f"{self._channel}:seq:{topic}"

    async def publish(self, envelope: EventEnvelope) -> EventEnvelope:
        """Assign the topic's next seq and publish. Returns the sequenced envelope."""
        seq = await self._publish_script(
            keys=[self._seq_key(envelope.topic)],
            args=[self._channel, json.dumps(envelope.to_dict())],
        )
        return replace(envelope, seq=int(seq))

    async def start(
        self,
        deliver: Callable[[EventEnvelope], Any],
        on_recovered: Callable[[], Any] | None = None,
    ) -> None:
        await self._subscribe()
        self._task = asyncio.create_task(self._run(deliver, on_recovered))
        logger.info("Realtime relay listening on %s", self._channel)

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._pubsub is not None:
            await self._pubsub.unsubscribe(self._channel)
            await self._pubsub.aclose()
            self._pubsub = None

    async def _subscribe(self) -> None:
        pubsub = self._redis.pubsub()
        try:
            await pubsub.subscribe(self._channel)
        except _REDIS_LOST:
            await pubsub.aclose()
            raise
        self._pubsub = pubsub

    async def _run(
        self,
        deliver: Callable[[EventEnvelope], Any],
        on_recovered: Callable[[], Any] | None,
    ) -> None:
        while True:
            try:
                await self._listen(deliver)
            except _REDIS_LOST as exc:
                logger.warning("Realtime relay lost its Redis subscription: %s", exc)
            await self._resubscribe()
            if on_recovered is not None:
                on_recovered()

    async def _resubscribe(self) -> None:
        pubsub, self._pubsub = self._pubsub, None
        if pubsub is not None:
            try:
                await pubsub.aclose()
            except _REDIS_LOST as exc:
                logger.debug("Ignoring error while closing relay pubsub: %s", exc)
        retrying = AsyncRetrying(
            wait=wait_exponential(multiplier=self._backoff_min, max=self._backoff_max),
            retry=retry_if_exception_type(_REDIS_LOST),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                await self._subscribe()
        self.reconnect_count += 1
        logger.info("Realtime relay resubscribed to %s (#%d)", self._channel, self.reconnect_count)

    async def _listen(self, deliver: Callable[[EventEnvelope], Any]) -> None:
        async for message in self._pubsub.listen():
            if message.get("type") != "message":
                continue
            try:
                head, _, body = message["data"].partition(" ")
                envelope = EventEnvelope.from_dict({**json.loads(body), "seq": int(head)})
            except (KeyError, TypeError, ValueError) as exc:
                logger.error("Dropping malformed relay message: %s", exc)
                continue
            deliver(envelope)
