"""/realtime WebSocket gateway onto the EventBus.

Wire format, both directions: {"event": name, "data": {...}}.

Client → server:
  subscribe:club     {clubId, playerId?}
  subscribe:player   {playerId, clubId?}
  unsubscribe:club   {clubId}
  unsubscribe:player {playerId}
  ping
Server → client:
  subscribed / unsubscribed {topics}, pong, error {code, message},
  and every bus event as {"event": type, "data": envelope}.

Subscriptions live exactly as long as the socket; a reconnecting client must
subscribe again before it can expect events.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from src.cc_common.datetime_utils import utc_now
from src.cc_common.errors import (
    AppError,
    ConnectionLostError,
    InvalidCredentialsError,
    PermissionDeniedError,
    ValidationError,
)
from src.cc_gateway.auth.actor import Actor
from src.cc_gateway.auth.jwt_handler import decode_token
from src.cc_realtime.bus.event_bus import Connection, EventBus, get_event_bus
from src.cc_realtime.domain.models import club_topic, player_topic

logger = logging.getLogger(__name__)

router = APIRouter()

SUBSCRIBE_CLUB = "subscribe:club"
SUBSCRIBE_PLAYER = "subscribe:player"
UNSUBSCRIBE_CLUB = "unsubscribe:club"
UNSUBSCRIBE_PLAYER = "unsubscribe:player"
PING = "ping"

SUBSCRIBED = "subscribed"
UNSUBSCRIBED = "unsubscribed"
PONG = "pong"
ERROR = "error"

# Policy violation (bad token) and try-again-later (dropped slow consumer)
CLOSE_POLICY_VIOLATION = 1008
CLOSE_TRY_AGAIN_LATER = 1013


@dataclass
class RealtimeSession:
    websocket: WebSocket
    actor: Actor
    conn: Connection
    _send_lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    async def send(self, event: str, data: dict[str, Any]) -> None:
        async with self._send_lock:
            await self.websocket.send_json({"event": event, "data": data})


@router.websocket("/realtime")
async def realtime_socket(websocket: WebSocket, token: str = Query(...)) -> None:
    try:
        actor = decode_token(token)
    except InvalidCredentialsError as exc:
        logger.warning("Realtime token rejected: %s", exc.message)
        await websocket.close(code=CLOSE_POLICY_VIOLATION, reason="invalid token")
        return

    await websocket.accept()
    bus = get_event_bus()
    session = RealtimeSession(websocket=websocket, actor=actor, conn=bus.connect())
    writer = asyncio.create_task(_pump_events(session))
    logger.info("Realtime %s connected as %s (%s)", session.conn.id, actor.id, actor.role.value)
    try:
        while True:
            raw = await websocket.receive_text()
            await _handle_client_message(session, bus, raw)
    except WebSocketDisconnect:
        logger.info("Realtime %s disconnected", session.conn.id)
    finally:
        bus.disconnect(session.conn)
        writer.cancel()
        try:
            await writer
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.exception("Realtime %s event writer failed", session.conn.id)


async def _pump_events(session: RealtimeSession) -> None:
    """Forward the connection's queue to the socket in delivery order."""
    try:
        while True:
            envelope = await session.conn.next_event()
            await session.send(envelope.event, envelope.to_dict())
    except ConnectionLostError:
        # The bus dropped this connection (queue overflow); the client reconnects and re-fetches
        logger.warning("Realtime %s dropped by the bus", session.conn.id)
        await session.websocket.close(code=CLOSE_TRY_AGAIN_LATER, reason="subscriber too slow")
    except WebSocketDisconnect:
        pass


def _parse(raw: str) -> tuple[str, dict[str, Any]]:
    try:
        message = json.loads(raw)
    except json.JSONDecodeError:
        raise ValidationError("message is not valid JSON") from None
    if not isinstance(message, dict) or not isinstance(message.get("event"), str):
        raise ValidationError("message must be an object with an 'event' name")
    data = message.get("data") or {}
    if not isinstance(data, dict):
        raise ValidationError("'data' must be an object")
    return message["event"], data


def _require_str(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise ValidationError(f"'{key}' is required")
    return value


def _optional_str(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    return value if isinstance(value, str) and value else None


def _club_topic(actor: Actor, club_id: str) -> str:
    if not actor.can_access_club(club_id):
        raise PermissionDeniedError(f"not a member of club {club_id}")
    return club_topic(club_id)


def _player_topic(actor: Actor, player_id: str) -> str:
    if not actor.can_access_player(player_id):
        raise PermissionDeniedError("players may only subscribe to their own topic")
    return player_topic(player_id)


def _topics_for(actor: Actor, event: str, data: dict[str, Any]) -> list[str]:
    if event in (SUBSCRIBE_CLUB, UNSUBSCRIBE_CLUB):
        topics = [_club_topic(actor, _require_str(data, "clubId"))]
        player_id = _optional_str(data, "playerId")
        if player_id is not None:
            topics.append(_player_topic(actor, player_id))
        return topics
    topics = [_player_topic(actor, _require_str(data, "playerId"))]
    club_id = _optional_str(data, "clubId")
    if club_id is not None:
        topics.append(_club_topic(actor, club_id))
    return topics


async def _handle_client_message(session: RealtimeSession, bus: EventBus, raw: str) -> None:
    event = ""
    try:
        event, data = _parse(raw)
        if event == PING:
            await session.send(PONG, {"ts": utc_now().isoformat()})
        elif event in (SUBSCRIBE_CLUB, SUBSCRIBE_PLAYER):
            topics = _topics_for(session.actor, event, data)
            for topic in topics:
                bus.subscribe(session.conn, topic)
            logger.debug("Realtime %s subscribed to %s", session.conn.id, topics)
            await session.send(SUBSCRIBED, {"topics": topics})
        elif event in (UNSUBSCRIBE_CLUB, UNSUBSCRIBE_PLAYER):
            topics = _topics_for(session.actor, event, data)
            for topic in topics:
                bus.unsubscribe(session.conn, topic)
            await session.send(UNSUBSCRIBED, {"topics": topics})
        else:
            raise ValidationError(f"unknown message {event!r}")
    except AppError as exc:
        await session.send(ERROR, {"code": exc.code, "message": exc.message, "request": event})
