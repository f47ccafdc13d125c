"""Post-commit change notifications.

Services call these after their transaction committed. Payloads are
invalidation signals: the affected entity id plus its new status/position,
never the full new state.

A failed publish never undoes a committed change; subscribers converge
through their periodic re-fetch, so failures are logged, not raised.
"""

import logging
from typing import Any

from src.cc_common.enums import EventType
from src.cc_realtime.bus.event_bus import EventBus, get_event_bus
from src.cc_realtime.domain.models import club_topic, player_topic

logger = logging.getLogger(__name__)


class Notifier:
    def __init__(self, bus: EventBus | None = None) -> None:
        self._bus = bus or get_event_bus()

    async def _publish(self, topic: str, event_type: EventType, payload: dict[str, Any]) -> None:
        try:
            await self._bus.publish(topic, event_type.value, payload)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Failed to publish %s on %s", event_type.value, topic)

    async def credit_changed(
        self,
        *,
        player_id: str,
        club_id: str,
        kind: str,
        entity_id: str,
        status: str,
        **extra: Any,
    ) -> None:
        """credit:status-changed on the player's topic and the club topic."""
        payload = {
            "kind": kind,
            "entity_id": entity_id,
            "status": status,
            "player_id": player_id,
            "club_id": club_id,
            **extra,
        }
        await self._publish(player_topic(player_id), EventType.CREDIT_STATUS_CHANGED, payload)
        await self._publish(club_topic(club_id), EventType.CREDIT_STATUS_CHANGED, payload)

    async def waitlist_status_changed(
        self, *, player_id: str, club_id: str, entry_id: str, status: str
    ) -> None:
        payload = {"entity_id": entry_id, "status": status, "player_id": player_id, "club_id": club_id}
        await self._publish(player_topic(player_id), EventType.WAITLIST_STATUS_CHANGED, payload)
        await self._publish(club_topic(club_id), EventType.WAITLIST_STATUS_CHANGED, payload)

    async def waitlist_positions_updated(
        self, *, club_id: str, positions: list[tuple[str, str, int]], total_in_queue: int
    ) -> None:
        """One waitlist:position-updated per (player_id, entry_id, new position)."""
        for player_id, entry_id, position in positions:
            await self._publish(
                player_topic(player_id),
                EventType.WAITLIST_POSITION_UPDATED,
                {
                    "entity_id": entry_id,
                    "position": position,
                    "total_in_queue": total_in_queue,
                    "player_id": player_id,
                    "club_id": club_id,
                },
            )

    async def table_changed(
        self, *, club_id: str, table_id: str, status: str, seated: int, max_seats: int,
        status_changed: bool = True, became_available: bool = False,
    ) -> None:
        """table:status-changed (when the status moved), tables:updated, and
        table:available when a seat opened up on an open table."""
        payload = {
            "entity_id": table_id,
            "status": status,
            "seated": seated,
            "max_seats": max_seats,
            "club_id": club_id,
        }
        topic = club_topic(club_id)
        if status_changed:
            await self._publish(topic, EventType.TABLE_STATUS_CHANGED, payload)
        await self._publish(topic, EventType.TABLES_UPDATED, {"club_id": club_id, "entity_id": table_id})
        if became_available and status == "OPEN" and seated < max_seats:
            await self._publish(topic, EventType.TABLE_AVAILABLE, payload)
