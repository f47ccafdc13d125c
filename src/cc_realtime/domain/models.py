"""Realtime domain: subscription topics and the event envelope."""

from dataclasses import asdict, dataclass, field
from typing import Any

from src.cc_common.enums import EventType
from src.cc_common.errors import ValidationError

CLUB_PREFIX = "club:"
PLAYER_PREFIX = "player:"

EVENT_TYPES: frozenset[str] = frozenset(e.value for e in EventType)


def club_topic(club_id: str) -> str:
    return f"{CLUB_PREFIX}{club_id}"


def player_topic(player_id: str) -> str:
    return f"{PLAYER_PREFIX}{player_id}"


def validate_topic(topic: str) -> str:
    """Topics are routing keys: "club:{id}" or "player:{id}" with a non-empty id."""
    for prefix in (CLUB_PREFIX, PLAYER_PREFIX):
        if topic.startswith(prefix) and len(topic) > len(prefix):
            return topic
    raise ValidationError(f"invalid topic {topic!r}")


def validate_event_type(event_type: str) -> str:
    if event_type not in EVENT_TYPES:
        raise ValidationError(f"unknown event type {event_type!r}")
    return event_type


@dataclass(frozen=True)
class EventEnvelope:
    """One published notification.

    seq increases strictly per topic; event_id is unique across topics and is
    what subscribers deduplicate on.
    """

    event_id: str
    event: str
    topic: str
    seq: int
    published_at: str
    payload: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_message(self) -> dict[str, Any]:
        """Wire form sent over the /realtime socket."""
        return {"event": self.event, "data": self.to_dict()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EventEnvelope":
        return cls(
            event_id=data["event_id"],
            event=data["event"],
            topic=data["topic"],
            seq=int(data["seq"]),
            published_at=data["published_at"],
            payload=dict(data.get("payload") or {}),
        )
