"""Floor domain models: the waitlist queue and the table board."""

from dataclasses import dataclass, field
from datetime import datetime

from src.cc_common.enums import TableStatus, WaitlistStatus


@dataclass
class WaitlistEntry:
    id: str
    club_id: str
    player_id: str
    table_type: str | None
    party_size: int
    status: str
    queue_no: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_waiting(self) -> bool:
        return self.status == WaitlistStatus.WAITING.value


@dataclass
class FloorTable:
    id: str
    club_id: str
    name: str
    table_type: str
    max_seats: int
    status: str
    # player_id -> chips in paise
    seated: dict[str, int] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def seated_count(self) -> int:
        return len(self.seated)

    @property
    def has_free_seat(self) -> bool:
        return self.seated_count < self.max_seats

    @property
    def is_open(self) -> bool:
        return self.status == TableStatus.OPEN.value


def queue_position(waiting: list[WaitlistEntry], entry_id: str) -> int | None:
    """1-based position of entry_id in an ordered waiting list."""
    for index, entry in enumerate(waiting):
        if entry.id == entry_id:
            return index + 1
    return None


def positions_after_removal(
    waiting: list[WaitlistEntry], removed_id: str
) -> list[tuple[str, str, int]]:
    """(player_id, entry_id, new_position) for every entry that moves up once removed_id leaves."""
    position = queue_position(waiting, removed_id)
    if position is None:
        return []
    behind = waiting[position:]
    return [(e.player_id, e.id, position + offset) for offset, e in enumerate(behind)]


def status_for_occupancy(table: FloorTable, seated_count: int) -> str:
    """OPEN/FULL follow occupancy; CLOSED is only changed by staff."""
    if table.status == TableStatus.CLOSED.value:
        return table.status
    if seated_count >= table.max_seats:
        return TableStatus.FULL.value
    return TableStatus.OPEN.value
