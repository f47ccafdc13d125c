"""Pydantic schemas for the waitlist and table board endpoints."""

from pydantic import BaseModel, Field

from src.cc_common.datetime_utils import isoformat_or_none
from src.cc_common.enums import TableStatus
from src.cc_common.money import paise_to_display
from src.cc_floor.domain.models import FloorTable, WaitlistEntry

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class JoinWaitlistRequest(BaseModel):
    table_type: str | None = Field(None, max_length=50)
    party_size: int = 1


class SeatRequest(BaseModel):
    table_id: str
    buy_in: int = Field(..., description="Chips brought to the table, in paise")


class CreateTableRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    table_type: str = Field(..., min_length=1, max_length=50)
    max_seats: int


class TableStatusRequest(BaseModel):
    status: TableStatus


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class WaitlistEntryResponse(BaseModel):
    id: str
    club_id: str
    player_id: str
    table_type: str | None
    party_size: int
    status: str
    created_at: str | None

    @classmethod
    def from_domain(cls, entry: WaitlistEntry) -> "WaitlistEntryResponse":
        return cls(
            id=entry.id,
            club_id=entry.club_id,
            player_id=entry.player_id,
            table_type=entry.table_type,
            party_size=entry.party_size,
            status=entry.status,
            created_at=isoformat_or_none(entry.created_at),
        )


class WaitlistStatusResponse(BaseModel):
    on_waitlist: bool
    position: int | None
    total_in_queue: int
    entry: WaitlistEntryResponse | None


class JoinWaitlistResponse(BaseModel):
    entry: WaitlistEntryResponse
    position: int
    total_in_queue: int


class SeatItem(BaseModel):
    player_id: str
    chips: int
    chips_display: str


class TableResponse(BaseModel):
    id: str
    club_id: str
    name: str
    table_type: str
    max_seats: int
    status: str
    seated_count: int
    seats: list[SeatItem]

    @classmethod
    def from_domain(cls, table: FloorTable) -> "TableResponse":
        return cls(
            id=table.id,
            club_id=table.club_id,
            name=table.name,
            table_type=table.table_type,
            max_seats=table.max_seats,
            status=table.status,
            seated_count=table.seated_count,
            seats=[
                SeatItem(player_id=pid, chips=chips, chips_display=paise_to_display(chips))
                for pid, chips in sorted(table.seated.items())
            ],
        )


class TableListResponse(BaseModel):
    items: list[TableResponse]


class SeatResponse(BaseModel):
    entry: WaitlistEntryResponse
    table: TableResponse
