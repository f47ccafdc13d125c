"""FloorService: the waitlist queue and the table board.

Only as much of the gaming floor as the realtime channel needs: joining,
cancelling and seating from the waitlist, and tables opening, filling and
closing. Queue mutations for one club are serialised by a per-club lock so
positions computed inside the transaction are the positions published after
commit.
"""

import asyncio
import logging
from collections import defaultdict

from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_common.enums import TableStatus, WaitlistStatus
from src.cc_common.errors import AlreadyProcessedError, NotFoundError, ValidationError
from src.cc_common.id_generator import generate_id, next_sequence
from src.cc_common.money import require_positive
from src.cc_floor.application.schemas import (
    JoinWaitlistResponse,
    SeatResponse,
    TableListResponse,
    TableResponse,
    WaitlistEntryResponse,
    WaitlistStatusResponse,
)
from src.cc_floor.domain.models import (
    FloorTable,
    WaitlistEntry,
    positions_after_removal,
    queue_position,
    status_for_occupancy,
)
from src.cc_floor.domain.repository import FloorRepositoryProtocol
from src.cc_floor.infrastructure.persistence import FloorRepository
from src.cc_realtime.application.notifier import Notifier

logger = logging.getLogger(__name__)


class FloorService:
    def __init__(
        self,
        repo: FloorRepositoryProtocol | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self._repo: FloorRepositoryProtocol = repo or FloorRepository()
        self._notifier = notifier or Notifier()
        self._club_locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    # --- waitlist ---

    async def get_waitlist_status(
        self, db: AsyncSession, player_id: str, club_id: str
    ) -> WaitlistStatusResponse:
        entry = await self._repo.waiting_entry_for_player(db, player_id)
        waiting = await self._repo.waiting_entries(db, entry.club_id if entry else club_id)
        if entry is None:
            return WaitlistStatusResponse(
                on_waitlist=False, position=None, total_in_queue=len(waiting), entry=None
            )
        return WaitlistStatusResponse(
            on_waitlist=True,
            position=queue_position(waiting, entry.id),
            total_in_queue=len(waiting),
            entry=WaitlistEntryResponse.from_domain(entry),
        )

    async def join_waitlist(
        self,
        db: AsyncSession,
        player_id: str,
        club_id: str,
        table_type: str | None = None,
        party_size: int = 1,
    ) -> JoinWaitlistResponse:
        require_positive(party_size, "party_size")
        async with self._club_locks[club_id]:
            try:
                if await self._repo.waiting_entry_for_player(db, player_id) is not None:
                    raise ValidationError(f"player {player_id} is already on the waitlist")
                entry = WaitlistEntry(
                    id=generate_id("wl"),
                    club_id=club_id,
                    player_id=player_id,
                    table_type=table_type,
                    party_size=party_size,
                    status=WaitlistStatus.WAITING.value,
                    queue_no=next_sequence(),
                )
                await self._repo.add_entry(db, entry)
                waiting = await self._repo.waiting_entries(db, club_id)
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        position = queue_position(waiting, entry.id) or len(waiting)
        logger.info("Player %s joined waitlist %s at position %d", player_id, club_id, position)
        await self._notifier.waitlist_status_changed(
            player_id=player_id, club_id=club_id, entry_id=entry.id, status=entry.status
        )
        await self._notifier.waitlist_positions_updated(
            club_id=club_id,
            positions=[(player_id, entry.id, position)],
            total_in_queue=len(waiting),
        )
        return JoinWaitlistResponse(
            entry=WaitlistEntryResponse.from_domain(entry),
            position=position,
            total_in_queue=len(waiting),
        )

    async def cancel_waitlist(
        self,
        db: AsyncSession,
        entry_id: str,
        player_id: str | None = None,
        club_id: str | None = None,
    ) -> WaitlistEntryResponse:
        """Cancel a WAITING entry. player_id restricts to the owner, club_id to the club."""
        entry = await self._load_entry(db, entry_id, player_id, club_id)
        async with self._club_locks[entry.club_id]:
            try:
                waiting_before = await self._repo.waiting_entries(db, entry.club_id)
                await self._transition(db, entry, WaitlistStatus.CANCELLED)
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        entry.status = WaitlistStatus.CANCELLED.value
        await self._after_leaving_queue(entry, waiting_before)
        return WaitlistEntryResponse.from_domain(entry)

    async def seat_from_waitlist(
        self,
        db: AsyncSession,
        entry_id: str,
        table_id: str,
        buy_in: int,
        club_id: str | None = None,
    ) -> SeatResponse:
        require_positive(buy_in, "buy_in")
        entry = await self._load_entry(db, entry_id, None, club_id)
        async with self._club_locks[entry.club_id]:
            try:
                table = await self._load_table(db, table_id, entry.club_id)
                if not table.is_open or not table.has_free_seat:
                    raise ValidationError(f"table {table_id} has no free seat")
                if entry.player_id in table.seated:
                    raise ValidationError(f"player {entry.player_id} already sits at {table_id}")
                waiting_before = await self._repo.waiting_entries(db, entry.club_id)
                await self._transition(db, entry, WaitlistStatus.SEATED)
                await self._repo.add_seat(db, table_id, entry.player_id, buy_in)
                old_status = table.status
                new_status = status_for_occupancy(table, table.seated_count + 1)
                if new_status != old_status:
                    await self._repo.set_table_status(db, table_id, new_status)
                table = await self._load_table(db, table_id)
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        entry.status = WaitlistStatus.SEATED.value
        logger.info("Seated %s at table %s", entry.player_id, table_id)
        await self._after_leaving_queue(entry, waiting_before)
        await self._notify_table(table, status_changed=table.status != old_status)
        return SeatResponse(
            entry=WaitlistEntryResponse.from_domain(entry),
            table=TableResponse.from_domain(table),
        )

    # --- tables ---

    async def list_tables(self, db: AsyncSession, club_id: str | None) -> TableListResponse:
        tables = await self._repo.list_tables(db, club_id)
        return TableListResponse(items=[TableResponse.from_domain(t) for t in tables])

    async def create_table(
        self, db: AsyncSession, club_id: str, name: str, table_type: str, max_seats: int
    ) -> TableResponse:
        require_positive(max_seats, "max_seats")
        table = FloorTable(
            id=generate_id("tbl"),
            club_id=club_id,
            name=name,
            table_type=table_type,
            max_seats=max_seats,
            status=TableStatus.OPEN.value,
        )
        async with self._club_locks[club_id]:
            try:
                await self._repo.add_table(db, table)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        await self._notify_table(table, status_changed=True, became_available=True)
        return TableResponse.from_domain(table)

    async def set_table_status(
        self,
        db: AsyncSession,
        table_id: str,
        status: TableStatus,
        club_id: str | None = None,
    ) -> TableResponse:
        """Open or close a table. FULL follows occupancy and cannot be set directly."""
        if status == TableStatus.FULL:
            raise ValidationError("FULL is derived from occupancy; set OPEN or CLOSED")
        table = await self._load_table(db, table_id, club_id)
        async with self._club_locks[table.club_id]:
            try:
                table = await self._load_table(db, table_id)
                if status == TableStatus.CLOSED:
                    new_status = TableStatus.CLOSED.value
                elif table.has_free_seat:
                    new_status = TableStatus.OPEN.value
                else:
                    new_status = TableStatus.FULL.value
                changed = new_status != table.status
                if changed:
                    await self._repo.set_table_status(db, table_id, new_status)
                    table.status = new_status
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        if changed:
            await self._notify_table(
                table, status_changed=True, became_available=new_status == TableStatus.OPEN.value
            )
        return TableResponse.from_domain(table)

    async def leave_table(
        self, db: AsyncSession, table_id: str, player_id: str, club_id: str | None = None
    ) -> TableResponse:
        """Free a seat; the player's chips leave the table balance."""
        table = await self._load_table(db, table_id, club_id)
        async with self._club_locks[table.club_id]:
            try:
                if not await self._repo.remove_seat(db, table_id, player_id):
                    raise NotFoundError("Seat", f"{table_id}/{player_id}")
                # Re-read under the lock; occupancy now excludes the freed seat
                table = await self._load_table(db, table_id)
                old_status = table.status
                new_status = status_for_occupancy(table, table.seated_count)
                if new_status != old_status:
                    await self._repo.set_table_status(db, table_id, new_status)
                    table.status = new_status
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        await self._notify_table(
            table, status_changed=table.status != old_status, became_available=True
        )
        return TableResponse.from_domain(table)

    # --- helpers ---

    async def _load_entry(
        self,
        db: AsyncSession,
        entry_id: str,
        player_id: str | None,
        club_id: str | None,
    ) -> WaitlistEntry:
        entry = await self._repo.get_entry(db, entry_id)
        if (
            entry is None
            or (player_id is not None and entry.player_id != player_id)
            or (club_id is not None and entry.club_id != club_id)
        ):
            raise NotFoundError("Waitlist entry", entry_id)
        return entry

    async def _load_table(
        self, db: AsyncSession, table_id: str, club_id: str | None = None
    ) -> FloorTable:
        table = await self._repo.get_table(db, table_id)
        if table is None or (club_id is not None and table.club_id != club_id):
            raise NotFoundError("Table", table_id)
        return table

    async def _transition(
        self, db: AsyncSession, entry: WaitlistEntry, to_status: WaitlistStatus
    ) -> None:
        moved = await self._repo.transition_entry(
            db, entry.id, WaitlistStatus.WAITING.value, to_status.value
        )
        if not moved:
            current = await self._repo.get_entry(db, entry.id)
            raise AlreadyProcessedError(entry.id, current.status if current else entry.status)

    async def _after_leaving_queue(
        self, entry: WaitlistEntry, waiting_before: list[WaitlistEntry]
    ) -> None:
        await self._notifier.waitlist_status_changed(
            player_id=entry.player_id,
            club_id=entry.club_id,
            entry_id=entry.id,
            status=entry.status,
        )
        moved = positions_after_removal(waiting_before, entry.id)
        if moved:
            await self._notifier.waitlist_positions_updated(
                club_id=entry.club_id,
                positions=moved,
                total_in_queue=max(len(waiting_before) - 1, 0),
            )

    async def _notify_table(
        self, table: FloorTable, *, status_changed: bool, became_available: bool = False
    ) -> None:
        await self._notifier.table_changed(
            club_id=table.club_id,
            table_id=table.id,
            status=table.status,
            seated=table.seated_count,
            max_seats=table.max_seats,
            status_changed=status_changed,
            became_available=became_available,
        )
