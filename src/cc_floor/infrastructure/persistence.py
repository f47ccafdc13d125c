"""FloorRepository: waitlist entries, tables and seats.

Transaction ownership: the CALLER (application service) commits or rolls back.
"""

from typing import Any

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_common.datetime_utils import utc_now
from src.cc_common.enums import WaitlistStatus
from src.cc_floor.domain.models import FloorTable, WaitlistEntry
from src.cc_floor.infrastructure.db_models import FloorTableORM, TableSeatORM, WaitlistEntryORM

_entries = WaitlistEntryORM.__table__
_tables = FloorTableORM.__table__
_seats = TableSeatORM.__table__


def _row_to_entry(row: Any) -> WaitlistEntry:
    return WaitlistEntry(
        id=row.id,
        club_id=row.club_id,
        player_id=row.player_id,
        table_type=row.table_type,
        party_size=row.party_size,
        status=row.status,
        queue_no=row.queue_no,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_table(row: Any, seated: dict[str, int]) -> FloorTable:
    return FloorTable(
        id=row.id,
        club_id=row.club_id,
        name=row.name,
        table_type=row.table_type,
        max_seats=row.max_seats,
        status=row.status,
        seated=seated,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class FloorRepository:
    # --- waitlist ---

    async def get_entry(self, db: AsyncSession, entry_id: str) -> WaitlistEntry | None:
        result = await db.execute(select(_entries).where(_entries.c.id == entry_id))
        row = result.fetchone()
        return _row_to_entry(row) if row is not None else None

    async def waiting_entry_for_player(
        self, db: AsyncSession, player_id: str
    ) -> WaitlistEntry | None:
        result = await db.execute(
            select(_entries)
            .where(
                _entries.c.player_id == player_id,
                _entries.c.status == WaitlistStatus.WAITING.value,
            )
            .order_by(_entries.c.queue_no)
            .limit(1)
        )
        row = result.fetchone()
        return _row_to_entry(row) if row is not None else None

    async def waiting_entries(self, db: AsyncSession, club_id: str) -> list[WaitlistEntry]:
        result = await db.execute(
            select(_entries)
            .where(
                _entries.c.club_id == club_id,
                _entries.c.status == WaitlistStatus.WAITING.value,
            )
            .order_by(_entries.c.queue_no)
        )
        return [_row_to_entry(r) for r in result.fetchall()]

    async def add_entry(self, db: AsyncSession, entry: WaitlistEntry) -> None:
        now = utc_now()
        await db.execute(
            insert(_entries).values(
                id=entry.id,
                club_id=entry.club_id,
                player_id=entry.player_id,
                table_type=entry.table_type,
                party_size=entry.party_size,
                status=entry.status,
                queue_no=entry.queue_no,
                created_at=now,
                updated_at=now,
            )
        )
        entry.created_at = now
        entry.updated_at = now

    async def transition_entry(
        self, db: AsyncSession, entry_id: str, from_status: str, to_status: str
    ) -> bool:
        """Conditional status change; False when the entry was no longer in from_status."""
        result = await db.execute(
            update(_entries)
            .where(_entries.c.id == entry_id, _entries.c.status == from_status)
            .values(status=to_status, updated_at=utc_now())
        )
        return result.rowcount == 1

    # --- tables ---

    async def _seats_by_table(
        self, db: AsyncSession, table_ids: list[str]
    ) -> dict[str, dict[str, int]]:
        seats: dict[str, dict[str, int]] = {tid: {} for tid in table_ids}
        if not table_ids:
            return seats
        result = await db.execute(select(_seats).where(_seats.c.table_id.in_(table_ids)))
        for row in result.fetchall():
            seats[row.table_id][row.player_id] = row.chips
        return seats

    async def get_table(self, db: AsyncSession, table_id: str) -> FloorTable | None:
        result = await db.execute(select(_tables).where(_tables.c.id == table_id))
        row = result.fetchone()
        if row is None:
            return None
        seats = await self._seats_by_table(db, [row.id])
        return _row_to_table(row, seats[row.id])

    async def list_tables(self, db: AsyncSession, club_id: str | None) -> list[FloorTable]:
        stmt = select(_tables).order_by(_tables.c.name, _tables.c.id)
        if club_id is not None:
            stmt = stmt.where(_tables.c.club_id == club_id)
        rows = (await db.execute(stmt)).fetchall()
        seats = await self._seats_by_table(db, [r.id for r in rows])
        return [_row_to_table(r, seats[r.id]) for r in rows]

    async def add_table(self, db: AsyncSession, table: FloorTable) -> None:
        now = utc_now()
        await db.execute(
            insert(_tables).values(
                id=table.id,
                club_id=table.club_id,
                name=table.name,
                table_type=table.table_type,
                max_seats=table.max_seats,
                status=table.status,
                created_at=now,
                updated_at=now,
            )
        )
        table.created_at = now
        table.updated_at = now

    async def set_table_status(self, db: AsyncSession, table_id: str, status: str) -> None:
        await db.execute(
            update(_tables)
            .where(_tables.c.id == table_id)
            .values(status=status, updated_at=utc_now())
        )

    async def add_seat(self, db: AsyncSession, table_id: str, player_id: str, chips: int) -> None:
        await db.execute(
            insert(_seats).values(
                table_id=table_id, player_id=player_id, chips=chips, seated_at=utc_now()
            )
        )

    async def remove_seat(self, db: AsyncSession, table_id: str, player_id: str) -> bool:
        result = await db.execute(
            delete(_seats).where(_seats.c.table_id == table_id, _seats.c.player_id == player_id)
        )
        return result.rowcount == 1

    async def table_balance(self, db: AsyncSession, player_id: str) -> int:
        """Sum of the player's chips across every table they sit at."""
        result = await db.execute(
            select(func.coalesce(func.sum(_seats.c.chips), 0)).where(
                _seats.c.player_id == player_id
            )
        )
        return int(result.scalar_one())
