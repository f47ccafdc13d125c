from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_floor.domain.models import FloorTable, WaitlistEntry


class FloorRepositoryProtocol(Protocol):
    async def get_entry(self, db: AsyncSession, entry_id: str) -> WaitlistEntry | None: ...

    async def waiting_entry_for_player(
        self, db: AsyncSession, player_id: str
    ) -> WaitlistEntry | None: ...

    async def waiting_entries(self, db: AsyncSession, club_id: str) -> list[WaitlistEntry]: ...

    async def add_entry(self, db: AsyncSession, entry: WaitlistEntry) -> None: ...

    async def transition_entry(
        self, db: AsyncSession, entry_id: str, from_status: str, to_status: str
    ) -> bool: ...

    async def get_table(self, db: AsyncSession, table_id: str) -> FloorTable | None: ...

    async def list_tables(self, db: AsyncSession, club_id: str | None) -> list[FloorTable]: ...

    async def add_table(self, db: AsyncSession, table: FloorTable) -> None: ...

    async def set_table_status(self, db: AsyncSession, table_id: str, status: str) -> None: ...

    async def add_seat(self, db: AsyncSession, table_id: str, player_id: str, chips: int) -> None: ...

    async def remove_seat(self, db: AsyncSession, table_id: str, player_id: str) -> bool: ...

    async def table_balance(self, db: AsyncSession, player_id: str) -> int: ...
