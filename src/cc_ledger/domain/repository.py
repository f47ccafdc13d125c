"""Repository Protocol: dependency inversion for testability.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_ledger.domain.models import CreditAccount, CreditMovement


class CreditAccountRepositoryProtocol(Protocol):
    async def get_account(self, db: AsyncSession, player_id: str) -> CreditAccount | None: ...

    async def list_accounts(
        self, db: AsyncSession, club_id: str | None, eligibility: str | None
    ) -> list[CreditAccount]: ...

    async def create_account(
        self, db: AsyncSession, player_id: str, club_id: str, credit_limit: int
    ) -> CreditAccount: ...

    async def compare_and_set(
        self,
        db: AsyncSession,
        account: CreditAccount,
        *,
        credit_limit: int,
        current_balance: int,
        eligibility: str,
    ) -> CreditAccount: ...

    async def add_movement(
        self,
        db: AsyncSession,
        player_id: str,
        movement_type: str,
        amount: int,
        balance_after: int,
        reference_type: str | None = None,
        reference_id: str | None = None,
        description: str | None = None,
    ) -> CreditMovement: ...

    async def list_movements(
        self, db: AsyncSession, player_id: str, cursor_id: int | None, limit: int
    ) -> list[CreditMovement]: ...


class TableBalanceReaderProtocol(Protocol):
    async def table_balance(self, db: AsyncSession, player_id: str) -> int: ...
