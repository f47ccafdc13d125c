"""CreditAccountRepository: concrete implementation of CreditAccountRepositoryProtocol.

Balance/limit writes are compare-and-swap UPDATEs on the account's version
column. A result of 0 rows means another writer got there first.

Transaction ownership: the CALLER (application service) commits or rolls back.
"""

from typing import Any

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_common.datetime_utils import utc_now
from src.cc_common.errors import ConcurrentUpdateError, InternalError
from src.cc_ledger.domain.models import CreditAccount, CreditMovement
from src.cc_ledger.infrastructure.db_models import CreditAccountORM, CreditMovementORM

_accounts = CreditAccountORM.__table__
_movements = CreditMovementORM.__table__


def _row_to_account(row: Any) -> CreditAccount:
    return CreditAccount(
        player_id=row.player_id,
        club_id=row.club_id,
        credit_limit=row.credit_limit,
        current_balance=row.current_balance,
        eligibility=row.eligibility,
        version=row.version,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_movement(row: Any) -> CreditMovement:
    return CreditMovement(
        id=row.id,
        player_id=row.player_id,
        movement_type=row.movement_type,
        amount=row.amount,
        balance_after=row.balance_after,
        reference_type=row.reference_type,
        reference_id=row.reference_id,
        description=row.description,
        created_at=row.created_at,
    )


class CreditAccountRepository:
    async def get_account(self, db: AsyncSession, player_id: str) -> CreditAccount | None:
        result = await db.execute(select(_accounts).where(_accounts.c.player_id == player_id))
        row = result.fetchone()
        return _row_to_account(row) if row is not None else None

    async def list_accounts(
        self, db: AsyncSession, club_id: str | None, eligibility: str | None
    ) -> list[CreditAccount]:
        stmt = select(_accounts).order_by(_accounts.c.player_id)
        if club_id is not None:
            stmt = stmt.where(_accounts.c.club_id == club_id)
        if eligibility is not None:
            stmt = stmt.where(_accounts.c.eligibility == eligibility)
        result = await db.execute(stmt)
        return [_row_to_account(r) for r in result.fetchall()]

    async def create_account(
        self, db: AsyncSession, player_id: str, club_id: str, credit_limit: int
    ) -> CreditAccount:
        now = utc_now()
        await db.execute(
            insert(_accounts).values(
                player_id=player_id,
                club_id=club_id,
                credit_limit=credit_limit,
                current_balance=0,
                eligibility="ACTIVE",
                version=0,
                created_at=now,
                updated_at=now,
            )
        )
        account = await self.get_account(db, player_id)
        if account is None:
            raise InternalError(f"Credit account insert lost for {player_id}")
        return account

    async def compare_and_set(
        self,
        db: AsyncSession,
        account: CreditAccount,
        *,
        credit_limit: int,
        current_balance: int,
        eligibility: str,
    ) -> CreditAccount:
        result = await db.execute(
            update(_accounts)
            .where(
                _accounts.c.player_id == account.player_id,
                _accounts.c.version == account.version,
            )
            .values(
                credit_limit=credit_limit,
                current_balance=current_balance,
                eligibility=eligibility,
                version=account.version + 1,
                updated_at=utc_now(),
            )
        )
        if result.rowcount == 0:
            raise ConcurrentUpdateError(account.player_id)
        updated = await self.get_account(db, account.player_id)
        if updated is None:
            raise InternalError(f"Credit account vanished: {account.player_id}")
        return updated

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
    ) -> CreditMovement:
        now = utc_now()
        result = await db.execute(
            insert(_movements).values(
                player_id=player_id,
                movement_type=movement_type,
                amount=amount,
                balance_after=balance_after,
                reference_type=reference_type,
                reference_id=reference_id,
                description=description,
                created_at=now,
            )
        )
        return CreditMovement(
            id=result.inserted_primary_key[0],
            player_id=player_id,
            movement_type=movement_type,
            amount=amount,
            balance_after=balance_after,
            reference_type=reference_type,
            reference_id=reference_id,
            description=description,
            created_at=now,
        )

    async def list_movements(
        self, db: AsyncSession, player_id: str, cursor_id: int | None, limit: int
    ) -> list[CreditMovement]:
        stmt = (
            select(_movements)
            .where(_movements.c.player_id == player_id)
            .order_by(_movements.c.id.desc())
            .limit(limit)
        )
        if cursor_id is not None:
            stmt = stmt.where(_movements.c.id < cursor_id)
        result = await db.execute(stmt)
        return [_row_to_movement(r) for r in result.fetchall()]
