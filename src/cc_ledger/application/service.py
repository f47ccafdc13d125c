"""LedgerApplicationService: owns credit_limit / current_balance per player.

Every mutation runs under the player's lock and inside one transaction:
read the live account, apply a pure rule, compare-and-swap the row, append a
movement, commit. The change notification goes out only after the commit.

apply_adjustment() is the lock-free, commit-free core that other services
(the disbursement processor) call inside their own lock and transaction.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_common.enums import AdjustDirection, Eligibility, MovementType
from src.cc_common.errors import NotEligibleError, NotFoundError
from src.cc_common.locks import PlayerLockRegistry, player_locks
from src.cc_floor.infrastructure.persistence import FloorRepository
from src.cc_ledger.application.schemas import (
    AccountListResponse,
    AccountResponse,
    MovementItem,
    MovementsResponse,
    PlayerBalanceResponse,
    cursor_decode,
    cursor_encode,
)
from src.cc_ledger.domain.models import CreditAccount, PlayerBalance
from src.cc_ledger.domain.repository import (
    CreditAccountRepositoryProtocol,
    TableBalanceReaderProtocol,
)
from src.cc_ledger.domain.rules import assert_invariant, balance_after_adjust, check_new_limit
from src.cc_ledger.infrastructure.persistence import CreditAccountRepository
from src.cc_realtime.application.notifier import Notifier

logger = logging.getLogger(__name__)


class LedgerApplicationService:
    def __init__(
        self,
        repo: CreditAccountRepositoryProtocol | None = None,
        notifier: Notifier | None = None,
        locks: PlayerLockRegistry | None = None,
        tables: TableBalanceReaderProtocol | None = None,
    ) -> None:
        self._repo: CreditAccountRepositoryProtocol = repo or CreditAccountRepository()
        self._notifier = notifier or Notifier()
        self._locks = locks or player_locks
        self._tables: TableBalanceReaderProtocol = tables or FloorRepository()

    @property
    def repo(self) -> CreditAccountRepositoryProtocol:
        return self._repo

    # --- reads ---

    async def get_account(
        self, db: AsyncSession, player_id: str, club_id: str | None = None
    ) -> AccountResponse:
        account = await self._load(db, player_id, club_id)
        return AccountResponse.from_domain(account)

    async def available_credit(self, db: AsyncSession, player_id: str) -> int:
        account = await self._load(db, player_id)
        return account.available_credit

    async def list_accounts(
        self, db: AsyncSession, club_id: str | None, eligibility: str | None = None
    ) -> AccountListResponse:
        accounts = await self._repo.list_accounts(db, club_id, eligibility)
        return AccountListResponse(items=[AccountResponse.from_domain(a) for a in accounts])

    async def list_movements(
        self,
        db: AsyncSession,
        player_id: str,
        cursor: str | None,
        limit: int,
        club_id: str | None = None,
    ) -> MovementsResponse:
        await self._load(db, player_id, club_id)
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        movements = await self._repo.list_movements(db, player_id, cursor_id, limit + 1)
        has_more = len(movements) > limit
        page = movements[:limit]
        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return MovementsResponse(
            items=[MovementItem.from_domain(m) for m in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )

    async def get_player_balance(self, db: AsyncSession, player_id: str) -> PlayerBalanceResponse:
        """Spendable credit plus chips on the floor. Players without an account read as zero."""
        account = await self._repo.get_account(db, player_id)
        available = account.current_balance if account is not None else 0
        table_balance = await self._tables.table_balance(db, player_id)
        return PlayerBalanceResponse.from_domain(
            PlayerBalance(player_id=player_id, available_balance=available, table_balance=table_balance)
        )

    # --- mutations ---

    async def set_limit(
        self,
        db: AsyncSession,
        player_id: str,
        club_id: str,
        new_limit: int,
        actor_id: str | None = None,
        scope_club_id: str | None = None,
    ) -> AccountResponse:
        """Create the account (balance 0) or change its limit; re-activates a removed account."""
        async with self._locks.for_player(player_id):
            try:
                account = await self._repo.get_account(db, player_id)
                if account is not None and scope_club_id not in (None, account.club_id):
                    raise NotFoundError("Credit account", player_id)
                check_new_limit(account, new_limit)
                if account is None:
                    account = await self._repo.create_account(db, player_id, club_id, new_limit)
                else:
                    account = await self._repo.compare_and_set(
                        db,
                        account,
                        credit_limit=new_limit,
                        current_balance=account.current_balance,
                        eligibility=Eligibility.ACTIVE.value,
                    )
                assert_invariant(account)
                await self._repo.add_movement(
                    db,
                    player_id,
                    MovementType.LIMIT_SET.value,
                    0,
                    account.current_balance,
                    reference_type="LIMIT",
                    reference_id=str(new_limit),
                    description=f"limit set by {actor_id}" if actor_id else None,
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        logger.info("Credit limit for %s set to %d", player_id, new_limit)
        await self._notify(account, "ledger")
        return AccountResponse.from_domain(account)

    async def adjust(
        self,
        db: AsyncSession,
        player_id: str,
        delta: int,
        direction: AdjustDirection,
        description: str | None = None,
        club_id: str | None = None,
    ) -> AccountResponse:
        """Manual CREDIT/DEBIT. Credits past the limit fail; debits clamp at zero."""
        async with self._locks.for_player(player_id):
            try:
                await self._load(db, player_id, club_id)
                account = await self.apply_adjustment(
                    db,
                    player_id,
                    delta,
                    direction,
                    movement_type=MovementType(direction.value),
                    description=description,
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        await self._notify(account, "ledger")
        return AccountResponse.from_domain(account)

    async def remove(
        self, db: AsyncSession, player_id: str, club_id: str | None = None
    ) -> AccountResponse:
        """Take the player out of the credit-eligible set. The row is kept."""
        async with self._locks.for_player(player_id):
            try:
                account = await self._load(db, player_id, club_id)
                if account.is_eligible:
                    account = await self._repo.compare_and_set(
                        db,
                        account,
                        credit_limit=account.credit_limit,
                        current_balance=account.current_balance,
                        eligibility=Eligibility.REMOVED.value,
                    )
                    await self._repo.add_movement(
                        db, player_id, MovementType.REMOVED.value, 0, account.current_balance
                    )
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        logger.info("Player %s removed from credit-eligible set", player_id)
        await self._notify(account, "ledger")
        return AccountResponse.from_domain(account)

    # --- transaction-scoped core ---

    async def apply_adjustment(
        self,
        db: AsyncSession,
        player_id: str,
        delta: int,
        direction: AdjustDirection,
        *,
        movement_type: MovementType,
        reference_type: str | None = None,
        reference_id: str | None = None,
        description: str | None = None,
    ) -> CreditAccount:
        """Apply one balance change inside the caller's lock and transaction. No commit."""
        account = await self._repo.get_account(db, player_id)
        if account is None:
            raise NotEligibleError(player_id)
        new_balance = balance_after_adjust(account, delta, direction)
        updated = await self._repo.compare_and_set(
            db,
            account,
            credit_limit=account.credit_limit,
            current_balance=new_balance,
            eligibility=account.eligibility,
        )
        assert_invariant(updated)
        await self._repo.add_movement(
            db,
            player_id,
            movement_type.value,
            new_balance - account.current_balance,
            new_balance,
            reference_type=reference_type,
            reference_id=reference_id,
            description=description,
        )
        return updated

    # --- helpers ---

    async def _load(
        self, db: AsyncSession, player_id: str, club_id: str | None = None
    ) -> CreditAccount:
        account = await self._repo.get_account(db, player_id)
        if account is None or (club_id is not None and account.club_id != club_id):
            raise NotFoundError("Credit account", player_id)
        return account

    async def _notify(self, account: CreditAccount, kind: str) -> None:
        await self._notifier.credit_changed(
            player_id=account.player_id,
            club_id=account.club_id,
            kind=kind,
            entity_id=account.player_id,
            status=account.eligibility,
            version=account.version,
        )
