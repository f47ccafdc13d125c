"""Tests for LedgerApplicationService against an in-memory SQLite database."""

from typing import TYPE_CHECKING
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_common.enums import AdjustDirection, EventType, MovementType
from src.cc_common.errors import (
    ConcurrentUpdateError,
    CreditLimitExceededError,
    NotEligibleError,
    NotFoundError,
    ValidationError,
)
from src.cc_common.locks import PlayerLockRegistry
from src.cc_ledger.application.service import LedgerApplicationService
from src.cc_ledger.domain.models import CreditAccount
from src.cc_realtime.application.notifier import Notifier
from src.cc_realtime.domain.models import club_topic, player_topic

if TYPE_CHECKING:
    from tests.conftest import EventRecorder


@pytest.fixture
def ledger(notifier: Notifier, locks: PlayerLockRegistry) -> LedgerApplicationService:
    return LedgerApplicationService(notifier=notifier, locks=locks)


class TestSetLimit:
    async def test_creates_account_with_zero_balance(
        self, db: AsyncSession, ledger: LedgerApplicationService
    ) -> None:
        resp = await ledger.set_limit(db, "p1", "c1", 100000)
        assert resp.credit_limit == 100000
        assert resp.current_balance == 0
        assert resp.available_credit == 100000
        assert resp.eligibility == "ACTIVE"
        assert resp.credit_limit_display == "₹1,000.00"

    async def test_change_limit_bumps_version(
        self, db: AsyncSession, ledger: LedgerApplicationService
    ) -> None:
        first = await ledger.set_limit(db, "p1", "c1", 100000)
        second = await ledger.set_limit(db, "p1", "c1", 150000)
        assert second.credit_limit == 150000
        assert second.version == first.version + 1

    async def test_limit_below_balance_rejected(
        self, db: AsyncSession, ledger: LedgerApplicationService
    ) -> None:
        await ledger.set_limit(db, "p1", "c1", 100000)
        await ledger.adjust(db, "p1", 60000, AdjustDirection.CREDIT)
        with pytest.raises(ValidationError):
            await ledger.set_limit(db, "p1", "c1", 50000)
        account = await ledger.get_account(db, "p1")
        assert account.credit_limit == 100000

    async def test_other_club_cannot_touch_account(
        self, db: AsyncSession, ledger: LedgerApplicationService
    ) -> None:
        await ledger.set_limit(db, "p1", "c1", 100000)
        with pytest.raises(NotFoundError):
            await ledger.set_limit(db, "p1", "c2", 500, scope_club_id="c2")

    async def test_reactivates_removed_account(
        self, db: AsyncSession, ledger: LedgerApplicationService
    ) -> None:
        await ledger.set_limit(db, "p1", "c1", 100000)
        await ledger.remove(db, "p1")
        resp = await ledger.set_limit(db, "p1", "c1", 100000)
        assert resp.eligibility == "ACTIVE"


class TestAdjust:
    async def test_debit_clamps_at_zero(
        self, db: AsyncSession, ledger: LedgerApplicationService
    ) -> None:
        await ledger.set_limit(db, "p1", "c1", 100000)
        await ledger.adjust(db, "p1", 5000, AdjustDirection.CREDIT)
        resp = await ledger.adjust(db, "p1", 9000, AdjustDirection.DEBIT)
        assert resp.current_balance == 0

        movements = await ledger.list_movements(db, "p1", None, 10)
        # Newest first; the movement records the change actually applied
        assert movements.items[0].movement_type == MovementType.DEBIT.value
        assert movements.items[0].amount == -5000
        assert movements.items[0].balance_after == 0

    async def test_credit_past_limit_leaves_balance(
        self, db: AsyncSession, ledger: LedgerApplicationService
    ) -> None:
        await ledger.set_limit(db, "p1", "c1", 100000)
        await ledger.adjust(db, "p1", 80000, AdjustDirection.CREDIT)
        with pytest.raises(CreditLimitExceededError):
            await ledger.adjust(db, "p1", 25000, AdjustDirection.CREDIT)
        assert await ledger.available_credit(db, "p1") == 20000

    async def test_unknown_player(self, db: AsyncSession, ledger: LedgerApplicationService) -> None:
        with pytest.raises(NotFoundError):
            await ledger.adjust(db, "ghost", 100, AdjustDirection.CREDIT)

    async def test_removed_player_not_eligible(
        self, db: AsyncSession, ledger: LedgerApplicationService
    ) -> None:
        await ledger.set_limit(db, "p1", "c1", 100000)
        removed = await ledger.remove(db, "p1")
        assert removed.eligibility == "REMOVED"
        with pytest.raises(NotEligibleError):
            await ledger.adjust(db, "p1", 100, AdjustDirection.CREDIT)


class TestReads:
    async def test_player_without_account_reads_zero(
        self, db: AsyncSession, ledger: LedgerApplicationService
    ) -> None:
        balance = await ledger.get_player_balance(db, "nobody")
        assert balance.available_balance == 0
        assert balance.table_balance == 0
        assert balance.total_balance == 0

    async def test_player_balance_is_current_balance(
        self, db: AsyncSession, ledger: LedgerApplicationService
    ) -> None:
        await ledger.set_limit(db, "p1", "c1", 100000)
        await ledger.adjust(db, "p1", 30000, AdjustDirection.CREDIT)
        balance = await ledger.get_player_balance(db, "p1")
        assert balance.available_balance == 30000
        assert balance.available_balance_display == "₹300.00"

    async def test_list_accounts_scoped_by_club(
        self, db: AsyncSession, ledger: LedgerApplicationService
    ) -> None:
        await ledger.set_limit(db, "p1", "c1", 100)
        await ledger.set_limit(db, "p2", "c2", 100)
        listed = await ledger.list_accounts(db, "c1")
        assert [a.player_id for a in listed.items] == ["p1"]

    async def test_movement_pagination(
        self, db: AsyncSession, ledger: LedgerApplicationService
    ) -> None:
        await ledger.set_limit(db, "p1", "c1", 100000)
        for _ in range(3):
            await ledger.adjust(db, "p1", 100, AdjustDirection.CREDIT)
        page = await ledger.list_movements(db, "p1", None, 2)
        assert len(page.items) == 2
        assert page.has_more
        rest = await ledger.list_movements(db, "p1", page.next_cursor, 2)
        assert len(rest.items) == 2
        assert not rest.has_more


class TestNotifications:
    async def test_change_published_on_player_and_club_topics(
        self,
        db: AsyncSession,
        ledger: LedgerApplicationService,
        recorder: "EventRecorder",
    ) -> None:
        recorder.watch(player_topic("p1"), club_topic("c1"))
        await ledger.set_limit(db, "p1", "c1", 100000)
        events = recorder.events(EventType.CREDIT_STATUS_CHANGED.value)
        assert {e.topic for e in events} == {"player:p1", "club:c1"}
        assert events[0].payload["kind"] == "ledger"
        assert events[0].payload["entity_id"] == "p1"

    async def test_failed_mutation_publishes_nothing(
        self,
        db: AsyncSession,
        ledger: LedgerApplicationService,
        recorder: "EventRecorder",
    ) -> None:
        await ledger.set_limit(db, "p1", "c1", 100)
        recorder.watch(player_topic("p1"))
        with pytest.raises(CreditLimitExceededError):
            await ledger.adjust(db, "p1", 500, AdjustDirection.CREDIT)
        assert recorder.events() == []

    async def test_concurrent_update_rolls_back(self, notifier: Notifier) -> None:
        account = CreditAccount(
            player_id="p1",
            club_id="c1",
            credit_limit=100000,
            current_balance=0,
            eligibility="ACTIVE",
            version=3,
        )
        repo = AsyncMock()
        repo.get_account.return_value = account
        repo.compare_and_set.side_effect = ConcurrentUpdateError("p1")
        db = AsyncMock()
        svc = LedgerApplicationService(
            repo=repo, notifier=notifier, locks=PlayerLockRegistry(), tables=AsyncMock()
        )

        with pytest.raises(ConcurrentUpdateError):
            await svc.adjust(db, "p1", 100, AdjustDirection.CREDIT)

        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()
        repo.add_movement.assert_not_awaited()
