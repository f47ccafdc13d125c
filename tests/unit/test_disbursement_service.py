"""Tests for DisbursementProcessor: no-overdraw, idempotent approval, atomic rollback."""

import asyncio
from collections.abc import AsyncGenerator
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.cc_common.database import create_schema, make_engine
from src.cc_common.enums import AdjustDirection, DecisionOutcome, EventType
from src.cc_common.errors import (
    AlreadyProcessedError,
    InsufficientCreditError,
    NotEligibleError,
    NotFoundError,
    ValidationError,
)
from src.cc_common.locks import PlayerLockRegistry
from src.cc_disbursement.application.service import DisbursementProcessor
from src.cc_ledger.application.service import LedgerApplicationService
from src.cc_realtime.application.notifier import Notifier
from src.cc_realtime.bus.event_bus import EventBus
from src.cc_realtime.domain.models import player_topic
from src.cc_requests.application.service import RequestRegistryService

if TYPE_CHECKING:
    from tests.conftest import EventRecorder


class Credit:
    """The three services wired to one notifier and one lock registry."""

    def __init__(self, notifier: Notifier, locks: PlayerLockRegistry) -> None:
        self.ledger = LedgerApplicationService(notifier=notifier, locks=locks)
        self.registry = RequestRegistryService(notifier=notifier)
        self.processor = DisbursementProcessor(ledger=self.ledger, notifier=notifier, locks=locks)

    async def approved_disbursement(
        self, db: AsyncSession, player_id: str, amount: int, club_id: str = "c1"
    ) -> str:
        req = await self.registry.submit(db, player_id, club_id, amount)
        await self.registry.decide(db, req.id, DecisionOutcome.APPROVED, "admin-1")
        disbursement = await self.processor.open(db, req.id)
        return disbursement.id


@pytest.fixture
def credit(notifier: Notifier, locks: PlayerLockRegistry) -> Credit:
    return Credit(notifier, locks)


async def _account_at(credit: Credit, db: AsyncSession, limit: int, balance: int) -> None:
    await credit.ledger.set_limit(db, "p1", "c1", limit)
    if balance:
        await credit.ledger.adjust(db, "p1", balance, AdjustDirection.CREDIT)


class TestOpen:
    async def test_snapshots_account(self, db: AsyncSession, credit: Credit) -> None:
        await _account_at(credit, db, 100000, 30000)
        dsb_id = await credit.approved_disbursement(db, "p1", 20000)
        dsb = await credit.processor.get(db, dsb_id)
        assert dsb.status == "PENDING"
        assert dsb.approved_limit == 100000
        assert dsb.current_balance_snapshot == 30000
        assert dsb.requested_amount == 20000

    async def test_pending_request_cannot_open(self, db: AsyncSession, credit: Credit) -> None:
        await _account_at(credit, db, 100000, 0)
        req = await credit.registry.submit(db, "p1", "c1", 1000)
        with pytest.raises(ValidationError):
            await credit.processor.open(db, req.id)

    async def test_open_twice_returns_same(self, db: AsyncSession, credit: Credit) -> None:
        await _account_at(credit, db, 100000, 0)
        req = await credit.registry.submit(db, "p1", "c1", 1000)
        await credit.registry.decide(db, req.id, DecisionOutcome.APPROVED, "admin-1")
        first = await credit.processor.open(db, req.id)
        second = await credit.processor.open(db, req.id)
        assert first.id == second.id

    async def test_player_without_account(self, db: AsyncSession, credit: Credit) -> None:
        req = await credit.registry.submit(db, "p1", "c1", 1000)
        await credit.registry.decide(db, req.id, DecisionOutcome.APPROVED, "admin-1")
        with pytest.raises(NotEligibleError):
            await credit.processor.open(db, req.id)

    async def test_unknown_request(self, db: AsyncSession, credit: Credit) -> None:
        with pytest.raises(NotFoundError):
            await credit.processor.open(db, "crq_missing")


class TestApproveAndDisburse:
    async def test_overdraw_rejected_and_balance_unchanged(
        self, db: AsyncSession, credit: Credit
    ) -> None:
        await _account_at(credit, db, 100000, 80000)
        dsb_id = await credit.approved_disbursement(db, "p1", 25000)

        with pytest.raises(InsufficientCreditError):
            await credit.processor.approve_and_disburse(db, dsb_id, "cashier-1")

        account = await credit.ledger.get_account(db, "p1")
        assert account.current_balance == 80000
        dsb = await credit.processor.get(db, dsb_id)
        assert dsb.status == "PENDING"

    async def test_exact_fit_reaches_limit(self, db: AsyncSession, credit: Credit) -> None:
        await _account_at(credit, db, 100000, 80000)
        dsb_id = await credit.approved_disbursement(db, "p1", 20000)

        dsb = await credit.processor.approve_and_disburse(db, dsb_id, "cashier-1")

        assert dsb.status == "APPROVED"
        assert dsb.decided_by == "cashier-1"
        account = await credit.ledger.get_account(db, "p1")
        assert account.current_balance == 100000
        movements = await credit.ledger.list_movements(db, "p1", None, 1)
        assert movements.items[0].movement_type == "DISBURSEMENT"
        assert movements.items[0].reference_id == dsb_id

    async def test_second_approval_is_rejected(self, db: AsyncSession, credit: Credit) -> None:
        await _account_at(credit, db, 100000, 0)
        dsb_id = await credit.approved_disbursement(db, "p1", 20000)
        await credit.processor.approve_and_disburse(db, dsb_id, "cashier-1")

        with pytest.raises(AlreadyProcessedError):
            await credit.processor.approve_and_disburse(db, dsb_id, "cashier-1")

        account = await credit.ledger.get_account(db, "p1")
        assert account.current_balance == 20000

    async def test_removed_player_not_eligible(self, db: AsyncSession, credit: Credit) -> None:
        await _account_at(credit, db, 100000, 0)
        dsb_id = await credit.approved_disbursement(db, "p1", 20000)
        await credit.ledger.remove(db, "p1")

        with pytest.raises(NotEligibleError):
            await credit.processor.approve_and_disburse(db, dsb_id, "cashier-1")
        assert (await credit.processor.get(db, dsb_id)).status == "PENDING"

    async def test_events_after_commit(
        self, db: AsyncSession, credit: Credit, recorder: "EventRecorder"
    ) -> None:
        await _account_at(credit, db, 100000, 0)
        dsb_id = await credit.approved_disbursement(db, "p1", 20000)
        recorder.watch(player_topic("p1"))

        await credit.processor.approve_and_disburse(db, dsb_id, "cashier-1")

        kinds = [e.payload["kind"] for e in recorder.events(EventType.CREDIT_STATUS_CHANGED.value)]
        assert kinds == ["disbursement", "ledger"]

    async def test_failure_publishes_nothing(
        self, db: AsyncSession, credit: Credit, recorder: "EventRecorder"
    ) -> None:
        await _account_at(credit, db, 100000, 90000)
        dsb_id = await credit.approved_disbursement(db, "p1", 20000)
        recorder.watch(player_topic("p1"))

        with pytest.raises(InsufficientCreditError):
            await credit.processor.approve_and_disburse(db, dsb_id, "cashier-1")
        assert recorder.events() == []


class TestReject:
    async def test_reject_leaves_ledger(self, db: AsyncSession, credit: Credit) -> None:
        await _account_at(credit, db, 100000, 0)
        dsb_id = await credit.approved_disbursement(db, "p1", 20000)

        dsb = await credit.processor.reject(db, dsb_id, "cashier-1", "no cash float")

        assert dsb.status == "REJECTED"
        assert dsb.rejection_reason == "no cash float"
        assert (await credit.ledger.get_account(db, "p1")).current_balance == 0
        with pytest.raises(AlreadyProcessedError):
            await credit.processor.approve_and_disburse(db, dsb_id, "cashier-1")

    async def test_list_filters(self, db: AsyncSession, credit: Credit) -> None:
        await _account_at(credit, db, 100000, 0)
        a = await credit.approved_disbursement(db, "p1", 1000)
        await credit.approved_disbursement(db, "p1", 2000)
        await credit.processor.reject(db, a, "cashier-1", "duplicate")
        pending = await credit.processor.list_disbursements(db, "c1", "PENDING")
        assert len(pending.items) == 1
        mine = await credit.processor.list_disbursements(db, "c1", player_id="p1")
        assert len(mine.items) == 2


class TestConcurrentApprovals:
    """Two sessions racing on one player against a file-backed database."""

    @pytest.fixture
    async def sessions(
        self, tmp_path: Path
    ) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
        eng = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'race.db'}")
        await create_schema(eng)
        yield async_sessionmaker(eng, class_=AsyncSession, expire_on_commit=False)
        await eng.dispose()

    async def test_only_one_of_two_fits(
        self, sessions: async_sessionmaker[AsyncSession]
    ) -> None:
        credit = Credit(Notifier(EventBus()), PlayerLockRegistry())
        async with sessions() as db:
            await _account_at(credit, db, 100000, 0)
            first = await credit.approved_disbursement(db, "p1", 60000)
            second = await credit.approved_disbursement(db, "p1", 60000)

        async def approve(dsb_id: str) -> str:
            async with sessions() as db:
                try:
                    await credit.processor.approve_and_disburse(db, dsb_id, "cashier-1")
                except InsufficientCreditError:
                    return "insufficient"
                return "approved"

        results = await asyncio.gather(approve(first), approve(second))

        assert sorted(results) == ["approved", "insufficient"]
        async with sessions() as db:
            assert (await credit.ledger.get_account(db, "p1")).current_balance == 60000

    async def test_same_disbursement_approved_once(
        self, sessions: async_sessionmaker[AsyncSession]
    ) -> None:
        credit = Credit(Notifier(EventBus()), PlayerLockRegistry())
        async with sessions() as db:
            await _account_at(credit, db, 100000, 0)
            dsb_id = await credit.approved_disbursement(db, "p1", 30000)

        async def approve() -> str:
            async with sessions() as db:
                try:
                    await credit.processor.approve_and_disburse(db, dsb_id, "cashier-1")
                except AlreadyProcessedError:
                    return "already"
                return "approved"

        results = await asyncio.gather(approve(), approve())

        assert sorted(results) == ["already", "approved"]
        async with sessions() as db:
            assert (await credit.ledger.get_account(db, "p1")).current_balance == 30000
