"""Tests for RequestRegistryService: terminal decisions, visibility and the feature gate."""

from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_common.enums import AccountStatus, DecisionOutcome, EventType, KycStatus
from src.cc_common.errors import (
    AlreadyDecidedError,
    IneligibleError,
    NotFoundError,
    ValidationError,
)
from src.cc_realtime.application.notifier import Notifier
from src.cc_realtime.domain.models import club_topic, player_topic
from src.cc_requests.application.service import RequestRegistryService
from src.cc_requests.domain.models import CreditFeatureRequest

if TYPE_CHECKING:
    from tests.conftest import EventRecorder


@pytest.fixture
def registry(notifier: Notifier) -> RequestRegistryService:
    return RequestRegistryService(notifier=notifier)


class TestSubmit:
    async def test_pending_with_defaults(
        self, db: AsyncSession, registry: RequestRegistryService
    ) -> None:
        req = await registry.submit(db, "p1", "c1", 25000, reason="weekend game")
        assert req.id.startswith("crq_")
        assert req.status == "PENDING"
        assert req.requested_limit == 25000
        assert req.visible_to_player is True
        assert req.amount_display == "₹250.00"

    @pytest.mark.parametrize("amount", [0, -100])
    async def test_rejects_non_positive_amount(
        self, db: AsyncSession, registry: RequestRegistryService, amount: int
    ) -> None:
        with pytest.raises(ValidationError):
            await registry.submit(db, "p1", "c1", amount)

    async def test_publishes_to_player_and_club(
        self,
        db: AsyncSession,
        registry: RequestRegistryService,
        recorder: "EventRecorder",
    ) -> None:
        recorder.watch(player_topic("p1"), club_topic("c1"))
        req = await registry.submit(db, "p1", "c1", 1000)
        events = recorder.events(EventType.CREDIT_STATUS_CHANGED.value)
        assert len(events) == 2
        assert all(e.payload["entity_id"] == req.id for e in events)
        assert all(e.payload["status"] == "PENDING" for e in events)


class TestDecide:
    async def test_approve(self, db: AsyncSession, registry: RequestRegistryService) -> None:
        req = await registry.submit(db, "p1", "c1", 1000)
        decided = await registry.decide(db, req.id, DecisionOutcome.APPROVED, "admin-1", "ok")
        assert decided.status == "APPROVED"
        assert decided.decided_by == "admin-1"
        assert decided.decision_notes == "ok"
        stored = await registry.get_request(db, req.id)
        assert stored.status == "APPROVED"

    @pytest.mark.parametrize(
        ("first", "second"),
        [
            (DecisionOutcome.APPROVED, DecisionOutcome.REJECTED),
            (DecisionOutcome.REJECTED, DecisionOutcome.APPROVED),
            (DecisionOutcome.APPROVED, DecisionOutcome.APPROVED),
        ],
    )
    async def test_terminal_states_are_final(
        self,
        db: AsyncSession,
        registry: RequestRegistryService,
        first: DecisionOutcome,
        second: DecisionOutcome,
    ) -> None:
        req = await registry.submit(db, "p1", "c1", 1000)
        await registry.decide(db, req.id, first, "admin-1")
        with pytest.raises(AlreadyDecidedError):
            await registry.decide(db, req.id, second, "admin-2")
        stored = await registry.get_request(db, req.id)
        assert stored.status == first.value
        assert stored.decided_by == "admin-1"

    async def test_unknown_request(self, db: AsyncSession, registry: RequestRegistryService) -> None:
        with pytest.raises(NotFoundError):
            await registry.decide(db, "crq_missing", DecisionOutcome.APPROVED, "admin-1")

    async def test_other_club_cannot_decide(
        self, db: AsyncSession, registry: RequestRegistryService
    ) -> None:
        req = await registry.submit(db, "p1", "c1", 1000)
        with pytest.raises(NotFoundError):
            await registry.decide(db, req.id, DecisionOutcome.APPROVED, "admin-2", club_id="c2")


class TestListing:
    async def test_hidden_requests_excluded_for_player(
        self, db: AsyncSession, registry: RequestRegistryService
    ) -> None:
        shown = await registry.submit(db, "p1", "c1", 1000)
        hidden = await registry.submit(db, "p1", "c1", 2000)
        await registry.submit(db, "p2", "c1", 3000)
        await registry.set_visibility(db, hidden.id, False)

        mine = await registry.list_for_player(db, "p1")
        assert [r.id for r in mine.items] == [shown.id]

        staff_view = await registry.list_requests(db, "c1")
        assert len(staff_view.items) == 3

    async def test_status_filter(self, db: AsyncSession, registry: RequestRegistryService) -> None:
        a = await registry.submit(db, "p1", "c1", 1000)
        await registry.submit(db, "p1", "c1", 2000)
        await registry.decide(db, a.id, DecisionOutcome.REJECTED, "admin-1")
        pending = await registry.list_requests(db, "c1", "PENDING")
        assert len(pending.items) == 1
        assert pending.items[0].status == "PENDING"

    async def test_visibility_change_on_decided_request(
        self, db: AsyncSession, registry: RequestRegistryService
    ) -> None:
        req = await registry.submit(db, "p1", "c1", 1000)
        await registry.decide(db, req.id, DecisionOutcome.APPROVED, "admin-1")
        hidden = await registry.set_visibility(db, req.id, False)
        assert hidden.visible_to_player is False
        assert hidden.status == "APPROVED"


class TestFeatureRequests:
    async def test_approve_when_eligible(
        self, db: AsyncSession, registry: RequestRegistryService
    ) -> None:
        req = await registry.submit_feature(
            db, "p1", "c1", KycStatus.APPROVED.value, AccountStatus.ACTIVE.value, "cashier-1"
        )
        assert req.id.startswith("cfr_")
        decided = await registry.decide_feature(db, req.id, DecisionOutcome.APPROVED, "admin-1")
        assert decided.status == "APPROVED"

    async def test_approve_blocked_without_kyc(
        self, db: AsyncSession, registry: RequestRegistryService
    ) -> None:
        req = await registry.submit_feature(
            db, "p1", "c1", KycStatus.PENDING.value, AccountStatus.ACTIVE.value
        )
        with pytest.raises(IneligibleError):
            await registry.decide_feature(db, req.id, DecisionOutcome.APPROVED, "admin-1")
        listed = await registry.list_feature_requests(db, "c1", "PENDING")
        assert [r.id for r in listed.items] == [req.id]

    async def test_reject_records_reason_and_is_final(
        self, db: AsyncSession, registry: RequestRegistryService
    ) -> None:
        req = await registry.submit_feature(
            db, "p1", "c1", KycStatus.APPROVED.value, AccountStatus.SUSPENDED.value
        )
        rejected = await registry.decide_feature(
            db, req.id, DecisionOutcome.REJECTED, "admin-1", "account suspended"
        )
        assert rejected.rejection_reason == "account suspended"
        with pytest.raises(AlreadyDecidedError):
            await registry.decide_feature(db, req.id, DecisionOutcome.REJECTED, "admin-1")


@pytest.mark.parametrize(
    ("kyc", "account", "expected"),
    [
        ("APPROVED", "ACTIVE", None),
        ("PENDING", "ACTIVE", "KYC status is PENDING"),
        ("APPROVED", "INACTIVE", "account status is INACTIVE"),
    ],
)
def test_ineligibility(kyc: str, account: str, expected: str | None) -> None:
    req = CreditFeatureRequest(
        id="cfr_1", club_id="c1", player_id="p1", kyc_status=kyc,
        account_status=account, status="PENDING",
    )
    assert req.ineligibility() == expected
